# SPDX-License-Identifier: Apache-2.0

"""
Emergency request endpoints.

This module implements the HTTP transport for the request lifecycle:
creation, responder claims, status changes, deletion, and the read views
for requesters, responders and coordinating organizations.
"""

from flask import request, jsonify, current_app, make_response
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging
from functools import wraps

from ..domain.requests import RequestFilters
from ..models.entities import ActorContext
from ..models.requests import ChangeStatusRequest, RequestListQuery, RequestPath
from ..models.responses import (
    EmergencyRequestResponse, RequestCollectionResponse, RequestStatisticsResponse, ProblemResponse
)
from ..middleware.auth import require_auth
from ..middleware.validation import validate_json, validate_query
from ..services.hal import error_status, REQUESTS_PATH

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
requests_tag = Tag(name="Requests", description="Emergency request lifecycle")
requests_bp = APIBlueprint(
    'requests',
    __name__,
    url_prefix=REQUESTS_PATH,
    abp_tags=[requests_tag]
)

REQUEST_RESPONSES = {
    200: EmergencyRequestResponse, 401: ProblemResponse, 403: ProblemResponse, 404: ProblemResponse
}
COLLECTION_RESPONSES = {200: RequestCollectionResponse, 400: ProblemResponse, 401: ProblemResponse}


def require_jwt(f):
    """Simple JWT requirement decorator."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Get auth middleware from current app
        auth_middleware = current_app.auth_middleware
        return require_auth(auth_middleware)(f)(*args, **kwargs)
    return decorated_function


def _problem(error):
    """Render an operation error as a problem response."""
    return jsonify(current_app.hal_formatter.format_operation_error(error, request.path)), error_status(error)


def _request_response(result, actor: ActorContext, status_code: int = 200):
    if not result.success:
        return _problem(result.error)
    return jsonify(current_app.hal_formatter.format_request(result.request, actor)), status_code


def _collection_response(result, actor: ActorContext, collection_path: str, filters=None):
    if not result.success:
        return _problem(result.error)

    page = result.page
    return jsonify(current_app.hal_formatter.format_request_collection(
        page.items,
        page.total,
        page.page,
        page.page_size,
        actor,
        collection_path,
        filters
    )), 200


@requests_bp.post('', responses={
    201: EmergencyRequestResponse, 400: ProblemResponse, 401: ProblemResponse, 403: ProblemResponse
})
@require_jwt
def create_request(actor: ActorContext):
    """
    Create an emergency request.

    Only requesters may create requests. The request starts pending and
    unassigned.
    """
    result = current_app.workflow_service.create_request(actor, request.get_json(silent=True))
    response, status_code = _request_response(result, actor, 201)
    if result.success:
        response.headers['Location'] = f"{REQUESTS_PATH}/{result.request.id}"
    return response, status_code


@requests_bp.get('/my', responses=COLLECTION_RESPONSES)
@require_jwt
@validate_query(RequestListQuery)
def list_my_requests(actor: ActorContext, params: RequestListQuery):
    """List requests created by the caller."""
    result = current_app.workflow_service.list_my_requests(actor, params.page, params.page_size)
    return _collection_response(result, actor, f"{REQUESTS_PATH}/my")


@requests_bp.get('/available', responses=COLLECTION_RESPONSES)
@require_jwt
@validate_query(RequestListQuery)
def list_available_requests(actor: ActorContext, params: RequestListQuery):
    """List pending requests that no responder has claimed yet."""
    result = current_app.workflow_service.list_available_requests(actor, params.page, params.page_size)
    return _collection_response(result, actor, f"{REQUESTS_PATH}/available")


@requests_bp.get('/all', responses={**COLLECTION_RESPONSES, 403: ProblemResponse})
@require_jwt
@validate_query(RequestListQuery)
def list_all_requests(actor: ActorContext, params: RequestListQuery):
    """List every request with optional status, urgency and type filters. Organizations only."""
    filters = RequestFilters(status=params.status, urgency=params.urgency, type=params.type)
    result = current_app.workflow_service.list_all_requests(actor, filters, params.page, params.page_size)

    query_params = {
        'status': params.status.value if params.status else None,
        'urgency': params.urgency.value if params.urgency else None,
        'type': params.type.value if params.type else None,
    }
    return _collection_response(result, actor, f"{REQUESTS_PATH}/all", query_params)


@requests_bp.get('/stats', responses={
    200: RequestStatisticsResponse, 401: ProblemResponse, 403: ProblemResponse
})
@require_jwt
def request_statistics(actor: ActorContext):
    """Request counts by status. Organizations only."""
    result = current_app.workflow_service.request_statistics(actor)
    if not result.success:
        return _problem(result.error)

    statistics = dict(result.statistics)
    statistics['_links'] = {
        'self': {'href': f"{current_app.config['BASE_URL']}{REQUESTS_PATH}/stats"},
        'all': {'href': f"{current_app.config['BASE_URL']}{REQUESTS_PATH}/all"}
    }
    return jsonify(statistics), 200


@requests_bp.get('/<request_id>', responses=REQUEST_RESPONSES)
@require_jwt
def get_request(actor: ActorContext, path: RequestPath):
    """Get a single request."""
    result = current_app.workflow_service.get_request(actor, path.request_id)
    return _request_response(result, actor)


@requests_bp.post('/<request_id>/accept', responses={**REQUEST_RESPONSES, 409: ProblemResponse})
@require_jwt
def accept_request(actor: ActorContext, path: RequestPath):
    """
    Claim a pending request as the calling responder.

    Returns 409 when the request was already claimed or is no longer pending.
    """
    result = current_app.workflow_service.accept_request(actor, path.request_id)
    return _request_response(result, actor)


@requests_bp.patch('/<request_id>/status', responses={
    **REQUEST_RESPONSES, 400: ProblemResponse, 409: ProblemResponse
})
@require_jwt
@validate_json(ChangeStatusRequest)
def change_request_status(actor: ActorContext, payload: ChangeStatusRequest, path: RequestPath):
    """Move a request to another lifecycle status."""
    completed_by = payload.completed_by
    if completed_by is not None and not current_app.config.get('COMPLETED_BY_OVERRIDE_ENABLED', False):
        logger.warning(
            "Ignoring completed_by override; override is disabled",
            extra={"extra_fields": {
                "request_id": path.request_id,
                "user_id": actor.user_id,
                "requested_completed_by": completed_by.value
            }}
        )
        completed_by = None

    result = current_app.workflow_service.change_status(
        actor, path.request_id, payload.status, completed_by
    )
    return _request_response(result, actor)


@requests_bp.delete('/<request_id>', responses={
    204: None, 401: ProblemResponse, 403: ProblemResponse, 404: ProblemResponse, 409: ProblemResponse
})
@require_jwt
def delete_request(actor: ActorContext, path: RequestPath):
    """Delete a request. Refusals report the current status and deletable flag."""
    result = current_app.workflow_service.delete_request(actor, path.request_id)
    if not result.success:
        return _problem(result.error)
    return make_response('', 204)
