# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode
import math

from ..domain import access
from ..domain.errors import ErrorKind, OperationError
from ..models.entities import EmergencyRequest, ActorContext
from ..models.responses import HalLink

REQUESTS_PATH = "/api/requests"

# Problem type, title and HTTP status per operation error kind
ERROR_KIND_PROBLEMS: Dict[ErrorKind, tuple] = {
    ErrorKind.VALIDATION_ERROR: ("validation-error", "Validation Error", 400),
    ErrorKind.NOT_FOUND: ("resource-not-found", "Resource Not Found", 404),
    ErrorKind.FORBIDDEN: ("insufficient-permissions", "Insufficient Permissions", 403),
    ErrorKind.REQUEST_UNAVAILABLE: ("request-unavailable", "Request Unavailable", 409),
    ErrorKind.INVALID_TRANSITION: ("invalid-transition", "Invalid Status Transition", 400),
}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        """Build link to parent collection."""
        return self.build_link(collection_path, title="Collection")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        action_path = f"{resource_path}/{action}"
        return self.build_link(
            action_path,
            method=method,
            content_type="application/json",
            title=title or action.title()
        )


class PaginationLinkBuilder:
    """Builder for pagination links in HAL collections."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _page_link(self, base_path: str, params: Dict[str, Any], page: int, page_size: int, title: str) -> HalLink:
        query = urlencode({**params, 'page': page, 'page_size': page_size})
        return self.link_builder.build_link(f"{base_path}?{query}", title=title)

    def build_pagination_links(
        self,
        base_path: str,
        current_page: int,
        total_pages: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, HalLink]:
        """Build pagination links for a collection."""
        params = {k: v for k, v in (query_params or {}).items() if v is not None}
        links = {'self': self._page_link(base_path, params, current_page, page_size, "Current page")}

        if current_page > 1:
            links['first'] = self._page_link(base_path, params, 1, page_size, "First page")
            links['prev'] = self._page_link(base_path, params, current_page - 1, page_size, "Previous page")

        if current_page < total_pages:
            links['next'] = self._page_link(base_path, params, current_page + 1, page_size, "Next page")
            links['last'] = self._page_link(base_path, params, total_pages, page_size, "Last page")

        return links


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on access and lifecycle state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_request_affordances(self, request: EmergencyRequest, actor: ActorContext) -> Dict[str, HalLink]:
        """
        Build links for a request, offering only actions the actor could perform now.

        Args:
            request: Current request snapshot
            actor: Actor the response is rendered for

        Returns:
            Mapping of link relation to HAL link
        """
        base_path = f"{REQUESTS_PATH}/{request.id}"
        links = {
            'self': self.link_builder.build_self_link(base_path),
            'collection': self.link_builder.build_collection_link(f"{REQUESTS_PATH}/my"),
        }

        for action in access.available_actions(actor, request):
            if action == "accept":
                links['accept'] = self.link_builder.build_action_link(
                    base_path, "accept", title="Accept request"
                )
            elif action == "delete":
                links['delete'] = self.link_builder.build_link(
                    base_path, method="DELETE", title="Delete request"
                )
            else:
                links[action] = self.link_builder.build_action_link(
                    base_path, "status", method="PATCH", title=f"{action.title()} request"
                )

        return links


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.pagination_builder = PaginationLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response with pagination links."""
        total_pages = math.ceil(total / page_size) if page_size > 0 else 1

        pagination_links = self.pagination_builder.build_pagination_links(
            collection_path,
            page,
            total_pages,
            page_size,
            query_params
        )

        return {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': total_pages,
            '_links': {rel: link.model_dump(exclude_none=True) for rel, link in pagination_links.items()},
            '_embedded': {
                'items': items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None,
        extensions: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"https://api.relief.example.org/problems/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        # Problem extension members sit next to the standard ones
        for key, value in (extensions or {}).items():
            error_response.setdefault(key, value)

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )
        elif error_type == "request-unavailable":
            links['available'] = self.link_builder.build_link(
                f"{REQUESTS_PATH}/available",
                title="Available requests"
            )

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_request(self, request: EmergencyRequest, actor: ActorContext) -> Dict[str, Any]:
        """Format an emergency request with HAL links."""
        data = serialize_request(request)
        links = self.builder.affordance_builder.build_request_affordances(request, actor)
        data['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return data

    def format_request_collection(
        self,
        requests: List[EmergencyRequest],
        total: int,
        page: int,
        page_size: int,
        actor: ActorContext,
        collection_path: str,
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format a page of requests with HAL links."""
        items = [self.format_request(request, actor) for request in requests]
        return self.builder.build_collection_response(
            items,
            total,
            page,
            page_size,
            collection_path,
            filters
        )

    def format_operation_error(self, error: OperationError, instance: str) -> Dict[str, Any]:
        """Format a refused operation as a problem document."""
        error_type, title, status = ERROR_KIND_PROBLEMS[error.kind]
        return self.builder.build_error_response(
            error_type,
            title,
            status,
            error.message,
            instance,
            error.validation_errors,
            error.details
        )

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Format a validation error response."""
        return self.builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            detail,
            instance,
            validation_errors
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a server error response."""
        return self.builder.build_error_response(
            "internal-server-error",
            "Internal Server Error",
            500,
            detail,
            instance
        )


def error_status(error: OperationError) -> int:
    """HTTP status for an operation error kind."""
    return ERROR_KIND_PROBLEMS[error.kind][2]


def serialize_request(request: EmergencyRequest) -> Dict[str, Any]:
    """Render a request with camelCase field names and ISO timestamps."""
    def iso(value):
        return value.isoformat() if value else None

    return {
        'id': request.id,
        'requesterId': request.requester_id,
        'type': request.type.value,
        'description': request.description,
        'location': request.location,
        'coordinates': request.coordinates.model_dump() if request.coordinates else None,
        'address': request.address,
        'urgency': request.urgency.value,
        'contactInfo': request.contact_info,
        'status': request.status.value,
        'assignedResponderId': request.assigned_responder_id,
        'assignedAt': iso(request.assigned_at),
        'completedAt': iso(request.completed_at),
        'completedBy': request.completed_by.value if request.completed_by else None,
        'deletable': request.deletable,
        'createdAt': iso(request.created_at),
        'updatedAt': iso(request.updated_at),
        'version': request.version,
    }


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
