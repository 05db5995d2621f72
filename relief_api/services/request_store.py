# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request store implementations with optimistic concurrency.

Every stored record carries a ``version``. Writes name the version they were
computed from and fail with ConcurrentModificationError when another writer
got there first, so concurrent claims of the same request resolve to exactly
one winner.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, List, Optional, Any

from pymongo import ReturnDocument, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError
from pydantic import ValidationError

from ..domain.requests import RequestFilters
from ..models.entities import EmergencyRequest
from .mongodb import MongoDBService, REQUESTS_COLLECTION

logger = logging.getLogger(__name__)


class RequestStoreError(Exception):
    """Base exception for request store failures."""
    pass


class RequestNotFoundError(RequestStoreError):
    """Raised when the addressed request does not exist."""

    def __init__(self, request_id: str):
        super().__init__(f"Request {request_id} not found")
        self.request_id = request_id


class ConcurrentModificationError(RequestStoreError):
    """Raised when a write was computed from a stale version."""

    def __init__(self, request_id: str, expected_version: int):
        super().__init__(f"Request {request_id} was modified concurrently (expected version {expected_version})")
        self.request_id = request_id
        self.expected_version = expected_version


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[EmergencyRequest], total: int, page: int, page_size: int):
        self.items = items
        self.total = total
        self.page = page
        self.page_size = page_size
        self.total_pages = (total + page_size - 1) // page_size
        self.has_next = page < self.total_pages
        self.has_prev = page > 1


class RequestStore(ABC):
    """Persistence contract for emergency requests."""

    @abstractmethod
    def get(self, request_id: str) -> Optional[EmergencyRequest]:
        """Load a request, or None if absent."""

    @abstractmethod
    def create(self, request: EmergencyRequest) -> EmergencyRequest:
        """Insert a new request."""

    @abstractmethod
    def save(self, request: EmergencyRequest, expected_version: int) -> EmergencyRequest:
        """
        Replace a request if its stored version still equals expected_version.

        The stored record receives version expected_version + 1.

        Raises:
            RequestNotFoundError: If the request no longer exists
            ConcurrentModificationError: If the stored version moved on
        """

    @abstractmethod
    def delete(self, request_id: str, expected_version: Optional[int] = None) -> None:
        """
        Remove a request, optionally only if unchanged since expected_version.

        Raises:
            RequestNotFoundError: If the request does not exist
            ConcurrentModificationError: If the stored version moved on
        """

    @abstractmethod
    def list(self, filters: RequestFilters, page: int = 1, page_size: int = 20) -> PaginationResult:
        """List matching requests, newest first."""

    @abstractmethod
    def count_by_status(self) -> Dict[str, int]:
        """Count all requests grouped by status value."""

    def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "store": type(self).__name__}


class InMemoryRequestStore(RequestStore):
    """Thread-safe in-process store for development and tests."""

    def __init__(self):
        self._records: Dict[str, EmergencyRequest] = {}
        self._lock = threading.Lock()

    def get(self, request_id: str) -> Optional[EmergencyRequest]:
        with self._lock:
            return self._records.get(request_id)

    def create(self, request: EmergencyRequest) -> EmergencyRequest:
        with self._lock:
            if request.id in self._records:
                raise RequestStoreError(f"Request {request.id} already exists")
            self._records[request.id] = request
        logger.debug(f"Created request {request.id} in memory")
        return request

    def save(self, request: EmergencyRequest, expected_version: int) -> EmergencyRequest:
        with self._lock:
            current = self._records.get(request.id)
            if current is None:
                raise RequestNotFoundError(request.id)
            if current.version != expected_version:
                raise ConcurrentModificationError(request.id, expected_version)

            stored = request.model_copy(update={"version": expected_version + 1})
            self._records[request.id] = stored
            return stored

    def delete(self, request_id: str, expected_version: Optional[int] = None) -> None:
        with self._lock:
            current = self._records.get(request_id)
            if current is None:
                raise RequestNotFoundError(request_id)
            if expected_version is not None and current.version != expected_version:
                raise ConcurrentModificationError(request_id, expected_version)
            del self._records[request_id]

    def list(self, filters: RequestFilters, page: int = 1, page_size: int = 20) -> PaginationResult:
        with self._lock:
            matching = [r for r in self._records.values() if filters.matches(r)]

        matching.sort(key=lambda r: r.created_at, reverse=True)
        skip = (page - 1) * page_size
        return PaginationResult(matching[skip:skip + page_size], len(matching), page, page_size)

    def count_by_status(self) -> Dict[str, int]:
        with self._lock:
            return dict(Counter(r.status.value for r in self._records.values()))

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


# Entity field name -> document field name
FIELD_MAP = {
    "requester_id": "requesterId",
    "type": "type",
    "description": "description",
    "location": "location",
    "coordinates": "coordinates",
    "address": "address",
    "urgency": "urgency",
    "contact_info": "contactInfo",
    "status": "status",
    "assigned_responder_id": "assignedResponderId",
    "assigned_at": "assignedAt",
    "completed_at": "completedAt",
    "completed_by": "completedBy",
    "deletable": "deletable",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "version": "version",
    "schema_version": "schemaVersion",
}


def to_document(request: EmergencyRequest) -> Dict[str, Any]:
    """Convert a request to its camelCase MongoDB document."""
    data = request.model_dump(mode="python")
    document = {"_id": request.id}
    for field_name, doc_name in FIELD_MAP.items():
        value = data[field_name]
        if hasattr(value, "value"):
            value = value.value
        document[doc_name] = value
    return document


def from_document(document: Dict[str, Any]) -> EmergencyRequest:
    """
    Rebuild a request from a MongoDB document.

    Raises:
        RequestStoreError: If the stored document violates request invariants
    """
    data = {"id": str(document["_id"])}
    for field_name, doc_name in FIELD_MAP.items():
        if doc_name in document:
            data[field_name] = document[doc_name]

    try:
        return EmergencyRequest.model_validate(data)
    except ValidationError as e:
        logger.error(f"Stored request {data['id']} is invalid: {e}")
        raise RequestStoreError(f"Stored request {data['id']} is invalid") from e


class MongoRequestStore(RequestStore):
    """MongoDB-backed request store using versioned conditional updates."""

    def __init__(self, mongodb_service: MongoDBService, collection_name: str = REQUESTS_COLLECTION):
        self.mongodb_service = mongodb_service
        self.collection_name = collection_name

    @property
    def collection(self):
        return self.mongodb_service.get_collection(self.collection_name)

    def get(self, request_id: str) -> Optional[EmergencyRequest]:
        try:
            document = self.collection.find_one({"_id": request_id})
        except PyMongoError as e:
            logger.error(f"Failed to load request {request_id}: {e}")
            raise RequestStoreError(f"Failed to load request {request_id}") from e

        return from_document(document) if document else None

    def create(self, request: EmergencyRequest) -> EmergencyRequest:
        try:
            self.collection.insert_one(to_document(request))
        except DuplicateKeyError as e:
            logger.error(f"Duplicate request id {request.id}: {e}")
            raise RequestStoreError(f"Request {request.id} already exists") from e
        except PyMongoError as e:
            logger.error(f"Failed to create request {request.id}: {e}")
            raise RequestStoreError(f"Failed to create request {request.id}") from e

        logger.info(f"Created document in {self.collection_name}: {request.id}")
        return request

    def save(self, request: EmergencyRequest, expected_version: int) -> EmergencyRequest:
        document = to_document(request)
        del document["_id"]
        document["version"] = expected_version + 1

        try:
            updated = self.collection.find_one_and_update(
                {"_id": request.id, "version": expected_version},
                {"$set": document},
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error(f"Failed to save request {request.id}: {e}")
            raise RequestStoreError(f"Failed to save request {request.id}") from e

        if updated is None:
            self._raise_write_conflict(request.id, expected_version)

        return from_document(updated)

    def delete(self, request_id: str, expected_version: Optional[int] = None) -> None:
        query: Dict[str, Any] = {"_id": request_id}
        if expected_version is not None:
            query["version"] = expected_version

        try:
            result = self.collection.delete_one(query)
        except PyMongoError as e:
            logger.error(f"Failed to delete request {request_id}: {e}")
            raise RequestStoreError(f"Failed to delete request {request_id}") from e

        if result.deleted_count == 0:
            self._raise_write_conflict(request_id, expected_version)

        logger.info(f"Deleted document {request_id} in {self.collection_name}")

    def list(self, filters: RequestFilters, page: int = 1, page_size: int = 20) -> PaginationResult:
        query = filters.to_mongo_query()
        skip = (page - 1) * page_size

        try:
            total = self.collection.count_documents(query)
            cursor = self.collection.find(query).sort("createdAt", DESCENDING).skip(skip).limit(page_size)
            items = [from_document(doc) for doc in cursor]
        except PyMongoError as e:
            logger.error(f"Failed to list requests: {e}")
            raise RequestStoreError("Failed to list requests") from e

        logger.debug(f"Paginated {len(items)} documents from {self.collection_name} (page {page})")
        return PaginationResult(items, total, page, page_size)

    def count_by_status(self) -> Dict[str, int]:
        pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        try:
            results = list(self.collection.aggregate(pipeline))
        except PyMongoError as e:
            logger.error(f"Failed to count requests by status: {e}")
            raise RequestStoreError("Failed to count requests") from e

        return {row["_id"]: row["count"] for row in results}

    def health_check(self) -> Dict[str, Any]:
        return self.mongodb_service.health_check()

    def _raise_write_conflict(self, request_id: str, expected_version: Optional[int]) -> None:
        """Tell a lost race apart from a missing record."""
        if self.collection.count_documents({"_id": request_id}, limit=1) == 0:
            raise RequestNotFoundError(request_id)
        raise ConcurrentModificationError(request_id, expected_version)
