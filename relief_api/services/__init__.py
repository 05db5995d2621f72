# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - External integrations and side effects.
"""

from .mongodb import MongoDBService, get_mongodb_service, close_mongodb_connection
from .request_store import (
    RequestStore,
    InMemoryRequestStore,
    MongoRequestStore,
    PaginationResult,
    RequestStoreError,
    RequestNotFoundError,
    ConcurrentModificationError
)
from .workflow import RequestWorkflowService, WorkflowResult

__all__ = [
    "MongoDBService",
    "get_mongodb_service",
    "close_mongodb_connection",
    "RequestStore",
    "InMemoryRequestStore",
    "MongoRequestStore",
    "PaginationResult",
    "RequestStoreError",
    "RequestNotFoundError",
    "ConcurrentModificationError",
    "RequestWorkflowService",
    "WorkflowResult"
]
