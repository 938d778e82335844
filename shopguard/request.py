"""
Shopguard request model.

A Request describes one operation against one document (or one list
query) exactly as the store received it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .diff import Diff, apply_write, compute_diff
from .principal import Principal
from .query import Condition


class Operation(str, Enum):
    GET = "get"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    # A set() whose kind is decided by whether the document exists.
    WRITE = "write"


WRITE_OPERATIONS = frozenset([Operation.CREATE, Operation.UPDATE, Operation.WRITE])


@dataclass
class Request:
    """One operation to authorize.

    Attributes:
        principal: The requester.
        operation: The operation type.
        collection: Target collection name.
        doc_id: Target document id (None for list requests).
        prior: The stored document before the operation, if it exists.
        data: The write payload for create/update/write.
        merge: True for a merge write, False for a replace write.
        query: The declared filter conjunction of a list request.
    """
    principal: Principal
    operation: Operation
    collection: str
    doc_id: Optional[str] = None
    prior: Optional[dict] = None
    data: Optional[dict] = None
    merge: bool = False
    query: Optional[list[Condition]] = field(default=None)

    def __post_init__(self) -> None:
        if not isinstance(self.operation, Operation):
            self.operation = Operation(self.operation)
        if self.prior is not None and not isinstance(self.prior, dict):
            raise ValueError("Request: prior must be a dict or None")
        if self.data is not None and not isinstance(self.data, dict):
            raise ValueError("Request: data must be a dict or None")
        if self.operation in WRITE_OPERATIONS and self.data is None:
            raise ValueError(f"Request: {self.operation.value} requires data")

    @property
    def exists(self) -> bool:
        return self.prior is not None

    @property
    def payload(self) -> dict:
        return self.data or {}

    @property
    def proposed(self) -> dict:
        """The document state this write would produce."""
        return apply_write(self.prior, self.payload, self.merge)

    @property
    def diff(self) -> Diff:
        return compute_diff(self.prior, self.payload, self.merge)

    def resolved_operation(self) -> Operation:
        """Map WRITE to CREATE or UPDATE from the prior state."""
        if self.operation is Operation.WRITE:
            return Operation.UPDATE if self.exists else Operation.CREATE
        return self.operation
