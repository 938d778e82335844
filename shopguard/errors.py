"""
Shopguard error classes and internal denial causes.

Callers of the engine only ever see allow or deny. The causes below are
kept for logging and for the test suite.
"""

from __future__ import annotations

from enum import Enum


class DenialCause(str, Enum):
    """Why a rule clause failed."""

    ROLE_DENIED = "role_denied"
    TYPE_MISMATCH = "type_mismatch"
    INVARIANT_VIOLATION = "invariant_violation"


class PolicyDenied(Exception):
    """Raised by a rule clause that does not hold for the request."""

    def __init__(self, cause: DenialCause, message: str, field: str = ""):
        self.cause = cause
        self.field = field
        super().__init__(message)


class LookupFailure(Exception):
    """Raised when an auxiliary document read fails or returns nothing usable."""

    def __init__(self, message: str, collection: str = "", doc_id: str = ""):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(message)


def role_denied(message: str, field: str = "") -> PolicyDenied:
    return PolicyDenied(DenialCause.ROLE_DENIED, message, field)


def type_mismatch(message: str, field: str = "") -> PolicyDenied:
    return PolicyDenied(DenialCause.TYPE_MISMATCH, message, field)


def invariant_violation(message: str, field: str = "") -> PolicyDenied:
    return PolicyDenied(DenialCause.INVARIANT_VIOLATION, message, field)
