"""
Shopguard decision point.

The single entry point reducing a request to allow or deny:

1. Unauthenticated requests are denied before anything is read.
2. The requester's Roles are resolved from their own user document.
3. List requests pass through the query-filter gate.
4. The request is routed to its collection policy by name.
5. Any failing clause or failed lookup denies; nothing is allowed by default.

Auxiliary reads go through an injected lookup, an object with a
``get(collection, doc_id)`` method returning the document dict or None.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from . import policies, query
from .errors import DenialCause, LookupFailure, PolicyDenied
from .principal import resolve_roles
from .request import Operation, Request
from .schema import COLLECTIONS

logger = logging.getLogger(__name__)

# Requester profile plus one referenced document.
MAX_LOOKUPS = 2


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass
class EvaluationResult:
    """Outcome of evaluating one request, with the internal denial detail."""
    permitted: bool
    operation: Optional[Operation] = None
    cause: Optional[DenialCause] = None
    reason: Optional[str] = None
    field: str = ""
    lookups: int = 0

    @property
    def decision(self) -> Decision:
        return Decision.ALLOW if self.permitted else Decision.DENY


class DocumentLookup(Protocol):
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

class Lookups:
    """Point reads made on behalf of a single evaluation.

    Results are memoised for the evaluation only. Every error raised by
    the underlying lookup, including timeouts, becomes a LookupFailure so
    the engine can fail closed.
    """

    def __init__(self, lookup: DocumentLookup, limit: int = MAX_LOOKUPS) -> None:
        self._lookup = lookup
        self._limit = limit
        self._cache: dict[tuple[str, str], Optional[dict]] = {}

    @property
    def count(self) -> int:
        return len(self._cache)

    def get(self, collection: str, doc_id: Optional[str]) -> Optional[dict]:
        if not doc_id or not isinstance(doc_id, str):
            raise LookupFailure("Lookup needs a document id", collection)
        key = (collection, doc_id)
        if key in self._cache:
            return self._cache[key]
        if len(self._cache) >= self._limit:
            raise LookupFailure(
                f"Lookup limit of {self._limit} reached", collection, doc_id
            )
        try:
            doc = self._lookup.get(collection, doc_id)
        except Exception as err:
            raise LookupFailure(
                f"Lookup of {collection}/{doc_id} failed: {err}", collection, doc_id
            ) from err
        if doc is not None and not isinstance(doc, dict):
            raise LookupFailure(
                f"Lookup of {collection}/{doc_id} returned {type(doc).__name__}",
                collection,
                doc_id,
            )
        self._cache[key] = doc
        return doc

    def require(self, collection: str, doc_id: Optional[str]) -> dict:
        """Like get(), but a missing document is a failure too."""
        doc = self.get(collection, doc_id)
        if doc is None:
            raise LookupFailure(f"{collection}/{doc_id} does not exist", collection, doc_id or "")
        return doc


# ---------------------------------------------------------------------------
# Evaluate
# ---------------------------------------------------------------------------

def _deny(
    cause: DenialCause,
    reason: str,
    operation: Optional[Operation] = None,
    field: str = "",
    lookups: int = 0,
) -> EvaluationResult:
    return EvaluationResult(
        permitted=False,
        operation=operation,
        cause=cause,
        reason=reason,
        field=field,
        lookups=lookups,
    )


def _resolve_operation(req: Request) -> Operation:
    operation = req.resolved_operation()
    if operation is Operation.CREATE and req.exists:
        raise PolicyDenied(
            DenialCause.INVARIANT_VIOLATION,
            f"{req.collection}/{req.doc_id} already exists",
        )
    if operation is Operation.UPDATE and not req.exists:
        raise PolicyDenied(
            DenialCause.INVARIANT_VIOLATION,
            f"{req.collection}/{req.doc_id} does not exist",
        )
    return operation


def evaluate(req: Request, lookup: DocumentLookup) -> EvaluationResult:
    """Evaluate a request against the collection policies.

    Resolution order:
    1. Unknown collection or unauthenticated principal: deny
    2. Resolve the requester's Roles (one lookup)
    3. For list requests, run the query-filter gate
    4. Run the collection policy for the resolved operation
    5. If no policy exists for the operation, deny

    Args:
        req: The request to authorize.
        lookup: Point-read capability over the document store.

    Returns:
        An EvaluationResult; permitted is True only when every clause held.
    """
    if req.collection not in COLLECTIONS:
        return _log(req, _deny(DenialCause.ROLE_DENIED, f"Unknown collection '{req.collection}'"))
    if not req.principal.authenticated:
        return _log(req, _deny(DenialCause.ROLE_DENIED, "Unauthenticated request"))

    lookups = Lookups(lookup)
    operation: Optional[Operation] = None
    try:
        operation = _resolve_operation(req)
        roles = resolve_roles(req.principal, lookups.get)

        if operation is Operation.LIST:
            query.check_query(req.collection, roles, req.query)

        rule = policies.policy_for(req.collection, operation)
        if rule is None:
            result = _deny(
                DenialCause.ROLE_DENIED,
                f"No rule allows {operation.value} on '{req.collection}'",
                operation,
                lookups=lookups.count,
            )
        else:
            rule(req, roles, lookups)
            result = EvaluationResult(
                permitted=True,
                operation=operation,
                reason=f"Allowed {operation.value} on '{req.collection}'",
                lookups=lookups.count,
            )
    except PolicyDenied as err:
        result = _deny(err.cause, str(err), operation, err.field, lookups.count)
    except LookupFailure as err:
        logger.warning("Failing closed on lookup error: %s", err)
        result = _deny(DenialCause.ROLE_DENIED, str(err), operation, lookups=lookups.count)

    return _log(req, result)


def authorize(req: Request, lookup: DocumentLookup) -> Decision:
    """Authorize a request. Only ALLOW or DENY is ever exposed."""
    return evaluate(req, lookup).decision


def _log(req: Request, result: EvaluationResult) -> EvaluationResult:
    target = f"{req.collection}/{req.doc_id}" if req.doc_id else req.collection
    if result.permitted:
        logger.debug(
            "allow %s %s uid=%s", req.operation.value, target, req.principal.uid
        )
    else:
        logger.info(
            "deny %s %s uid=%s cause=%s field=%s: %s",
            req.operation.value,
            target,
            req.principal.uid,
            result.cause.value if result.cause else None,
            result.field or "-",
            result.reason,
        )
    return result

