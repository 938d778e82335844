"""
Shopguard query-filter gate.

List requests are authorized from their declared filter alone, before
any document is returned. A filter is a conjunction of simple
conditions; only an admin may list freely, everyone else must pin an
allow-listed field to a value derived from their own identity.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from .errors import invariant_violation, role_denied
from .principal import Roles
from .schema import COLLECTIONS, SERVICE, TRANSACTIONS


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

OPERATORS = (
    "==",
    "!=",
    "<",
    "<=",
    ">",
    ">=",
    "in",
    "not-in",
    "array-contains",
    "array-contains-any",
)


@dataclass(frozen=True)
class Condition:
    """A where-clause comparing a document field to a value."""
    field: str
    operator: str
    value: Any


class QueryParseError(ValueError):
    """Raised when a textual where-clause cannot be parsed."""

    def __init__(self, message: str, clause: str = ""):
        self.clause = clause
        super().__init__(message)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

# Longest operators first so '<=' is not read as '<'.
_WORD_OPERATORS = ("array-contains-any", "array-contains", "not-in", "in")
_SYMBOL_OPERATORS = (">=", "<=", "!=", "==", ">", "<")

_INTEGER = re.compile(r"-?\d+")
_FLOAT = re.compile(r"-?\d+\.\d+")


def _parse_literal(text: str, clause: str) -> Any:
    text = text.strip()
    if not text:
        raise QueryParseError("Missing comparison value", clause)
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    if text.startswith("[") and text.endswith("]"):
        inner = text[1:-1].strip()
        if not inner:
            return []
        return [_parse_literal(part, clause) for part in inner.split(",")]
    lower = text.lower()
    if lower == "true":
        return True
    if lower == "false":
        return False
    if lower == "null":
        return None
    if _INTEGER.fullmatch(text):
        return int(text)
    if _FLOAT.fullmatch(text):
        return float(text)
    raise QueryParseError(f"Unquoted value '{text}'", clause)


def parse_where(clause: str) -> Condition:
    """Parse a where-clause such as ``userId == 'abc'`` into a Condition.

    Supported values are quoted strings, integers, floats, true, false,
    null, and bracketed lists of those for the list operators.

    Raises:
        QueryParseError: When no operator or no field is found, or the
            value is not a literal.
    """
    for op in _WORD_OPERATORS:
        match = re.match(rf"^\s*([\w.]+)\s+{re.escape(op)}\s+(.+)$", clause, re.S)
        if match:
            return Condition(match.group(1), op, _parse_literal(match.group(2), clause))

    # The leftmost operator wins; quoted values may contain operator text.
    found: Optional[tuple[int, str]] = None
    for op in _SYMBOL_OPERATORS:
        idx = clause.find(op)
        if idx != -1 and (found is None or idx < found[0]):
            found = (idx, op)
    if found is None:
        raise QueryParseError("No operator found", clause)

    idx, op = found
    field_name = clause[:idx].strip()
    if not field_name:
        raise QueryParseError("Missing field name", clause)
    return Condition(field_name, op, _parse_literal(clause[idx + len(op):], clause))


def parse_filter(clauses: list[str]) -> list[Condition]:
    return [parse_where(c) for c in clauses]


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------

def _own_value(field_name: str, roles: Roles) -> Optional[str]:
    if field_name in ("userId", "employeeId"):
        return roles.uid
    if field_name == "shopId":
        return roles.own_shop_id
    return None


def _grants_access(field_name: str, roles: Roles) -> bool:
    if field_name == "userId":
        return True
    if field_name == "employeeId":
        return roles.is_employee
    if field_name == "shopId":
        return roles.is_shop_owner and roles.own_shop_id is not None
    return False


# Fields a non-admin may filter on, per collection. Collections not
# listed here are admin-only for list requests.
SELF_SCOPED_FIELDS: dict[str, frozenset] = {
    TRANSACTIONS: frozenset(["userId", "employeeId", "shopId"]),
}


def check_query(collection: str, roles: Roles, conditions: Optional[list[Condition]]) -> None:
    """Authorize a list request from its declared filter.

    Args:
        collection: The collection being listed.
        roles: The requester's resolved Roles.
        conditions: The filter conjunction, or None/empty for no filter.

    Raises:
        PolicyDenied: When the filter does not confine the results to
            documents the requester may read.
    """
    if collection not in COLLECTIONS or collection == SERVICE:
        raise role_denied(f"Collection '{collection}' cannot be listed")

    conditions = conditions or []
    for cond in conditions:
        if cond.operator not in OPERATORS:
            raise invariant_violation(
                f"Unknown filter operator '{cond.operator}'", cond.field
            )

    if roles.is_admin:
        return

    allowed_fields = SELF_SCOPED_FIELDS.get(collection)
    if allowed_fields is None:
        raise role_denied(f"Only admins may list '{collection}'")
    if not conditions:
        raise role_denied(f"Unfiltered list of '{collection}' requires admin")

    granted = False
    for cond in conditions:
        if cond.operator != "==":
            raise role_denied(
                f"Operator '{cond.operator}' is not allowed on '{cond.field}'",
                cond.field,
            )
        if cond.field not in allowed_fields:
            raise role_denied(f"Filtering on '{cond.field}' is not allowed", cond.field)
        own = _own_value(cond.field, roles)
        if own is None or cond.value != own or not isinstance(cond.value, str):
            raise role_denied(
                f"Filter on '{cond.field}' must match the requester's own value",
                cond.field,
            )
        if _grants_access(cond.field, roles):
            granted = True

    if not granted:
        raise role_denied("No filter condition grants access to the results")
