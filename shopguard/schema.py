"""
Shopguard document schemas.

Field type contracts for every entity stored in the loyalty platform's
collections. All schemas are closed: a document or write payload that
carries an undeclared field is rejected.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from . import validators
from .errors import invariant_violation, type_mismatch

# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

USERS = "users"
SHOPS = "shops"
TRANSACTIONS = "transactions"
LOGS = "logs"
SERVICE = "service"

COLLECTIONS = frozenset([USERS, SHOPS, TRANSACTIONS, LOGS, SERVICE])


# ---------------------------------------------------------------------------
# Entity field types
# ---------------------------------------------------------------------------

USER_FIELDS: dict[str, str] = {
    "birth": "integer",
    "joined": "integer",
    "name": "text",
    "value": "integer",
    "shopId": "id",
    "shopName": "text",
    "isShopOwner": "boolean",
    "isEmployee": "boolean",
    "isAdmin": "boolean",
}

# Fields a user may never put on their own profile.
PRIVILEGED_USER_FIELDS = frozenset(
    ["shopId", "shopName", "isEmployee", "isShopOwner", "isAdmin"]
)

SHOP_FIELDS: dict[str, str] = {
    "name": "text",
    "key": "id",
    "ownerId": "id",
    "joined": "integer",
    "employeeIds": "id_list",
}

IMMUTABLE_SHOP_FIELDS = frozenset(["name", "key", "ownerId", "joined"])

TRANSACTION_FIELDS: dict[str, str] = {
    "shopId": "id",
    "shopName": "text",
    "timestamp": "integer",
    "employeeId": "id",
    "userId": "id",
    "valueIncrement": "integer",
    "oldAccountValue": "integer",
    "newAccountValue": "integer",
}

class LogAction(str, Enum):
    ADD_SHOP = "add-shop"
    DELETE_SHOP = "delete-shop"
    ADD_EMPLOYEE = "add-employee"
    DELETE_EMPLOYEES = "delete-employees"


_SHOP_LOG_FIELDS: dict[str, str] = {
    "action": "string",
    "timestamp": "integer",
    "adminId": "id",
    "shopId": "id",
    "shopName": "text",
    "shopOwnerId": "id",
}

LOG_VARIANTS: dict[LogAction, dict[str, str]] = {
    LogAction.ADD_SHOP: _SHOP_LOG_FIELDS,
    LogAction.DELETE_SHOP: _SHOP_LOG_FIELDS,
    LogAction.ADD_EMPLOYEE: {
        "action": "string",
        "timestamp": "integer",
        "shopId": "id",
        "shopOwnerId": "id",
        "employeeId": "id",
        "newEmployeeIds": "id_list",
    },
    LogAction.DELETE_EMPLOYEES: {
        "action": "string",
        "timestamp": "integer",
        "shopId": "id",
        "shopOwnerId": "id",
        "removedEmployeeIds": "id_list",
        "newEmployeeIds": "id_list",
    },
}


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_closed(fields: dict[str, str], doc: dict, entity: str) -> None:
    """Reject any key of doc that the entity does not declare.

    Raises:
        PolicyDenied: INVARIANT_VIOLATION naming the first unknown field.
    """
    for key in doc:
        if key not in fields:
            raise invariant_violation(f"{entity} has no field '{key}'", key)


def check_field(fields: dict[str, str], key: str, value: Any) -> None:
    """Type-check one field value against its declared type.

    Raises:
        PolicyDenied: TYPE_MISMATCH when the value has the wrong type,
            INVARIANT_VIOLATION when a constrained string is malformed.
    """
    expected = fields[key]
    if not validators.check_type(expected, value):
        raise type_mismatch(
            f"'{key}' must be {validators.base_type(expected)}, "
            f"got {validators.type_name_of(value)}",
            key,
        )
    if not validators.check_format(expected, value):
        raise invariant_violation(f"'{key}' is not a safe {expected}", key)


def check_types(fields: dict[str, str], doc: dict) -> None:
    for key, value in doc.items():
        check_field(fields, key, value)


def check_required(fields: dict[str, str], doc: dict, entity: str) -> None:
    for key in fields:
        if key not in doc:
            raise invariant_violation(f"{entity} is missing field '{key}'", key)


def validate_document(
    fields: dict[str, str], doc: dict, entity: str, required: bool = False
) -> None:
    """Run the closed-schema, presence and type checks for a whole document.

    Args:
        fields: The entity's field type map.
        doc: The document (or write payload) to check.
        entity: Entity name used in denial messages.
        required: When True every declared field must be present.

    Raises:
        PolicyDenied: On the first failing check.
    """
    check_closed(fields, doc, entity)
    if required:
        check_required(fields, doc, entity)
    check_types(fields, doc)


def log_variant(doc: dict) -> Optional[LogAction]:
    """Return the LogAction tag of a log document, or None if unknown."""
    action = doc.get("action")
    if not isinstance(action, str):
        return None
    try:
        return LogAction(action)
    except ValueError:
        return None


def validate_log(doc: dict) -> LogAction:
    """Validate a log entry against the variant selected by its action tag.

    Returns:
        The entry's LogAction.

    Raises:
        PolicyDenied: When the tag is unknown or the variant does not match.
    """
    action = log_variant(doc)
    if action is None:
        raise invariant_violation(
            f"Unknown log action: {doc.get('action')!r}", "action"
        )
    validate_document(LOG_VARIANTS[action], doc, f"log '{action.value}'", required=True)
    return action
