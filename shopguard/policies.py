"""
Shopguard collection policies.

One set of rule functions per collection, dispatched by collection name
and operation. Every rule function receives the request, the requester's
Roles and the evaluation's lookups, returns None when the request is
allowed and raises PolicyDenied on the first clause that does not hold.
An operation without an entry in POLICIES is denied.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from . import schema
from .diff import FieldChange, symmetric_difference
from .errors import invariant_violation, role_denied
from .principal import Roles
from .request import Operation, Request

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Employees are added to or removed from a shop one at a time.
MAX_EMPLOYEE_DELTA = 1

Rule = Callable[[Request, Roles, Any], None]


def _admin_only(req: Request, roles: Roles, lookups) -> None:
    if not roles.is_admin:
        raise role_denied(f"{req.operation.value} on '{req.collection}' requires admin")


def _never(req: Request, roles: Roles, lookups) -> None:
    raise invariant_violation(f"'{req.collection}' documents are append-only")


def _stored(req: Request, lookups) -> dict:
    """The target document: the request's prior state, else a lookup."""
    if req.prior is not None:
        return req.prior
    return lookups.require(req.collection, req.doc_id)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def _users_get(req: Request, roles: Roles, lookups) -> None:
    if roles.owns(req.doc_id) or roles.is_employee or roles.is_admin:
        return
    raise role_denied("Users may only read their own profile")


def _users_create(req: Request, roles: Roles, lookups) -> None:
    if not roles.owns(req.doc_id):
        raise role_denied("A profile can only be created by its own user")

    data = req.payload
    schema.check_closed(schema.USER_FIELDS, data, "user")
    for name in data:
        if name in schema.PRIVILEGED_USER_FIELDS:
            raise role_denied(f"'{name}' cannot be set on profile creation", name)
    schema.check_types(schema.USER_FIELDS, data)

    if "value" in data and data["value"] != 0:
        raise invariant_violation("Initial account value must be 0", "value")


def _set_once(change: FieldChange, req: Request, roles: Roles) -> None:
    """birth, joined, name: owner sets them once, admin at any time."""
    if roles.is_admin:
        return
    if roles.owns(req.doc_id):
        if change.old is None:
            return
        raise invariant_violation(f"'{change.field}' is already set", change.field)
    raise role_denied(f"'{change.field}' can only be set by its owner", change.field)


def _account_value(change: FieldChange, req: Request, roles: Roles) -> None:
    if roles.is_admin:
        return
    if roles.is_employee:
        if change.new >= 0:
            return
        raise invariant_violation("Account value cannot be negative", "value")
    if roles.owns(req.doc_id):
        if change.old is not None:
            raise invariant_violation("Account value is already set", "value")
        if change.new == 0:
            return
        raise invariant_violation("Initial account value must be 0", "value")
    raise role_denied("Account value can only be changed by employees", "value")


def _shop_reference(change: FieldChange, req: Request, roles: Roles) -> None:
    """shopId, shopName: shop owners may only hand out their own shop."""
    if roles.is_admin:
        return
    if roles.is_shop_owner:
        own = roles.own_shop_id if change.field == "shopId" else roles.own_shop_name
        if own is not None and change.new == own:
            return
        raise invariant_violation(
            f"'{change.field}' must be the shop owner's own value", change.field
        )
    raise role_denied(f"'{change.field}' requires a shop owner", change.field)


def _employee_flag(change: FieldChange, req: Request, roles: Roles) -> None:
    if roles.is_admin:
        return
    if roles.is_shop_owner:
        if roles.own_is_employee is not None and change.new == roles.own_is_employee:
            return
        raise invariant_violation(
            "'isEmployee' must match the shop owner's own flag", "isEmployee"
        )
    raise role_denied("'isEmployee' requires a shop owner", "isEmployee")


def _admin_field(change: FieldChange, req: Request, roles: Roles) -> None:
    if not roles.is_admin:
        raise role_denied(f"'{change.field}' can only be set by an admin", change.field)


_USER_FIELD_RULES: dict[str, Callable[[FieldChange, Request, Roles], None]] = {
    "birth": _set_once,
    "joined": _set_once,
    "name": _set_once,
    "value": _account_value,
    "shopId": _shop_reference,
    "shopName": _shop_reference,
    "isEmployee": _employee_flag,
    "isShopOwner": _admin_field,
    "isAdmin": _admin_field,
}


def _users_update(req: Request, roles: Roles, lookups) -> None:
    if not (
        roles.owns(req.doc_id)
        or roles.is_employee
        or roles.is_shop_owner
        or roles.is_admin
    ):
        raise role_denied("Not allowed to modify this profile")

    schema.check_closed(schema.USER_FIELDS, req.payload, "user")

    for change in req.diff:
        # Only the written fields are judged; a replace write may omit the rest.
        if change.dropped:
            continue
        schema.check_field(schema.USER_FIELDS, change.field, change.new)
        _USER_FIELD_RULES[change.field](change, req, roles)


def _users_delete(req: Request, roles: Roles, lookups) -> None:
    if roles.owns(req.doc_id) or roles.is_admin:
        return
    raise role_denied("Profiles can only be deleted by their user or an admin")


# ---------------------------------------------------------------------------
# Shops
# ---------------------------------------------------------------------------

def _shops_get(req: Request, roles: Roles, lookups) -> None:
    if roles.is_admin:
        return
    shop = _stored(req, lookups)
    if shop.get("ownerId") != roles.uid:
        raise role_denied("Only the shop owner may read the shop")


def _shops_create(req: Request, roles: Roles, lookups) -> None:
    _admin_only(req, roles, lookups)
    schema.validate_document(schema.SHOP_FIELDS, req.payload, "shop")


def _check_employee_ids(ids: list, owner_id: Any) -> None:
    if len(set(ids)) != len(ids):
        raise invariant_violation("'employeeIds' contains duplicates", "employeeIds")
    if owner_id not in ids:
        raise invariant_violation("The shop owner cannot be removed", "employeeIds")


def _shops_update(req: Request, roles: Roles, lookups) -> None:
    if roles.is_admin and not req.merge:
        # Full-document rewrite by a trusted operator.
        shop = req.proposed
        schema.validate_document(schema.SHOP_FIELDS, shop, "shop", required=True)
        _check_employee_ids(shop["employeeIds"], shop["ownerId"])
        return

    schema.check_closed(schema.SHOP_FIELDS, req.payload, "shop")
    diff = req.diff
    for name in sorted(diff.touched()):
        if name in schema.IMMUTABLE_SHOP_FIELDS:
            raise invariant_violation(f"Shop '{name}' cannot be changed", name)

    if roles.is_admin:
        raise role_denied("Admins cannot merge into a shop; rewrite it instead")

    prior = _stored(req, lookups)
    owner_id = prior.get("ownerId")
    if owner_id is None or owner_id != roles.uid:
        raise role_denied("Only the shop owner may change employees")

    change = diff.get("employeeIds")
    if change is None:
        raise invariant_violation("Shop updates must change 'employeeIds'", "employeeIds")
    schema.check_field(schema.SHOP_FIELDS, "employeeIds", change.new)
    _check_employee_ids(change.new, owner_id)

    delta = symmetric_difference(prior.get("employeeIds"), change.new)
    if len(delta) != MAX_EMPLOYEE_DELTA:
        raise invariant_violation(
            f"Exactly {MAX_EMPLOYEE_DELTA} employee must be added or removed, "
            f"got {len(delta)}",
            "employeeIds",
        )


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def _transactions_get(req: Request, roles: Roles, lookups) -> None:
    if roles.is_admin:
        return
    tx = _stored(req, lookups)
    if roles.uid in (tx.get("userId"), tx.get("employeeId")):
        return
    raise role_denied("Only parties of a transaction may read it")


def _transactions_list(req: Request, roles: Roles, lookups) -> None:
    # The query gate has already confined the results to the requester.
    return None


def _transactions_create(req: Request, roles: Roles, lookups) -> None:
    if not roles.is_employee:
        raise role_denied("Only employees may record transactions")

    tx = req.payload
    schema.validate_document(
        schema.TRANSACTION_FIELDS, tx, "transaction", required=True
    )

    if tx["employeeId"] != roles.uid:
        raise role_denied("Transactions must be recorded by the acting employee", "employeeId")
    if roles.own_shop_id is None or tx["shopId"] != roles.own_shop_id:
        raise invariant_violation("Transaction shop must be the employee's shop", "shopId")
    if roles.own_shop_name is None or tx["shopName"] != roles.own_shop_name:
        raise invariant_violation("Transaction shop name must match the employee's shop", "shopName")
    if tx["newAccountValue"] != tx["oldAccountValue"] + tx["valueIncrement"]:
        raise invariant_violation(
            "newAccountValue must equal oldAccountValue + valueIncrement",
            "newAccountValue",
        )


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------

def _logs_create(req: Request, roles: Roles, lookups) -> None:
    if not (roles.is_employee or roles.is_admin):
        raise role_denied("Only employees and admins may write log entries")
    schema.validate_log(req.payload)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

def _service(req: Request, roles: Roles, lookups) -> None:
    raise role_denied("The service collection is not accessible")


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

POLICIES: dict[str, dict[Operation, Rule]] = {
    schema.USERS: {
        Operation.GET: _users_get,
        Operation.LIST: _admin_only,
        Operation.CREATE: _users_create,
        Operation.UPDATE: _users_update,
        Operation.DELETE: _users_delete,
    },
    schema.SHOPS: {
        Operation.GET: _shops_get,
        Operation.LIST: _admin_only,
        Operation.CREATE: _shops_create,
        Operation.UPDATE: _shops_update,
        Operation.DELETE: _admin_only,
    },
    schema.TRANSACTIONS: {
        Operation.GET: _transactions_get,
        Operation.LIST: _transactions_list,
        Operation.CREATE: _transactions_create,
        Operation.UPDATE: _never,
        Operation.DELETE: _never,
    },
    schema.LOGS: {
        Operation.GET: _admin_only,
        Operation.LIST: _admin_only,
        Operation.CREATE: _logs_create,
        Operation.UPDATE: _never,
        Operation.DELETE: _never,
    },
    schema.SERVICE: {
        Operation.GET: _service,
        Operation.LIST: _service,
        Operation.CREATE: _service,
        Operation.UPDATE: _service,
        Operation.DELETE: _service,
    },
}


def policy_for(collection: str, operation: Operation) -> Optional[Rule]:
    """Return the rule function for a collection and operation, if any."""
    return POLICIES.get(collection, {}).get(operation)
