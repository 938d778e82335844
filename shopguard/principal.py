"""
Shopguard principal resolution.

Turns an authenticated uid into the capability set used by the rules by
reading the requester's own user document. Admin status has a single
source of truth: the `isAdmin` flag on that document.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .schema import USERS


@dataclass(frozen=True)
class Principal:
    """The verified identity issuing a request. uid is None when unauthenticated."""
    uid: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(uid=None)

    @property
    def authenticated(self) -> bool:
        return self.uid is not None


@dataclass(frozen=True)
class Roles:
    """Capabilities derived from the requester's own profile."""
    uid: str
    is_admin: bool = False
    is_shop_owner: bool = False
    is_employee: bool = False
    own_shop_id: Optional[str] = None
    own_shop_name: Optional[str] = None
    # The raw isEmployee value on the profile, propagated by shop owners.
    own_is_employee: Optional[bool] = None

    def owns(self, doc_id: Optional[str]) -> bool:
        return doc_id is not None and self.uid == doc_id


def roles_from_profile(uid: str, profile: Optional[dict]) -> Roles:
    """Derive Roles from a user document.

    Flags only count when they are literally True; a missing profile (a
    user who has not written their document yet) yields no capabilities.
    Shop references are kept only when they are strings.

    Args:
        uid: The requester's uid.
        profile: The user document stored at users/<uid>, or None.

    Returns:
        The requester's Roles.
    """
    if not profile:
        return Roles(uid=uid)

    shop_id = profile.get("shopId")
    shop_name = profile.get("shopName")
    is_employee = profile.get("isEmployee")
    return Roles(
        uid=uid,
        is_admin=profile.get("isAdmin") is True,
        is_shop_owner=profile.get("isShopOwner") is True,
        is_employee=is_employee is True,
        own_shop_id=shop_id if isinstance(shop_id, str) else None,
        own_shop_name=shop_name if isinstance(shop_name, str) else None,
        own_is_employee=is_employee if isinstance(is_employee, bool) else None,
    )


def resolve_roles(
    principal: Principal, get_document: Callable[[str, str], Optional[dict]]
) -> Roles:
    """Read the requester's own profile and derive their Roles.

    Args:
        principal: An authenticated principal.
        get_document: Point lookup (collection, doc_id) -> document or None.
            Errors it raises are left to the caller, which must fail closed.

    Raises:
        ValueError: When the principal is unauthenticated.
    """
    if principal.uid is None:
        raise ValueError("resolve_roles(): principal is not authenticated")
    return roles_from_profile(principal.uid, get_document(USERS, principal.uid))
