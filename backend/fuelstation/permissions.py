# Overview: Role and capability definitions plus the service-side authorization gate.

"""
Roles and capabilities.

There are two roles. Capabilities are defined as (code, description) and
granted per role; admins hold every staff capability.

Routes gate on capabilities with @require_permission, and services re-check
them against the Actor they are handed, so a workflow can never run just
because some client chose not to show a button.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import AuthenticationRequired, PermissionDenied


ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLES = (ROLE_STAFF, ROLE_ADMIN)


STAFF_PERMISSIONS = [
    ("VIEW_DISCOUNTS", "Look up the discount for a plate"),
    ("REQUEST_PLATE", "Ask for a plate to be added to the discount list"),
    ("RECORD_SALE", "Record a discounted fuel sale"),
    ("LOG_CLEANING", "Log a cleaning visit"),
    ("HANDOVER", "Start and decide shift handovers"),
]

ADMIN_PERMISSIONS = [
    ("MANAGE_DISCOUNTS", "Create and edit discount records"),
    ("APPROVE_PLATE_REQUESTS", "Approve or reject plate requests"),
    ("VIEW_SALES", "Review discounted sale history"),
    ("VIEW_CLEANING_LOGS", "Review cleaning logs"),
    ("MANAGE_USERS", "Provision and deactivate user accounts"),
    ("MANAGE_CHECKLIST", "Edit the handover checklist"),
]

PERMISSION_DEFINITIONS = STAFF_PERMISSIONS + ADMIN_PERMISSIONS

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_STAFF: frozenset(code for code, _ in STAFF_PERMISSIONS),
    ROLE_ADMIN: frozenset(code for code, _ in PERMISSION_DEFINITIONS),
}


@dataclass(frozen=True)
class Actor:
    """Resolved identity of the caller, passed explicitly into every workflow call."""
    user_id: int
    email: str
    name: str | None
    role: str

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def permissions(self) -> frozenset[str]:
        return ROLE_PERMISSIONS.get(self.role, frozenset())


def has_permission(role: str | None, permission_code: str) -> bool:
    return permission_code in ROLE_PERMISSIONS.get(role or "", frozenset())


def require_capability(actor: Actor | None, permission_code: str) -> Actor:
    """
    Raise unless `actor` is resolved and holds `permission_code`.

    Returns the actor so callers can write `actor = require_capability(...)`.
    """
    if actor is None:
        raise AuthenticationRequired()
    if permission_code not in actor.permissions:
        raise PermissionDenied(f"Requires {permission_code}")
    return actor
