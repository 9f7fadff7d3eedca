# materials_core/permissions.py
from __future__ import annotations

from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import UserRole
from .workflows import normalize_role, visible_stages
from .workflows.rules import QUOTE_READER_ROLES, REGISTRAR_ROLES, UNCLE


# ------------------------------------------------------------------
# Role resolution
# ------------------------------------------------------------------
def resolve_role(user) -> str:
    """
    Canonical role for a user.

    Superusers are treated as uncle. Users without a UserRole get "" and
    are refused by every workflow check.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return ""

    if getattr(user, "is_superuser", False):
        return UNCLE

    raw = (
        UserRole.objects.filter(user=user)
        .values_list("role", flat=True)
        .first()
    )
    return normalize_role(raw)


def user_visible_stages(user) -> frozenset:
    return visible_stages(resolve_role(user))


# ------------------------------------------------------------------
# Permission classes
# ------------------------------------------------------------------
class HasWorkflowRole(BasePermission):
    """
    Authenticated users holding any workflow role.
    """

    message = "You do not have a workflow role."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return bool(resolve_role(user))


class IsRegistrarOrReadOnly(HasWorkflowRole):
    """
    Read: any workflow role
    Write: secretary or uncle (material registration)
    """

    message = "Only the secretary may register materials."

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False

        if request.method in SAFE_METHODS:
            return True

        return resolve_role(request.user) in REGISTRAR_ROLES


class IsUncle(HasWorkflowRole):
    message = "This operation is restricted to the uncle role."

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return resolve_role(request.user) == UNCLE


class CanViewQuotes(HasWorkflowRole):
    """
    Quotes expose pricing: accounting and uncle only, for reads and writes.
    """

    message = "Quotes are restricted to accounting."

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return resolve_role(request.user) in QUOTE_READER_ROLES
