"""
Identity gateway: resolves a caller to a role and answers capability checks.

Workflow code asks ``authorize(user, capability)`` and never inspects groups or
role fields itself.
"""
from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import BasePermission

User = get_user_model()

ADMIN_GROUP = 'Admin'

ROLE_ADMIN = 'admin'
ROLE_USER = 'user'

# capability -> roles allowed to exercise it
CAPABILITIES = {
    'requests.submit': {ROLE_ADMIN, ROLE_USER},
    'requests.decide': {ROLE_ADMIN},
    'requests.purge': {ROLE_ADMIN},
    'products.manage': {ROLE_ADMIN},
    'ledger.record': {ROLE_ADMIN, ROLE_USER},
    'ledger.approve': {ROLE_ADMIN},
    'ledger.force_delete': {ROLE_ADMIN},
    'bills.manage': {ROLE_ADMIN, ROLE_USER},
    'bills.purge': {ROLE_ADMIN},
    'analytics.view': {ROLE_ADMIN, ROLE_USER},
    'notifications.own': {ROLE_ADMIN, ROLE_USER},
    'users.manage': {ROLE_ADMIN},
    'settings.manage': {ROLE_ADMIN},
    'audit.view': {ROLE_ADMIN},
}


def get_role(user):
    """
    Resolve the role claim for a user.

    Admin if any of:
    - the user's role field is 'admin'
    - the user is in the 'Admin' group
    - the user is a superuser
    """
    if user is None or not user.is_authenticated:
        return None
    if user.role == ROLE_ADMIN or user.is_superuser:
        return ROLE_ADMIN
    if user.groups.filter(name=ADMIN_GROUP).exists():
        return ROLE_ADMIN
    return ROLE_USER


def is_admin_user(user):
    return get_role(user) == ROLE_ADMIN


def authorize(user, capability):
    """Return True when the user's role grants the capability"""
    if capability not in CAPABILITIES:
        raise KeyError(f"Unknown capability: {capability}")
    role = get_role(user)
    return role is not None and role in CAPABILITIES[capability]


def require(user, capability):
    """Raise the matching DRF error unless the user holds the capability"""
    if user is None or not user.is_authenticated:
        raise NotAuthenticated()
    if not authorize(user, capability):
        raise PermissionDenied(f"You do not have permission to perform this action ({capability}).")


def capability_map(user):
    return {name: authorize(user, name) for name in sorted(CAPABILITIES)}


def admin_users():
    """All active users holding the admin role"""
    return User.objects.filter(
        Q(role=ROLE_ADMIN) | Q(is_superuser=True) | Q(groups__name=ADMIN_GROUP),
        is_active=True,
    ).distinct()


class IsAdminRole(BasePermission):
    """DRF permission wrapper around the admin role claim"""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        return is_admin_user(request.user)
