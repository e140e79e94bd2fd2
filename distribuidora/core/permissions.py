from rest_framework.permissions import BasePermission, SAFE_METHODS


def is_admin_user(user):
    """
    Check if user is an admin user.
    Returns True for authenticated users with role 'admin' and for superusers.
    """
    if not user or not user.is_authenticated:
        return False
    return bool(getattr(user, 'is_admin', False))


class IsAdminRole(BasePermission):
    """Only admin users"""
    message = 'Administrator access required.'

    def has_permission(self, request, view):
        return is_admin_user(request.user)


class IsAdminRoleOrReadOnly(BasePermission):
    """Any authenticated user may read, only admins may write"""
    message = 'Administrator access required.'

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return is_admin_user(request.user)
