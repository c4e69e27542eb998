from rest_framework import permissions


class RolePermission(permissions.BasePermission):
    """
    Simple role based permission.
    - Read access for every authenticated role
    - Create/Update/Delete allowed based on role mapping
    """

    role_map = {
        'student': ['view'],
        'teacher': ['view', 'create', 'change'],
        'admin': ['view', 'change', 'create', 'delete'],
    }

    def has_permission(self, request, view):
        # Allow safe methods (GET, HEAD, OPTIONS)
        if request.method in permissions.SAFE_METHODS:
            return True

        # if unauthenticated, deny for write
        if not request.user or not request.user.is_authenticated:
            return False

        if request.user.is_superuser:
            return True

        # map method to action
        if request.method == 'POST':
            action = 'create'
        elif request.method in ('PUT', 'PATCH'):
            action = 'change'
        elif request.method == 'DELETE':
            action = 'delete'
        else:
            action = 'view'

        allowed = self.role_map.get(request.user.role, [])
        return action in allowed


class IsAdminRole(permissions.BasePermission):
    """Only users whose role is ``admin`` (or superusers)."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_superuser or user.role == 'admin'
