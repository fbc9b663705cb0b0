from rest_framework import permissions


class RolePermission(permissions.BasePermission):
    """
    Role based permission.
    - Reads allowed to every authenticated user
    - Create/Update/Delete allowed based on role mapping
    - A view may narrow writes with ``write_roles = ('admin',)``
    """

    role_map = {
        'student': ['view'],
        'parent': ['view'],
        'teacher': ['view', 'create', 'change'],
        'admin': ['view', 'change', 'create', 'delete'],
    }

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        if request.method in permissions.SAFE_METHODS:
            return True

        if request.user.is_superuser:
            return True

        profile = getattr(request.user, 'profile', None)
        if not profile:
            return False
        role = profile.role

        write_roles = getattr(view, 'write_roles', None)
        if write_roles is not None and role not in write_roles:
            return False

        # map method to action
        if request.method == 'POST':
            action = 'create'
        elif request.method in ('PUT', 'PATCH'):
            action = 'change'
        elif request.method == 'DELETE':
            action = 'delete'
        else:
            action = 'view'

        allowed = self.role_map.get(role, [])
        return action in allowed
