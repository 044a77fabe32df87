from rest_framework import permissions


class IsLibrarianOrReadOnly(permissions.BasePermission):
    """
    Only librarians and admins can create/update/delete.
    Read-only for others, including unauthenticated users.
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:  # GET, HEAD, OPTIONS
            return True
        # For write operations, require authenticated staff user
        return bool(request.user and request.user.is_authenticated and request.user.is_staff)
