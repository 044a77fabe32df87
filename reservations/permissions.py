from rest_framework import permissions


class IsOwnerOrStaff(permissions.BasePermission):
    """
    Members manage their own reservations; librarians and admins manage all.
    """

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return obj.user_id == request.user.id or request.user.is_staff


class IsStaffForFullList(permissions.BasePermission):
    """The unfiltered reservation list is for librarians and admins."""

    def has_permission(self, request, view):
        if view.action != "list":
            return True
        return bool(request.user and request.user.is_staff)
