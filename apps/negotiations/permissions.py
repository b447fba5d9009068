from rest_framework import permissions


class IsStaff(permissions.BasePermission):
    """
    Operational endpoints (expiry sweep, statistics).
    Participant checks live in the service layer.
    """

    message = "Only staff can perform this action."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_staff)
