from rest_framework.permissions import BasePermission


def is_teacher_or_admin(user):
    return bool(user and user.is_authenticated and user.is_privileged)


class IsTeacherOrAdmin(BasePermission):
    message = "Access denied"

    def has_permission(self, request, view):
        return is_teacher_or_admin(request.user)
