# core/permissions.py
from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    """ADMIN, SUPERADMIN or Django superuser"""
    message = 'Admin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


class IsSuperAdminRole(BasePermission):
    message = 'Super admin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_superadmin)
