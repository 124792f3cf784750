"""Role checks and ownership scoping shared by every app."""
from rest_framework.exceptions import PermissionDenied

from .models import Role


def is_admin_user(user):
    """
    Check if user is an admin user.
    Returns True if:
    - User has the admin role, OR
    - User is a Django superuser (created from the command line)
    """
    if not user or not user.is_authenticated:
        return False
    return user.role == Role.ADMIN or user.is_superuser


def is_store_boy(user):
    return bool(user and user.is_authenticated and user.role == Role.STORE_BOY and not user.is_superuser)


def scope_to_owner(queryset, user, field='owner'):
    """Restrict a queryset to the caller's own records unless the caller is admin."""
    if is_admin_user(user):
        return queryset
    return queryset.filter(**{field: user})


def ensure_may_touch_category(user, *categories, action='modify'):
    """StoreBoy may never create, modify or delete Final-category materials."""
    from fenceledger.inventory.models import Material

    if is_store_boy(user) and Material.Category.FINAL in categories:
        raise PermissionDenied(f'StoreBoy cannot {action} Final category materials')
