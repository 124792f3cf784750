"""Lookup helpers shared by the API views"""
from rest_framework.exceptions import NotFound


def get_object_or_not_found(queryset, message, **lookup):
    """
    Fetch a single object or raise NotFound with a resource-specific message.

    Args:
        queryset: Already scoped queryset to search
        message: Error text for the 404 envelope (e.g. "Material not found")
        **lookup: Field lookups identifying the object
    """
    try:
        return queryset.get(**lookup)
    except (queryset.model.DoesNotExist, ValueError, TypeError):
        raise NotFound(message)
