from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import F
import logging

from fenceledger.core.permissions import scope_to_owner, ensure_may_touch_category
from fenceledger.core.utils import get_object_or_not_found
from .models import Material
from .serializers import MaterialSerializer

logger = logging.getLogger(__name__)


def visible_materials(user):
    """Materials the caller may see: everything for admin, own records otherwise"""
    return scope_to_owner(Material.objects.all(), user)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def material_list_create(request):
    """List materials (optionally by category) or create a new material"""
    if request.method == 'GET':
        queryset = visible_materials(request.user)
        category = request.query_params.get('category', None)
        if category:
            queryset = queryset.filter(category=category)
        serializer = MaterialSerializer(queryset, many=True)
        return Response({'materials': serializer.data})

    ensure_may_touch_category(request.user, request.data.get('category'), action='create')
    serializer = MaterialSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    material = serializer.save(owner=request.user)
    logger.info(f"Material {material.id} '{material.name}' created by {request.user.email}")
    return Response({'material': MaterialSerializer(material).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def material_detail(request, pk):
    """Retrieve, update or delete a material"""
    material = get_object_or_not_found(visible_materials(request.user), 'Material not found', pk=pk)

    if request.method == 'GET':
        return Response({'material': MaterialSerializer(material).data})

    if request.method in ('PUT', 'PATCH'):
        ensure_may_touch_category(request.user, material.category, request.data.get('category'), action='modify')
        serializer = MaterialSerializer(material, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        material = serializer.save()
        return Response({'material': MaterialSerializer(material).data})

    # DELETE
    ensure_may_touch_category(request.user, material.category, action='delete')
    # Historical transactions keep their name/category snapshots
    material_id = material.id
    material.delete()
    logger.info(f"Material {material_id} deleted by {request.user.email}")
    return Response({'message': 'Material deleted successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def material_low_stock(request):
    """Materials at or below their low-stock threshold"""
    queryset = visible_materials(request.user).filter(
        low_stock_threshold__gt=0,
        quantity__lte=F('low_stock_threshold'),
    ).order_by('name')
    return Response({'materials': MaterialSerializer(queryset, many=True).data})
