"""
URL configuration for the fence ledger backend.

Account endpoints live under `users/`, everything else under `api/` and
requires an authenticated caller.
"""
from django.contrib import admin
from django.urls import path, include
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

admin.site.site_header = "Fence Ledger Admin Panel"
admin.site.site_title = "Fence Ledger Admin Portal"
admin.site.index_title = "Welcome to the Fence Ledger Admin"


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request):
    """Welcome route"""
    return Response({'message': 'Welcome to the API'})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('users/', include('fenceledger.core.urls')),
    path('api', api_root, name='api-root'),
    path('api/', include('fenceledger.inventory.urls')),
    path('api/', include('fenceledger.parties.urls')),
    path('api/', include('fenceledger.ledger.urls')),
    path('api/', include('fenceledger.reports.urls')),
]
