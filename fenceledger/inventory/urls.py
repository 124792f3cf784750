from django.urls import path
from .views import material_list_create, material_detail, material_low_stock

urlpatterns = [
    path('materials', material_list_create, name='material-list-create'),
    path('materials/low-stock', material_low_stock, name='material-low-stock'),
    path('materials/<int:pk>', material_detail, name='material-detail'),
]
