from django.contrib import admin
from .models import Material


@admin.register(Material)
class MaterialAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'unit', 'quantity', 'unit_price', 'low_stock_threshold', 'owner', 'created_at']
    list_filter = ['category', 'unit', 'created_at']
    search_fields = ['name', 'description', 'owner__email']
    ordering = ['name']
