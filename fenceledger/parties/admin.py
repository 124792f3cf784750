from django.contrib import admin
from .models import Party, PartyItem


class PartyItemInline(admin.TabularInline):
    model = PartyItem
    extra = 0
    min_num = 1


@admin.register(Party)
class PartyAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'contact', 'owner', 'created_at']
    list_filter = ['type', 'created_at']
    search_fields = ['name', 'contact', 'items__item_name']
    ordering = ['name']
    inlines = [PartyItemInline]
