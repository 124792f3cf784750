from django.contrib import admin
from .models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['bill_no', 'date', 'type', 'material_name', 'party_name', 'quantity', 'unit_price', 'debit', 'credit', 'total', 'owner']
    list_filter = ['type', 'category', 'date']
    search_fields = ['bill_no', 'material_name', 'party_name', 'notes', 'owner__email']
    readonly_fields = ['bill_no', 'debit', 'credit', 'total', 'created_at', 'updated_at']
    ordering = ['-date', '-id']
    date_hierarchy = 'date'
