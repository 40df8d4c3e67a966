from django.contrib import admin
from django.utils.html import format_html
from transactions.models import Transaction
from utils.enums import PaymentStatus


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Read-only view of the payment ledger; balance changes go through the API"""
    list_display = ('vendor_name', 'amount_display', 'status_display_colored',
                    'transaction_date', 'note', 'created_at')
    list_filter = ('status', 'transaction_date')
    search_fields = ('vendor__name', 'note')
    readonly_fields = ('vendor', 'amount', 'transaction_date', 'note', 'status', 'id', 'created_at', 'updated_at')

    def get_queryset(self, request):
        queryset = super().get_queryset(request)
        queryset = queryset.select_related('vendor')
        return queryset

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def vendor_name(self, obj):
        return obj.vendor.name
    vendor_name.admin_order_field = 'vendor__name'
    vendor_name.short_description = 'Vendor'

    def amount_display(self, obj):
        return format_html('<span style="font-weight: bold;">{}</span>', f"{obj.amount:,.2f}")
    amount_display.short_description = 'Amount'
    amount_display.admin_order_field = 'amount'

    def status_display_colored(self, obj):
        if obj.status == PaymentStatus.PAID.value:
            color = 'green'
        elif obj.status == PaymentStatus.PARTIAL.value:
            color = 'orange'
        elif obj.status == PaymentStatus.PENDING.value:
            color = 'red'
        else:
            color = 'gray'
        return format_html('<span style="color: {}; font-weight: bold;">{}</span>', color, obj.status or 'Unknown')
    status_display_colored.short_description = 'Status at payment'
