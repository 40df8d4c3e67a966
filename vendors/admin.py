from django.contrib import admin
from django.utils.html import format_html
from vendors.models import Vendor
from utils.enums import PaymentStatus


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ('name', 'contact_number', 'total_amount', 'pending_amount', 'status_display',
                    'created_at', 'updated_at', 'transaction_count')
    list_filter = ('created_at',)
    search_fields = ('name', 'contact_number', 'address')
    readonly_fields = ('pending_amount', 'created_at', 'updated_at')

    def get_readonly_fields(self, request, obj=None):
        # Bill totals change only through the vendor update API, which recomputes the balance
        if obj is not None:
            return self.readonly_fields + ('total_amount',)
        return self.readonly_fields

    def transaction_count(self, obj):
        return obj.transactions.count()
    transaction_count.short_description = 'Transaction Count'

    def status_display(self, obj):
        colors = {
            PaymentStatus.PAID.value: 'green',
            PaymentStatus.PARTIAL.value: 'orange',
            PaymentStatus.PENDING.value: 'red',
        }
        return format_html('<span style="color: {}; font-weight: bold;">{}</span>',
                           colors.get(obj.status, 'gray'), obj.status)
    status_display.short_description = 'Status'
