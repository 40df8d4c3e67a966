from rest_framework import serializers
from decimal import Decimal
from transactions.models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'vendor', 'vendor_name', 'amount', 'transaction_date',
            'note', 'status', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.Serializer):
    """Input for adding or editing a payment"""

    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        error_messages={
            'required': "amount is required and must be a positive number",
            'null': "amount is required and must be a positive number",
            'invalid': "amount is required and must be a positive number",
        },
        help_text="Payment amount, must be positive"
    )
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    transaction_date = serializers.DateTimeField(required=False, allow_null=True)

    def validate_amount(self, value):
        if value <= Decimal('0'):
            raise serializers.ValidationError("amount is required and must be a positive number")
        return value


class ReconciliationResultSerializer(serializers.Serializer):
    """Per-vendor result of a ledger reconciliation"""
    vendor_id = serializers.IntegerField()
    vendor_name = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    stored_pending = serializers.DecimalField(max_digits=12, decimal_places=2)
    calculated_pending = serializers.DecimalField(max_digits=12, decimal_places=2)
    difference = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_consistent = serializers.BooleanField()
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2, source='transaction_summary.total_paid')
    payment_count = serializers.IntegerField(source='transaction_summary.payment_count')
    checked_at = serializers.FloatField()
