from rest_framework import serializers
from phonenumber_field.serializerfields import PhoneNumberField
from decimal import Decimal
from vendors.models import Vendor
from transactions.api.serializers import TransactionSerializer


class VendorSerializer(serializers.ModelSerializer):
    contact_number = PhoneNumberField(read_only=True)
    status = serializers.CharField(read_only=True)

    class Meta:
        model = Vendor
        fields = [
            'id', 'name', 'contact_number', 'address', 'bill_url',
            'total_amount', 'pending_amount', 'status', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class VendorDetailSerializer(VendorSerializer):
    transactions = TransactionSerializer(many=True, read_only=True)

    class Meta(VendorSerializer.Meta):
        fields = VendorSerializer.Meta.fields + ['transactions']
        read_only_fields = fields


class VendorCreateSerializer(serializers.Serializer):
    """Input for creating a vendor with an optional bill attachment"""

    name = serializers.CharField(max_length=255, error_messages={
        'required': "Name, contact, and total amount are required",
        'blank': "Name, contact, and total amount are required",
    })
    contact_number = PhoneNumberField(error_messages={
        'required': "Name, contact, and total amount are required",
        'blank': "Name, contact, and total amount are required",
    })
    address = serializers.CharField(required=False, allow_blank=True, default='')
    total_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        error_messages={
            'required': "Name, contact, and total amount are required",
            'invalid': "Invalid total_amount",
        }
    )
    bill = serializers.FileField(required=False, allow_null=True)

    def validate_total_amount(self, value):
        if value < Decimal('0'):
            raise serializers.ValidationError("Invalid total_amount")
        return value


class OptionalPaymentField(serializers.DecimalField):
    """A blank or null form value means no payment"""

    def validate_empty_values(self, data):
        if data is None or (isinstance(data, str) and not data.strip()):
            return True, Decimal('0.00')
        return super().validate_empty_values(data)


class VendorUpdateSerializer(serializers.Serializer):
    """Input for updating a vendor; omitted fields keep their stored value"""

    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    contact_number = PhoneNumberField(required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    new_paid_amount = OptionalPaymentField(
        max_digits=12,
        decimal_places=2,
        required=False,
        default=Decimal('0.00'),
        help_text="Payment to record together with this update"
    )
    bill = serializers.FileField(required=False, allow_null=True)

    def validate_total_amount(self, value):
        if value is not None and value < Decimal('0'):
            raise serializers.ValidationError("Invalid total_amount")
        return value

    def validate_new_paid_amount(self, value):
        if value < Decimal('0'):
            raise serializers.ValidationError("new_paid_amount cannot be negative")
        return value
