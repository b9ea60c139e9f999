from decimal import Decimal

from rest_framework import serializers

from .billing import BILL_TYPES, DEFAULT_HSN_CODE
from .models import Bill, Transaction


class BillDetailsSerializer(serializers.Serializer):
    """Customer and GST metadata supplied with a bill"""
    customer_address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customer_state = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    customer_gstin = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    transport_mode = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    vehicle_no = serializers.CharField(max_length=30, required=False, allow_blank=True, allow_null=True)
    place_of_supply = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    hsn_code = serializers.CharField(max_length=20, required=False, allow_blank=True, default=DEFAULT_HSN_CODE)
    is_taxable = serializers.BooleanField(required=False, allow_null=True, default=None)
    cgst_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                               max_value=Decimal('100'), required=False, allow_null=True)
    sgst_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                               max_value=Decimal('100'), required=False, allow_null=True)
    igst_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                               max_value=Decimal('100'), required=False, allow_null=True)
    supply_date_time = serializers.DateTimeField(required=False, allow_null=True)
    date_of_supply = serializers.DateField(required=False, allow_null=True)
    time_of_supply = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)

    def validate_customer_gstin(self, value):
        if value:
            value = value.strip().upper()
            if len(value) != 15:
                raise serializers.ValidationError('GSTIN must be 15 characters')
        return value or None


class BillLineSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(required=False, allow_null=True)
    name = serializers.CharField(max_length=200)
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))


class BillCreateSerializer(serializers.Serializer):
    bill_type = serializers.ChoiceField(choices=BILL_TYPES)
    customer_name = serializers.CharField(max_length=200)
    items = BillLineSerializer(many=True, allow_empty=False)
    bill_details = BillDetailsSerializer(required=False)
    is_fake_bill = serializers.BooleanField(required=False, default=False)


class BillSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    lines = serializers.ListField(read_only=True)
    meta = serializers.DictField(read_only=True)

    class Meta:
        model = Bill
        fields = [
            'id', 'bill_number', 'bill_type', 'date', 'date_of_supply', 'time_of_supply',
            'customer_name', 'customer_address', 'customer_state', 'customer_gstin',
            'items', 'lines', 'meta', 'taxable_amount', 'cgst', 'sgst', 'igst', 'total_amount',
            'hsn_codes', 'transport_mode', 'vehicle_no', 'place_of_supply', 'is_taxable',
            'source_reference', 'created_by', 'created_by_name', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BillUpdateSerializer(BillDetailsSerializer):
    """Bill edits touch customer and GST metadata only"""
    customer_name = serializers.CharField(max_length=200, required=False)
    hsn_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    is_taxable = serializers.BooleanField(required=False)


class TransactionSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.username', read_only=True, default=None)
    approved_by_name = serializers.CharField(source='approved_by.username', read_only=True, default=None)

    class Meta:
        model = Transaction
        fields = ['id', 'order_id', 'customer', 'total_amount', 'items', 'bill_type', 'status',
                  'user', 'user_name', 'approved_by', 'approved_by_name', 'created_at']
        read_only_fields = fields
