"""
Request payload validation.

Every JSON payload that ends up in a JSON column (long-set parts, sale item
snapshots, bill metadata) is validated here into a fixed shape before the
workflow engine sees it.
"""
from decimal import Decimal

from rest_framework import serializers

from backoffice.catalog.models import Product
from backoffice.khata.models import ApprovalStatus, Karigar, Vyapari
from backoffice.sales.billing import BILL_TYPES
from backoffice.sales.serializers import BillDetailsSerializer
from .models import ProductRequest, ProductRequestDetails, SalesRequest, SalesRequestItem


class LongSetPartSerializer(serializers.Serializer):
    part_name = serializers.CharField(max_length=200)
    part_description = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    cost_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                          required=False, allow_null=True, default=None)
    karigar_id = serializers.IntegerField(required=False, allow_null=True, default=None)

    def validate_karigar_id(self, value):
        if value is not None and not Karigar.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Karigar not found')
        return value

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        # JSONField storage
        if value.get('cost_price') is not None:
            value['cost_price'] = str(value['cost_price'])
        return value


class ProductDetailsInputSerializer(serializers.Serializer):
    """Proposed product values; every field is optional so edits can be partial"""
    name = serializers.CharField(max_length=200, required=False)
    sku = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    cost_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                          required=False, allow_null=True)
    stock = serializers.IntegerField(min_value=0, required=False)
    stock_adjustment = serializers.IntegerField(required=False, allow_null=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    material = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    supplier = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    image_url = serializers.URLField(max_length=500, required=False, allow_blank=True, allow_null=True)

    def validate_sku(self, value):
        return value.strip()


class ProductRequestCreateSerializer(serializers.Serializer):
    request_type = serializers.ChoiceField(choices=ProductRequest.REQUEST_TYPE_CHOICES)
    product_id = serializers.IntegerField(required=False, allow_null=True)
    details = ProductDetailsInputSerializer(required=False, allow_null=True)
    is_long_set = serializers.BooleanField(required=False, default=False)
    long_set_parts = LongSetPartSerializer(many=True, required=False)
    image = serializers.ImageField(required=False, allow_null=True)

    def validate(self, attrs):
        request_type = attrs['request_type']
        details = attrs.get('details') or {}

        if request_type in (ProductRequest.TYPE_EDIT, ProductRequest.TYPE_DELETE):
            product_id = attrs.get('product_id')
            if not product_id:
                raise serializers.ValidationError({'product_id': 'Product is required for edit and delete requests'})
            product = Product.objects.filter(pk=product_id).first()
            if product is None:
                raise serializers.ValidationError({'product_id': 'Product not found'})
            attrs['product'] = product

        if request_type in (ProductRequest.TYPE_ADD, ProductRequest.TYPE_EDIT) and not details:
            raise serializers.ValidationError({'details': 'Details are required for add and edit requests'})

        if request_type == ProductRequest.TYPE_ADD:
            missing = [name for name in ('name', 'sku', 'price') if details.get(name) in (None, '')]
            if missing:
                raise serializers.ValidationError({'details': f"Missing required fields: {', '.join(missing)}"})

        sku = details.get('sku')
        if sku and request_type != ProductRequest.TYPE_DELETE:
            taken = Product.objects.filter(sku__iexact=sku)
            if attrs.get('product'):
                taken = taken.exclude(pk=attrs['product'].pk)
            pending = ProductRequestDetails.objects.filter(
                sku__iexact=sku,
                request__request_type__in=[ProductRequest.TYPE_ADD, ProductRequest.TYPE_EDIT],
                request__status=ApprovalStatus.PENDING,
            )
            if attrs.get('product'):
                pending = pending.exclude(request__product=attrs['product'])
            if taken.exists() or pending.exists():
                raise serializers.ValidationError({'details': {'sku': ['A product with this SKU already exists']}})

        if attrs.get('is_long_set') and request_type != ProductRequest.TYPE_DELETE:
            parts = attrs.get('long_set_parts') or []
            if not parts:
                raise serializers.ValidationError({'long_set_parts': 'A long set needs at least one part'})
        return attrs


class ProductRequestDetailsSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductRequestDetails
        fields = ['name', 'sku', 'description', 'price', 'cost_price', 'stock', 'stock_adjustment',
                  'category', 'material', 'supplier', 'image_url', 'long_set_parts']


class ProductRequestSerializer(serializers.ModelSerializer):
    details = ProductRequestDetailsSerializer(read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True, default=None)
    requester_name = serializers.CharField(source='requester.username', read_only=True, default=None)
    decided_by_name = serializers.CharField(source='decided_by.username', read_only=True, default=None)

    class Meta:
        model = ProductRequest
        fields = ['id', 'request_id', 'request_type', 'product', 'product_name', 'status', 'is_long_set',
                  'admin_action', 'details', 'requester', 'requester_name', 'decided_by', 'decided_by_name',
                  'decided_at', 'created_at', 'updated_at']
        read_only_fields = fields


class SalesItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                     required=False, allow_null=True)


class SalesRequestCreateSerializer(serializers.Serializer):
    customer = serializers.CharField(max_length=200)
    vyapari_id = serializers.IntegerField(required=False, allow_null=True)
    items = SalesItemInputSerializer(many=True, allow_empty=False)

    def validate_customer(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Customer is required')
        return value

    def validate_vyapari_id(self, value):
        if value is not None and not Vyapari.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Vyapari not found')
        return value


class SalesRequestItemSerializer(serializers.ModelSerializer):
    total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = SalesRequestItem
        fields = ['id', 'product', 'product_name', 'sku', 'category', 'material', 'image_url',
                  'quantity', 'price', 'total']
        read_only_fields = fields


class SalesRequestSerializer(serializers.ModelSerializer):
    items = SalesRequestItemSerializer(many=True, read_only=True)
    vyapari_name = serializers.CharField(source='vyapari.name', read_only=True, default=None)
    requester_name = serializers.CharField(source='requester.username', read_only=True, default=None)
    decided_by_name = serializers.CharField(source='decided_by.username', read_only=True, default=None)

    class Meta:
        model = SalesRequest
        fields = ['id', 'request_id', 'customer', 'vyapari', 'vyapari_name', 'total_value', 'status',
                  'bill_type', 'items', 'requester', 'requester_name', 'decided_by', 'decided_by_name',
                  'decided_at', 'created_at', 'updated_at']
        read_only_fields = fields


class ProductDecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[ApprovalStatus.APPROVED, ApprovalStatus.REJECTED])


class SalesDecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[ApprovalStatus.APPROVED, ApprovalStatus.REJECTED])
    bill_type = serializers.ChoiceField(choices=BILL_TYPES, required=False, allow_null=True)
    bill_details = BillDetailsSerializer(required=False, allow_null=True)
