from rest_framework import serializers

from .models import LongSetProductPart, Product


class LongSetProductPartSerializer(serializers.ModelSerializer):
    karigar_name = serializers.CharField(source='karigar.name', read_only=True, default=None)

    class Meta:
        model = LongSetProductPart
        fields = ['id', 'position', 'part_name', 'part_description', 'cost_price', 'karigar', 'karigar_name']
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    is_low_stock = serializers.BooleanField(read_only=True)
    is_long_set = serializers.BooleanField(read_only=True)
    parts = serializers.SerializerMethodField()
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Product
        fields = ['id', 'sku', 'name', 'description', 'price', 'cost_price', 'stock', 'category', 'material',
                  'image_url', 'supplier', 'low_stock_threshold', 'is_low_stock', 'is_long_set', 'parts',
                  'created_by', 'created_by_name', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_parts(self, obj):
        """Parts of a long set; empty for regular products"""
        if not obj.is_long_set:
            return []
        return LongSetProductPartSerializer(obj.long_set.parts.select_related('karigar'), many=True).data


class LowStockThresholdSerializer(serializers.Serializer):
    threshold = serializers.IntegerField(min_value=0)
