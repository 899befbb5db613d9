from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    company = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'company', 'name', 'sku', 'description', 'track_inventory', 'low_stock_threshold', 'is_active', 'created_at', 'updated_at']

    def validate_sku(self, value):
        """SKU is unique within the company"""
        if not value:
            return None
        company = self.context.get('company')
        queryset = Product.objects.filter(company=company, sku=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('A product with this SKU already exists')
        return value
