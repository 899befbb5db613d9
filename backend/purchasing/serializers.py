from django.db import transaction
from rest_framework import serializers
from .models import Purchase, PurchaseItem
from .status import PURCHASE_STATUS_ICONS, purchase_status_machine


class PurchaseItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseItem
        fields = ['id', 'product', 'product_name', 'product_sku', 'quantity', 'unit_cost', 'line_total']

    def get_line_total(self, obj):
        return str(obj.get_line_total())

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than 0')
        return value

    def validate_unit_cost(self, value):
        if value < 0:
            raise serializers.ValidationError('Unit cost cannot be negative')
        return value


class PurchaseSerializer(serializers.ModelSerializer):
    items = PurchaseItemSerializer(many=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    status_icon = serializers.SerializerMethodField()
    allowed_transitions = serializers.SerializerMethodField()
    total = serializers.SerializerMethodField()

    class Meta:
        model = Purchase
        fields = [
            'id', 'purchase_number', 'supplier', 'supplier_name', 'location', 'location_name',
            'bill_number', 'status', 'status_label', 'status_icon', 'allowed_transitions', 'notes',
            'received_at', 'created_by', 'created_at', 'updated_at', 'items', 'total'
        ]
        read_only_fields = ['purchase_number', 'location', 'status', 'received_at', 'created_by']

    def get_status_icon(self, obj):
        return PURCHASE_STATUS_ICONS.get(obj.get_status())

    def get_allowed_transitions(self, obj):
        return [status.value for status in purchase_status_machine.allowed_targets(obj.status)]

    def get_total(self, obj):
        return str(obj.get_total())

    def validate_supplier(self, value):
        if value is not None and value.company_id != self.context['company'].pk:
            raise serializers.ValidationError('Supplier does not belong to the current company')
        return value

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        company = self.context['company']
        for item in value:
            if item['product'].company_id != company.pk:
                raise serializers.ValidationError(f"Product {item['product'].pk} does not belong to the current company")
        return value

    def _write_items(self, purchase, items_data):
        PurchaseItem.objects.bulk_create([
            PurchaseItem(purchase=purchase, **item_data) for item_data in items_data
        ])

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        with transaction.atomic():
            purchase = Purchase.objects.create(**validated_data)
            self._write_items(purchase, items_data)
        return purchase

    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            # Only the edited columns; status and its timestamps belong to the transitions
            instance.save(update_fields=[*validated_data, 'updated_at'])
            if items_data is not None:
                # Replace the full set of lines
                instance.items.all().delete()
                self._write_items(instance, items_data)
        return instance


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.CharField()
