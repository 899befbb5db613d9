from django.db import transaction
from rest_framework import serializers
from .models import Sale, SaleItem
from .status import SALE_STATUS_COLORS, sale_status_machine


class SaleItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = SaleItem
        fields = ['id', 'product', 'product_name', 'quantity', 'unit_price', 'line_total']

    def get_line_total(self, obj):
        return str(obj.get_line_total())

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than 0')
        return value

    def validate_unit_price(self, value):
        if value < 0:
            raise serializers.ValidationError('Unit price cannot be negative')
        return value


class SaleSerializer(serializers.ModelSerializer):
    items = SaleItemSerializer(many=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    status_color = serializers.SerializerMethodField()
    allowed_transitions = serializers.SerializerMethodField()
    total = serializers.SerializerMethodField()
    change_amount = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            'id', 'sale_number', 'customer', 'customer_name', 'location', 'location_name',
            'status', 'status_label', 'status_color', 'allowed_transitions',
            'payment_method', 'received_amount', 'change_amount', 'notes',
            'closed_at', 'cancelled_at', 'created_by', 'created_at', 'updated_at', 'items', 'total'
        ]
        read_only_fields = ['sale_number', 'location', 'status', 'closed_at', 'cancelled_at', 'created_by']

    def get_status_color(self, obj):
        return SALE_STATUS_COLORS.get(obj.get_status())

    def get_allowed_transitions(self, obj):
        return [status.value for status in sale_status_machine.allowed_targets(obj.status)]

    def get_total(self, obj):
        return str(obj.get_total())

    def get_change_amount(self, obj):
        change = obj.get_change_amount()
        return str(change) if change is not None else None

    def validate_customer(self, value):
        if value is not None and value.company_id != self.context['company'].pk:
            raise serializers.ValidationError('Customer does not belong to the current company')
        return value

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        company = self.context['company']
        for item in value:
            if item['product'].company_id != company.pk:
                raise serializers.ValidationError(f"Product {item['product'].pk} does not belong to the current company")
        return value

    def _write_items(self, sale, items_data):
        SaleItem.objects.bulk_create([SaleItem(sale=sale, **item_data) for item_data in items_data])

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        with transaction.atomic():
            sale = Sale.objects.create(**validated_data)
            self._write_items(sale, items_data)
        return sale

    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            # Only the edited columns; status and its timestamps belong to the transitions
            instance.save(update_fields=[*validated_data, 'updated_at'])
            if items_data is not None:
                instance.items.all().delete()
                self._write_items(instance, items_data)
        return instance


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.CharField()
