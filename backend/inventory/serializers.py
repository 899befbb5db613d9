from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from .models import Stock, StockMovement, InventoryTransfer, InventoryTransferItem
from .status import TRANSFER_STATUS_COLORS, transfer_status_machine


class StockSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    low_stock = serializers.SerializerMethodField()

    class Meta:
        model = Stock
        fields = ['id', 'product', 'product_name', 'product_sku', 'location', 'location_name', 'quantity', 'low_stock', 'updated_at']

    def get_low_stock(self, obj):
        return obj.quantity <= obj.product.low_stock_threshold


class StockMovementSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = StockMovement
        fields = ['id', 'product', 'product_name', 'location', 'quantity', 'balance_after', 'reason', 'reference_type', 'reference_id', 'created_by', 'created_at']


class InventoryTransferItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = InventoryTransferItem
        fields = ['id', 'product', 'product_name', 'quantity_requested', 'quantity_shipped', 'quantity_received']
        read_only_fields = ['quantity_shipped', 'quantity_received']

    def validate_quantity_requested(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than 0')
        return value


class InventoryTransferSerializer(serializers.ModelSerializer):
    """
    Transfer with its lines.

    Writes accept ``items`` as a list of ``{product, quantity_requested}``;
    on update the whole list is replaced. Status is never writable here,
    use the action endpoints.
    """
    items = InventoryTransferItemSerializer(many=True)
    from_location_name = serializers.CharField(source='from_location.name', read_only=True)
    to_location_name = serializers.CharField(source='to_location.name', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    status_color = serializers.SerializerMethodField()
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = InventoryTransfer
        fields = [
            'id', 'transfer_number', 'from_location', 'from_location_name', 'to_location', 'to_location_name',
            'status', 'status_label', 'status_color', 'allowed_transitions', 'notes',
            'requested_by', 'approved_by', 'approved_at', 'rejected_at', 'rejection_reason',
            'shipped_by', 'shipped_at', 'received_by', 'received_at', 'cancelled_at', 'cancellation_reason',
            'created_at', 'updated_at', 'items'
        ]
        read_only_fields = [
            'transfer_number', 'status', 'requested_by', 'approved_by', 'approved_at', 'rejected_at',
            'rejection_reason', 'shipped_by', 'shipped_at', 'received_by', 'received_at', 'cancelled_at',
            'cancellation_reason',
        ]

    def get_status_color(self, obj):
        return TRANSFER_STATUS_COLORS.get(obj.get_status())

    def get_allowed_transitions(self, obj):
        return [status.value for status in transfer_status_machine.allowed_targets(obj.status)]

    def _company(self):
        return self.context['company']

    def validate_from_location(self, value):
        if value.company_id != self._company().pk:
            raise serializers.ValidationError('Location does not belong to the current company')
        if not value.is_active:
            raise serializers.ValidationError('Location is inactive')
        return value

    def validate_to_location(self, value):
        return self.validate_from_location(value)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        company = self._company()
        seen = set()
        for item in value:
            product = item['product']
            if product.company_id != company.pk:
                raise serializers.ValidationError(f"Product {product.pk} does not belong to the current company")
            if product.pk in seen:
                raise serializers.ValidationError(f"Product {product.name} is listed more than once")
            seen.add(product.pk)
        return value

    def validate(self, attrs):
        from_location = attrs.get('from_location', getattr(self.instance, 'from_location', None))
        to_location = attrs.get('to_location', getattr(self.instance, 'to_location', None))
        if from_location is not None and to_location is not None and from_location.pk == to_location.pk:
            raise serializers.ValidationError({'to_location': 'Source and destination locations must be different'})
        return attrs

    def _write_items(self, transfer, items_data):
        InventoryTransferItem.objects.bulk_create([
            InventoryTransferItem(
                transfer=transfer,
                product=item['product'],
                quantity_requested=Decimal(item['quantity_requested']),
            )
            for item in items_data
        ])

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        with transaction.atomic():
            transfer = InventoryTransfer.objects.create(**validated_data)
            self._write_items(transfer, items_data)
        return transfer

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


class TransferQuantitiesSerializer(serializers.Serializer):
    """Body of ship/receive: optional ``{item_id: quantity}`` overrides"""
    items = serializers.DictField(child=serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0')), required=False)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class TransitionSerializer(serializers.Serializer):
    status = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    items = serializers.DictField(child=serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0')), required=False)
