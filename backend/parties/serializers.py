from rest_framework import serializers
from .models import Customer, Supplier


class CustomerSerializer(serializers.ModelSerializer):
    company = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Customer
        fields = ['id', 'company', 'name', 'phone', 'email', 'address', 'is_active', 'created_at', 'updated_at']


class SupplierSerializer(serializers.ModelSerializer):
    company = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Supplier
        fields = ['id', 'company', 'name', 'phone', 'email', 'address', 'contact_person', 'is_active', 'created_at', 'updated_at']
