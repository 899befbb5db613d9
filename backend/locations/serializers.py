from rest_framework import serializers
from .models import Company, Location, Worker


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ['id', 'name', 'business_name', 'tax_id', 'address', 'phone', 'email', 'is_active', 'created_at', 'updated_at']


class LocationSerializer(serializers.ModelSerializer):
    company = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Location
        fields = ['id', 'company', 'name', 'description', 'address', 'phone', 'email', 'settings', 'is_active', 'created_at', 'updated_at']


class WorkerCompanySerializer(serializers.ModelSerializer):
    """A worker membership seen from the user's side"""
    company = CompanySerializer(read_only=True)
    locations = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = Worker
        fields = ['id', 'company', 'role', 'locations', 'is_active']
