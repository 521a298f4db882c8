# core/serializers.py

from rest_framework import serializers
from .models import CustomUser, Reservation, Table


# ==============================================================================
# CustomUser Serializer
# ==============================================================================

class CustomUserSerializer(serializers.ModelSerializer):
    """Serializer for the CustomUser model. The password is write-only and hashed on save."""

    isAdmin = serializers.BooleanField(source='is_admin', required=False, default=False)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = CustomUser
        fields = [
            'id',
            'username',
            'email',
            'password',
            'isAdmin',
            'createdAt',
            'updatedAt',
        ]
        read_only_fields = ['id']
        extra_kwargs = {'password': {'write_only': True}}

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = CustomUser(**validated_data)
        user.set_password(password)
        user.save()
        return user

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


# ==============================================================================
# Table Serializer
# ==============================================================================

class TableSerializer(serializers.ModelSerializer):
    """Serializer for dining tables."""

    isAvailable = serializers.BooleanField(source='is_available', required=False)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Table
        fields = [
            'id',
            'name',
            'capacity',
            'isAvailable',
            'createdAt',
            'updatedAt',
        ]
        read_only_fields = ['id']


# ==============================================================================
# Reservation Serializer (Main)
# ==============================================================================

class ReservationSerializer(serializers.ModelSerializer):
    """
    Read representation of a reservation.
    Includes the booking user and the bound table, as every reservation
    endpoint returns them. Writes go through the reservation engine.
    """

    userId = serializers.IntegerField(source='user_id', read_only=True)
    tableId = serializers.IntegerField(source='table_id', read_only=True, allow_null=True)
    user = CustomUserSerializer(read_only=True)
    table = TableSerializer(read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Reservation
        fields = [
            'id',
            'date',
            'time',
            'people',
            'status',
            'userId',
            'tableId',
            'user',
            'table',
            'createdAt',
            'updatedAt',
        ]
        read_only_fields = fields
