from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'title', 'message', 'type', 'is_read', 'created_at']
        read_only_fields = ['id', 'title', 'message', 'type', 'created_at']


class NotificationUpdateSerializer(serializers.Serializer):
    id = serializers.IntegerField(required=False)
    is_read = serializers.BooleanField(default=True)
    all = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if not attrs.get('all') and attrs.get('id') is None:
            raise serializers.ValidationError('Provide a notification id or all=true')
        return attrs


class NotificationDeleteSerializer(serializers.Serializer):
    id = serializers.IntegerField(required=False)
    delete_all = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if not attrs.get('delete_all') and attrs.get('id') is None:
            raise serializers.ValidationError('Provide a notification id or delete_all=true')
        return attrs
