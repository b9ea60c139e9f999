from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .dispatcher import prune_notifications
from .models import Notification
from .serializers import NotificationSerializer, NotificationUpdateSerializer, NotificationDeleteSerializer


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """List, mark read, or delete the caller's own notifications"""
    own = Notification.objects.filter(user=request.user)

    if request.method == 'GET':
        prune_notifications(request.user)
        notifications = own.order_by('-created_at', '-id')
        unread_only = request.query_params.get('unread')
        if unread_only and unread_only.lower() in ('1', 'true', 'yes'):
            notifications = notifications.filter(is_read=False)
        return Response(NotificationSerializer(notifications, many=True).data)

    if request.method == 'PUT':
        serializer = NotificationUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        if data['all']:
            updated = own.update(is_read=data['is_read'])
            return Response({'updated': updated})
        notification = get_object_or_404(own, pk=data['id'])
        notification.is_read = data['is_read']
        notification.save(update_fields=['is_read'])
        return Response(NotificationSerializer(notification).data)

    serializer = NotificationDeleteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    if data['delete_all']:
        deleted, _ = own.delete()
    else:
        notification = get_object_or_404(own, pk=data['id'])
        notification.delete()
        deleted = 1
    return Response({'success': True, 'deleted': deleted})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    count = Notification.objects.filter(user=request.user, is_read=False).count()
    return Response({'unread': count})
