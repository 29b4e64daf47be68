from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from core.pagination import paginate
from .models import Notification
from .serializers import MarkReadSerializer, NotificationSerializer


class MyNotificationsView(APIView):
    """
    GET /api/v1/notifications/me/
    GET /api/v1/notifications/me/?unread=true&limit=20&offset=0
    POST /api/v1/notifications/me/   (mark read)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        unread_only = request.query_params.get("unread")
        qs = Notification.objects.filter(user=request.user)

        if unread_only and unread_only.lower() in ("1", "true", "yes"):
            qs = qs.filter(is_read=False)

        data = paginate(request, qs, NotificationSerializer)
        data["unread_count"] = Notification.objects.filter(user=request.user, is_read=False).count()
        return Response(data)

    def post(self, request):
        """
        Mark notifications as read.

        Body:
        {
          "ids": [1, 2, 3]   # or omit/empty to mark all as read
        }
        """
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ids = serializer.validated_data.get("ids")

        qs = Notification.objects.filter(user=request.user, is_read=False)
        if ids:
            qs = qs.filter(id__in=ids)

        updated = qs.update(is_read=True)
        return Response({"marked_read": updated}, status=status.HTTP_200_OK)
