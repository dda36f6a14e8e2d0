from django.shortcuts import get_object_or_404
from django.utils import timezone

from core.api import api_view, ok
from .models import Notification


@api_view(methods=["GET"], auth=True)
def inbox(request):
    qs = request.auth_user.notifications.order_by("-created_at")
    if request.GET.get("unread") in ("1", "true"):
        qs = qs.filter(read_at__isnull=True)
    items = [n.as_dict() for n in qs[:200]]
    unread = request.auth_user.notifications.filter(read_at__isnull=True).count()
    return ok(notifications=items, unread=unread)


@api_view(methods=["POST"], auth=True)
def mark_read(request, pk):
    n = get_object_or_404(Notification, pk=pk, user=request.auth_user)
    n.mark_read()
    return ok(notification=n.as_dict())


@api_view(methods=["POST"], auth=True)
def mark_all_read(request):
    updated = request.auth_user.notifications.filter(read_at__isnull=True).update(read_at=timezone.now())
    return ok(updated=updated)
