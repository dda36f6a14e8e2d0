from django.urls import path
from . import views

urlpatterns = [
    path("", views.inbox, name="inbox"),
    path("<int:pk>/read", views.mark_read, name="notification_read"),
    path("read-all", views.mark_all_read, name="notification_read_all"),
]
