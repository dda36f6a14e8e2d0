from django.urls import path
from . import views

urlpatterns = [
    path("send", views.send_contact_message, name="contact_send"),
    path("messages", views.contact_messages, name="contact_messages"),
    path("<int:pk>/resolve", views.resolve_contact_message, name="contact_resolve"),
]
