from django.urls import path

from . import views

urlpatterns = [
    path("create", views.create, name="appointment_create"),
    path("getByUser/<int:user_id>", views.by_user, name="appointments_by_user"),
    path("cancel/<int:appointment_id>", views.cancel, name="appointment_cancel"),
    path("confirm/<int:appointment_id>", views.confirm, name="appointment_confirm"),
    path("reschedule/<int:appointment_id>", views.reschedule, name="appointment_reschedule"),
    path("<int:appointment_id>", views.detail, name="appointment_detail"),
]
