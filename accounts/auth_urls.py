from django.urls import path

from . import views

urlpatterns = [
    path("verify", views.verify_session, name="auth_verify"),
    path("me", views.me, name="auth_me"),
    path("logout", views.logout, name="auth_logout"),
]
