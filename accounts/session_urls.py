from django.urls import path

from . import views

urlpatterns = [
    path("login", views.login, name="login"),
    path("verify-login-otp", views.verify_login_otp, name="verify_login_otp"),
    path("logout", views.logout, name="logout"),
    path("me", views.me, name="me"),
]
