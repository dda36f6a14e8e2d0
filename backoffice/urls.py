from django.urls import path
from . import views

urlpatterns = [
    path("initialize", views.initialize, name="admin_initialize"),
    path("login", views.login, name="admin_login"),
    path("verify-otp", views.verify_login_otp, name="admin_verify_otp"),
    path("resend-otp", views.resend_login_otp_view, name="admin_resend_otp"),
    path("logout", views.logout, name="admin_logout"),

    path("profile", views.profile, name="admin_profile"),
    path("change-password", views.change_password, name="admin_change_password"),

    path("register", views.register, name="admin_register"),
    path("all", views.all_admins, name="admin_all"),

    path("approve-user/<int:user_id>", views.approve_user, name="admin_approve_user"),
    path("approve-organizer/<int:organizer_id>", views.approve_organizer, name="admin_approve_organizer"),
    path("approve-camp/<int:camp_id>", views.approve_camp, name="admin_approve_camp"),

    path("support-admins", views.support_admins, name="admin_support_admins"),
    path("support-admins/<int:staff_id>", views.support_admin_detail, name="admin_support_admin_detail"),
]
