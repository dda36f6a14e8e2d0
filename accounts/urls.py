from django.urls import path

from . import views

urlpatterns = [
    path("register", views.register, name="donor_register"),
    path("verify-otp", views.verify_registration_otp, name="donor_verify_otp"),
    path("resend-otp", views.resend_registration_otp, name="donor_resend_otp"),

    path("allUsers", views.all_users, name="donor_list"),
    path("getUserDetails/<int:user_id>", views.user_detail, name="donor_detail"),
    path("updateUser/<int:user_id>", views.update_user, name="donor_update"),
    path("deleteUser/<int:user_id>", views.delete_user, name="donor_delete"),
]
