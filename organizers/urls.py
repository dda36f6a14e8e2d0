from django.urls import path

from . import views

urlpatterns = [
    path("register", views.register, name="organizer_register"),
    path("verify-otp", views.verify_registration_otp, name="organizer_verify_otp"),
    path("resend-otp", views.resend_registration_otp, name="organizer_resend_otp"),
    path("login", views.login, name="organizer_login"),

    path("profile", views.profile, name="organizer_profile"),
    path("change-password", views.change_password, name="organizer_change_password"),
    path("camps", views.my_camps, name="organizer_camps"),

    path("documents", views.documents, name="organizer_documents"),
    path("documents/<int:document_id>/download", views.download_document, name="organizer_document_download"),
    path("documents/<int:document_id>/verify", views.verify_document, name="organizer_document_verify"),
    path("documents/<int:document_id>", views.delete_document, name="organizer_document_delete"),

    path("all", views.all_organizers, name="organizer_list"),
    path("ineligible", views.ineligible_organizers, name="organizer_ineligible"),
    path("verify/<int:organizer_id>", views.verify_organizer, name="organizer_verify"),
    path("eligibility/<int:organizer_id>", views.set_eligibility, name="organizer_eligibility"),
    path("<int:organizer_id>", views.delete_organizer, name="organizer_delete"),
]
