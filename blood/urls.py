from django.urls import path

from . import views

urlpatterns = [
    path("addUserDonationRecord/<int:user_id>/donations", views.add_donation_record, name="donation_add"),
    path("<int:user_id>/donations", views.donation_history, name="donation_history"),
]
