from django.urls import path
from . import views

urlpatterns = [
    path("csrf-token", views.csrf_token, name="csrf_token"),

    path("stats/user-cities", views.user_cities, name="stats_user_cities"),
    path("stats/camp-cities", views.camp_cities, name="stats_camp_cities"),
    path("stats/location-stats", views.location_stats, name="stats_location"),
    path("stats/blood-type-stats", views.blood_type_stats, name="stats_blood_types"),
    path("stats/donation-trends", views.donation_trends, name="stats_donation_trends"),
    path("stats/summary-stats", views.summary_stats, name="stats_summary"),
]
