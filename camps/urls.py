from django.urls import path

from . import views

urlpatterns = [
    path("create", views.create_camp, name="camp_create"),
    path("nearby", views.nearby, name="camp_nearby"),
    path("all", views.all_camps, name="camp_list"),
    path("update/<int:camp_id>", views.update_camp, name="camp_update"),
    path("delete/<int:camp_id>", views.delete_camp, name="camp_delete"),
    path("get-camps/<int:organizer_id>", views.camps_by_organizer, name="camps_by_organizer"),
    path("get-upcoming-camps/<int:organizer_id>", views.upcoming_camps_by_organizer, name="upcoming_camps_by_organizer"),
    path("<int:camp_id>/users", views.camp_users, name="camp_users"),
    path("<int:camp_id>", views.camp_detail, name="camp_detail"),
]
