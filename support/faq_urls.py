from django.urls import path
from . import views

urlpatterns = [
    path("", views.faqs, name="faq_list"),
    path("feedback", views.feedback_list, name="faq_feedback_list"),
    path("stats", views.faq_stats, name="faq_stats"),
    path("<int:pk>", views.faq_detail, name="faq_detail"),
    path("<int:pk>/view", views.record_view, name="faq_view"),
    path("<int:pk>/feedback", views.submit_feedback, name="faq_feedback"),
]
