from django.urls import path
from . import views

urlpatterns = [
    path("gemini", views.gemini, name="chatbot_gemini"),
]
