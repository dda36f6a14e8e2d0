from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path("django-admin/", admin.site.urls),
    path("api/", include("core.urls")),  # csrf-token + stats
    path("api/", include("accounts.session_urls")),  # donor login/logout
    path("auth/", include("accounts.auth_urls")),
    path("users/", include("accounts.urls")),
    path("users/", include("blood.urls")),  # donation records
    path("camps/", include("camps.urls")),
    path("appointments/", include("appointments.urls")),
    path("organizers/", include("organizers.urls")),
    path("chatbot/", include("chatbot.urls")),
    path("notifications/", include("communication.urls")),
    path("admin/", include("backoffice.urls")),
    path("contact/", include("support.contact_urls")),
    path("api/v1/faqs/", include("support.faq_urls")),
]

# Uploaded organizer documents during development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
