from django.contrib.auth import get_user_model
from django.db.models import Count
from django.db.models.functions import ExtractMonth, ExtractYear
from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie

from accounts.models import DonorProfile
from blood.models import DonationRecord
from camps.models import Camp
from .api import api_view, ok

MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _as_list(items):
    return JsonResponse(list(items), safe=False)


@api_view(methods=["GET"])
@ensure_csrf_cookie
def csrf_token(request):
    return ok(csrfToken=get_token(request))


@api_view(methods=["GET"])
def user_cities(request):
    rows = (
        DonorProfile.objects.exclude(city="")
        .values("city")
        .annotate(count=Count("id"))
        .order_by("-count", "city")
    )
    return _as_list({"name": r["city"], "users": r["count"]} for r in rows)


@api_view(methods=["GET"])
def camp_cities(request):
    rows = (
        Camp.objects.exclude(city="")
        .values("city")
        .annotate(count=Count("id"))
        .order_by("-count", "city")
    )
    return _as_list({"name": r["city"], "camps": r["count"]} for r in rows)


@api_view(methods=["GET"])
def location_stats(request):
    """Camps per city, with how many donors there have donated at least once."""
    camps = Camp.objects.exclude(city="").values("city").annotate(n=Count("id"))
    donors = dict(
        DonorProfile.objects.exclude(city="")
        .filter(user__donation_records__isnull=False)
        .values("city")
        .annotate(n=Count("user", distinct=True))
        .values_list("city", "n")
    )
    stats = [
        {"name": row["city"], "camps": row["n"], "donors": donors.get(row["city"], 0)}
        for row in camps
    ]
    stats.sort(key=lambda s: (-s["donors"], s["name"]))
    return _as_list(stats)


@api_view(methods=["GET"])
def blood_type_stats(request):
    rows = (
        DonorProfile.objects.exclude(blood_type__in=["", "not sure"])
        .values("blood_type")
        .annotate(count=Count("id"))
        .order_by("blood_type")
    )
    return _as_list({"name": r["blood_type"], "value": r["count"]} for r in rows)


@api_view(methods=["GET"])
def donation_trends(request):
    rows = (
        DonationRecord.objects
        .annotate(year=ExtractYear("donation_date"), month=ExtractMonth("donation_date"))
        .values("year", "month")
        .annotate(count=Count("id"))
        .order_by("year", "month")
    )
    return _as_list(
        {"month": MONTH_NAMES[r["month"] - 1], "year": r["year"], "donors": r["count"]} for r in rows
    )


@api_view(methods=["GET"])
def summary_stats(request):
    User = get_user_model()
    return ok(
        totalCamps=Camp.objects.count(),
        totalDonors=User.objects.filter(role="DONOR", donation_records__isnull=False).distinct().count(),
        totalOrganizers=User.objects.filter(role="ORGANIZER").count(),
    )
