import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.http import JsonResponse
from django.utils import timezone

from appointments.services import donors_for_camp
from communication.services import broadcast_after_commit
from core.api import api_view, json_body, lift_nested, ok, validated_form
from core.errors import NotFound, ValidationFailed
from .forms import CampForm
from .geo import format_distance, nearby_camps
from .models import Camp, CampDate
from .permissions import eligible_organizer_required, get_managed_camp

logger = logging.getLogger(__name__)
User = get_user_model()


def _camp_form(request, partial=False):
    data = lift_nested(json_body(request), "address", "contact", "location")
    return validated_form(CampForm, data, partial=partial)


def _set_dates(camp, dates):
    CampDate.objects.filter(camp=camp).exclude(date__in=dates).delete()
    existing = set(camp.dates.values_list("date", flat=True))
    CampDate.objects.bulk_create([CampDate(camp=camp, date=d) for d in dates if d not in existing])


def _camp_list(qs):
    return JsonResponse([c.as_dict() for c in qs.prefetch_related("dates")], safe=False)


@api_view(methods=["POST"], roles=["ORGANIZER"])
@eligible_organizer_required
@transaction.atomic
def create_camp(request):
    form = _camp_form(request)
    camp = form.apply(Camp(organizer=request.auth_user))
    camp.save()
    _set_dates(camp, form.cleaned_data["availableDates"])

    donors = User.objects.filter(
        role="DONOR", is_active=True, donor_profile__city__iexact=camp.city,
    )
    first_date = camp.available_dates[0] if camp.available_dates else None
    title = "New Blood Donation Camp Near You"
    body = f"'{camp.name}' is coming to {camp.city}" + (f" from {first_date:%b %d, %Y}." if first_date else ".")
    broadcast_after_commit(
        donors,
        title=title,
        body=body,
        url=f"/camps/{camp.pk}",
        level="INFO",
        email_subject=title,
        email_body=body + f"\n\nOperating hours: {camp.operating_hours}\nAddress: {camp.street}, {camp.city}",
        category="CAMP",
    )

    logger.info("Camp %s created by organizer %s", camp.pk, request.auth_user.pk)
    return ok(message="Camp created successfully", camp=camp.as_dict(), status=201)


@api_view(methods=["GET"])
def nearby(request):
    try:
        lat = float(request.GET["lat"])
        lng = float(request.GET["lng"])
        radius = float(request.GET["radius"])
    except (KeyError, ValueError):
        raise ValidationFailed("Missing location parameters")
    if radius <= 0:
        raise ValidationFailed("Radius must be positive")

    statuses = [s for s in request.GET.getlist("status") if s]
    results = []
    for camp, km in nearby_camps(lat, lng, radius, statuses=statuses or None):
        distance, unit = format_distance(km)
        data = camp.as_dict()
        data["distance"] = distance
        data["distanceUnit"] = unit
        results.append(data)
    return JsonResponse(results, safe=False)


@api_view(methods=["GET"])
def all_camps(request):
    qs = Camp.objects.all()
    status = request.GET.get("status")
    if status:
        qs = qs.filter(status=status)
    city = request.GET.get("city")
    if city:
        qs = qs.filter(city__iexact=city.strip())
    return _camp_list(qs)


@api_view(methods=["GET"])
def camp_detail(request, camp_id):
    camp = Camp.objects.prefetch_related("dates").filter(pk=camp_id).first()
    if camp is None:
        raise NotFound("Camp not found")
    return ok(camp.as_dict())


@api_view(methods=["PUT", "PATCH"], roles=["ORGANIZER", "ADMIN"])
@transaction.atomic
def update_camp(request, camp_id):
    camp = get_managed_camp(request.auth_user, camp_id)
    form = _camp_form(request, partial=True)
    form.apply(camp)
    camp.save()
    if form.cleaned_data.get("availableDates"):
        _set_dates(camp, form.cleaned_data["availableDates"])
    return ok(message="Camp updated successfully", camp=camp.as_dict())


@api_view(methods=["DELETE"], roles=["ORGANIZER", "ADMIN"])
def delete_camp(request, camp_id):
    camp = get_managed_camp(request.auth_user, camp_id)
    camp.delete()
    logger.info("Camp %s deleted by user %s", camp_id, request.auth_user.pk)
    return ok(message="Camp deleted successfully")


@api_view(methods=["GET"], roles=["ORGANIZER", "ADMIN"])
def camp_users(request, camp_id):
    camp = get_managed_camp(request.auth_user, camp_id)
    return ok(camp=camp.as_dict(), users=donors_for_camp(camp))


@api_view(methods=["GET"])
def camps_by_organizer(request, organizer_id):
    return _camp_list(Camp.objects.filter(organizer_id=organizer_id))


@api_view(methods=["GET"])
def upcoming_camps_by_organizer(request, organizer_id):
    today = timezone.localdate()
    qs = (
        Camp.objects
        .filter(organizer_id=organizer_id, dates__date__gte=today)
        .exclude(status="Closed")
        .distinct()
    )
    return _camp_list(qs)
