from django.http import JsonResponse

from accounts.permissions import self_or_roles
from core.api import api_view, json_body, ok, raise_form_errors
from core.errors import Forbidden
from . import services
from .forms import AppointmentForm, AppointmentUpdateForm


def _authorize(user, appointment, allow_owner=True):
    """Owner (when allowed), admins and the organizer of the appointment's camp."""
    if user.role == "ADMIN":
        return
    if allow_owner and appointment.donor_id == user.pk:
        return
    if user.role == "ORGANIZER" and appointment.camp.organizer_id == user.pk:
        return
    raise Forbidden("You do not have access to this appointment")


@api_view(methods=["POST"], roles=["DONOR"])
def create(request):
    form = AppointmentForm(json_body(request))
    if not form.is_valid():
        raise_form_errors(form)
    cd = form.cleaned_data

    appointment = services.create_appointment(request.auth_user.pk, cd["campId"], cd["date"], cd["time"])
    return JsonResponse(appointment.as_dict(), status=201)


@api_view(methods=["GET"], auth=True)
@self_or_roles("user_id")
def by_user(request, user_id):
    items = [a.as_dict() for a in services.appointments_for_donor(user_id)]
    return JsonResponse(items, safe=False)


def _update(request, appointment_id):
    appointment = services.get_appointment(appointment_id)
    _authorize(request.auth_user, appointment)

    form = AppointmentUpdateForm(json_body(request))
    if not form.is_valid():
        raise_form_errors(form)
    cd = form.cleaned_data

    appointment = services.update_appointment(
        appointment_id, date=cd.get("date"), time=cd.get("time"), camp_id=cd.get("campId"),
    )
    return ok(message="Appointment updated", appointment=appointment.as_dict())


@api_view(methods=["GET", "PATCH"], auth=True)
def detail(request, appointment_id):
    if request.method == "PATCH":
        return _update(request, appointment_id)
    appointment = services.get_appointment(appointment_id)
    _authorize(request.auth_user, appointment)
    return ok(appointment.as_dict(with_donor=True))


@api_view(methods=["PUT"], auth=True)
def reschedule(request, appointment_id):
    return _update(request, appointment_id)


@api_view(methods=["DELETE"], auth=True)
def cancel(request, appointment_id):
    appointment = services.get_appointment(appointment_id)
    _authorize(request.auth_user, appointment)
    snapshot = services.cancel_appointment(appointment_id)
    return ok(message="Appointment canceled", appointment=snapshot)


@api_view(methods=["PATCH"], roles=["ORGANIZER", "ADMIN"])
def confirm(request, appointment_id):
    appointment = services.get_appointment(appointment_id)
    _authorize(request.auth_user, appointment, allow_owner=False)
    appointment = services.confirm_appointment(appointment_id)
    return ok(message="Appointment confirmed", appointment=appointment.as_dict())
