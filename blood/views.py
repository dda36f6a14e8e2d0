import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404

from accounts.models import DonorProfile
from accounts.permissions import self_or_roles
from camps.models import Camp
from core.api import api_view, json_body, ok, raise_form_errors
from core.errors import NotFound
from communication.services import notify_user_safely
from .forms import DonationRecordForm
from .models import DonationRecord

logger = logging.getLogger(__name__)
User = get_user_model()


@api_view(methods=["POST"], roles=["ORGANIZER", "ADMIN"])
def add_donation_record(request, user_id):
    donor = get_object_or_404(User, pk=user_id, role="DONOR")
    form = DonationRecordForm(json_body(request))
    if not form.is_valid():
        raise_form_errors(form)
    cd = form.cleaned_data

    camp = None
    if cd.get("campId"):
        camp = Camp.objects.filter(pk=cd["campId"]).first()
        if camp is None:
            raise NotFound("Camp not found")

    record = DonationRecord.objects.create(
        donor=donor,
        donation_date=cd["donationDate"],
        donation_type=cd.get("donationType") or "Whole Blood",
        camp=camp,
        donation_center=cd.get("donationCenter") or (camp.name if camp else ""),
        pints_donated=cd.get("pintsDonated") or 1,
        notes=cd.get("notes") or "",
        post_donation_issues=cd.get("postDonationIssues") or "",
        recorded_by=request.auth_user,
    )
    # post_save has recomputed the derived fields
    profile = DonorProfile.objects.filter(user=donor).first()

    next_date = profile.next_eligible_donation_date if profile else None
    notify_user_safely(
        donor,
        "Thank you for donating",
        body=f"Your {record.donation_type.lower()} donation on {record.donation_date:%b %d, %Y} was recorded."
             + (f" You can donate again from {next_date:%b %d, %Y}." if next_date else ""),
        category="DONATION",
        level="SUCCESS",
        url="/donations",
    )
    logger.info("Donation %s recorded for donor %s by %s", record.pk, donor.pk, request.auth_user.pk)

    return ok(
        message="Donation record added",
        donation=record.as_dict(),
        user=profile.as_dict() if profile else None,
    )


@api_view(methods=["GET"], auth=True)
@self_or_roles("user_id", roles=("ADMIN", "ORGANIZER"))
def donation_history(request, user_id):
    donor = get_object_or_404(User, pk=user_id, role="DONOR")
    records = donor.donation_records.select_related("camp").order_by("-donation_date", "-created_at")
    return ok(donationHistory=[r.as_dict() for r in records])
