from datetime import timedelta

from django.utils import timezone

WAIT_PERIOD_DAYS = {
    "Whole Blood": 56,
    "Plasma": 14,
    "Platelets": 7,
    "Double Red Cells": 112,
}
DEFAULT_WAIT_DAYS = 56

# profile attribute names; first/last name and phone live on the user
ELIGIBILITY_FIELDS = ("nic_no", "blood_type", "date_of_birth", "street", "city", "state")


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def evaluate_eligibility(profile) -> bool:
    """Identity, blood type, birth date and street/city/state present, and no drug usage."""
    if not all(_present(getattr(profile, name, None)) for name in ELIGIBILITY_FIELDS):
        return False
    return not profile.drug_usage


def is_profile_complete(profile) -> bool:
    user = profile.user
    names = (user.first_name, user.last_name, user.phone_number)
    return all(_present(v) for v in names) and all(
        _present(getattr(profile, name, None)) for name in ELIGIBILITY_FIELDS
    )


def is_assessment_completed(profile) -> bool:
    return profile.weight is not None and _present(profile.donated_before)


def wait_period(donation_type) -> int:
    return WAIT_PERIOD_DAYS.get(donation_type, DEFAULT_WAIT_DAYS)


def last_donation(records):
    """
    Most recent donation by date. ``records`` must be in append order; when two
    records share a date the later-appended one wins.
    """
    records = list(records)
    if not records:
        return None
    _, record = max(enumerate(records), key=lambda pair: (pair[1].donation_date, pair[0]))
    return record


def next_eligible_date(records):
    last = last_donation(records)
    if last is None:
        return None
    return last.donation_date + timedelta(days=wait_period(last.donation_type))


def refresh_derived_fields(profile, records=None):
    """Recompute every derived field on ``profile`` in place."""
    if records is None:
        records = profile.donation_records_in_order()
    records = list(records)

    profile.is_eligible = evaluate_eligibility(profile)
    profile.is_profile_complete = is_profile_complete(profile)
    profile.is_assessment_completed = is_assessment_completed(profile)

    last = last_donation(records)
    profile.last_donation_date = last.donation_date if last else None
    profile.last_pints_donated = last.pints_donated if last else None
    profile.next_eligible_donation_date = next_eligible_date(records)
    profile.total_pints_donated = sum(r.pints_donated or 0 for r in records)
    return profile


def is_eligible_to_donate(profile, today=None) -> bool:
    nxt = profile.next_eligible_donation_date
    today = today or timezone.localdate()
    return nxt is None or nxt <= today
