from functools import wraps

from core.errors import Forbidden, NotFound
from .models import Camp


def eligible_organizer_required(view_func):
    """Organizer accounts that are verified and cleared to organize. Use beneath ``api_view``."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        user = request.auth_user
        profile = getattr(user, "organizer_profile", None)
        if user.role != "ORGANIZER" or profile is None:
            raise Forbidden("Only camp organizers can do this")
        if not user.is_verified:
            raise Forbidden("Your organizer account has not been verified yet")
        if not profile.eligible_to_organize:
            raise Forbidden("Your organization is not yet eligible to organize camps")
        request.organizer_profile = profile
        return view_func(request, *args, **kwargs)
    return _wrapped


def can_manage_camp(user, camp):
    return user.role == "ADMIN" or camp.organizer_id == user.pk


def get_managed_camp(user, camp_id):
    camp = Camp.objects.filter(pk=camp_id).first()
    if camp is None:
        raise NotFound("Camp not found")
    if not can_manage_camp(user, camp):
        raise Forbidden("You can only manage your own camps")
    return camp
