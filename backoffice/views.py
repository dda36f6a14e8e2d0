import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.auth import clear_auth_cookie, revoke_claims, set_auth_cookie
from accounts.forms import EmailForm, LoginForm, OTPForm, PasswordChangeForm
from accounts.otp import issue_otp, verify_otp
from accounts.services import change_password as apply_password_change
from accounts.services import check_credentials, resend_login_otp
from accounts.tokens import make_auth_token
from camps.models import Camp
from communication.services import notify_user_safely
from core.api import api_view, json_body, lift_nested, ok, validated_form
from core.errors import Conflict, Forbidden, NotFound
from .forms import StaffRegistrationForm, StaffUpdateForm
from .models import Approval, StaffProfile

logger = logging.getLogger(__name__)
User = get_user_model()

OTP_PURPOSE = "ADMIN_LOGIN"
ALL_STAFF = ("superadmin", "moderator", "support")
APPROVERS = ("superadmin", "moderator")


def _staff(user):
    profile = StaffProfile.objects.filter(user=user).select_related("user").first()
    if profile is None:
        raise NotFound("Admin not found")
    return profile


def _create_staff(cd, staff_role):
    if User.objects.filter(email__iexact=cd["email"]).exists():
        raise Conflict("Email already in use")
    if StaffProfile.objects.filter(nic=cd["nic"]).exists():
        raise Conflict("NIC already registered")

    with transaction.atomic():
        user = User.objects.create_user(
            username=cd["email"],
            email=cd["email"],
            password=cd["password"],
            first_name=cd["firstName"],
            last_name=cd["lastName"],
            role="ADMIN",
            is_verified=True,
        )
        return StaffProfile.objects.create(
            user=user,
            staff_role=staff_role,
            nic=cd["nic"],
            street=cd.get("street") or "",
            city=cd.get("city") or "",
            state=cd.get("state") or "",
        )


def _record_approval(staff, target_type, target_id, label):
    try:
        with transaction.atomic():
            Approval.objects.create(staff=staff, target_type=target_type, target_id=target_id)
    except IntegrityError:
        raise Conflict(f"{label} already approved")


# ---------------- Auth ----------------

@api_view(methods=["POST"], csrf=False)
def initialize(request):
    if StaffProfile.objects.exists():
        raise Forbidden("Admin already initialized. Use regular registration.")

    form = validated_form(StaffRegistrationForm, lift_nested(json_body(request), "address"))
    staff = _create_staff(form.cleaned_data, "superadmin")
    logger.info("First superadmin initialized: %s", staff.user.email)
    return ok(
        success=True,
        message="First admin initialized successfully",
        admin=staff.as_dict(),
        status=201,
    )


@api_view(methods=["POST"], csrf=False)
def login(request):
    form = validated_form(LoginForm, json_body(request))
    email = form.cleaned_data["email"]
    user = check_credentials(email, form.cleaned_data["password"], "ADMIN")
    _staff(user)

    resend_login_otp(email, OTP_PURPOSE)
    return ok(success=True, requireOTP=True, message="Verification code sent to your email")


@api_view(methods=["POST"], csrf=False)
def verify_login_otp(request):
    form = validated_form(OTPForm, json_body(request))
    email = form.cleaned_data["email"]
    user = User.objects.filter(email=email, role="ADMIN").first()
    if user is None:
        raise NotFound("Admin not found")
    staff = _staff(user)

    verify_otp(email, OTP_PURPOSE, form.cleaned_data["otp"])

    user.last_login = timezone.now()
    user.save(update_fields=["last_login"])

    token = make_auth_token(user, staff_role=staff.staff_role)
    response = ok(success=True, token=token, admin=staff.as_dict())
    set_auth_cookie(response, token)
    return response


@api_view(methods=["POST"], csrf=False)
def resend_login_otp_view(request):
    form = validated_form(EmailForm, json_body(request))
    email = form.cleaned_data["email"]
    if not User.objects.filter(email=email, role="ADMIN").exists():
        raise NotFound("Admin not found")
    issue_otp(email, OTP_PURPOSE)
    return ok(message="New verification code sent")


@api_view(methods=["POST"], optional_auth=True)
def logout(request):
    if request.auth_claims:
        revoke_claims(request.auth_claims)
    response = ok(success=True, message="Logged out successfully")
    clear_auth_cookie(response)
    return response


# ---------------- Own profile ----------------

@api_view(methods=["GET", "PUT"], staff_roles=ALL_STAFF)
def profile(request):
    staff = _staff(request.auth_user)
    if request.method == "PUT":
        form = validated_form(
            StaffUpdateForm,
            lift_nested(json_body(request), "address"),
            allow=("firstName", "lastName", "street", "city", "state"),
        )
        with transaction.atomic():
            form.apply(staff.user, staff)
            staff.user.save()
            staff.save()
        return ok(success=True, message="Profile updated successfully", admin=staff.as_dict())
    return ok(success=True, admin=staff.as_dict())


@api_view(methods=["PUT"], staff_roles=ALL_STAFF)
def change_password(request):
    form = validated_form(PasswordChangeForm, json_body(request))
    apply_password_change(request.auth_user, form.cleaned_data["currentPassword"], form.cleaned_data["newPassword"])
    return ok(success=True, message="Password updated successfully")


# ---------------- Superadmin ----------------

@api_view(methods=["POST"], staff_roles=["superadmin"])
def register(request):
    form = validated_form(StaffRegistrationForm, lift_nested(json_body(request), "address"))
    staff = _create_staff(form.cleaned_data, form.cleaned_data.get("role") or "moderator")
    logger.info("Admin %s registered %s as %s", request.auth_user.pk, staff.user.email, staff.staff_role)
    return ok(success=True, message="Admin registered successfully", admin=staff.as_dict(), status=201)


@api_view(methods=["GET"], staff_roles=["superadmin"])
def all_admins(request):
    staff = StaffProfile.objects.select_related("user").order_by("created_at")
    return ok(success=True, admins=[s.as_dict() for s in staff])


# ---------------- Approvals ----------------

@api_view(methods=["POST"], staff_roles=APPROVERS)
def approve_user(request, user_id):
    donor = User.objects.filter(pk=user_id, role="DONOR").first()
    if donor is None:
        raise NotFound("User not found")

    with transaction.atomic():
        _record_approval(request.auth_user, "USER", donor.pk, "User")
        if not donor.is_verified:
            donor.is_verified = True
            donor.save(update_fields=["is_verified"])

    notify_user_safely(donor, "Your account has been approved", category="ACCOUNT")
    return ok(success=True, message="User approved successfully")


@api_view(methods=["POST"], staff_roles=APPROVERS)
def approve_organizer(request, organizer_id):
    organizer = User.objects.filter(pk=organizer_id, role="ORGANIZER").first()
    if organizer is None:
        raise NotFound("Organizer not found")

    with transaction.atomic():
        _record_approval(request.auth_user, "ORGANIZER", organizer.pk, "Organizer")
        if not organizer.is_verified:
            organizer.is_verified = True
            organizer.save(update_fields=["is_verified"])

    notify_user_safely(organizer, "Your organizer account has been approved", category="ACCOUNT")
    return ok(success=True, message="Organizer approved successfully")


@api_view(methods=["POST"], staff_roles=APPROVERS)
def approve_camp(request, camp_id):
    camp = Camp.objects.select_related("organizer").filter(pk=camp_id).first()
    if camp is None:
        raise NotFound("Camp not found")

    with transaction.atomic():
        _record_approval(request.auth_user, "CAMP", camp.pk, "Camp")
        if camp.status == "Upcoming":
            camp.status = "Open"
            camp.save(update_fields=["status"])

    notify_user_safely(
        camp.organizer,
        "Camp approved",
        body=f"{camp.name} has been approved and is now {camp.status.lower()}.",
        category="CAMP",
        url=f"/camps/{camp.pk}",
    )
    return ok(success=True, message="Camp approved successfully", camp=camp.as_dict())


# ---------------- Support staff ----------------

def _support_staff(staff_id):
    staff = StaffProfile.objects.select_related("user").filter(user_id=staff_id, staff_role="support").first()
    if staff is None:
        raise NotFound("Support admin not found")
    return staff


@api_view(methods=["GET"], staff_roles=ALL_STAFF)
def support_admins(request):
    staff = StaffProfile.objects.filter(staff_role="support").select_related("user")
    return ok(success=True, supportAdmins=[s.as_dict() for s in staff])


@api_view(methods=["PUT", "DELETE"], staff_roles=["superadmin"])
def support_admin_detail(request, staff_id):
    staff = _support_staff(staff_id)

    if request.method == "DELETE":
        email = staff.user.email
        staff.user.delete()
        logger.info("Admin %s deleted support admin %s", request.auth_user.pk, email)
        return ok(success=True, message="Support admin deleted successfully")

    form = validated_form(StaffUpdateForm, lift_nested(json_body(request), "address"))
    email = form.cleaned_data.get("email")
    if email and User.objects.filter(email__iexact=email).exclude(pk=staff.user_id).exists():
        raise Conflict("Email already in use")
    nic = form.cleaned_data.get("nic")
    if nic and StaffProfile.objects.filter(nic=nic).exclude(pk=staff.pk).exists():
        raise Conflict("NIC already registered")

    with transaction.atomic():
        form.apply(staff.user, staff)
        staff.user.save()
        staff.save()
    return ok(success=True, message="Support admin updated successfully", admin=staff.as_dict())
