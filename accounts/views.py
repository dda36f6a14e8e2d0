import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone

from communication.services import notify_user_safely
from core.api import api_view, json_body, lift_nested, ok, validated_form
from core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from .auth import clear_auth_cookie, revoke_claims, set_auth_cookie
from .forms import DonorRegistrationForm, DonorUpdateForm, EmailForm, LoginForm, OTPForm
from .models import DonorProfile
from .otp import issue_otp, verify_otp
from .permissions import self_or_roles
from .services import check_credentials, resend_login_otp
from .tokens import make_auth_token

logger = logging.getLogger(__name__)
User = get_user_model()

USER_TYPES = {"DONOR": "user", "ORGANIZER": "organizer", "ADMIN": "admin"}


def user_details(user):
    data = user.as_dict()
    profile = getattr(user, "donor_profile", None)
    if profile is not None:
        data.update(profile.as_dict())
    organizer = getattr(user, "organizer_profile", None)
    if organizer is not None:
        data.update(organizer.as_dict())
    data["userType"] = USER_TYPES[user.role]
    return data


# ---------------- Registration ----------------

@api_view(methods=["POST"], csrf=False)
def register(request):
    form = validated_form(DonorRegistrationForm, lift_nested(json_body(request), "address"))
    cd = form.cleaned_data

    if User.objects.filter(email__iexact=cd["email"]).exists():
        raise Conflict("Email already registered")

    with transaction.atomic():
        user = User.objects.create_user(
            username=cd["email"],
            email=cd["email"],
            password=cd["password"],
            first_name=cd["firstName"],
            last_name=cd["lastName"],
            phone_number=cd["phoneNumber"],
            role="DONOR",
            is_verified=False,
        )
        DonorProfile.objects.create(
            user=user,
            blood_type=cd["bloodType"],
            street=cd["street"],
            city=cd["city"],
            state=cd["state"],
            zip_code=cd["zipCode"],
        )
        issue_otp(user.email, "DONOR_REGISTRATION")

    logger.info("Donor registered: %s", user.email)
    return ok(message="User registered. Please verify your email with OTP.", userId=user.pk, status=201)


@api_view(methods=["POST"], csrf=False)
def verify_registration_otp(request):
    form = validated_form(OTPForm, json_body(request))
    email = form.cleaned_data["email"]

    user = User.objects.filter(email=email, role="DONOR").first()
    if user is None:
        raise NotFound("User not found")

    verify_otp(email, "DONOR_REGISTRATION", form.cleaned_data["otp"])
    user.is_verified = True
    user.save(update_fields=["is_verified"])

    notify_user_safely(
        user,
        "Welcome to LifeFlow",
        body="Your email has been verified. Complete your profile to check your eligibility.",
        category="ACCOUNT",
        level="SUCCESS",
        email={
            "subject": "Welcome to LifeFlow",
            "heading": "Your email has been verified",
            "lines": ["Complete your donor profile to find camps near you and book a donation."],
        },
    )
    return ok(message="Email verified successfully", user=user.as_dict())


@api_view(methods=["POST"], csrf=False)
def resend_registration_otp(request):
    form = validated_form(EmailForm, json_body(request))
    email = form.cleaned_data["email"]

    user = User.objects.filter(email=email, role="DONOR").first()
    if user is None:
        raise NotFound("User not found")
    if user.is_verified:
        raise ValidationFailed("Email is already verified")

    issue_otp(email, "DONOR_REGISTRATION")
    return ok(message="A new OTP has been sent to your email")


# ---------------- Session ----------------

@api_view(methods=["POST"], csrf=False)
def login(request):
    form = validated_form(LoginForm, json_body(request))
    email = form.cleaned_data["email"]

    user = check_credentials(email, form.cleaned_data["password"], "DONOR")
    if not user.is_verified:
        resend_login_otp(email, "DONOR_LOGIN")
        raise Forbidden("Email not verified. A new OTP has been sent.", requiresVerification=True)

    token = make_auth_token(user)
    user.last_login = timezone.now()
    user.save(update_fields=["last_login"])

    notify_user_safely(
        user,
        "New login detected",
        category="ACCOUNT",
        email={
            "subject": "Login Notification",
            "heading": "A new login has been detected on your LifeFlow account.",
            "lines": ["If this was not you, please contact our support team immediately."],
            "details": [
                ("Login Time", timezone.localtime().strftime("%Y-%m-%d %H:%M")),
                ("IP Address", request.META.get("REMOTE_ADDR") or "Unknown"),
            ],
        },
    )

    response = ok(message="Login successful", token=token, user=user_details(user))
    set_auth_cookie(response, token)
    return response


@api_view(methods=["POST"], csrf=False)
def verify_login_otp(request):
    form = validated_form(OTPForm, json_body(request))
    email = form.cleaned_data["email"]

    user = User.objects.filter(email=email, role="DONOR").first()
    if user is None:
        raise NotFound("User not found")

    verify_otp(email, "DONOR_LOGIN", form.cleaned_data["otp"])
    user.is_verified = True
    user.save(update_fields=["is_verified"])

    token = make_auth_token(user)
    response = ok(message="Email verified successfully", token=token, user=user_details(user))
    set_auth_cookie(response, token)
    return response


@api_view(methods=["POST"], optional_auth=True)
def logout(request):
    if request.auth_claims:
        revoke_claims(request.auth_claims)
    response = ok(message="Logout successful")
    clear_auth_cookie(response)
    return response


@api_view(methods=["GET"], auth=True)
def me(request):
    return ok(user_details(request.auth_user))


@api_view(methods=["GET"], auth=True)
def verify_session(request):
    user = request.auth_user
    return ok(
        valid=True,
        user={"id": user.pk, "email": user.email, "role": user.role},
        staffRole=request.auth_claims.get("staff_role"),
    )


# ---------------- Donors ----------------

@api_view(methods=["GET"], roles=["ADMIN"])
def all_users(request):
    qs = User.objects.filter(role="DONOR").select_related("donor_profile").order_by("-date_joined")
    return ok(users=[user_details(u) for u in qs])


@api_view(methods=["GET"], auth=True)
@self_or_roles("user_id", roles=("ADMIN", "ORGANIZER"))
def user_detail(request, user_id):
    user = get_object_or_404(User, pk=user_id)
    return ok(user_details(user))


@api_view(methods=["PUT", "PATCH"], auth=True)
@self_or_roles("user_id")
def update_user(request, user_id):
    user = get_object_or_404(User, pk=user_id, role="DONOR")
    profile, _ = DonorProfile.objects.get_or_create(user=user)
    profile.user = user

    form = validated_form(DonorUpdateForm, lift_nested(json_body(request), "address", "location"))
    with transaction.atomic():
        form.apply(user, profile)
        user.save()
        profile.save()

    return ok(message="Profile updated", user=user_details(user))


@api_view(methods=["DELETE"], roles=["ADMIN"])
def delete_user(request, user_id):
    user = get_object_or_404(User, pk=user_id, role="DONOR")
    user.delete()
    logger.info("Donor %s deleted by user %s", user_id, request.auth_user.pk)
    return ok(message="User deleted successfully")
