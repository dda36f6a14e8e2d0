import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.http import FileResponse, JsonResponse
from django.utils import timezone

from accounts.auth import set_auth_cookie
from accounts.forms import EmailForm, LoginForm, OTPForm, PasswordChangeForm
from accounts.otp import issue_otp, verify_otp
from accounts.services import change_password as apply_password_change
from accounts.services import check_credentials, resend_login_otp
from accounts.tokens import make_auth_token
from camps.models import Camp
from communication.services import notify_user_safely
from core.api import api_view, json_body, lift_nested, ok, validated_form
from core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from .forms import DocumentUploadForm, EligibilityForm, OrganizerProfileForm, OrganizerRegistrationForm, safe_filename
from .models import OrganizerDocument, OrganizerProfile

logger = logging.getLogger(__name__)
User = get_user_model()

OTP_PURPOSE = "ORGANIZER"


def organizer_details(user):
    data = user.as_dict()
    data["phone"] = user.phone_number
    profile = getattr(user, "organizer_profile", None)
    if profile is not None:
        data.update(profile.as_dict())
    return data


def _organizer(organizer_id):
    user = User.objects.filter(pk=organizer_id, role="ORGANIZER").select_related("organizer_profile").first()
    if user is None:
        raise NotFound("Organizer not found")
    return user


def _document_for(user, document_id):
    doc = OrganizerDocument.objects.filter(pk=document_id).first()
    if doc is None:
        raise NotFound("Document not found")
    if user.role != "ADMIN" and doc.organizer_id != user.pk:
        raise Forbidden("You can only access your own documents")
    return doc


# ---------------- Auth ----------------

@api_view(methods=["POST"], csrf=False)
def register(request):
    form = validated_form(OrganizerRegistrationForm, lift_nested(json_body(request), "address"))
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
            phone_number=cd["phone"],
            role="ORGANIZER",
            is_verified=False,
        )
        OrganizerProfile.objects.create(
            user=user,
            organization=cd["organization"],
            street=cd["street"],
            city=cd["city"],
            state=cd["state"],
        )
        issue_otp(user.email, OTP_PURPOSE, intro="Use the code below to verify your organizer account.")

    logger.info("Organizer registered: %s (%s)", user.email, cd["organization"])
    return ok(
        message="Organizer registered. Please verify your email with the OTP we sent.",
        organizer=organizer_details(user),
        status=201,
    )


@api_view(methods=["POST"], csrf=False)
def verify_registration_otp(request):
    form = validated_form(OTPForm, json_body(request))
    email = form.cleaned_data["email"]
    user = User.objects.filter(email=email, role="ORGANIZER").first()
    if user is None:
        raise NotFound("Organizer not found")

    verify_otp(email, OTP_PURPOSE, form.cleaned_data["otp"])
    user.is_verified = True
    user.save(update_fields=["is_verified"])

    token = make_auth_token(user)
    response = ok(message="Email verified successfully", token=token, organizer=organizer_details(user))
    set_auth_cookie(response, token)
    return response


@api_view(methods=["POST"], csrf=False)
def resend_registration_otp(request):
    form = validated_form(EmailForm, json_body(request))
    email = form.cleaned_data["email"]
    user = User.objects.filter(email=email, role="ORGANIZER").first()
    if user is None:
        raise NotFound("Organizer not found")
    if user.is_verified:
        raise ValidationFailed("Email is already verified")
    issue_otp(email, OTP_PURPOSE, intro="Use the code below to verify your organizer account.")
    return ok(message="A new OTP has been sent to your email")


@api_view(methods=["POST"], csrf=False)
def login(request):
    form = validated_form(LoginForm, json_body(request))
    email = form.cleaned_data["email"]

    user = check_credentials(email, form.cleaned_data["password"], "ORGANIZER")
    if not user.is_verified:
        resend_login_otp(email, OTP_PURPOSE)
        raise Forbidden("Email not verified. A new OTP has been sent.", requiresVerification=True)

    user.last_login = timezone.now()
    user.save(update_fields=["last_login"])

    token = make_auth_token(user)
    response = ok(message="Login successful", token=token, organizer=organizer_details(user))
    set_auth_cookie(response, token)
    return response


# ---------------- Self service ----------------

@api_view(methods=["GET", "PUT"], roles=["ORGANIZER"])
def profile(request):
    user = request.auth_user
    if request.method == "PUT":
        organizer_profile, _ = OrganizerProfile.objects.get_or_create(user=user, defaults={"organization": ""})
        form = validated_form(OrganizerProfileForm, lift_nested(json_body(request), "address"))
        with transaction.atomic():
            form.apply(user, organizer_profile)
            user.save()
            organizer_profile.save()
        return ok(message="Profile updated successfully", organizer=organizer_details(user))
    return ok(organizer_details(user))


@api_view(methods=["PUT"], roles=["ORGANIZER"])
def change_password(request):
    form = validated_form(PasswordChangeForm, json_body(request))
    apply_password_change(request.auth_user, form.cleaned_data["currentPassword"], form.cleaned_data["newPassword"])
    return ok(message="Password changed successfully")


@api_view(methods=["GET"], roles=["ORGANIZER"])
def my_camps(request):
    camps = Camp.objects.filter(organizer=request.auth_user).prefetch_related("dates")
    return JsonResponse([c.as_dict() for c in camps], safe=False)


# ---------------- Documents ----------------

@api_view(methods=["GET", "POST"], roles=["ORGANIZER", "ADMIN"])
def documents(request):
    user = request.auth_user
    if request.method == "POST":
        if user.role != "ORGANIZER":
            raise Forbidden("Only organizers can upload documents")
        form = validated_form(DocumentUploadForm, request.POST, files=request.FILES)
        created = []
        with transaction.atomic():
            for upload in form.uploads:
                doc = OrganizerDocument(
                    organizer=user,
                    document_type=form.cleaned_data["documentType"],
                    original_name=upload.name,
                    content_type=upload.content_type,
                    size=upload.size,
                )
                doc.file.save(safe_filename(upload.name), upload, save=False)
                doc.save()
                created.append(doc)
        logger.info("Organizer %s uploaded %s documents", user.pk, len(created))
        return ok(message="Documents uploaded successfully", documents=[d.as_dict() for d in created], status=201)

    qs = OrganizerDocument.objects.all()
    if user.role == "ORGANIZER":
        qs = qs.filter(organizer=user)
    elif request.GET.get("organizerId"):
        qs = qs.filter(organizer_id=request.GET["organizerId"])
    return ok(documents=[d.as_dict() for d in qs])


@api_view(methods=["GET"], roles=["ORGANIZER", "ADMIN"])
def download_document(request, document_id):
    doc = _document_for(request.auth_user, document_id)
    if not doc.file or not doc.file.storage.exists(doc.file.name):
        raise NotFound("File not found")
    return FileResponse(
        doc.file.open("rb"),
        as_attachment=True,
        filename=doc.original_name,
        content_type=doc.content_type,
    )


@api_view(methods=["DELETE"], roles=["ORGANIZER", "ADMIN"])
def delete_document(request, document_id):
    doc = _document_for(request.auth_user, document_id)
    doc.delete()
    return ok(message="Document deleted successfully")


@api_view(methods=["PUT"], roles=["ADMIN"])
def verify_document(request, document_id):
    doc = _document_for(request.auth_user, document_id)
    doc.verified = True
    doc.save(update_fields=["verified"])
    return ok(message="Document verified successfully", document=doc.as_dict())


# ---------------- Admin ----------------

@api_view(methods=["GET"], roles=["ADMIN"])
def all_organizers(request):
    qs = User.objects.filter(role="ORGANIZER").select_related("organizer_profile").order_by("-date_joined")
    return ok(organizers=[organizer_details(u) for u in qs])


@api_view(methods=["GET"], roles=["ADMIN"])
def ineligible_organizers(request):
    qs = (
        User.objects
        .filter(role="ORGANIZER", organizer_profile__eligible_to_organize=False)
        .select_related("organizer_profile")
        .order_by("-date_joined")
    )
    return ok(organizers=[organizer_details(u) for u in qs])


@api_view(methods=["PUT"], roles=["ADMIN"])
def verify_organizer(request, organizer_id):
    user = _organizer(organizer_id)
    user.is_verified = True
    user.save(update_fields=["is_verified"])
    notify_user_safely(
        user,
        "Your organizer account is verified",
        category="ACCOUNT",
        level="SUCCESS",
        email={
            "subject": "Organizer Account Verified",
            "heading": "Your organizer account has been verified",
            "lines": ["You can now sign in to the organizer portal."],
        },
    )
    return ok(message="Organizer verified successfully", organizer=organizer_details(user))


@api_view(methods=["PUT"], roles=["ADMIN"])
def set_eligibility(request, organizer_id):
    user = _organizer(organizer_id)
    form = validated_form(EligibilityForm, json_body(request))
    eligible = form.cleaned_data["eligibleToOrganize"]

    profile = user.organizer_profile
    profile.eligible_to_organize = eligible
    profile.eligibility_updated_at = timezone.now()
    profile.save(update_fields=["eligible_to_organize", "eligibility_updated_at"])

    state = "granted" if eligible else "revoked"
    notify_user_safely(
        user,
        f"Camp organizing eligibility {state}",
        category="ACCOUNT",
        level="SUCCESS" if eligible else "WARNING",
        email={
            "subject": f"Organizer Eligibility {state.title()}",
            "heading": f"Your eligibility to organize blood donation camps has been {state}",
        },
    )
    return ok(message=f"Organizer eligibility {state}", organizer=organizer_details(user))


@api_view(methods=["DELETE"], auth=True)
def delete_organizer(request, organizer_id):
    actor = request.auth_user
    if actor.pk != organizer_id and actor.role != "ADMIN":
        raise Forbidden("Not authorized to delete this account")
    user = _organizer(organizer_id)
    user.delete()
    logger.info("Organizer %s deleted by user %s", organizer_id, actor.pk)
    return ok(message="Organizer deleted successfully")
