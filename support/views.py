import logging

from django.db.models import F
from django.http import Http404, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone

from communication.emails import send_message_email
from core.api import api_view, json_body, ok, staff_role_of, validated_form
from core.errors import Forbidden
from .forms import ContactMessageForm, FAQFeedbackForm, FAQForm
from .models import FAQ, ContactMessage, FAQFeedback

logger = logging.getLogger(__name__)

SUPPORT_STAFF = ("superadmin", "support")
ALL_STAFF = ("superadmin", "moderator", "support")


def _success(data=None, status=200, **extra):
    payload = {"status": "success"}
    if data is not None:
        payload["data"] = data
    payload.update(extra)
    return ok(payload, status=status)


def _require_staff(user):
    if user is None or user.role != "ADMIN" or staff_role_of(user) not in ALL_STAFF:
        raise Forbidden()


# ---------------- Contact ----------------

@api_view(methods=["POST"], csrf=False)
def send_contact_message(request):
    form = validated_form(ContactMessageForm, json_body(request))
    msg = ContactMessage.objects.create(**form.cleaned_data)
    logger.info("Contact message %s from %s", msg.pk, msg.email)
    return ok(message="Message sent successfully", data=msg.as_dict(), status=201)


@api_view(methods=["GET"], staff_roles=SUPPORT_STAFF)
def contact_messages(request):
    qs = ContactMessage.objects.all()
    if request.GET.get("resolved") in ("true", "false"):
        qs = qs.filter(resolved=request.GET["resolved"] == "true")
    return JsonResponse([m.as_dict() for m in qs], safe=False)


@api_view(methods=["PATCH"], staff_roles=SUPPORT_STAFF)
def resolve_contact_message(request, pk):
    msg = get_object_or_404(ContactMessage, pk=pk)
    if not msg.resolved:
        msg.resolved = True
        msg.resolved_by = request.auth_user
        msg.resolved_at = timezone.now()
        msg.save(update_fields=["resolved", "resolved_by", "resolved_at"])
        send_message_email(
            msg.email,
            subject=f"Re: {msg.subject}",
            heading="Your message has been resolved",
            lines=["Our support team has looked into your message. Thank you for contacting LifeFlow."],
            name=msg.name,
        )
    return ok(message="Message marked as resolved", data=msg.as_dict())


# ---------------- FAQ ----------------

@api_view(methods=["GET", "POST"], optional_auth=True)
def faqs(request):
    if request.method == "POST":
        _require_staff(request.auth_user)
        form = validated_form(FAQForm, json_body(request))
        faq = FAQ.objects.create(**form.cleaned_data)
        return _success({"faq": faq.as_dict()}, status=201)

    qs = FAQ.objects.all()
    if request.GET.get("category"):
        qs = qs.filter(category=request.GET["category"])
    items = [f.as_dict() for f in qs]
    return _success({"faqs": items}, results=len(items))


@api_view(methods=["PATCH", "DELETE"], staff_roles=ALL_STAFF)
def faq_detail(request, pk):
    faq = get_object_or_404(FAQ, pk=pk)
    if request.method == "DELETE":
        faq.delete()
        return HttpResponse(status=204)

    form = validated_form(FAQForm, json_body(request))
    for field, value in form.cleaned_data.items():
        setattr(faq, field, value)
    faq.save()
    return _success({"faq": faq.as_dict()})


@api_view(methods=["POST"], csrf=False)
def record_view(request, pk):
    updated = FAQ.objects.filter(pk=pk).update(view_count=F("view_count") + 1)
    if not updated:
        raise Http404("FAQ not found")
    return _success({"faq": FAQ.objects.get(pk=pk).as_dict()})


@api_view(methods=["POST"], csrf=False)
def submit_feedback(request, pk):
    faq = get_object_or_404(FAQ, pk=pk)
    form = validated_form(FAQFeedbackForm, json_body(request))
    helpful = form.cleaned_data["helpful"]

    counter = "helpful_count" if helpful else "not_helpful_count"
    FAQ.objects.filter(pk=faq.pk).update(**{counter: F(counter) + 1})
    FAQFeedback.objects.create(faq=faq, helpful=helpful, comment=form.cleaned_data.get("comment") or "")
    return _success(message="Feedback recorded successfully")


@api_view(methods=["GET"], staff_roles=ALL_STAFF)
def feedback_list(request):
    items = [f.as_dict() for f in FAQFeedback.objects.select_related("faq")]
    return _success({"feedback": items}, results=len(items))


@api_view(methods=["GET"], staff_roles=ALL_STAFF)
def faq_stats(request):
    stats = [
        {
            "id": faq.pk,
            "question": faq.question,
            "helpfulCount": faq.helpful_count,
            "notHelpfulCount": faq.not_helpful_count,
            "viewCount": faq.view_count,
            "helpfulRatio": faq.helpful_ratio,
        }
        for faq in FAQ.objects.order_by("-view_count", "id")
    ]
    return _success({"stats": stats})
