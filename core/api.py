import json
import logging
from functools import wraps

from django.http import Http404, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .errors import Forbidden, LifeFlowError, Unauthorized, ValidationFailed

logger = logging.getLogger(__name__)


def api_view(methods=("GET",), auth=False, optional_auth=False, roles=None, staff_roles=None, csrf=True):
    """
    Wrap a function view that speaks JSON.

    - ``methods``: allowed HTTP methods, anything else is a 405
    - ``auth``: require a valid JWT (cookie or bearer), exposed as ``request.auth_user``
    - ``optional_auth``: resolve the JWT when present, stay anonymous otherwise
    - ``roles``: user roles allowed through (DONOR / ORGANIZER / ADMIN)
    - ``staff_roles``: back-office roles allowed through (implies role ADMIN)
    - ``csrf``: set False for pre-session endpoints (login, register, OTP)
    """
    from accounts.auth import authenticate_request

    allowed = {m.upper() for m in methods}
    needs_auth = auth or bool(roles) or bool(staff_roles)

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if request.method not in allowed:
                return JsonResponse(
                    {"message": "Method not allowed", "code": "METHOD_NOT_ALLOWED"}, status=405
                )

            try:
                request.auth_user = None
                request.auth_claims = {}

                if needs_auth or optional_auth:
                    try:
                        request.auth_user, request.auth_claims = authenticate_request(request)
                    except Unauthorized:
                        if needs_auth:
                            raise

                user = request.auth_user
                if roles and user.role not in roles:
                    raise Forbidden()
                if staff_roles:
                    if user.role != "ADMIN" or staff_role_of(user) not in staff_roles:
                        raise Forbidden()

                return view_func(request, *args, **kwargs)

            except Http404:
                return JsonResponse({"message": "Not found", "code": "NOT_FOUND"}, status=404)
            except LifeFlowError as exc:
                if exc.status >= 403:
                    logger.info("%s %s -> %s %s", request.method, request.path, exc.status, exc.code)
                return JsonResponse(exc.as_dict(), status=exc.status)
            except Exception as exc:
                logger.exception("Unhandled error on %s %s", request.method, request.path)
                return JsonResponse(
                    {"message": "Server error", "code": "INTERNAL", "error": str(exc)}, status=500
                )

        if not csrf:
            return csrf_exempt(_wrapped)
        return _wrapped

    return decorator


def staff_role_of(user):
    profile = getattr(user, "staff_profile", None)
    return profile.staff_role if profile else None


def json_body(request) -> dict:
    """Request payload as a dict. JSON bodies are parsed, form bodies flattened."""
    if request.content_type == "application/json":
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except ValueError:
            raise ValidationFailed("Malformed JSON body")
        if not isinstance(data, dict):
            raise ValidationFailed("JSON body must be an object")
        return data
    return request.POST.dict()


def raise_form_errors(form):
    """Turn a bound, invalid Django form into ``ValidationFailed``."""
    errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
    first_field = next(iter(errors))
    message = errors[first_field][0]
    if first_field != "__all__":
        message = f"{first_field}: {message}"
    raise ValidationFailed(message, errors=errors)


def ok(payload=None, status=200, **extra) -> HttpResponse:
    data = dict(payload or {})
    data.update(extra)
    return JsonResponse(data, status=status)


def lift_nested(data, *keys):
    """Copy the members of nested objects (``address``, ``contact``, ...) to the top level."""
    flat = dict(data)
    for key in keys:
        nested = flat.pop(key, None)
        if isinstance(nested, dict):
            for name, value in nested.items():
                flat.setdefault(name, value)
    return flat


def validated_form(form_class, data, **kwargs):
    form = form_class(data, **kwargs)
    if not form.is_valid():
        raise_form_errors(form)
    return form
