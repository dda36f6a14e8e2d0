import logging
from datetime import datetime, timezone as dt_timezone

import jwt
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser

from core.errors import Unauthorized
from .models import RevokedToken
from .tokens import read_auth_token, token_lifetime_seconds

logger = logging.getLogger(__name__)


def cookie_name():
    return getattr(settings, "LIFEFLOW_AUTH_COOKIE", "authToken")


def token_from_request(request):
    header = request.META.get("HTTP_AUTHORIZATION", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.COOKIES.get(cookie_name())


def authenticate_token(token):
    """Return ``(user, claims)`` for a valid, unrevoked token or raise ``Unauthorized``."""
    if not token:
        raise Unauthorized("No token provided")
    try:
        claims = read_auth_token(token)
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")

    if RevokedToken.objects.filter(jti=claims["jti"]).exists():
        raise Unauthorized("Token has been revoked")

    User = get_user_model()
    user = User.objects.filter(pk=claims["sub"], is_active=True).first()
    if user is None:
        raise Unauthorized("User not found")
    return user, claims


def authenticate_request(request):
    return authenticate_token(token_from_request(request))


def revoke_claims(claims):
    expires_at = datetime.fromtimestamp(claims["exp"], tz=dt_timezone.utc)
    RevokedToken.objects.get_or_create(jti=claims["jti"], defaults={"expires_at": expires_at})


def set_auth_cookie(response, token):
    response.set_cookie(
        cookie_name(),
        token,
        max_age=token_lifetime_seconds(),
        httponly=True,
        secure=getattr(settings, "LIFEFLOW_AUTH_COOKIE_SECURE", False),
        samesite="Lax",
    )


def clear_auth_cookie(response):
    response.delete_cookie(cookie_name(), samesite="Lax")


@database_sync_to_async
def _user_for_token(token):
    try:
        user, _ = authenticate_token(token)
    except Unauthorized as exc:
        logger.info("Websocket auth rejected: %s", exc.message)
        return AnonymousUser()
    return user


class JWTAuthMiddleware(BaseMiddleware):
    """Resolve ``scope["user"]`` from the auth cookie or a ``?token=`` query string."""

    async def __call__(self, scope, receive, send):
        token = None
        for name, value in scope.get("headers", []):
            if name == b"cookie":
                for part in value.decode().split(";"):
                    key, _, val = part.strip().partition("=")
                    if key == cookie_name():
                        token = val
        if token is None:
            query = scope.get("query_string", b"").decode()
            for part in query.split("&"):
                key, _, val = part.partition("=")
                if key == "token" and val:
                    token = val

        scope["user"] = await _user_for_token(token) if token else AnonymousUser()
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner):
    return JWTAuthMiddleware(inner)
