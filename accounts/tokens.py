import uuid
from datetime import datetime, timedelta, timezone as dt_timezone

import jwt
from django.conf import settings


def _secret():
    return getattr(settings, "LIFEFLOW_JWT_SECRET", settings.SECRET_KEY)


def _algorithm():
    return getattr(settings, "LIFEFLOW_JWT_ALGORITHM", "HS256")


def token_lifetime_seconds() -> int:
    return int(getattr(settings, "LIFEFLOW_JWT_LIFETIME_SECONDS", 24 * 60 * 60))


def make_auth_token(user, staff_role=None) -> str:
    now = datetime.now(dt_timezone.utc)
    claims = {
        "sub": str(user.pk),
        "email": user.email,
        "role": user.role,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(seconds=token_lifetime_seconds()),
    }
    if staff_role:
        claims["staff_role"] = staff_role
    return jwt.encode(claims, _secret(), algorithm=_algorithm())


def read_auth_token(token: str) -> dict:
    # raises jwt.ExpiredSignatureError / jwt.InvalidTokenError
    return jwt.decode(
        token,
        _secret(),
        algorithms=[_algorithm()],
        options={"require": ["sub", "exp", "jti"]},
    )
