from functools import wraps

from core.errors import Forbidden


def is_admin(user):
    return user is not None and user.role == "ADMIN"


def self_or_roles(kwarg="user_id", roles=("ADMIN",)):
    """
    Let the request through when the authenticated user is the one named by
    ``kwargs[kwarg]`` or has one of ``roles``. Use beneath ``api_view``.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            user = request.auth_user
            if user is None:
                raise Forbidden()
            if user.pk != kwargs.get(kwarg) and user.role not in roles:
                raise Forbidden()
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator
