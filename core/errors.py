"""
Domain errors shared by every app.

Each error knows the HTTP status and machine-readable ``code`` it maps to, so
``core.api.api_view`` can turn it into a JSON response without the view
knowing anything about HTTP.
"""


class LifeFlowError(Exception):
    status = 400
    code = "ERROR"
    default_message = "Request failed"

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def as_dict(self):
        data = {"message": self.message, "code": self.code}
        data.update(self.extra)
        return data


class NotFound(LifeFlowError):
    status = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class LimitExceeded(LifeFlowError):
    code = "APPOINTMENT_LIMIT_REACHED"
    default_message = "You can have at most 3 active appointments"


class DuplicateBooking(LifeFlowError):
    code = "ALREADY_BOOKED"
    default_message = "You already have an appointment at this camp"


class ValidationFailed(LifeFlowError):
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class Conflict(LifeFlowError):
    code = "CONFLICT"
    default_message = "Already exists"


class Unauthorized(LifeFlowError):
    status = 401
    code = "UNAUTHORIZED"
    default_message = "Authentication required"


class Forbidden(LifeFlowError):
    status = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class TooManyRequests(LifeFlowError):
    status = 429
    code = "TOO_MANY_REQUESTS"
    default_message = "Too many requests"
