from django.core.exceptions import ObjectDoesNotExist, PermissionDenied


class ComplaintError(Exception):
    """Base class for the named outcomes of a refused complaint operation.

    ``message`` is meant for the end user and always names the precondition
    that failed, e.g. "proof images are mandatory for work completion".
    """

    code = "complaint_error"

    def __init__(self, message: str, *, complaint_id=None, event=None, status=None):
        super().__init__(message)
        self.message = message
        self.complaint_id = complaint_id
        self.event = event
        self.status = status

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "complaint_id": self.complaint_id,
            "event": self.event,
            "status": self.status,
        }


class InvalidTransition(ComplaintError):
    code = "invalid_transition"


class AlreadyTerminal(InvalidTransition):
    code = "already_terminal"


class Unauthorized(ComplaintError, PermissionDenied):
    code = "unauthorized"


class ValidationFailed(ComplaintError):
    code = "validation_failed"

    def __init__(self, message: str, *, field: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["field"] = self.field
        return data


class NotFound(ComplaintError, ObjectDoesNotExist):
    code = "not_found"


class ConcurrentModification(ComplaintError):
    code = "concurrent_modification"
