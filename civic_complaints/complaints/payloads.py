"""Actors and per-event payload records.

Every lifecycle event takes its own payload type, so the event a caller
asks for is implied by the record it passes in::

    transition(complaint.pk, actor, CompleteWork("Pothole filled", [ImageRef("/u/1.jpg")]))
"""

from dataclasses import dataclass, field
from typing import ClassVar

from .exceptions import ValidationFailed
from .models import Complaint, Event, UserProfile

Role = UserProfile.Role


@dataclass(frozen=True)
class Actor:
    id: int
    role: str

    @classmethod
    def from_user(cls, user) -> "Actor":
        if user.is_superuser:
            return cls(user.pk, Role.ADMIN)
        profile = getattr(user, "profile", None)
        return cls(user.pk, profile.role if profile else Role.CITIZEN)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_field_staff(self) -> bool:
        return self.role == Role.FIELD_STAFF


@dataclass(frozen=True)
class ImageRef:
    url: str

    @classmethod
    def coerce(cls, value) -> "ImageRef":
        if isinstance(value, ImageRef):
            return value
        if isinstance(value, dict):
            return cls(str(value.get("url", "")))
        return cls(str(value))

    def as_dict(self) -> dict:
        return {"url": self.url}


def _require_text(value, message, field_name):
    if not value or not str(value).strip():
        raise ValidationFailed(message, field=field_name)
    return str(value).strip()


def _coerce_images(images):
    return tuple(ImageRef.coerce(image) for image in images or ())


def _validate_images(images, field_name):
    for image in images:
        if not image.url.strip():
            raise ValidationFailed("every image reference needs a url", field=field_name)


@dataclass(frozen=True)
class SubmitComplaint:
    event: ClassVar[str] = Event.SUBMITTED

    title: str
    description: str
    category: str
    address: str
    city: str
    priority: str = Complaint.Priority.MEDIUM
    pincode: str = ""
    images: tuple = ()
    is_public: bool = True
    is_anonymous: bool = False

    def __post_init__(self):
        object.__setattr__(self, "images", _coerce_images(self.images))

    def validate(self):
        _require_text(self.title, "a title is required", "title")
        _require_text(self.description, "a description is required", "description")
        _require_text(self.address, "an address is required", "address")
        _require_text(self.city, "a city is required", "city")
        if self.category not in Complaint.Category.values:
            raise ValidationFailed(f"unknown category '{self.category}'", field="category")
        if self.priority not in Complaint.Priority.values:
            raise ValidationFailed(f"unknown priority '{self.priority}'", field="priority")
        _validate_images(self.images, "images")


@dataclass(frozen=True)
class AssignToStaff:
    event: ClassVar[str] = Event.ASSIGN_TO_STAFF

    staff_id: int

    def validate(self):
        if self.staff_id in (None, ""):
            raise ValidationFailed("a field-staff member must be chosen", field="staff_id")


@dataclass(frozen=True)
class RejectComplaint:
    event: ClassVar[str] = Event.REJECT_COMPLAINT

    reason: str

    def validate(self):
        _require_text(self.reason, "a rejection reason is required", "reason")


@dataclass(frozen=True)
class StartWork:
    event: ClassVar[str] = Event.START_WORK

    note: str

    def validate(self):
        _require_text(self.note, "a progress note is required to start work", "note")


@dataclass(frozen=True)
class UpdateProgress:
    event: ClassVar[str] = Event.UPDATE_PROGRESS

    note: str

    def validate(self):
        _require_text(self.note, "a progress note is required", "note")


@dataclass(frozen=True)
class CompleteWork:
    event: ClassVar[str] = Event.COMPLETE_WORK

    completion_notes: str
    proof_images: tuple = field(default=())

    def __post_init__(self):
        object.__setattr__(self, "proof_images", _coerce_images(self.proof_images))

    def validate(self):
        _require_text(self.completion_notes, "completion notes are required", "completion_notes")
        if not self.proof_images:
            raise ValidationFailed(
                "proof images are mandatory for work completion",
                field="proof_images",
            )
        _validate_images(self.proof_images, "proof_images")


@dataclass(frozen=True)
class ApproveWork:
    event: ClassVar[str] = Event.APPROVE_WORK

    approval_notes: str = ""

    def validate(self):
        pass


@dataclass(frozen=True)
class RejectWork:
    event: ClassVar[str] = Event.REJECT_WORK

    reason: str

    def validate(self):
        _require_text(self.reason, "a reason is required to reject completed work", "reason")


@dataclass(frozen=True)
class AddNote:
    event: ClassVar[str] = Event.ADD_NOTE

    note: str

    def validate(self):
        _require_text(self.note, "the note cannot be empty", "note")


@dataclass(frozen=True)
class CloseComplaint:
    event: ClassVar[str] = Event.CLOSE

    reason: str = ""

    def validate(self):
        pass


LIFECYCLE_PAYLOADS = (
    AssignToStaff,
    RejectComplaint,
    StartWork,
    UpdateProgress,
    CompleteWork,
    ApproveWork,
    RejectWork,
    AddNote,
    CloseComplaint,
)
