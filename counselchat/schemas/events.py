"""
Socket.IO event payloads

Inbound payloads accept both the current field names and the legacy ones
(`facultyId`, `senderType`, `userId`, ...) still sent by older clients.
Outbound payload builders produce the camelCase shapes the frontend reads.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from counselchat.core.exceptions import InvalidEventPayload


class UserRole(str, Enum):
    """Role of a connected identity"""
    STUDENT = "student"
    COUNSELOR = "counselor"


class InboundEvent(BaseModel):
    """Base for client → server payloads"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Fields that must be present when strict validation is on
    required_fields: ClassVar[Tuple[str, ...]] = ()
    # Fields that must hold a known UserRole when strict validation is on
    role_fields: ClassVar[Tuple[str, ...]] = ()

    def missing_fields(self) -> List[Dict[str, Any]]:
        fields = type(self).model_fields
        errors = []
        for name in self.required_fields:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                alias = fields[name].serialization_alias or name
                errors.append({"loc": (alias,), "msg": "Field required", "type": "missing"})
        for name in self.role_fields:
            value = getattr(self, name)
            if value is not None and value not in {role.value for role in UserRole}:
                alias = fields[name].serialization_alias or name
                errors.append({
                    "loc": (alias,),
                    "msg": "Input should be 'student' or 'counselor'",
                    "type": "enum",
                })
        return errors


def _identifier(v):
    # Numeric ids from older clients are treated as strings
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    if isinstance(v, str):
        return v.strip()
    return v


def _role(v):
    return v.strip().lower() if isinstance(v, str) else v


class RegisterPayload(InboundEvent):
    """`user_connected`: a connection announces who it is"""

    required_fields: ClassVar[Tuple[str, ...]] = ("identity", "role")
    role_fields: ClassVar[Tuple[str, ...]] = ("role",)

    identity: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("identity", "userId"),
        serialization_alias="identity",
    )
    role: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("role", "userType"),
        serialization_alias="role",
    )
    display_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("displayName", "name"),
        serialization_alias="displayName",
    )

    @field_validator("identity", mode="before")
    @classmethod
    def normalize_identity(cls, v):
        return _identifier(v)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        return _role(v)


class ChatMessagePayload(InboundEvent):
    """`send_message`: one chat line between a student and a counselor"""

    required_fields: ClassVar[Tuple[str, ...]] = (
        "student_id", "counselor_id", "text", "sender_id", "sender_role", "receiver_role",
    )
    role_fields: ClassVar[Tuple[str, ...]] = ("sender_role", "receiver_role")

    student_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("studentId", "student_id"),
        serialization_alias="studentId",
    )
    counselor_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("counselorId", "facultyId", "counselor_id"),
        serialization_alias="counselorId",
    )
    text: Optional[str] = None
    sender_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("senderId", "sender_id"),
        serialization_alias="senderId",
    )
    timestamp: Optional[datetime] = None
    sender_role: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("senderRole", "senderType", "sender_role"),
        serialization_alias="senderRole",
    )
    receiver_role: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("receiverRole", "receiverType", "receiver_role"),
        serialization_alias="receiverRole",
    )

    @field_validator("student_id", "counselor_id", "sender_id", mode="before")
    @classmethod
    def normalize_ids(cls, v):
        return _identifier(v)

    @field_validator("sender_role", "receiver_role", mode="before")
    @classmethod
    def normalize_roles(cls, v):
        return _role(v)

    @property
    def is_student_to_counselor(self) -> bool:
        return self.sender_role == UserRole.STUDENT.value and self.receiver_role == UserRole.COUNSELOR.value


class ReportPayload(InboundEvent):
    """`report_student`: a counselor flags a student for moderation"""

    required_fields: ClassVar[Tuple[str, ...]] = ("student_id", "counselor_id", "reason")

    student_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("studentId", "student_id"),
        serialization_alias="studentId",
    )
    counselor_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("counselorId", "facultyId", "counselor_id"),
        serialization_alias="counselorId",
    )
    reason: Optional[str] = None

    @field_validator("student_id", "counselor_id", mode="before")
    @classmethod
    def normalize_ids(cls, v):
        return _identifier(v)


class GenericEventPayload(InboundEvent):
    """`new_event`: an application event to announce to everyone"""

    required_fields: ClassVar[Tuple[str, ...]] = ("name", "id")

    name: Optional[str] = None
    id: Optional[Any] = None


EventT = TypeVar("EventT", bound=InboundEvent)


def parse_event(model: Type[EventT], event: str, data: Any, strict: bool = True) -> EventT:
    """
    Validate an inbound payload.

    With `strict` off, missing fields are left as None (legacy lenient
    clients); type errors are rejected either way.

    Raises:
        InvalidEventPayload: payload is not an object, has malformed values,
            or (strict only) lacks required fields or has an unknown role
    """
    if not isinstance(data, dict):
        if strict or data is not None:
            raise InvalidEventPayload(event, [{"loc": (), "msg": "Payload must be an object", "type": "dict_type"}])
        data = {}

    try:
        payload = model.model_validate(data)
    except ValidationError as e:
        raise InvalidEventPayload(event, e.errors(include_url=False, include_context=False, include_input=False)) from e

    if strict:
        errors = payload.missing_fields()
        if errors:
            raise InvalidEventPayload(event, errors)

    return payload


def normalize_timestamp(value: Optional[datetime]) -> datetime:
    """Timestamps are emitted as timezone-aware UTC; absent ones become now"""
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z, as JS clients print dates"""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# Outbound payload builders

def build_receive_message(message: ChatMessagePayload, timestamp: datetime) -> Dict[str, Any]:
    return {
        "text": message.text,
        "studentId": message.student_id,
        "counselorId": message.counselor_id,
        "senderId": message.sender_id,
        "timestamp": isoformat(timestamp),
        "senderRole": message.sender_role,
        "receiverRole": message.receiver_role,
    }


def build_message_notification(message: ChatMessagePayload) -> Dict[str, Any]:
    if message.receiver_role == UserRole.COUNSELOR.value:
        receiver_id = message.counselor_id
    else:
        receiver_id = message.student_id

    if message.sender_role == UserRole.STUDENT.value:
        sender_id = message.student_id
    else:
        sender_id = message.counselor_id

    return {
        "receiverId": receiver_id,
        "senderId": sender_id,
        "message": message.text,
        "senderRole": message.sender_role,
        "receiverRole": message.receiver_role,
    }


def build_new_student_message(counselor_id: str, student_id: str) -> Dict[str, Any]:
    return {"counselorId": counselor_id, "studentId": student_id}


def build_report_notification(report: ReportPayload, timestamp: datetime) -> Dict[str, Any]:
    return {
        "studentId": report.student_id,
        "counselorId": report.counselor_id,
        "reason": report.reason,
        "timestamp": isoformat(timestamp),
    }


def build_counselor_report_notification(report: ReportPayload, timestamp: datetime) -> Dict[str, Any]:
    return {
        "studentId": report.student_id,
        "reportedBy": report.counselor_id,
        "timestamp": isoformat(timestamp),
    }


def build_event_notification(event: GenericEventPayload) -> Dict[str, Any]:
    return {"eventName": event.name, "eventId": event.id}
