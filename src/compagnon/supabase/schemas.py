from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class ReminderStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    SNOOZED = "snoozed"
    CANCELLED = "cancelled"


class MemberRole(str, Enum):
    SENIOR = "senior"
    AIDANT = "aidant"


class ReminderCreate(BaseModel):
    text: str
    due_at: str  # ISO 8601 UTC
    status: ReminderStatus = ReminderStatus.PENDING
    circle_id: str
    created_by: str


class Reminder(BaseModel):
    id: str
    text: str
    due_at: datetime
    status: ReminderStatus = ReminderStatus.PENDING
    circle_id: str
    created_by: str
    created_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status in (ReminderStatus.PENDING, ReminderStatus.SNOOZED)


class CircleMember(BaseModel):
    circle_id: str
    user_id: str
    role: MemberRole | None = None


class MessageCreate(BaseModel):
    content: str
    sender_id: str
    circle_id: str


class Message(BaseModel):
    id: str
    content: str | None = None
    audio_url: str | None = None
    sender_id: str
    circle_id: str
    created_at: datetime | None = None
