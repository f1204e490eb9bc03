"""Spoken French phrases for reminder confirmations and voice feedback.

The formatters project a due time back into the phrases a senior would use
("demain à 10 heures 30"), so a confirmation can be read aloud right after a
reminder is created. Audio synthesis itself is an external sink.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Protocol

from compagnon.services.date_parser import ParsedReminder

logger = logging.getLogger(__name__)

# Sunday-indexed
WEEKDAY_NAMES = ["dimanche", "lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi"]

CONFIRMATION_TEMPLATE = "C'est noté. Je vous rappellerai {text} {date} à {time}."


class FeedbackType(str, Enum):
    ERROR = "error"
    REMINDER_DONE = "reminder_done"
    MESSAGE_SENT = "message_sent"


FEEDBACK_MESSAGES: dict[FeedbackType, str] = {
    FeedbackType.ERROR: "Une erreur est survenue",
    FeedbackType.REMINDER_DONE: "Rappel terminé",
    FeedbackType.MESSAGE_SENT: "Message envoyé",
}


def format_time_for_speech(dt: datetime) -> str:
    """Format a time as spoken French, e.g. "10 heures" or "10 heures 30"."""
    if dt.minute == 0:
        return f"{dt.hour} heures"
    return f"{dt.hour} heures {dt.minute}"


def format_date_for_speech(dt: datetime, now: datetime) -> str:
    """Format a day relative to ``now``.

    Beyond two days only the weekday name is spoken, so next Friday and the
    Friday after both read as "vendredi".
    """
    diff_days = (dt.date() - now.date()).days

    if diff_days == 0:
        return "aujourd'hui"
    if diff_days == 1:
        return "demain"
    if diff_days == 2:
        return "après-demain"
    return WEEKDAY_NAMES[(dt.weekday() + 1) % 7]


def build_confirmation(reminder: ParsedReminder, now: datetime) -> str:
    return CONFIRMATION_TEMPLATE.format(
        text=reminder.text,
        date=format_date_for_speech(reminder.due_at, now),
        time=format_time_for_speech(reminder.due_at),
    )


class SpeechSink(Protocol):
    def speak(self, text: str) -> None: ...


class VoiceFeedback:
    """Short spoken feedback routed to a speech sink.

    Does nothing when disabled or when no sink is attached, so callers can
    emit feedback unconditionally.
    """

    def __init__(self, sink: SpeechSink | None = None, enabled: bool = True):
        self.sink = sink
        self.enabled = enabled

    @property
    def is_active(self) -> bool:
        return self.enabled and self.sink is not None

    def feedback(self, feedback_type: FeedbackType) -> None:
        message = FEEDBACK_MESSAGES.get(feedback_type)
        if message:
            self.custom(message)

    def custom(self, message: str) -> None:
        if not self.enabled or self.sink is None:
            logger.debug("Voice feedback inactive, dropping: %s", message)
            return
        self.sink.speak(message)
