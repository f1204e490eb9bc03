"""Compagnon services module.

Parsing of spoken French reminders, spoken confirmations, the voice
reminder flow and circle messages. Imports are lazy so the pure parser can
be used without loading the store client.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS: dict[str, tuple[str, str]] = {
    # Date parsing
    "DateToken": ("compagnon.services.date_parser", "DateToken"),
    "FrenchDateParser": ("compagnon.services.date_parser", "FrenchDateParser"),
    "ParsedReminder": ("compagnon.services.date_parser", "ParsedReminder"),
    "TimeToken": ("compagnon.services.date_parser", "TimeToken"),
    "days_until_weekday": ("compagnon.services.date_parser", "days_until_weekday"),
    "parse_french_date": ("compagnon.services.date_parser", "parse_french_date"),
    # Speech
    "FeedbackType": ("compagnon.services.speech", "FeedbackType"),
    "SpeechSink": ("compagnon.services.speech", "SpeechSink"),
    "VoiceFeedback": ("compagnon.services.speech", "VoiceFeedback"),
    "build_confirmation": ("compagnon.services.speech", "build_confirmation"),
    "format_date_for_speech": ("compagnon.services.speech", "format_date_for_speech"),
    "format_time_for_speech": ("compagnon.services.speech", "format_time_for_speech"),
    # Circle messages
    "CircleMessageService": ("compagnon.services.messages", "CircleMessageService"),
    "SendMessageResult": ("compagnon.services.messages", "SendMessageResult"),
    # Timezone
    "TimezoneService": ("compagnon.services.timezone", "TimezoneService"),
    "get_timezone_service": ("compagnon.services.timezone", "get_timezone_service"),
    # Voice reminders
    "ReminderActionResult": ("compagnon.services.voice_reminders", "ReminderActionResult"),
    "VoiceReminderResult": ("compagnon.services.voice_reminders", "VoiceReminderResult"),
    "VoiceReminderService": ("compagnon.services.voice_reminders", "VoiceReminderService"),
    "is_understood": ("compagnon.services.voice_reminders", "is_understood"),
    "pending_reminders": ("compagnon.services.voice_reminders", "pending_reminders"),
}

__all__ = list(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = _EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_EXPORTS.keys()))
