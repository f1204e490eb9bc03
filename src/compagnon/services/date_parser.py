"""French date/time parsing for spoken reminders.

Turns an utterance such as "Rappelle-moi la pharmacie demain à 10h" into a
cleaned reminder text and an absolute due time. Matching is a fixed, ordered
list of patterns: the first time pattern and the first date pattern that
match are used, nothing is combined beyond one of each.

The reference time is always passed in by the caller, so a parse is fully
determined by its ``(text, now)`` pair.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)

DEFAULT_HOUR = 9
DEFAULT_MINUTE = 0

# Sunday = 0, matching the week model used by the circle calendar.
# Insertion order is the matching priority.
WEEKDAYS: dict[str, int] = {
    "lundi": 1,
    "mardi": 2,
    "mercredi": 3,
    "jeudi": 4,
    "vendredi": 5,
    "samedi": 6,
    "dimanche": 0,
}


@dataclass(frozen=True)
class ParsedReminder:
    text: str
    due_at: datetime


@dataclass(frozen=True)
class TimeToken:
    """A time of day found in the utterance."""

    hours: int
    minutes: int
    phrase: str
    pattern: re.Pattern[str] = field(repr=False, compare=False)


@dataclass(frozen=True)
class DateToken:
    """A date phrase found in the utterance, as a day offset from today.

    ``kind`` is one of ``"relative"`` (demain, après-demain), ``"offset"``
    (dans N jours) or ``"weekday"``.
    """

    kind: str
    days: int
    phrase: str
    pattern: re.Pattern[str] = field(repr=False, compare=False)


DateExtractor = Callable[[re.Match[str], datetime], int]


def days_until_weekday(target: int, now: datetime) -> int:
    """Days until the next occurrence of ``target`` (Sunday = 0).

    Today never counts: asking for today's weekday gives next week's.
    """
    today = (now.weekday() + 1) % 7
    days = target - today
    if days <= 0:
        days += 7
    return days


def _weekday_extractor(target: int) -> DateExtractor:
    return lambda match, now: days_until_weekday(target, now)


class FrenchDateParser:
    TIME_PATTERNS = [
        # "10h30", "à 10h", "10:30"
        # h(?!eure) keeps "10 heures 30" reachable by the next pattern
        re.compile(r"(?:à\s*)?(\d{1,2})\s*(?:h(?!eure)|:)\s*(\d{2})?", re.IGNORECASE),
        # "10 heures", "à 10 heures 30"
        re.compile(r"(?:à\s*)?(\d{1,2})\s*heures?\s*(\d{2})?", re.IGNORECASE),
    ]

    DATE_PATTERNS: list[tuple[str, re.Pattern[str], DateExtractor]] = [
        (
            "relative",
            # lookbehind keeps "après-demain" reachable by the next entry
            re.compile(r"(?<!après-)(?<!après )(?<!après)demain", re.IGNORECASE),
            lambda match, now: 1,
        ),
        ("relative", re.compile(r"après[- ]?demain", re.IGNORECASE), lambda match, now: 2),
        (
            "offset",
            re.compile(r"dans\s*(\d+)\s*jours?", re.IGNORECASE),
            lambda match, now: int(match.group(1)),
        ),
    ] + [
        ("weekday", re.compile(name, re.IGNORECASE), _weekday_extractor(day))
        for name, day in WEEKDAYS.items()
    ]

    FILLER_PATTERNS = [
        re.compile(r"rappelle[- ]?moi", re.IGNORECASE),
        re.compile(r"rappeler", re.IGNORECASE),
        re.compile(r"\bde\s+", re.IGNORECASE),
        re.compile(r"\ble\s+", re.IGNORECASE),
        re.compile(r"\bla\s+", re.IGNORECASE),
    ]

    def parse(self, text: str, now: datetime) -> ParsedReminder:
        working = text.strip()
        normalized = working.lower()

        time_token = self._extract_time(normalized)
        if time_token:
            working = time_token.pattern.sub("", working, count=1)
            hours, minutes = time_token.hours, time_token.minutes
        else:
            hours, minutes = DEFAULT_HOUR, DEFAULT_MINUTE

        try:
            date_token = self._extract_date(normalized, now)
            due_at = self._resolve_due_at(now, hours, minutes, date_token)
        except (OverflowError, ValueError):
            logger.warning(f"Date phrase out of range in {text!r}, ignoring it")
            date_token = None
            due_at = self._resolve_due_at(now, hours, minutes, None)

        if date_token:
            working = date_token.pattern.sub("", working, count=1)

        logger.debug(f"Parsed {text!r}: time={time_token} date={date_token} due_at={due_at}")

        return ParsedReminder(text=self._clean_text(working), due_at=due_at)

    def _extract_time(self, text: str) -> TimeToken | None:
        for pattern in self.TIME_PATTERNS:
            match = pattern.search(text)
            if match:
                return TimeToken(
                    hours=int(match.group(1)),
                    minutes=int(match.group(2)) if match.group(2) else 0,
                    phrase=match.group(0),
                    pattern=pattern,
                )
        return None

    def _extract_date(self, text: str, now: datetime) -> DateToken | None:
        for kind, pattern, extract in self.DATE_PATTERNS:
            match = pattern.search(text)
            if match:
                return DateToken(
                    kind=kind,
                    days=extract(match, now),
                    phrase=match.group(0),
                    pattern=pattern,
                )
        return None

    def _resolve_due_at(
        self,
        now: datetime,
        hours: int,
        minutes: int,
        date_token: DateToken | None,
    ) -> datetime:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        time_of_day = timedelta(hours=hours, minutes=minutes)

        if date_token is not None:
            days = date_token.days
        elif midnight + time_of_day <= now:
            # Already passed today: roll over to tomorrow
            days = 1
        else:
            days = 0

        return midnight + timedelta(days=days) + time_of_day

    def _clean_text(self, text: str) -> str:
        for pattern in self.FILLER_PATTERNS:
            text = pattern.sub("", text)
        text = re.sub(r"\s+", " ", text).strip()

        if text:
            text = text[0].upper() + text[1:]
        return text


_parser = FrenchDateParser()


def parse_french_date(text: str, now: datetime) -> ParsedReminder:
    """Parse a French reminder utterance relative to ``now``."""
    return _parser.parse(text, now)
