"""Voice reminder flow for the senior's reminder screen.

A finalized transcript from speech capture is parsed, stored in the circle's
shared reminder list and confirmed out loud:

    "Rappelle-moi la pharmacie demain à 10h"
    -> reminder "Pharmacie", due tomorrow 10:00
    -> "C'est noté. Je vous rappellerai Pharmacie demain à 10 heures."

Also covers the follow-up actions on a reminder (done, snooze) and the
reminder lists read back to the user.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from compagnon.config import settings
from compagnon.sentry import capture_exception, set_user_context
from compagnon.services.date_parser import FrenchDateParser, ParsedReminder
from compagnon.services.speech import FeedbackType, VoiceFeedback, build_confirmation
from compagnon.services.timezone import TimezoneService, get_timezone_service
from compagnon.supabase import (
    Reminder,
    ReminderCreate,
    ReminderStatus,
    SupabaseClient,
    SupabaseError,
)

logger = logging.getLogger(__name__)

NO_CIRCLE_MESSAGE = "Vous devez rejoindre un cercle familial"
NOT_UNDERSTOOD_MESSAGE = "Je n'ai pas compris. Essayez de nouveau."
CREATE_FAILED_MESSAGE = "Erreur lors de la création du rappel"
UPDATE_FAILED_MESSAGE = "Erreur lors de la mise à jour"
SNOOZE_FAILED_MESSAGE = "Erreur lors du report"


@dataclass
class VoiceReminderResult:
    """Outcome of handling one transcript."""

    success: bool
    message: str
    reminder: Reminder | None = None
    parsed: ParsedReminder | None = None

    @property
    def confirmation(self) -> str | None:
        return self.message if self.success else None


@dataclass
class ReminderActionResult:
    success: bool
    message: str
    reminder: Reminder | None = None


def is_understood(parsed: ParsedReminder, min_length: int | None = None) -> bool:
    """Whether the cleaned text is long enough to make a reminder."""
    if min_length is None:
        min_length = settings.min_reminder_text_length
    return len(parsed.text) >= min_length


def pending_reminders(reminders: list[Reminder]) -> list[Reminder]:
    """Reminders still to be shown: pending or snoozed."""
    return [r for r in reminders if r.is_active]


class VoiceReminderService:
    def __init__(
        self,
        store: SupabaseClient,
        feedback: VoiceFeedback | None = None,
        parser: FrenchDateParser | None = None,
        timezone: TimezoneService | None = None,
    ):
        self.store = store
        self.feedback = feedback or VoiceFeedback(enabled=settings.voice_feedback_enabled)
        self.parser = parser or FrenchDateParser()
        self.timezone = timezone or get_timezone_service()

    async def handle_transcript(
        self,
        transcript: str,
        user_id: str,
        now: datetime | None = None,
    ) -> VoiceReminderResult:
        """Create a reminder from a finalized transcript.

        Args:
            transcript: Text produced by speech capture
            user_id: The speaking user, used to find their circle
            now: Reference time; captured once here when not given

        Returns:
            VoiceReminderResult whose message is the text to show or speak
        """
        if now is None:
            now = self.timezone.now()

        set_user_context(user_id=user_id)
        logger.info(f"Transcript from {user_id}: {transcript!r}")

        try:
            circle_id = await self.store.get_circle_id(user_id)
        except SupabaseError as e:
            logger.error(f"Could not resolve circle for {user_id}: {e}")
            capture_exception(e)
            return self._fail(CREATE_FAILED_MESSAGE)

        if not circle_id:
            return self._fail(NO_CIRCLE_MESSAGE)

        parsed = self.parser.parse(transcript, now)
        if not is_understood(parsed):
            logger.warning(f"Transcript not understood: {transcript!r} -> {parsed.text!r}")
            return VoiceReminderResult(success=False, message=NOT_UNDERSTOOD_MESSAGE, parsed=parsed)

        payload = ReminderCreate(
            text=parsed.text,
            due_at=self.timezone.to_iso8601_utc(parsed.due_at),
            status=ReminderStatus.PENDING,
            circle_id=circle_id,
            created_by=user_id,
        )

        try:
            reminder = await self.store.create_reminder(payload)
        except SupabaseError as e:
            logger.error(f"Reminder creation failed: {e}")
            capture_exception(e)
            self.feedback.feedback(FeedbackType.ERROR)
            return VoiceReminderResult(success=False, message=CREATE_FAILED_MESSAGE, parsed=parsed)

        confirmation = build_confirmation(parsed, now)
        self.feedback.custom(confirmation)

        return VoiceReminderResult(
            success=True,
            message=confirmation,
            reminder=reminder,
            parsed=parsed,
        )

    async def complete(self, reminder_id: str) -> ReminderActionResult:
        try:
            reminder = await self.store.update_reminder(
                reminder_id, status=ReminderStatus.DONE.value
            )
        except SupabaseError as e:
            logger.error(f"Could not complete reminder {reminder_id}: {e}")
            self.feedback.feedback(FeedbackType.ERROR)
            return ReminderActionResult(success=False, message=UPDATE_FAILED_MESSAGE)

        self.feedback.feedback(FeedbackType.REMINDER_DONE)
        return ReminderActionResult(success=True, message="Rappel terminé !", reminder=reminder)

    async def snooze(self, reminder: Reminder, minutes: int | None = None) -> ReminderActionResult:
        if minutes is None:
            minutes = settings.snooze_minutes

        new_due_at = reminder.due_at + timedelta(minutes=minutes)

        try:
            updated = await self.store.update_reminder(
                reminder.id,
                status=ReminderStatus.SNOOZED.value,
                due_at=self.timezone.to_iso8601_utc(new_due_at),
            )
        except SupabaseError as e:
            logger.error(f"Could not snooze reminder {reminder.id}: {e}")
            self.feedback.feedback(FeedbackType.ERROR)
            return ReminderActionResult(success=False, message=SNOOZE_FAILED_MESSAGE)

        message = f"Rappel reporté de {minutes} minutes"
        self.feedback.custom(message)
        return ReminderActionResult(success=True, message=message, reminder=updated)

    async def list_pending(self, user_id: str) -> list[Reminder]:
        circle_id = await self.store.get_circle_id(user_id)
        if not circle_id:
            return []
        return pending_reminders(await self.store.list_reminders(circle_id))

    async def today_reminders(self, user_id: str, now: datetime | None = None) -> list[Reminder]:
        """Reminders of the user's circle due today (local day) and not done."""
        circle_id = await self.store.get_circle_id(user_id)
        if not circle_id:
            return []
        start, end = self.timezone.day_bounds(now)
        return await self.store.list_reminders_between(
            circle_id,
            self.timezone.to_iso8601_utc(start),
            self.timezone.to_iso8601_utc(end),
        )

    def _fail(self, message: str) -> VoiceReminderResult:
        return VoiceReminderResult(success=False, message=message)
