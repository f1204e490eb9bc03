"""Text messages shared within a family circle.

The senior and their helpers post short messages to the circle's thread;
sending one is acknowledged out loud.
"""

import logging
from dataclasses import dataclass

from compagnon.config import settings
from compagnon.sentry import capture_exception, set_user_context
from compagnon.services.speech import FeedbackType, VoiceFeedback
from compagnon.supabase import Message, MessageCreate, SupabaseClient, SupabaseError

logger = logging.getLogger(__name__)

NO_CIRCLE_MESSAGE = "Vous devez rejoindre un cercle familial"
EMPTY_MESSAGE = "Le message est vide"
SEND_FAILED_MESSAGE = "Erreur lors de l'envoi"
SENT_MESSAGE = "Message envoyé !"


@dataclass
class SendMessageResult:
    success: bool
    message: str
    sent: Message | None = None


class CircleMessageService:
    def __init__(self, store: SupabaseClient, feedback: VoiceFeedback | None = None):
        self.store = store
        self.feedback = feedback or VoiceFeedback(enabled=settings.voice_feedback_enabled)

    async def send(self, user_id: str, content: str) -> SendMessageResult:
        """Post a text message to the user's circle.

        Args:
            user_id: The sender
            content: Message text; surrounding whitespace is dropped

        Returns:
            SendMessageResult whose message is the status text to show
        """
        content = content.strip()
        if not content:
            return SendMessageResult(success=False, message=EMPTY_MESSAGE)

        set_user_context(user_id=user_id)

        try:
            circle_id = await self.store.get_circle_id(user_id)
            if not circle_id:
                return SendMessageResult(success=False, message=NO_CIRCLE_MESSAGE)

            sent = await self.store.send_message(
                MessageCreate(content=content, sender_id=user_id, circle_id=circle_id)
            )
        except SupabaseError as e:
            logger.error(f"Message from {user_id} not sent: {e}")
            capture_exception(e)
            self.feedback.feedback(FeedbackType.ERROR)
            return SendMessageResult(success=False, message=SEND_FAILED_MESSAGE)

        self.feedback.feedback(FeedbackType.MESSAGE_SENT)
        return SendMessageResult(success=True, message=SENT_MESSAGE, sent=sent)

    async def thread(self, user_id: str) -> list[Message]:
        """Messages of the user's circle, oldest first."""
        circle_id = await self.store.get_circle_id(user_id)
        if not circle_id:
            return []
        return await self.store.list_messages(circle_id)
