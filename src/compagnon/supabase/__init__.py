from compagnon.supabase.client import SupabaseClient, SupabaseError, get_supabase_client
from compagnon.supabase.schemas import (
    CircleMember,
    MemberRole,
    Message,
    MessageCreate,
    Reminder,
    ReminderCreate,
    ReminderStatus,
)

__all__ = [
    "CircleMember",
    "MemberRole",
    "Message",
    "MessageCreate",
    "Reminder",
    "ReminderCreate",
    "ReminderStatus",
    "SupabaseClient",
    "SupabaseError",
    "get_supabase_client",
]
