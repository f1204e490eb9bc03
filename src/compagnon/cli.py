import argparse
import asyncio
import logging
import sys
from datetime import datetime

from compagnon.config import settings
from compagnon.sentry import flush as sentry_flush
from compagnon.sentry import init_sentry


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_text(text: str, now_value: str | None = None) -> None:
    from compagnon.services.date_parser import parse_french_date
    from compagnon.services.speech import build_confirmation
    from compagnon.services.timezone import get_timezone_service

    tz = get_timezone_service()
    now = tz.localize(datetime.fromisoformat(now_value)) if now_value else tz.now()

    parsed = parse_french_date(text, now)

    print(f"Text:   {parsed.text}")
    print(f"Due at: {parsed.due_at.isoformat()}")
    if len(parsed.text) < settings.min_reminder_text_length:
        print("Not understood (text too short)")
    else:
        print(f"Spoken: {build_confirmation(parsed, now)}")


def _require_store() -> None:
    if not settings.has_supabase:
        print("Error: SUPABASE_URL and SUPABASE_ANON_KEY not configured")
        print("Set them in .env file or as environment variables")
        sys.exit(1)


async def create_reminder(text: str, user_id: str) -> bool:
    from compagnon.services.voice_reminders import VoiceReminderService
    from compagnon.supabase import get_supabase_client

    client = get_supabase_client()
    try:
        result = await VoiceReminderService(client).handle_transcript(text, user_id)
    finally:
        await client.close()

    print(result.message)
    return result.success


def _print_reminders(reminders, now: datetime, empty: str) -> None:
    from compagnon.services.speech import format_date_for_speech, format_time_for_speech
    from compagnon.services.timezone import get_timezone_service

    if not reminders:
        print(empty)
        return

    tz = get_timezone_service()
    for reminder in reminders:
        due_at = tz.localize(reminder.due_at)
        when = f"{format_date_for_speech(due_at, now)} à {format_time_for_speech(due_at)}"
        print(f"  - [{reminder.status.value}] {reminder.text} ({when})")


async def list_reminders(user_id: str, today_only: bool = False) -> bool:
    from compagnon.services.timezone import get_timezone_service
    from compagnon.services.voice_reminders import VoiceReminderService
    from compagnon.supabase import SupabaseError, get_supabase_client

    now = get_timezone_service().now()
    client = get_supabase_client()
    service = VoiceReminderService(client)
    try:
        if today_only:
            reminders = await service.today_reminders(user_id, now)
        else:
            reminders = await service.list_pending(user_id)
    except SupabaseError as e:
        print(f"Error: {e}")
        return False
    finally:
        await client.close()

    _print_reminders(
        reminders,
        now,
        "No reminders today" if today_only else "No pending reminders",
    )
    return True


async def send_message(text: str, user_id: str) -> bool:
    from compagnon.services.messages import CircleMessageService
    from compagnon.supabase import get_supabase_client

    client = get_supabase_client()
    try:
        result = await CircleMessageService(client).send(user_id, text)
    finally:
        await client.close()

    print(result.message)
    return result.success


async def show_messages(user_id: str) -> bool:
    from compagnon.services.messages import CircleMessageService
    from compagnon.services.timezone import get_timezone_service
    from compagnon.supabase import SupabaseError, get_supabase_client

    client = get_supabase_client()
    try:
        messages = await CircleMessageService(client).thread(user_id)
    except SupabaseError as e:
        print(f"Error: {e}")
        return False
    finally:
        await client.close()

    if not messages:
        print("No messages")
        return True

    tz = get_timezone_service()
    for message in messages:
        sent_at = (
            tz.localize(message.created_at).strftime("%Y-%m-%d %H:%M")
            if message.created_at
            else "?"
        )
        print(f"  [{sent_at}] {message.sender_id}: {message.content or '(audio)'}")
    return True


def check_config() -> None:
    print("Compagnon Configuration Check\n")

    checks = [
        ("Supabase URL", bool(settings.supabase_url)),
        ("Supabase anon key", bool(settings.supabase_anon_key)),
        ("Sentry DSN", settings.has_sentry),
    ]

    for name, configured in checks:
        status = "OK" if configured else "MISSING"
        symbol = "+" if configured else "-"
        print(f"  [{symbol}] {name}: {status}")

    print(f"\n  Timezone: {settings.user_timezone}")
    print()
    if settings.has_supabase:
        print("Required configuration present. Ready to run.")
    else:
        print("Missing store configuration. Only `parse` is available.")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Compagnon voice reminders")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    parse_cmd = subparsers.add_parser("parse", help="Parse a French reminder sentence")
    parse_cmd.add_argument("text")
    parse_cmd.add_argument("--now", help="Reference time (ISO 8601), defaults to now")

    remind_cmd = subparsers.add_parser("remind", help="Create a reminder from a sentence")
    remind_cmd.add_argument("text")
    remind_cmd.add_argument("--user", required=True, help="User id of the speaker")

    list_cmd = subparsers.add_parser("list", help="List pending reminders of a user's circle")
    list_cmd.add_argument("--user", required=True, help="User id")

    today_cmd = subparsers.add_parser("today", help="List today's reminders not yet done")
    today_cmd.add_argument("--user", required=True, help="User id")

    send_cmd = subparsers.add_parser("send", help="Send a text message to the user's circle")
    send_cmd.add_argument("text")
    send_cmd.add_argument("--user", required=True, help="User id of the sender")

    messages_cmd = subparsers.add_parser("messages", help="Show the circle's messages")
    messages_cmd.add_argument("--user", required=True, help="User id")

    subparsers.add_parser("check", help="Check configuration")

    args = parser.parse_args(argv)

    setup_logging()

    # Disabled if no DSN configured
    init_sentry(
        dsn=settings.sentry_dsn if settings.has_sentry else None,
        environment=settings.sentry_environment,
    )

    try:
        if args.command == "parse":
            parse_text(args.text, args.now)
        elif args.command == "remind":
            _require_store()
            if not asyncio.run(create_reminder(args.text, args.user)):
                sys.exit(1)
        elif args.command in ("list", "today"):
            _require_store()
            if not asyncio.run(list_reminders(args.user, today_only=args.command == "today")):
                sys.exit(1)
        elif args.command == "send":
            _require_store()
            if not asyncio.run(send_message(args.text, args.user)):
                sys.exit(1)
        elif args.command == "messages":
            _require_store()
            if not asyncio.run(show_messages(args.user)):
                sys.exit(1)
        elif args.command == "check":
            check_config()
        else:
            parser.print_help()
    finally:
        # Flush any pending Sentry events before exit
        sentry_flush(timeout=2.0)


if __name__ == "__main__":
    main()
