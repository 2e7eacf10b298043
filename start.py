"""
NoteKeeper Start - Console Entry Point

Wires the pieces together:
- StorageGateway: notes.json / reminders.json in the storage directory
- BackgroundExecutor: saves run off the input loop
- NotificationCenter + NotificationScheduler: one-shot reminder alerts
- NotesService / RemindersService: session lists, persisted per mutation

Save and load problems are reported to the user, never hidden.
"""

import logging
import sys
from concurrent.futures import Future
from datetime import datetime
from typing import List

from notekeeper.config import AppConfig, ConfigError
from notekeeper.core import BackgroundExecutor
from notekeeper.memory import LoadStatus, StorageGateway, StorageLocationError
from notekeeper.notifications import (
    ConsoleChannel,
    NotificationCenter,
    NotificationScheduler,
    NotificationState,
    PermissionState,
    VoiceChannel
)
from notekeeper.services import NotesService, RemindersService

logger = logging.getLogger(__name__)

DATE_INPUT_FORMAT = "%Y-%m-%d %H:%M"

HELP_TEXT = """Commands:
  notes                          - List notes
  note [text]                    - Add a note (no text: multi-line, end with an empty line)
  show <n>                       - Show a note in full
  edit <n> <text>                - Replace a note's text
  delnote <n> [<n> ...]          - Delete notes
  reminders                      - List reminders
  remind <YYYY-MM-DD HH:MM> <text> - Add a reminder
  delremind <n> [<n> ...]        - Delete reminders
  status                         - Storage and notification status
  help                           - Show this text
  quit                           - Exit NoteKeeper
"""


def report_save(label: str):
    """Completion callback: tell the user when a save did not happen"""
    def _done(future: Future):
        try:
            result = future.result()
        except Exception as e:
            print(f"\n⚠  {label} were NOT saved: {e}\n")
            return
        if not result.success:
            print(f"\n⚠  {label} were NOT saved ({result.error})\n")
    return _done


def report_load(label: str, result) -> None:
    if result.status == LoadStatus.CORRUPT:
        print(f"⚠  Stored {label.lower()} could not be read ({result.error}).")
        print("   A backup copy was kept next to the file; starting with an empty list.")
    elif result.status == LoadStatus.EMPTY:
        print(f"✓ No {label.lower()} yet")
    else:
        print(f"✓ Loaded {len(result.records)} {label.lower()}")


def parse_offsets(args: List[str]) -> List[int]:
    """Convert 1-based list numbers to 0-based offsets"""
    if not args:
        raise ValueError("Give at least one number")
    offsets = [int(a) - 1 for a in args]
    if any(o < 0 for o in offsets):
        raise ValueError("List numbers start at 1")
    return offsets


def read_multiline() -> str:
    print("(empty line to finish)")
    lines = []
    while True:
        line = input()
        if not line:
            break
        lines.append(line)
    return "\n".join(lines)


def print_notes(notes_service: NotesService):
    notes = notes_service.notes
    if not notes:
        print("\n📭 No notes\n")
        return
    print(f"\n📋 You have {len(notes)} notes:\n")
    for i, note in enumerate(notes, start=1):
        title = note.title if len(note.title) <= 60 else note.title[:57] + "..."
        print(f"  {i}. {title}")
    print()


def reminder_icon(reminders_service: RemindersService, reminder) -> str:
    """⏳ pending alert, ⚠ no alert for an upcoming reminder, ✓ done"""
    handle = reminders_service.scheduler.status(reminder.id)
    if handle is None:
        return "✓" if reminders_service.is_expired(reminder) else "⚠"
    if handle.is_active:
        return "⏳"
    if handle.state == NotificationState.FAILED:
        return "⚠"
    return "✓"


def print_reminders(reminders_service: RemindersService):
    reminders = reminders_service.reminders
    if not reminders:
        print("\n📭 No reminders\n")
        return
    print(f"\n📋 You have {len(reminders)} reminders:\n")
    for i, reminder in enumerate(reminders, start=1):
        icon = reminder_icon(reminders_service, reminder)
        print(f"  {icon} {i}. {reminders_service.format_reminder_for_user(reminder)}")
    print()


def main():
    """
    Main NoteKeeper entry point.
    """
    try:
        config = AppConfig.from_env()
    except ConfigError as e:
        print(f"❌ Configuration error: {e}")
        return 2

    config.configure_logging()

    print("=" * 70)
    print("NoteKeeper - Notes & Reminders")
    print("=" * 70)
    print()

    # -------------------------------------------------------------------------
    # Initialize core
    # -------------------------------------------------------------------------
    try:
        logger.info("Initializing NoteKeeper...")
        gateway = StorageGateway(config.storage_dir)
    except StorageLocationError as e:
        logger.error(f"Failed to initialize storage: {e}", exc_info=True)
        print(f"\n❌ Error: {e}")
        return 1

    executor = BackgroundExecutor()

    channels = [ConsoleChannel()]
    if config.voice_enabled:
        channels.append(VoiceChannel())

    center = NotificationCenter(
        authorizer=lambda: config.notifications_allowed,
        channels=channels,
        poll_interval=config.poll_interval
    )
    scheduler = NotificationScheduler(center)

    notes_service = NotesService(gateway, executor)
    reminders_service = RemindersService(gateway, scheduler, executor)

    print(f"✓ Storage: {gateway.storage_dir}")
    report_load("Notes", notes_service.load())
    report_load("Reminders", reminders_service.load())

    scheduler.request_permission()
    permission = scheduler.wait_for_permission(timeout=2.0)
    if permission == PermissionState.GRANTED:
        print("✓ Notifications allowed")
    else:
        print(f"⚠  Notifications {permission.value}: reminders will be saved but not delivered")

    rescheduled = reminders_service.schedule_stored()
    if rescheduled:
        print(f"✓ {len(rescheduled)} upcoming reminder(s) scheduled")
    print()
    print(HELP_TEXT)

    # =========================================================================
    # Input processor
    # =========================================================================

    def process_input(user_input: str):
        command, _, rest = user_input.partition(" ")
        command = command.lower()
        rest = rest.strip()

        if command in ("quit", "exit", "q"):
            raise SystemExit(0)

        if command == "help":
            print(HELP_TEXT)

        elif command == "notes":
            print_notes(notes_service)

        elif command == "note":
            content = rest or read_multiline()
            note = notes_service.add_note(content)
            notes_service.last_save.add_done_callback(report_save("Notes"))
            print(f"✓ Added note {len(notes_service.notes)}: {note.title}\n")

        elif command == "show":
            index = parse_offsets([rest])[0]
            print(f"\n{notes_service.notes[index].content}\n")

        elif command == "edit":
            number, _, content = rest.partition(" ")
            index = parse_offsets([number])[0]
            note = notes_service.notes[index]
            notes_service.edit_note(note.id, content)
            notes_service.last_save.add_done_callback(report_save("Notes"))
            print("✓ Note updated\n")

        elif command == "delnote":
            removed = notes_service.delete_at(parse_offsets(rest.split()))
            notes_service.last_save.add_done_callback(report_save("Notes"))
            print(f"✓ Deleted {len(removed)} note(s)\n")

        elif command == "reminders":
            print_reminders(reminders_service)

        elif command == "remind":
            parts = rest.split(" ", 2)
            if len(parts) < 3:
                raise ValueError("Usage: remind <YYYY-MM-DD HH:MM> <text>")
            date = datetime.strptime(f"{parts[0]} {parts[1]}", DATE_INPUT_FORMAT)
            handle = reminders_service.add_reminder(parts[2], date)
            reminders_service.last_save.add_done_callback(report_save("Reminders"))
            handle.wait(timeout=2.0)
            if handle.state == NotificationState.SCHEDULED:
                print(f"✓ I'll remind you on {date.strftime('%A, %B %d at %I:%M %p')}\n")
            else:
                reason = handle.error or handle.state.value
                print(f"⚠  Reminder saved, but no alert was scheduled ({reason})\n")

        elif command == "delremind":
            removed = reminders_service.delete_at(parse_offsets(rest.split()))
            reminders_service.last_save.add_done_callback(report_save("Reminders"))
            print(f"✓ Deleted {len(removed)} reminder(s)\n")

        elif command == "status":
            print(f"\n📁 Storage: {gateway.storage_dir}")
            print(f"   Notes:     {len(notes_service.notes)}")
            print(f"   Reminders: {len(reminders_service.reminders)}")
            print(f"   Notifications: {scheduler.permission_state.value}")
            print(f"   Pending alerts: {len(center.pending_identifiers())}\n")

        else:
            print(f"Unknown command: {command} (type 'help')\n")

    # =========================================================================
    # Main loop
    # =========================================================================
    while True:
        try:
            user_input = input("You: ").strip()
            if not user_input:
                continue
            process_input(user_input)

        except SystemExit:
            print("\nGoodbye!")
            break
        except (KeyboardInterrupt, EOFError):
            print("\n\nInterrupted. Goodbye!")
            break
        except (ValueError, IndexError, KeyError) as e:
            print(f"\n⚠  {e}\n")
        except Exception as e:
            logger.error(f"Error in main loop: {e}", exc_info=True)
            print(f"\nError: {e}\n")

    # =========================================================================
    # Clean shutdown
    # =========================================================================
    for service in (notes_service, reminders_service):
        try:
            service.flush(timeout=5.0)
        except Exception as e:
            logger.error(f"Final save did not finish: {e}", exc_info=True)

    executor.shutdown()
    center.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
