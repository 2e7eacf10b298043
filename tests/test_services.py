"""
Tests for NoteKeeper Services

Tests the session layer including:
- Background executor ordering and completion
- Notes add / edit / delete with whole-list persistence
- Reminders add / delete with scheduling and cancellation
- Stored reminders scheduled again in a new session
- Configuration from environment
"""

import logging
import sys
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from notekeeper.config import AppConfig, ConfigError
from notekeeper.core import BackgroundExecutor
from notekeeper.memory import LoadStatus, StorageGateway, create_reminder
from notekeeper.notifications import (
    NotificationCenter,
    NotificationScheduler,
    NotificationState
)
from notekeeper.services import NotesService, RemindersService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

NOW = datetime(2025, 3, 1, 9, 0, 0).astimezone()
WAIT = 2.0


@pytest.fixture
def storage_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def executor():
    executor = BackgroundExecutor(poll_interval=0.05)
    yield executor
    executor.shutdown()


@pytest.fixture
def scheduler():
    center = NotificationCenter(authorizer=lambda: True, clock=lambda: NOW, poll_interval=0.05)
    scheduler = NotificationScheduler(center)
    scheduler.request_permission()
    scheduler.wait_for_permission(timeout=WAIT)
    yield scheduler
    center.shutdown()


def test_background_executor():
    """Test job ordering, results and errors"""
    print("\n" + "="*70)
    print("TEST 1: Background Executor")
    print("="*70)

    executor = BackgroundExecutor(poll_interval=0.05)
    try:
        print("\n[1.1] Testing FIFO order...")
        order = []
        futures = [executor.submit(order.append, i) for i in range(20)]
        for f in futures:
            f.result(timeout=WAIT)
        assert order == list(range(20))
        print("✓ Jobs ran in submission order")

        print("\n[1.2] Testing off-thread execution...")
        worker_name = executor.submit(lambda: threading.current_thread().name).result(timeout=WAIT)
        assert worker_name == "NoteKeeper-IO"
        assert worker_name != threading.current_thread().name
        print(f"✓ Ran on {worker_name}")

        print("\n[1.3] Testing completion callback...")
        done = threading.Event()
        executor.submit(lambda x: x * 2, 21, on_complete=lambda f: done.set())
        assert done.wait(WAIT)
        print("✓ Callback fired")

        print("\n[1.4] Testing job errors...")
        failing = executor.submit(Mock(side_effect=OSError("disk full")))
        with pytest.raises(OSError):
            failing.result(timeout=WAIT)
        assert executor.submit(lambda: "still alive").result(timeout=WAIT) == "still alive"
        print("✓ Error captured, worker survived")
    finally:
        executor.shutdown()

    print("\n[1.5] Testing shutdown...")
    assert not executor.is_running
    with pytest.raises(RuntimeError):
        executor.submit(print, "too late")
    print("✓ Rejects work after shutdown")

    print("\n✅ Background executor test PASSED")


def test_notes_service(storage_dir, executor):
    """Test notes mutations persist the whole list"""
    print("\n" + "="*70)
    print("TEST 2: Notes Service")
    print("="*70)

    gateway = StorageGateway(storage_dir)
    service = NotesService(gateway, executor)

    print("\n[2.1] Testing initial load...")
    assert service.load().status == LoadStatus.EMPTY
    assert service.notes == []
    print("✓ Starts empty")

    print("\n[2.2] Testing add...")
    a = service.add_note("A")
    b = service.add_note("B")
    c = service.add_note("C")
    assert service.flush(timeout=WAIT).success
    assert gateway.load_notes().records == [a, b, c]
    print("✓ Three notes persisted")

    print("\n[2.3] Testing edit...")
    edited = service.edit_note(b.id, "B, revised")
    assert edited.id == b.id
    assert service.flush(timeout=WAIT).success
    assert gateway.load_notes().records == [a, edited, c]
    print("✓ Edit persisted in place")

    print("\n[2.4] Testing delete by index...")
    removed = service.delete_at([1])
    assert removed == [edited]
    assert service.flush(timeout=WAIT).success
    assert gateway.load_notes().records == [a, c]
    print("✓ Index 1 removed on disk")

    print("\n[2.5] Testing identical content deleted independently...")
    twin1 = service.add_note("same")
    twin2 = service.add_note("same")
    assert service.delete_note(twin1.id)
    assert service.flush(timeout=WAIT).success
    assert gateway.load_notes().records == [a, c, twin2]
    assert not service.delete_note(twin1.id)
    print("✓ Twins are separate notes")

    print("\n[2.6] Testing reload in a new session...")
    fresh = NotesService(gateway)
    assert fresh.load().status == LoadStatus.PRESENT
    assert fresh.notes == [a, c, twin2]
    print("✓ Session restored")

    print("\n✅ Notes service test PASSED")


def test_notes_service_validation(storage_dir):
    """Blank content and bad positions change nothing"""
    service = NotesService(StorageGateway(storage_dir))
    note = service.add_note("keep me")

    with pytest.raises(ValueError):
        service.add_note("   ")
    with pytest.raises(ValueError):
        service.edit_note(note.id, "")
    with pytest.raises(KeyError):
        service.edit_note("missing", "text")
    with pytest.raises(IndexError):
        service.delete_at([0, 5])

    assert service.notes == [note]
    print("✓ Invalid mutations rejected")


def test_notes_service_synchronous_save_failure(storage_dir):
    """Without an executor saves run inline and failures are visible"""
    blocker = storage_dir / "blocker"
    gateway = StorageGateway(storage_dir)
    gateway.notes.storage_path = blocker / "notes.json"
    blocker.write_text("not a directory", encoding='utf-8')

    service = NotesService(gateway)
    service.add_note("unsaved")

    result = service.flush()
    assert result is not None
    assert not result.success
    assert service.notes[0].content == "unsaved"
    print(f"✓ Failure surfaced: {result.error}")


def test_reminders_service(storage_dir, executor, scheduler):
    """Test reminders persist and schedule"""
    print("\n" + "="*70)
    print("TEST 3: Reminders Service")
    print("="*70)

    gateway = StorageGateway(storage_dir)
    service = RemindersService(gateway, scheduler, executor)
    service.load()

    print("\n[3.1] Testing add...")
    handle = service.add_reminder("Dentist", datetime(2025, 3, 1, 14, 37, 52), now=NOW)
    assert handle.wait(timeout=WAIT)
    assert handle.state == NotificationState.SCHEDULED
    reminder = service.get_reminder(handle.reminder_id)
    assert service.flush(timeout=WAIT).success
    assert gateway.load_reminders().records == [reminder]
    assert scheduler.center.pending_identifiers() == [reminder.id]
    print("✓ Persisted and scheduled")

    print("\n[3.2] Testing display format...")
    text = service.format_reminder_for_user(reminder)
    assert text.startswith("Dentist\n")
    assert "Reminder set for: Mar 01, 2025 at 02:37 PM" in text
    print(f"✓ {text!r}")

    print("\n[3.3] Testing delete cancels alert...")
    assert service.delete_reminder(reminder.id)
    assert service.flush(timeout=WAIT).success
    assert gateway.load_reminders().records == []
    assert scheduler.center.pending_identifiers() == []
    assert handle.state == NotificationState.CANCELLED
    print("✓ Deleted and cancelled")

    print("\n[3.4] Testing validation...")
    with pytest.raises(ValueError):
        service.add_reminder("", datetime(2025, 3, 1, 12, 0), now=NOW)
    with pytest.raises(ValueError):
        service.add_reminder("Yesterday", NOW - timedelta(days=1), now=NOW)
    with pytest.raises(TypeError):
        service.add_reminder("No date", "tomorrow", now=NOW)
    assert service.reminders == []
    print("✓ Blank content and past dates rejected")

    print("\n✅ Reminders service test PASSED")


def test_content_kept_as_typed(storage_dir, scheduler):
    """Notes and reminders store content exactly as entered"""
    gateway = StorageGateway(storage_dir)
    notes = NotesService(gateway)
    reminders = RemindersService(gateway, scheduler)

    note = notes.add_note("  Groceries: milk, eggs\n")
    handle = reminders.add_reminder("  Dentist  ", datetime(2025, 3, 1, 14, 37), now=NOW)
    reminder = reminders.get_reminder(handle.reminder_id)

    assert note.content == "  Groceries: milk, eggs\n"
    assert reminder.content == "  Dentist  "
    assert gateway.load_notes().records == [note]
    assert gateway.load_reminders().records == [reminder]
    assert scheduler.build_request(reminder).body == "  Dentist  "
    print("✓ Surrounding whitespace kept for both kinds")


def test_stored_reminders_scheduled_after_restart(storage_dir):
    """A new session registers alerts for reminders saved by the last one"""
    print("\n" + "="*70)
    print("TEST 4: Reminders Across Sessions")
    print("="*70)

    gateway = StorageGateway(storage_dir)

    print("\n[4.1] Testing first session...")
    first_center = NotificationCenter(authorizer=lambda: True, clock=lambda: NOW, poll_interval=0.05)
    try:
        first = NotificationScheduler(first_center)
        first.request_permission()
        first.wait_for_permission(timeout=WAIT)
        service = RemindersService(gateway, first)
        service.load()
        handle = service.add_reminder("Dentist", datetime(2025, 3, 1, 14, 37), now=NOW)
        assert handle.wait(timeout=WAIT)
        upcoming = service.get_reminder(handle.reminder_id)
    finally:
        first_center.shutdown()

    # Saved by an earlier session whose minute is long over
    past = create_reminder("Breakfast", datetime(2025, 3, 1, 8, 0))
    assert gateway.save_reminders([upcoming, past]).success
    print("✓ Session closed with two stored reminders")

    print("\n[4.2] Testing second session...")
    channel = Mock()
    second_center = NotificationCenter(
        authorizer=lambda: True,
        channels=[channel],
        clock=lambda: NOW,
        poll_interval=0.05
    )
    try:
        second = NotificationScheduler(second_center)
        second.request_permission()
        second.wait_for_permission(timeout=WAIT)
        service = RemindersService(gateway, second)
        assert service.load().status == LoadStatus.PRESENT

        handles = service.schedule_stored(now=NOW)
        assert [h.reminder_id for h in handles] == [upcoming.id]
        assert handles[0].wait(timeout=WAIT)
        assert handles[0].state == NotificationState.SCHEDULED
        assert second_center.pending_identifiers() == [upcoming.id]
        print("✓ Upcoming reminder registered again")

        print("\n[4.3] Testing past reminders are left alone...")
        assert second.status(past.id) is None
        assert service.is_expired(past, NOW)
        assert not service.is_expired(upcoming, NOW)
        print("✓ Past reminder not scheduled")

        print("\n[4.4] Testing repeated calls...")
        assert service.schedule_stored(now=NOW) == []
        assert second_center.pending_identifiers() == [upcoming.id]
        print("✓ Active alerts not duplicated")

        print("\n[4.5] Testing delivery...")
        second_center.deliver_due(datetime(2025, 3, 1, 14, 37).astimezone())
        channel.deliver.assert_called_once()
        assert channel.deliver.call_args[0][0].body == "Dentist"
        assert handles[0].state == NotificationState.DELIVERED
        print("✓ Delivered in the new session")
    finally:
        second_center.shutdown()

    print("\n✅ Reminders across sessions test PASSED")


def test_reminder_kept_when_permission_denied(storage_dir):
    """A denied alert does not lose the reminder"""
    center = NotificationCenter(authorizer=lambda: False, clock=lambda: NOW)
    try:
        scheduler = NotificationScheduler(center)
        scheduler.request_permission()
        scheduler.wait_for_permission(timeout=WAIT)

        gateway = StorageGateway(storage_dir)
        service = RemindersService(gateway, scheduler)
        handle = service.add_reminder("Stored anyway", datetime(2025, 3, 1, 12, 0), now=NOW)

        assert handle.state == NotificationState.FAILED
        assert [r.content for r in gateway.load_reminders().records] == ["Stored anyway"]
    finally:
        center.shutdown()


def test_app_config():
    """Test configuration parsing"""
    config = AppConfig.from_env({})
    assert config.storage_dir is None
    assert config.log_level == "INFO"
    assert config.notifications_allowed is True
    assert config.voice_enabled is False

    config = AppConfig.from_env({
        "NOTEKEEPER_HOME": "/tmp/nk",
        "NOTEKEEPER_LOG_LEVEL": "debug",
        "NOTEKEEPER_NOTIFICATIONS": "deny",
        "NOTEKEEPER_VOICE": "yes",
        "NOTEKEEPER_POLL_INTERVAL": "0.25",
    })
    assert config.storage_dir == Path("/tmp/nk")
    assert config.log_level == "DEBUG"
    assert config.notifications_allowed is False
    assert config.voice_enabled is True
    assert config.poll_interval == 0.25

    with pytest.raises(ConfigError):
        AppConfig.from_env({"NOTEKEEPER_NOTIFICATIONS": "maybe"})
    with pytest.raises(ConfigError):
        AppConfig.from_env({"NOTEKEEPER_POLL_INTERVAL": "soon"})
    with pytest.raises(ConfigError):
        AppConfig(log_level="LOUD")
    print("✓ Config parsed and validated")


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
