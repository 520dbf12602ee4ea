# tests/test_controller.py

from __future__ import annotations

import pytest

from float_todo.core.controller import EMPTY_TEXT_NOTICE, LOAD_FAILED_NOTICE, AppController
from float_todo.core.errors import InvalidStateError, PersistenceError
from float_todo.core.events import (
    AddItem,
    ControllerState,
    DeleteItem,
    EditItem,
    Quit,
    ToggleItem,
    WindowClosed,
    WindowShown,
)
from float_todo.tasks.task_models import PersistedSnapshot, Task
from float_todo.tasks.task_persistence import JsonTaskStorage, SnapshotWriter
from float_todo.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeStorage


def _controller(storage, *, clock: FakeClock | None = None, background: bool = False) -> AppController:
    clock = clock or FakeClock()
    return AppController(
        storage,
        SnapshotWriter(storage, background=background),
        store_factory=lambda snap: TaskStore.from_snapshot(snap, clock=clock),
    )


def test_end_to_end_add_toggle_quit_relaunch(storage: JsonTaskStorage) -> None:
    controller = _controller(storage)
    first = controller.init()
    assert first.items == ()
    assert controller.state == ControllerState.READY

    model = controller.handle_event(AddItem("buy milk"))
    assert len(model.items) == 1
    item = model.items[0]
    assert item.text == "buy milk"
    assert item.completed is False

    model = controller.handle_event(ToggleItem(item.id))
    assert model.items[0].completed is True

    final = controller.handle_event(Quit())
    assert final.finished
    assert controller.state == ControllerState.SHUTTING_DOWN

    # Relaunch against the same file.
    loaded = JsonTaskStorage(storage.path).load()
    assert [(t.id, t.text, t.completed) for t in loaded.tasks] == [(item.id, "buy milk", True)]

    relaunched = _controller(JsonTaskStorage(storage.path))
    again = relaunched.init()
    assert [(i.id, i.text, i.completed) for i in again.items] == [(item.id, "buy milk", True)]


def test_edit_unknown_id_is_a_noop(storage: JsonTaskStorage) -> None:
    controller = _controller(storage)
    controller.init()
    before = controller.handle_event(AddItem("keep"))
    saved_bytes = storage.path.read_bytes()

    after = controller.handle_event(EditItem(999, "x"))

    assert after.items == before.items
    assert after.notice is None
    assert after.warning is None
    assert storage.path.read_bytes() == saved_bytes


@pytest.mark.parametrize("event", [ToggleItem(7), DeleteItem(7)])
def test_other_unknown_id_events_are_noops(event) -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()

    model = controller.handle_event(event)

    assert model.items == ()
    assert model.notice is None
    assert storage.saved == []


def test_empty_add_sets_one_shot_notice() -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()

    rejected = controller.handle_event(AddItem("   "))
    assert rejected.items == ()
    assert rejected.notice == EMPTY_TEXT_NOTICE
    assert storage.saved == []

    # Notice is cleared after one render.
    assert controller.handle_event(WindowShown()).notice is None


def test_empty_edit_sets_notice_and_keeps_text() -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()
    task_id = controller.handle_event(AddItem("original")).items[0].id

    model = controller.handle_event(EditItem(task_id, ""))

    assert model.notice == EMPTY_TEXT_NOTICE
    assert model.items[0].text == "original"
    assert len(storage.saved) == 1


def test_every_mutation_is_saved() -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()

    a = controller.handle_event(AddItem("a")).items[0].id
    controller.handle_event(AddItem("b"))
    controller.handle_event(ToggleItem(a))
    controller.handle_event(EditItem(a, "a2"))
    controller.handle_event(DeleteItem(a))

    assert len(storage.saved) == 5
    last = storage.saved[-1]
    assert [t.text for t in last.tasks] == ["b"]
    assert last.next_id == 3


def test_window_shown_does_not_save() -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()

    controller.handle_event(WindowShown())

    assert storage.saved == []


def test_corrupt_storage_starts_empty_with_notice(storage: JsonTaskStorage) -> None:
    storage.path.parent.mkdir(parents=True, exist_ok=True)
    storage.path.write_text("{definitely not json", "utf-8")

    controller = _controller(storage)
    model = controller.init()

    assert controller.state == ControllerState.READY
    assert model.items == ()
    assert model.notice is not None
    assert model.notice.startswith(LOAD_FAILED_NOTICE)
    assert "tasks.json.bak" in model.notice

    # Original bytes are kept aside; a new save does not touch them.
    controller.handle_event(AddItem("fresh start"))
    backup = storage.path.with_name("tasks.json.bak")
    assert backup.read_text("utf-8") == "{definitely not json"
    assert [t.text for t in storage.load().tasks] == ["fresh start"]


def test_deeply_nested_file_does_not_block_startup(storage: JsonTaskStorage) -> None:
    storage.path.parent.mkdir(parents=True, exist_ok=True)
    storage.path.write_text("[" * 200_000, "utf-8")

    model = _controller(storage).init()

    assert model.items == ()
    assert model.notice is not None
    assert model.notice.startswith(LOAD_FAILED_NOTICE)
    assert storage.path.with_name("tasks.json.bak").exists()


def test_unsavable_text_is_rejected_and_later_saves_still_work(storage: JsonTaskStorage) -> None:
    controller = _controller(storage)
    controller.init()

    rejected = controller.handle_event(AddItem("bad \udcff"))
    assert rejected.items == ()
    assert rejected.notice == "Task text contains characters that cannot be saved."

    controller.handle_event(AddItem("buy milk"))
    final = controller.handle_event(Quit())

    assert final.warning is None
    assert [t.text for t in storage.load().tasks] == ["buy milk"]


def test_load_error_from_fake_storage_is_not_fatal() -> None:
    storage = FakeStorage()
    storage.load_error = PersistenceError("unsupported schema version: 7")

    controller = _controller(storage)
    model = controller.init()

    assert storage.quarantined
    assert model.notice == LOAD_FAILED_NOTICE
    assert controller.state == ControllerState.READY


def test_save_failure_shows_persistent_warning_until_recovered() -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()

    storage.fail_saves = 2  # first attempt + its retry
    model = controller.handle_event(AddItem("fragile"))

    assert model.items[0].text == "fragile"
    assert model.warning is not None
    assert "disk full" in model.warning
    # Persistent: still there on the next render.
    assert controller.handle_event(WindowShown()).warning is not None

    # Next mutation saves fine (including the earlier change).
    model = controller.handle_event(AddItem("sturdy"))
    assert model.warning is None
    assert [t.text for t in storage.saved[-1].tasks] == ["fragile", "sturdy"]


def test_single_save_failure_is_retried_silently() -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()

    storage.fail_saves = 1
    model = controller.handle_event(AddItem("ok"))

    assert model.warning is None
    assert len(storage.saved) == 1


def test_quit_with_failing_storage_still_shuts_down() -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()
    storage.fail_saves = 1_000_000

    controller.handle_event(AddItem("lost?"))
    final = controller.handle_event(Quit())

    assert final.finished
    assert final.warning is not None


def test_window_closed_behaves_like_quit() -> None:
    storage = FakeStorage()
    controller = _controller(storage, background=True)
    controller.init()
    controller.handle_event(AddItem("x"))

    final = controller.handle_event(WindowClosed())

    assert final.finished
    assert [t.text for t in storage.saved[-1].tasks] == ["x"]


def test_quit_flushes_background_saves() -> None:
    storage = FakeStorage()
    writer = SnapshotWriter(storage, background=True, debounce_seconds=30.0)
    controller = AppController(storage, writer)
    controller.init()

    for text in ("a", "b", "c"):
        controller.handle_event(AddItem(text))
    controller.handle_event(Quit())

    assert [t.text for t in storage.saved[-1].tasks] == ["a", "b", "c"]


def test_events_rejected_outside_ready() -> None:
    controller = _controller(FakeStorage())

    with pytest.raises(InvalidStateError):
        controller.handle_event(AddItem("too early"))

    controller.init()
    with pytest.raises(InvalidStateError):
        controller.init()

    controller.handle_event(Quit())
    with pytest.raises(InvalidStateError):
        controller.handle_event(AddItem("too late"))


def test_shutdown_is_idempotent() -> None:
    storage = FakeStorage()
    controller = _controller(storage)
    controller.init()
    controller.handle_event(AddItem("x"))

    first = controller.shutdown()
    second = controller.shutdown()

    assert first.finished and second.finished
    assert len(storage.saved) == 1


def test_shutdown_before_init_saves_nothing() -> None:
    storage = FakeStorage()
    controller = _controller(storage)

    assert controller.shutdown().finished
    assert storage.saved == []


def test_snapshot_does_not_consume_notice() -> None:
    controller = _controller(FakeStorage())
    controller.init()
    controller.handle_event(AddItem(""))

    # handle_event already returned (and consumed) the notice.
    assert controller.snapshot().notice is None


def test_two_controllers_are_independent() -> None:
    one = _controller(FakeStorage())
    two = _controller(FakeStorage())
    one.init()
    two.init()

    one.handle_event(AddItem("only in one"))

    assert len(one.snapshot().items) == 1
    assert two.snapshot().items == ()


def test_loaded_tasks_are_rendered_in_order() -> None:
    tasks = (
        Task(id=2, text="second", completed=False, created_at=1.0, updated_at=1.0),
        Task(id=5, text="fifth", completed=True, created_at=2.0, updated_at=3.0),
    )
    controller = _controller(FakeStorage(PersistedSnapshot(next_id=6, tasks=tasks)))

    model = controller.init()

    assert [(i.id, i.completed) for i in model.items] == [(2, False), (5, True)]
    assert model.open_count == 1
    new_id = controller.handle_event(AddItem("sixth")).items[-1].id
    assert new_id == 6
