from __future__ import annotations

import threading
from datetime import date, timedelta

from conftest import FakeTicker, local
from daytrack.controller import ElapsedTicker, TrackingController, TrackingState
from daytrack.models import ActivityRecord


def test_start_stop_scenario_records_exact_duration(make_controller, repository, clock):
    controller = make_controller()
    started = controller.start()
    assert controller.state is TrackingState.TRACKING

    clock.advance(seconds=125)
    finished = controller.stop()

    assert finished.id == started.id
    assert finished.duration == 125
    assert finished.end - finished.start == timedelta(seconds=125)
    assert finished.title == "Unnamed Activity"
    assert controller.state is TrackingState.IDLE
    assert repository.get_current() is None
    assert repository.get_by_date(date(2024, 3, 5)) == [finished]


def test_start_persists_current_slot_immediately(make_controller, repository):
    record = make_controller().start("Deep work")

    assert repository.get_current() == record
    assert repository.all_activities() == []


def test_start_while_tracking_is_a_no_op(make_controller, repository, clock):
    controller = make_controller()
    first = controller.start("First")
    clock.advance(seconds=30)

    second = controller.start("Second")

    assert second == first
    assert repository.get_current() == first
    assert len(FakeTicker.instances) == 1


def test_stop_while_idle_is_a_no_op(make_controller, repository, data_path):
    assert make_controller().stop() is None
    assert not data_path.exists()


def test_rename_persists_running_title(make_controller, repository):
    controller = make_controller()
    controller.start()

    controller.rename("Planning")

    assert repository.get_current().title == "Planning"


def test_rename_while_idle_returns_none(make_controller):
    assert make_controller().rename("x") is None


def test_stop_title_overrides_running_title(make_controller, clock):
    controller = make_controller()
    controller.start("Draft")
    clock.advance(minutes=1)

    assert controller.stop("Final").title == "Final"


def test_blank_stop_title_becomes_placeholder(make_controller, clock):
    controller = make_controller()
    controller.start("Draft")
    clock.advance(minutes=1)

    assert controller.stop("   ").title == "Unnamed Activity"


def test_duration_is_floored_to_whole_seconds(make_controller, clock):
    controller = make_controller()
    controller.start()
    clock.advance(seconds=59, milliseconds=999)

    assert controller.stop().duration == 59


def test_clock_going_backwards_is_clipped(make_controller, clock):
    controller = make_controller()
    started = controller.start()
    clock.advance(seconds=-10)

    finished = controller.stop()

    assert finished.end > finished.start
    assert finished.end == started.start + timedelta(seconds=1)
    assert finished.duration == 1


def test_restore_resumes_from_original_start(make_controller, repository, clock):
    original = make_controller().start("Survives restart")
    clock.advance(minutes=10)

    revived = make_controller()
    restored = revived.restore()

    assert restored == original
    assert revived.state is TrackingState.TRACKING
    assert revived.elapsed() == timedelta(minutes=10)

    clock.advance(seconds=5)
    assert revived.stop().duration == 605


def test_restore_when_idle_keeps_idle(make_controller):
    controller = make_controller()

    assert controller.restore() is None
    assert controller.state is TrackingState.IDLE
    assert FakeTicker.instances == []


def test_ticks_report_elapsed_without_writing(make_controller, data_path, clock):
    seen: list[timedelta] = []
    controller = make_controller(on_tick=seen.append)
    controller.start()
    before = data_path.read_bytes()

    clock.advance(seconds=3)
    FakeTicker.instances[-1].fire()

    assert seen == [timedelta(seconds=3)]
    assert data_path.read_bytes() == before


def test_stop_cancels_ticker_and_stale_tick_is_ignored(make_controller, clock):
    seen: list[timedelta] = []
    controller = make_controller(on_tick=seen.append)
    controller.start()
    ticker = FakeTicker.instances[-1]

    clock.advance(seconds=2)
    controller.stop()
    ticker.fire()

    assert ticker.cancelled
    assert seen == []


def test_tick_from_previous_activity_is_ignored(make_controller, clock):
    seen: list[timedelta] = []
    controller = make_controller(on_tick=seen.append)
    controller.start("one")
    old_ticker = FakeTicker.instances[-1]
    clock.advance(seconds=5)
    controller.stop()
    controller.start("two")

    old_ticker.fire()
    FakeTicker.instances[-1].fire()

    assert seen == [timedelta(0)]


def test_close_cancels_ticker_but_keeps_running_record(make_controller, repository):
    controller = make_controller()
    record = controller.start()

    controller.close()

    assert FakeTicker.instances[-1].cancelled
    assert repository.get_current() == record


def test_ticker_interval_comes_from_settings(make_controller):
    make_controller().start()

    assert FakeTicker.instances[-1].interval == 1.0


def test_elapsed_ticker_fires_until_cancelled():
    fired = threading.Event()
    ticker = ElapsedTicker(0.01, fired.set)

    ticker.start()
    assert fired.wait(timeout=2.0)
    ticker.cancel()


def test_controller_defaults_to_real_ticker(repository):
    controller = TrackingController(repository)
    try:
        controller.start()
        assert isinstance(controller._ticker, ElapsedTicker)
    finally:
        controller.close()


def test_try_start_reports_whether_a_record_was_created(make_controller):
    controller = make_controller()

    first, created = controller.try_start("One")
    again, created_again = controller.try_start("Two")

    assert created is True
    assert created_again is False
    assert again == first


def test_concurrent_starts_create_a_single_record(make_controller, repository):
    controller = make_controller()
    barrier = threading.Barrier(6)
    results: list[bool] = []

    def begin() -> None:
        barrier.wait()
        results.append(controller.try_start("race")[1])

    threads = [threading.Thread(target=begin) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert repository.get_current() == controller.current


def test_stop_and_delete_in_parallel_keep_finished_activity(make_controller, repository, clock):
    existing_start = local(2024, 3, 5, 7)
    repository.upsert(
        ActivityRecord(
            id="old", title="Old", start=existing_start, end=existing_start + timedelta(minutes=5)
        )
    )
    controller = make_controller()
    controller.start("Live")
    clock.advance(minutes=3)
    barrier = threading.Barrier(2)
    finished = []

    def stop() -> None:
        barrier.wait()
        finished.append(controller.stop())

    def remove() -> None:
        barrier.wait()
        repository.delete("old")

    threads = [threading.Thread(target=stop), threading.Thread(target=remove)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert [record.id for record in repository.all_activities()] == [finished[0].id]
    assert repository.get_current() is None


def test_controller_shares_repository_lock(make_controller, repository):
    assert make_controller()._lock is repository.lock
