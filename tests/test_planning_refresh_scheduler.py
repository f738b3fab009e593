import threading

from services import background_tasks
from services.inventory_models import StoreConfig
from services.planning_refresh_scheduler import PlanningRefreshScheduler

US = StoreConfig(code="US", api_region="NA", marketplace_id="ATVPDKIKX0DER", refresh_token="a", name="United States", currency="USD")
UK = StoreConfig(code="UK", api_region="EU", marketplace_id="A1F83G8C2ARO7P", refresh_token="b", name="United Kingdom", currency="GBP")
AU = StoreConfig(code="AU", api_region="FE", marketplace_id="A39IBJ37TRP1C6", refresh_token="c", name="Australia", currency="AUD")


class DummyOrchestrator:
    def __init__(self, result="created"):
        self.result = result
        self.calls = []

    def refresh(self, store):
        self.calls.append(store.code)
        return self.result


def test_sweep_refreshes_stores_in_order():
    orchestrator = DummyOrchestrator()
    scheduler = PlanningRefreshScheduler(orchestrator, [US, UK, AU], inter_region_delay_seconds=0)

    assert scheduler.run_sweep() == {"US": "created", "UK": "created", "AU": "created"}
    assert orchestrator.calls == ["US", "UK", "AU"]
    assert scheduler.sweep_in_progress is False


def test_inter_region_delay_only_between_stores(monkeypatch):
    orchestrator = DummyOrchestrator()
    scheduler = PlanningRefreshScheduler(orchestrator, [US, UK, AU], inter_region_delay_seconds=15)
    waits = []
    monkeypatch.setattr(scheduler._stop, "wait", lambda timeout=None: waits.append(timeout) or False)

    scheduler.run_sweep()
    assert waits == [15, 15]


def test_overlapping_sweep_is_skipped():
    orchestrator = DummyOrchestrator()
    scheduler = PlanningRefreshScheduler(orchestrator, [US], inter_region_delay_seconds=0)

    scheduler._sweep_lock.acquire()
    try:
        assert scheduler.sweep_in_progress is True
        assert scheduler.run_sweep() is None
    finally:
        scheduler._sweep_lock.release()
    assert orchestrator.calls == []


def test_stop_breaks_out_of_sweep_between_stores():
    scheduler = None

    class StoppingOrchestrator(DummyOrchestrator):
        def refresh(self, store):
            result = super().refresh(store)
            scheduler._stop.set()
            return result

    orchestrator = StoppingOrchestrator()
    scheduler = PlanningRefreshScheduler(orchestrator, [US, UK], inter_region_delay_seconds=0)
    assert scheduler.run_sweep() == {"US": "created"}


def test_loop_runs_sweep_after_initial_delay_and_stops():
    swept = threading.Event()

    class SignallingOrchestrator(DummyOrchestrator):
        def refresh(self, store):
            swept.set()
            return super().refresh(store)

    orchestrator = SignallingOrchestrator()
    scheduler = PlanningRefreshScheduler(
        orchestrator,
        [US],
        interval_seconds=60,
        initial_delay_seconds=0,
        inter_region_delay_seconds=0,
    )
    scheduler.start()
    try:
        assert swept.wait(timeout=5)
    finally:
        scheduler.stop(timeout=5)
    assert orchestrator.calls == ["US"]
    assert scheduler.tracked_codes() == ["US"]


def test_run_background_logs_failures(caplog):
    def boom():
        raise RuntimeError("exploded")

    future = background_tasks.run_background("test:boom", boom)
    try:
        future.exception(timeout=5)
    finally:
        background_tasks.shutdown_background_tasks(wait=True)

    # The done-callback may run on the worker thread just after the future resolves.
    for _ in range(50):
        if any("test:boom" in r.getMessage() for r in caplog.records):
            break
        threading.Event().wait(0.02)
    assert any("Task failed (test:boom)" in r.getMessage() for r in caplog.records)


def test_run_background_returns_result():
    future = background_tasks.run_background("test:ok", lambda x: x * 2, 21)
    try:
        assert future.result(timeout=5) == 42
    finally:
        background_tasks.shutdown_background_tasks(wait=True)
