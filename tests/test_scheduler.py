import threading

from ozon_size_monitor.scheduler import ScanScheduler, ScanState


def test_overlapping_tick_is_dropped() -> None:
    started = threading.Event()
    release = threading.Event()
    runs = []

    def slow_scan():
        runs.append(1)
        started.set()
        release.wait(5)

    scheduler = ScanScheduler(slow_scan, interval_seconds=60)
    first = scheduler.start_tick()
    assert started.wait(5)

    assert scheduler.state is ScanState.SCANNING
    assert scheduler.tick() is False

    release.set()
    first.join(5)
    assert len(runs) == 1
    assert scheduler.state is ScanState.IDLE


def test_failed_scan_is_reported_and_scheduler_recovers() -> None:
    errors = []
    calls = []

    def scan():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("listing down")

    scheduler = ScanScheduler(scan, interval_seconds=60, on_error=errors.append)

    assert scheduler.tick() is True
    assert scheduler.state is ScanState.IDLE
    assert [str(e) for e in errors] == ["listing down"]

    assert scheduler.tick() is True
    assert len(calls) == 2
    assert len(errors) == 1


def test_failing_error_reporter_does_not_escape() -> None:
    def scan():
        raise ValueError("boom")

    def reporter(error):
        raise ConnectionError("telegram down")

    scheduler = ScanScheduler(scan, interval_seconds=60, on_error=reporter)

    assert scheduler.tick() is True
    assert scheduler.state is ScanState.IDLE


def test_run_forever_ticks_immediately_and_stops() -> None:
    ticked = threading.Event()
    scheduler = ScanScheduler(ticked.set, interval_seconds=0.01)

    loop = threading.Thread(target=scheduler.run_forever, daemon=True)
    loop.start()
    assert ticked.wait(5)

    scheduler.stop()
    loop.join(5)
    assert not loop.is_alive()
    assert scheduler._stop.is_set()
