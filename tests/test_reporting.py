from stormwatch.reporting import TickReport


def test_tick_report_tracks_counts() -> None:
    report = TickReport()
    report.record_delivery()
    report.record_delivery()
    report.record_skip()
    report.record_failure("10,10")
    report.finish()

    summary = report.summary()
    assert summary["delivered"] == 2
    assert summary["skipped"] == 1
    assert summary["failed"] == 1
    assert summary["failed_keys"] == ["10,10"]
    assert summary["overlapped"] is False
    assert summary["duration_seconds"] >= 0


def test_unfinished_report_has_no_duration() -> None:
    report = TickReport(started_at=100.0)

    assert report.duration_seconds == 0.0
    assert report.summary()["duration_seconds"] == 0.0


def test_finish_returns_report_for_chaining() -> None:
    report = TickReport(started_at=100.0, overlapped=True)

    finished = report.finish()

    assert finished is report
    assert finished.duration_seconds > 0
    assert finished.summary()["overlapped"] is True
