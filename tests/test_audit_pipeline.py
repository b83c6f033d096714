import threading
import time
from pathlib import Path

from gradebook.audit import AuditEntry, AuditPipeline, OperationType, RotatingAuditFile


def _read_lines(path: Path):
    return [line for line in path.read_text(encoding="utf-8").splitlines() if line]


def test_log_does_not_wait_for_writer(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    started = time.perf_counter()
    for i in range(1000):
        pipeline.log(OperationType.FIND_STUDENT, f"lookup {i}", 1)
    elapsed = time.perf_counter() - started

    assert elapsed < 2.0
    metrics = pipeline.metrics()
    assert metrics["queue_depth"] == 1000
    assert metrics["enqueued"] == 1000
    assert metrics["written"] == 0
    assert not audit_dir.exists()


def test_entries_are_written_in_fifo_order(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.start()
    try:
        for i in range(50):
            pipeline.log(OperationType.ADD_STUDENT, f"entry {i}", i)
        assert pipeline.wait_until_idle(5.0)
    finally:
        pipeline.stop()

    path = audit_dir / "audit_2024-05-01.log"
    assert pipeline.active_file == path
    parsed = [AuditEntry.from_line(line) for line in _read_lines(path)]
    assert all(entry is not None for entry in parsed)
    assert [entry.description for entry in parsed] == [f"entry {i}" for i in range(50)]
    assert pipeline.metrics()["written"] == 50


def test_log_records_caller_thread_and_clamps_duration(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    entry = pipeline.log("record_grade", "Added grade", -5, success=False)

    assert entry.operation is OperationType.RECORD_GRADE
    assert entry.thread_name == threading.current_thread().name
    assert entry.thread_ident == threading.get_ident()
    assert entry.duration_ms == 0
    assert entry.timestamp == clock.now


def test_size_rotation_leaves_previous_file_untouched(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock, max_bytes=400)
    pipeline.start()
    try:
        for i in range(3):
            pipeline.log(OperationType.VIEW_GRADES, f"first batch {i}")
        assert pipeline.wait_until_idle(5.0)
        first = audit_dir / "audit_2024-05-01.log"
        assert first.exists()

        for i in range(10):
            pipeline.log(OperationType.VIEW_GRADES, f"second batch {i}")
        assert pipeline.wait_until_idle(5.0)
        snapshot = first.read_bytes()

        for i in range(5):
            pipeline.log(OperationType.VIEW_GRADES, f"third batch {i}")
        assert pipeline.wait_until_idle(5.0)
    finally:
        pipeline.stop()

    assert first.read_bytes() == snapshot
    files = sorted(audit_dir.glob("audit_2024-05-01*.log"))
    assert len(files) > 1
    assert (audit_dir / "audit_2024-05-01.1.log").exists()
    for path in files:
        assert path.stat().st_size <= 400

    written = sum(len(_read_lines(path)) for path in files)
    assert written == 18
    assert pipeline.metrics()["rotations"] >= 1


def test_day_rollover_starts_new_file(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.start()
    try:
        pipeline.log(OperationType.ADD_STUDENT, "before midnight")
        assert pipeline.wait_until_idle(5.0)
        clock.advance(days=1)
        pipeline.log(OperationType.ADD_STUDENT, "after midnight")
        assert pipeline.wait_until_idle(5.0)
    finally:
        pipeline.stop()

    old = _read_lines(audit_dir / "audit_2024-05-01.log")
    new = _read_lines(audit_dir / "audit_2024-05-02.log")
    assert len(old) == 1 and old[0].endswith("before midnight")
    assert len(new) == 1 and new[0].endswith("after midnight")


def test_restart_appends_to_existing_file(audit_dir, clock):
    first = AuditPipeline(audit_dir, clock=clock)
    first.start()
    first.log(OperationType.ADD_STUDENT, "one")
    assert first.wait_until_idle(5.0)
    first.stop()

    second = AuditPipeline(audit_dir, clock=clock)
    second.start()
    second.log(OperationType.ADD_STUDENT, "two")
    assert second.wait_until_idle(5.0)
    second.stop()

    lines = _read_lines(audit_dir / "audit_2024-05-01.log")
    assert [line.rsplit(" | ", 1)[-1] for line in lines] == ["one", "two"]


def test_stop_discards_queued_entries(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    for i in range(5):
        pipeline.log(OperationType.FIND_STUDENT, f"never written {i}")

    assert pipeline.stop() == 5
    metrics = pipeline.metrics()
    assert metrics["discarded"] == 5
    assert metrics["queue_depth"] == 0
    assert pipeline.wait_until_idle(0.1)
    assert not audit_dir.exists()


def test_persisted_lines_parse_after_stop(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.start()
    for i in range(200):
        pipeline.log(OperationType.SEARCH_STUDENTS, f"query {i}")
    pipeline.stop()

    metrics = pipeline.metrics()
    assert metrics["written"] + metrics["discarded"] == 200
    path = audit_dir / "audit_2024-05-01.log"
    lines = _read_lines(path) if path.exists() else []
    assert len(lines) == metrics["written"]
    descriptions = [AuditEntry.from_line(line).description for line in lines]
    assert descriptions == [f"query {i}" for i in range(len(lines))]


def test_write_failure_is_counted_and_not_raised(tmp_path, clock):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("occupied", encoding="utf-8")
    pipeline = AuditPipeline(blocker, clock=clock)
    pipeline.start()
    try:
        entry = pipeline.log(OperationType.ADD_STUDENT, "lost")
        assert entry.description == "lost"
        assert pipeline.wait_until_idle(5.0)
    finally:
        pipeline.stop()

    metrics = pipeline.metrics()
    assert metrics["write_failures"] == 1
    assert metrics["written"] == 0
    assert pipeline.recent_entries(1)[0].description == "lost"


def test_unencodable_description_does_not_kill_writer(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.start()
    try:
        pipeline.log(OperationType.ADD_STUDENT, "Rejected student: Unknown student type: \udc80")
        pipeline.log(OperationType.ADD_STUDENT, "after")
        assert pipeline.wait_until_idle(5.0)
        assert pipeline.running
    finally:
        pipeline.stop()

    assert pipeline.metrics()["written"] == 2
    lines = _read_lines(audit_dir / "audit_2024-05-01.log")
    assert lines[0].endswith("Unknown student type: \\udc80")
    assert lines[1].endswith("after")


def test_unexpected_write_error_keeps_writer_alive(audit_dir, clock, monkeypatch):
    original = RotatingAuditFile.write
    calls = []

    def flaky_write(self, line, day):
        calls.append(line)
        if len(calls) == 1:
            raise RuntimeError("disk controller on fire")
        return original(self, line, day)

    monkeypatch.setattr(RotatingAuditFile, "write", flaky_write)
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.start()
    try:
        pipeline.log(OperationType.FIND_STUDENT, "lost")
        pipeline.log(OperationType.FIND_STUDENT, "kept")
        assert pipeline.wait_until_idle(5.0)
    finally:
        pipeline.stop()

    metrics = pipeline.metrics()
    assert (metrics["write_failures"], metrics["written"]) == (1, 1)
    assert _read_lines(audit_dir / "audit_2024-05-01.log")[0].endswith("kept")


def test_entry_logged_while_old_writer_lingers_survives_restart(audit_dir, clock, monkeypatch):
    original = RotatingAuditFile.write
    gate = threading.Event()
    entered = threading.Event()

    def slow_write(self, line, day):
        entered.set()
        gate.wait(5.0)
        return original(self, line, day)

    monkeypatch.setattr(RotatingAuditFile, "write", slow_write)
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.start()
    old_writer = pipeline._thread
    pipeline.log(OperationType.ADD_STUDENT, "in flight")
    assert entered.wait(5.0)

    pipeline.stop(timeout=0.05)
    assert old_writer.is_alive()
    pipeline.log(OperationType.ADD_STUDENT, "after stop")
    gate.set()
    old_writer.join(5.0)

    metrics = pipeline.metrics()
    assert metrics["discarded"] == 0
    assert metrics["queue_depth"] == 1

    pipeline.start()
    try:
        assert pipeline.wait_until_idle(5.0)
    finally:
        pipeline.stop()

    descriptions = [line.rsplit(" | ", 1)[-1] for line in _read_lines(audit_dir / "audit_2024-05-01.log")]
    assert descriptions == ["in flight", "after stop"]


def test_logging_after_stop_is_accepted(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.start()
    pipeline.stop()
    assert not pipeline.running

    pipeline.log(OperationType.CACHE_MAINTENANCE, "late")
    assert pipeline.metrics()["queue_depth"] == 1
    assert pipeline.recent_entries(1)[0].description == "late"


def test_start_is_idempotent(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.start()
    try:
        thread = pipeline._thread
        pipeline.start()
        assert pipeline._thread is thread
        assert pipeline.running
    finally:
        pipeline.stop()


def test_recent_entries(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    for i in range(5):
        pipeline.log(OperationType.FIND_STUDENT, f"lookup {i}")

    assert [e.description for e in pipeline.recent_entries(2)] == ["lookup 3", "lookup 4"]
    assert len(pipeline.recent_entries(50)) == 5
    assert pipeline.recent_entries(0) == []


def test_retained_history_is_bounded(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock, retained=3)
    for i in range(5):
        pipeline.log(OperationType.FIND_STUDENT, f"lookup {i}")

    assert [e.description for e in pipeline.entries()] == ["lookup 2", "lookup 3", "lookup 4"]
    assert pipeline.metrics()["retained"] == 3
    assert pipeline.metrics()["queue_depth"] == 5


def test_filter_by_operation(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.log(OperationType.ADD_STUDENT, "a")
    pipeline.log(OperationType.RECORD_GRADE, "b")
    pipeline.log(OperationType.ADD_STUDENT, "c")

    assert [e.description for e in pipeline.filter_by_operation("ADD_STUDENT")] == ["a", "c"]
    assert pipeline.filter_by_operation(OperationType.VIEW_GRADES) == []


def test_filter_by_thread(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.log(OperationType.ADD_STUDENT, "main")
    captured = {}

    def worker():
        captured["entry"] = pipeline.log(OperationType.FIND_STUDENT, "from worker")

    thread = threading.Thread(target=worker, name="Worker-7")
    thread.start()
    thread.join()

    matches = pipeline.filter_by_thread("worker-7")
    assert [e.description for e in matches] == ["from worker"]
    by_ident = pipeline.filter_by_thread(str(captured["entry"].thread_ident))
    assert "from worker" in [e.description for e in by_ident]
    assert pipeline.filter_by_thread("nobody") == []


def test_filter_by_date_range_is_inclusive(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    pipeline.log(OperationType.ADD_STUDENT, "may 1")
    clock.advance(days=1)
    pipeline.log(OperationType.ADD_STUDENT, "may 2")
    clock.advance(days=2)
    pipeline.log(OperationType.ADD_STUDENT, "may 4")

    in_range = pipeline.filter_by_date_range("2024-05-01", "2024-05-02")
    assert [e.description for e in in_range] == ["may 1", "may 2"]
    single = pipeline.filter_by_date_range("2024-05-04", "2024-05-04")
    assert [e.description for e in single] == ["may 4"]
    assert pipeline.filter_by_date_range("2024-05-04", "2024-05-01") == []


def test_statistics(audit_dir, clock):
    pipeline = AuditPipeline(audit_dir, clock=clock)
    empty = pipeline.statistics()
    assert empty.total_ops == 0
    assert empty.avg_duration_ms == 0.0
    assert set(empty.counts_by_operation) == {kind.value for kind in OperationType}

    pipeline.log(OperationType.ADD_STUDENT, "a", 10)
    pipeline.log(OperationType.ADD_STUDENT, "b", 20, success=False)
    pipeline.log(OperationType.VIEW_GRADES, "c", 30)

    stats = pipeline.statistics()
    assert stats.total_ops == 3
    assert stats.avg_duration_ms == 20.0
    assert (stats.success_count, stats.failure_count) == (2, 1)
    assert stats.counts_by_operation["ADD_STUDENT"] == 2
    assert stats.counts_by_operation["VIEW_GRADES"] == 1
    assert stats.counts_by_operation["CLASS_STATISTICS"] == 0
    assert sum(stats.counts_by_operation.values()) == stats.total_ops
