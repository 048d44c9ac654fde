"""
Unit tests for strata BuildEventLog.
"""

from datetime import timedelta

from strata.build import BuildEvent, BuildEventLog, BuildEventType
from strata.core.results import utc_now


class TestBuildEventLog:
    """Test event recording and queries."""

    def test_record_and_query(self):
        """Test recorded events come back newest first."""
        log = BuildEventLog()
        log.record(BuildEventType.RUN_STARTED, "run1")
        log.record(BuildEventType.UNIT_SUCCEEDED, "run1", unit="A", stage=0)

        events = log.query()
        assert [e.event_type for e in events] == [
            BuildEventType.UNIT_SUCCEEDED,
            BuildEventType.RUN_STARTED,
        ]
        assert len(log) == 2

    def test_query_by_unit_and_type(self):
        """Test filtering by unit and event type."""
        log = BuildEventLog()
        log.record(BuildEventType.UNIT_SUCCEEDED, "run1", unit="A")
        log.record(BuildEventType.UNIT_FAILED, "run2", unit="A")
        log.record(BuildEventType.UNIT_FAILED, "run2", unit="B")

        failed_a = log.query(unit="A", event_types={BuildEventType.UNIT_FAILED})
        assert len(failed_a) == 1
        assert failed_a[0].run_id == "run2"

        assert len(log.query(unit="A", run_id="run1")) == 1

    def test_query_since_and_limit(self):
        """Test time and count limits."""
        log = BuildEventLog()
        old = BuildEvent(BuildEventType.RUN_STARTED, "old", timestamp=utc_now() - timedelta(days=1))
        log.log(old)
        for i in range(5):
            log.record(BuildEventType.STAGE_STARTED, "new", stage=i)

        recent = log.query(since=utc_now() - timedelta(hours=1))
        assert all(e.run_id == "new" for e in recent)
        assert len(log.query(limit=2)) == 2

    def test_get_run_oldest_first(self):
        """Test a run's events are returned in recording order."""
        log = BuildEventLog()
        for stage in range(3):
            log.record(BuildEventType.STAGE_STARTED, "run1", stage=stage)

        assert [e.stage for e in log.get_run("run1")] == [0, 1, 2]

    def test_max_entries(self):
        """Test the oldest entries are trimmed and indexes rebuilt."""
        log = BuildEventLog(max_entries=3)
        for i in range(5):
            log.record(BuildEventType.UNIT_SUCCEEDED, f"run{i}", unit="A")

        assert len(log) == 3
        assert log.get_run("run0") == []
        assert len(log.get_for_unit("A")) == 3

    def test_metadata(self):
        """Test extra keyword arguments land in metadata."""
        log = BuildEventLog()
        log.record(BuildEventType.RUN_COMPLETED, "run1", succeeded=4, failed=0)

        assert log.query()[0].metadata == {"succeeded": 4, "failed": 0}

    def test_export_import(self, tmp_path):
        """Test JSON export and import preserve order and fields."""
        log = BuildEventLog()
        log.record(BuildEventType.RUN_STARTED, "run1")
        log.record(BuildEventType.UNIT_FAILED, "run1", unit="C", stage=1, message="boom")
        path = tmp_path / "events.json"

        assert log.export_to_json(path) == 2

        restored = BuildEventLog()
        assert restored.import_from_json(path) == 2
        events = restored.get_run("run1")
        assert [e.event_type for e in events] == [BuildEventType.RUN_STARTED, BuildEventType.UNIT_FAILED]
        assert events[1].to_dict() == log.get_run("run1")[1].to_dict()

    def test_clear(self):
        """Test clearing the log."""
        log = BuildEventLog()
        log.record(BuildEventType.RUN_STARTED, "run1", unit="A")
        log.clear()

        assert len(log) == 0
        assert log.get_for_unit("A") == []
