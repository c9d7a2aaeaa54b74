"""
Tests for fprint_verify/event_logger.py - Hash-Chained Audit Log

Tests cover:
- Event creation and serialization
- Hash chain integrity and tamper detection
- Resuming an existing log
- Event retrieval and export
- Thread safety
"""

import json
import os
import threading

import pytest

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fprint_verify.event_logger import AuditEvent, AuditLogError, EventLogger, EventType, GENESIS_HASH


class TestAuditEvent:
    """Tests for the AuditEvent dataclass."""

    @pytest.mark.unit
    def test_event_to_dict(self):
        """Test conversion to dictionary."""
        event = AuditEvent(
            event_id="evt-1",
            timestamp="2026-01-01T00:00:00+00:00",
            event_type=EventType.SCAN_RESULT,
            details="Scan result: verify-no-match",
            metadata={"attempt": 1},
            hash_chain=GENESIS_HASH,
        )
        d = event.to_dict()
        assert d['event_type'] == "scan_result"
        assert d['metadata'] == {"attempt": 1}
        assert d['hash_chain'] == GENESIS_HASH

    @pytest.mark.unit
    def test_json_round_trip(self):
        """Test that from_dict restores what to_json wrote."""
        event = AuditEvent("evt-2", "2026-01-01T00:00:00+00:00", EventType.DEVICE_CLAIM,
                           "Device claimed", {"username": ""}, GENESIS_HASH)
        restored = AuditEvent.from_dict(json.loads(event.to_json()))
        assert restored == event

    @pytest.mark.unit
    def test_hash_excludes_chain(self):
        """The event hash depends on content, not on the previous link."""
        a = AuditEvent("evt-3", "t", EventType.SESSION_START, "start", {}, GENESIS_HASH)
        b = AuditEvent("evt-3", "t", EventType.SESSION_START, "start", {}, "f" * 64)
        assert a.compute_hash() == b.compute_hash()

    @pytest.mark.unit
    def test_hash_covers_metadata(self):
        a = AuditEvent("evt-4", "t", EventType.SESSION_FAILURE, "failed", {"attempts": 1}, GENESIS_HASH)
        b = AuditEvent("evt-4", "t", EventType.SESSION_FAILURE, "failed", {"attempts": 2}, GENESIS_HASH)
        assert a.compute_hash() != b.compute_hash()


class TestEventLogger:
    """Tests for EventLogger."""

    @pytest.mark.unit
    def test_creates_directory(self, audit_log_path):
        """Test that the log directory is created."""
        EventLogger(str(audit_log_path))
        assert audit_log_path.parent.is_dir()

    @pytest.mark.unit
    def test_first_event_links_to_genesis(self, event_logger):
        event = event_logger.log_event(EventType.SESSION_START, "Verification session started")
        assert event.hash_chain == GENESIS_HASH
        assert event_logger.get_event_count() == 1

    @pytest.mark.unit
    def test_events_are_chained(self, event_logger):
        """Each event carries the hash of the one before it."""
        first = event_logger.log_event(EventType.DEVICE_CLAIM, "Device claimed")
        second = event_logger.log_event(EventType.DEVICE_RELEASE, "Device released")
        assert second.hash_chain == first.compute_hash()
        assert event_logger.get_last_hash() == second.compute_hash()

    @pytest.mark.unit
    def test_verify_chain_valid(self, event_logger):
        for event_type in (EventType.SESSION_START, EventType.DEVICE_CLAIM,
                           EventType.VERIFY_START, EventType.SCAN_RESULT):
            event_logger.log_event(event_type, event_type.value)

        is_valid, error = event_logger.verify_chain()

        assert is_valid is True
        assert error is None

    @pytest.mark.unit
    def test_verify_chain_missing_file(self, audit_log_path):
        logger = EventLogger(str(audit_log_path))
        assert logger.verify_chain() == (True, None)

    @pytest.mark.unit
    def test_tampering_detected(self, event_logger, audit_log_path):
        """Editing an earlier event breaks the chain after it."""
        event_logger.log_event(EventType.SCAN_RESULT, "no match", {"result": "verify-no-match"})
        event_logger.log_event(EventType.SESSION_FAILURE, "failed")

        lines = audit_log_path.read_text().splitlines()
        data = json.loads(lines[0])
        data['metadata']['result'] = "verify-match"
        lines[0] = json.dumps(data, sort_keys=True)
        audit_log_path.write_text("\n".join(lines) + "\n")

        is_valid, error = event_logger.verify_chain()

        assert is_valid is False
        assert "event 1" in error

    @pytest.mark.unit
    def test_deleted_event_detected(self, event_logger, audit_log_path):
        for i in range(3):
            event_logger.log_event(EventType.DEVICE_CLAIM, f"claim {i}")

        lines = audit_log_path.read_text().splitlines()
        del lines[1]
        audit_log_path.write_text("\n".join(lines) + "\n")

        assert event_logger.verify_chain()[0] is False

    @pytest.mark.unit
    def test_corrupt_line_reported(self, event_logger, audit_log_path):
        event_logger.log_event(EventType.SESSION_START, "start")
        with open(audit_log_path, 'a') as f:
            f.write("not json\n")

        is_valid, error = event_logger.verify_chain()

        assert is_valid is False
        assert error.startswith("Error verifying chain")

    @pytest.mark.unit
    def test_resumes_existing_chain(self, audit_log_path):
        """A new logger on the same file continues the chain."""
        first_logger = EventLogger(str(audit_log_path))
        first_logger.log_event(EventType.SESSION_START, "first session")
        last_hash = first_logger.get_last_hash()

        second_logger = EventLogger(str(audit_log_path))
        event = second_logger.log_event(EventType.SESSION_START, "second session")

        assert second_logger.get_event_count() == 2
        assert event.hash_chain == last_hash
        assert second_logger.verify_chain() == (True, None)

    @pytest.mark.unit
    @pytest.mark.parametrize("last_line", [
        "{not json",
        '{"event_id": "x"}',
        '{"event_id": "x", "timestamp": "t", "event_type": "bogus", "details": "", "hash_chain": ""}',
        "5",
    ])
    def test_unreadable_tail_refuses_to_resume(self, audit_log_path, last_line):
        first_logger = EventLogger(str(audit_log_path))
        first_logger.log_event(EventType.SESSION_START, "first session")
        with open(audit_log_path, 'a') as f:
            f.write(last_line + "\n")

        with pytest.raises(AuditLogError, match="Cannot resume audit log"):
            EventLogger(str(audit_log_path))

        # Nothing was appended after the bad line
        with open(audit_log_path) as f:
            assert f.read().splitlines()[-1] == last_line

    @pytest.mark.unit
    def test_recent_events_newest_first(self, event_logger):
        for i in range(5):
            event_logger.log_event(EventType.SCAN_RESULT, f"scan {i}")

        recent = event_logger.get_recent_events(2)

        assert [e.details for e in recent] == ["scan 4", "scan 3"]

    @pytest.mark.unit
    def test_events_by_type(self, event_logger):
        event_logger.log_event(EventType.DEVICE_CLAIM, "claim")
        event_logger.log_event(EventType.SCAN_RESULT, "scan")
        event_logger.log_event(EventType.DEVICE_CLAIM, "claim again")

        claims = event_logger.get_events_by_type(EventType.DEVICE_CLAIM)
        assert [e.details for e in claims] == ["claim again", "claim"]
        assert len(event_logger.get_events_by_type(EventType.DEVICE_CLAIM, limit=1)) == 1
        assert event_logger.get_events_by_type(EventType.CLEANUP_ERROR) == []

    @pytest.mark.unit
    def test_export_log(self, event_logger, temp_dir):
        event_logger.log_event(EventType.SESSION_SUCCESS, "matched")
        target = temp_dir / "export.log"

        assert event_logger.export_log(str(target)) is True
        assert EventLogger(str(target)).verify_chain() == (True, None)

    @pytest.mark.unit
    def test_export_missing_source(self, temp_dir):
        logger = EventLogger(str(temp_dir / "never-written.log"))
        assert logger.export_log(str(temp_dir / "out.log")) is False

    @pytest.mark.unit
    def test_concurrent_logging(self, event_logger):
        """Concurrent writers keep the chain intact."""
        def write(n):
            for i in range(20):
                event_logger.log_event(EventType.SCAN_RESULT, f"thread {n} scan {i}")

        threads = [threading.Thread(target=write, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert event_logger.get_event_count() == 80
        assert event_logger.verify_chain() == (True, None)
