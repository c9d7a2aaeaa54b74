"""
Event Logger - Append-Only Verification Audit Log with Hash Chain
Keeps a tamper-evident record of every verification session.
"""

import hashlib
import json
import logging
import os
import shutil
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Tuple

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


class AuditLogError(Exception):
    """Existing audit log cannot be read or its last entry cannot be parsed"""
    pass


class EventType(Enum):
    """Types of audit events"""
    SESSION_START = "session_start"
    DEVICE_CLAIM = "device_claim"
    DEVICE_RELEASE = "device_release"
    VERIFY_START = "verify_start"
    SCAN_RESULT = "scan_result"
    SESSION_SUCCESS = "session_success"
    SESSION_FAILURE = "session_failure"
    CLEANUP_ERROR = "cleanup_error"


@dataclass
class AuditEvent:
    """A single event in the audit log"""
    event_id: str
    timestamp: str
    event_type: EventType
    details: str
    metadata: Dict
    hash_chain: str  # Hash of previous event

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            'event_id': self.event_id,
            'timestamp': self.timestamp,
            'event_type': self.event_type.value,
            'details': self.details,
            'metadata': self.metadata,
            'hash_chain': self.hash_chain
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def compute_hash(self) -> str:
        """Compute SHA-256 hash of this event, excluding hash_chain"""
        data = {
            'event_id': self.event_id,
            'timestamp': self.timestamp,
            'event_type': self.event_type.value,
            'details': self.details,
            'metadata': self.metadata
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()

    @classmethod
    def from_dict(cls, data: Dict) -> 'AuditEvent':
        return cls(
            event_id=data['event_id'],
            timestamp=data['timestamp'],
            event_type=EventType(data['event_type']),
            details=data['details'],
            metadata=data.get('metadata', {}),
            hash_chain=data['hash_chain']
        )


class EventLogger:
    """
    Tamper-evident audit logger using hash chains.

    Each event carries the hash of the previous one, so editing or removing
    an earlier line breaks every later link.
    """

    def __init__(self, log_file_path: str):
        """
        Initialize event logger.

        Args:
            log_file_path: Path to the log file
        """
        self.log_file_path = log_file_path
        self._lock = threading.Lock()
        self._last_hash: str = GENESIS_HASH
        self._event_count = 0

        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        self._load_existing_log()

    def _load_existing_log(self):
        """Load existing log file to resume chain"""
        if not os.path.exists(self.log_file_path):
            return

        # Appending after an unreadable tail would start a second chain
        try:
            lines = self._read_lines()
            if lines:
                self._last_hash = AuditEvent.from_dict(json.loads(lines[-1])).compute_hash()
                self._event_count = len(lines)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise AuditLogError(f"Cannot resume audit log {self.log_file_path}: {e}") from e

    def _read_lines(self) -> List[str]:
        with open(self.log_file_path, 'r') as f:
            return [line.strip() for line in f if line.strip()]

    def log_event(self, event_type: EventType, details: str, metadata: Optional[Dict] = None) -> AuditEvent:
        """
        Log an audit event.

        Args:
            event_type: Type of event
            details: Human-readable details
            metadata: Additional structured data

        Returns:
            The logged event
        """
        with self._lock:
            event = AuditEvent(
                event_id=str(uuid.uuid4()),
                timestamp=datetime.now(timezone.utc).isoformat(),
                event_type=event_type,
                details=details,
                metadata=metadata or {},
                hash_chain=self._last_hash
            )

            self._append_to_log(event)

            self._last_hash = event.compute_hash()
            self._event_count += 1

            return event

    def _append_to_log(self, event: AuditEvent):
        """Append event to log file"""
        try:
            with open(self.log_file_path, 'a') as f:
                f.write(event.to_json() + '\n')
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            logger.critical(f"Failed to write to audit log: {e}")
            raise

    def get_event_count(self) -> int:
        with self._lock:
            return self._event_count

    def get_last_hash(self) -> str:
        with self._lock:
            return self._last_hash

    def verify_chain(self) -> Tuple[bool, Optional[str]]:
        """
        Verify the integrity of the entire event chain.

        Returns:
            (is_valid, error_message)
        """
        if not os.path.exists(self.log_file_path):
            return (True, None)

        try:
            lines = self._read_lines()
            expected_hash = GENESIS_HASH

            for i, line in enumerate(lines):
                event = AuditEvent.from_dict(json.loads(line))

                if event.hash_chain != expected_hash:
                    return (False, f"Hash chain broken at event {i}: expected {expected_hash}, got {event.hash_chain}")

                expected_hash = event.compute_hash()

            return (True, None)

        except (OSError, ValueError, KeyError) as e:
            return (False, f"Error verifying chain: {e}")

    def get_recent_events(self, count: int = 100) -> List[AuditEvent]:
        """
        Get the most recent events.

        Args:
            count: Number of events to retrieve

        Returns:
            List of recent events (newest first)
        """
        if not os.path.exists(self.log_file_path):
            return []

        lines = self._read_lines()[-count:]
        return [AuditEvent.from_dict(json.loads(line)) for line in reversed(lines)]

    def get_events_by_type(self, event_type: EventType, limit: int = 100) -> List[AuditEvent]:
        """
        Get events of a specific type.

        Returns:
            List of matching events (newest first)
        """
        if not os.path.exists(self.log_file_path):
            return []

        events = []
        for line in reversed(self._read_lines()):
            if len(events) >= limit:
                break
            data = json.loads(line)
            if data['event_type'] == event_type.value:
                events.append(AuditEvent.from_dict(data))
        return events

    def export_log(self, output_path: str) -> bool:
        """
        Export the log to a new file (for archival).

        Returns:
            True if successful
        """
        try:
            shutil.copy2(self.log_file_path, output_path)
            return True
        except OSError as e:
            logger.error(f"Error exporting audit log: {e}")
            return False
