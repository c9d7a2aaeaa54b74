"""
Verification Session - Claim / Verify / Release State Machine

Drives a DeviceProxy through one fingerprint authentication attempt:

    IDLE -> CLAIMED -> VERIFYING -> SUCCEEDED | FAILED

A completed scan that does not match is retried on a fresh claim until
max_attempts non-matching scans have been seen. Remote call failures are
never retried. The claim taken for each cycle is released before the
session reports anything, whichever way the cycle ends.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, Optional, Any

from ..constants import Fprintd, Retries
from ..event_logger import EventLogger, EventType
from ..logging_config import get_logger
from ..utils.error_handling import ErrorCategory, handle_error
from .device_proxy import DeviceProxy, RemoteError, ScanResult, VerificationEvent

logger = get_logger(__name__)


class SessionState(Enum):
    """State of a verification session"""
    IDLE = "idle"
    CLAIMED = "claimed"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.SUCCEEDED, SessionState.FAILED)


class FailureReason(Enum):
    """Why a session ended in FAILED"""
    REMOTE_ERROR = "remote_error"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    CONNECTION_LOST = "connection_lost"


@dataclass
class VerificationOutcome:
    """Final result of a verification session"""
    success: bool
    attempts: int
    reason: Optional[FailureReason] = None
    error: Optional[RemoteError] = None
    cleanup_error: Optional[RemoteError] = None

    @property
    def message(self) -> str:
        if self.success:
            return "Fingerprint matched"
        if self.reason is FailureReason.ATTEMPTS_EXHAUSTED:
            return f"No match after {self.attempts} attempt(s)"
        if self.reason is FailureReason.CONNECTION_LOST:
            return "Scanner stopped reporting before a match"
        return str(self.error) if self.error else "Remote call failed"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'success': self.success,
            'attempts': self.attempts,
            'reason': self.reason.value if self.reason else None,
            'message': self.message,
            'error': self.error.to_dict() if self.error else None,
            'cleanup_error': self.cleanup_error.to_dict() if self.cleanup_error else None,
        }


class DeviceClaim:
    """
    Holds a claim on a device for the duration of a with-block.

    Release runs on every exit from the block. A failed release never
    replaces an exception raised inside the block; it is kept on
    release_error for the caller to report.
    """

    def __init__(self, device: DeviceProxy, identity: str):
        self.device = device
        self.identity = identity
        self.acquired = False
        self.released = False
        self.release_error: Optional[RemoteError] = None

    def __enter__(self) -> 'DeviceClaim':
        self.device.claim(self.identity)
        self.acquired = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            self.device.release()
            self.released = True
        except RemoteError as e:
            self.release_error = e
        return False


class VerificationSession:
    """
    One fingerprint authentication attempt against one device.

    A session is single use: run() may be called once, and the
    attempt counter and state belong to this instance only.
    """

    def __init__(self, device: DeviceProxy,
                 max_attempts: int = Retries.VERIFY_ATTEMPTS,
                 username: str = "",
                 finger: str = Fprintd.ANY_FINGER,
                 event_logger: Optional[EventLogger] = None,
                 notify: Optional[Callable[[str], None]] = None):
        """
        Initialize a verification session.

        Args:
            device: Scanner to verify against
            max_attempts: Number of non-matching scans allowed before giving up
            username: Identity passed to Claim (empty means the calling user)
            finger: Finger selector passed to VerifyStart
            event_logger: Optional audit log for session events
            notify: Optional callback for user-facing guidance messages
        """
        if max_attempts < Retries.MIN_VERIFY_ATTEMPTS:
            raise ValueError(f"max_attempts must be at least {Retries.MIN_VERIFY_ATTEMPTS}, got {max_attempts}")

        self.device = device
        self.max_attempts = max_attempts
        self.username = username
        self.finger = finger
        self.event_logger = event_logger
        self.notify = notify

        self.attempts = 0
        self.state = SessionState.IDLE
        self.outcome: Optional[VerificationOutcome] = None

    def run(self) -> VerificationOutcome:
        """
        Run the session to a terminal state.

        Returns:
            VerificationOutcome describing success or the failure reason
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Session already run (state: {self.state.value})")

        self._audit(EventType.SESSION_START, "Verification session started", {
            'device': self.device.object_path,
            'max_attempts': self.max_attempts,
            'finger': self.finger,
        })

        events = iter(self.device.events())

        while True:
            claim = DeviceClaim(self.device, self.username)
            try:
                with claim:
                    self._on_claimed()
                    self.device.start_verification(self.finger)
                    self._set_state(SessionState.VERIFYING)
                    self._audit(EventType.VERIFY_START, f"Verification started (finger: {self.finger})")
                    result = self._await_scan(events)
                    if result is ScanResult.NO_MATCH:
                        self.attempts += 1
            except RemoteError as e:
                self._record_release(claim)
                handle_error(e, "verification_cycle", ErrorCategory.DEVICE,
                             additional_context={'attempts': self.attempts})
                return self._fail(FailureReason.REMOTE_ERROR, error=e,
                                  cleanup_error=claim.release_error)
            except BaseException:
                # Release already ran; report it before the original error propagates
                self._record_release(claim)
                raise

            self._record_release(claim)

            if result is None:
                return self._fail(FailureReason.CONNECTION_LOST,
                                  cleanup_error=claim.release_error)

            if result is ScanResult.MATCH:
                if claim.release_error is not None:
                    return self._fail(FailureReason.REMOTE_ERROR, error=claim.release_error)
                return self._succeed()

            if self.attempts >= self.max_attempts:
                self._notify("Max attempts exhausted.")
                return self._fail(FailureReason.ATTEMPTS_EXHAUSTED,
                                  cleanup_error=claim.release_error)

            if claim.release_error is not None:
                return self._fail(FailureReason.REMOTE_ERROR, error=claim.release_error)

            self._notify("Please retry scanning your finger...")

    def _await_scan(self, events: Iterator[VerificationEvent]) -> Optional[ScanResult]:
        """Block until a recognized scan result arrives; None if the stream ends"""
        for event in events:
            result = event.scan_result(self.device.object_path)
            if result is None:
                logger.debug(f"Ignoring event {event.member}({event.result!r}) from {event.object_path}")
                continue

            logger.info(f"Scan result: {result.value}")
            self._audit(EventType.SCAN_RESULT, f"Scan result: {result.value}", {
                'result': result.value,
                'attempt': self.attempts + 1,
            })
            return result

        logger.warning("Event stream ended before a scan result arrived")
        return None

    def _on_claimed(self):
        # Retry cycles re-claim while the session stays VERIFYING
        if self.state is SessionState.IDLE:
            self._set_state(SessionState.CLAIMED)
        self._audit(EventType.DEVICE_CLAIM, "Device claimed", {'username': self.username})

    def _record_release(self, claim: DeviceClaim):
        if not claim.acquired:
            return
        if claim.release_error is not None:
            handle_error(claim.release_error, "release_device", ErrorCategory.DEVICE)
            self._audit(EventType.CLEANUP_ERROR, "Device release failed",
                        claim.release_error.to_dict())
        else:
            self._audit(EventType.DEVICE_RELEASE, "Device released")

    def _set_state(self, state: SessionState):
        if state is not self.state:
            logger.debug(f"Session state: {self.state.value} -> {state.value}")
            self.state = state

    def _succeed(self) -> VerificationOutcome:
        self._set_state(SessionState.SUCCEEDED)
        self.outcome = VerificationOutcome(success=True, attempts=self.attempts)
        logger.security(f"Verification succeeded after {self.attempts} failed attempt(s)")
        self._audit(EventType.SESSION_SUCCESS, "Verification succeeded", self.outcome.to_dict())
        return self.outcome

    def _fail(self, reason: FailureReason,
              error: Optional[RemoteError] = None,
              cleanup_error: Optional[RemoteError] = None) -> VerificationOutcome:
        self._set_state(SessionState.FAILED)
        self.outcome = VerificationOutcome(
            success=False,
            attempts=self.attempts,
            reason=reason,
            error=error,
            cleanup_error=cleanup_error,
        )
        logger.security(f"Verification failed: {reason.value} ({self.outcome.message})")
        self._audit(EventType.SESSION_FAILURE, f"Verification failed: {reason.value}", self.outcome.to_dict())
        return self.outcome

    def _notify(self, message: str):
        logger.info(message)
        if self.notify:
            self.notify(message)

    def _audit(self, event_type: EventType, details: str, metadata: Optional[Dict] = None):
        if self.event_logger:
            self.event_logger.log_event(event_type, details, metadata)
