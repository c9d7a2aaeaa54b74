"""
Device Proxy - Capability Interface to a Remote Fingerprint Scanner

A DeviceProxy is bound to one remote device identity and exposes the three
remote operations a verification needs (claim, start verification, release)
plus the stream of status events the device emits. It holds no state of its
own beyond the identity; the transport behind it is an implementation detail.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from ..constants import Fprintd


class DeviceError(Exception):
    """Base exception for scanner device operations"""
    pass


class RemoteError(DeviceError):
    """A remote method call on the device failed"""

    def __init__(self, method: str, message: str, name: Optional[str] = None):
        """
        Args:
            method: Remote method that failed (e.g. 'Claim')
            message: Human-readable failure description
            name: Bus error name when the service supplied one
        """
        self.method = method
        self.message = message
        self.name = name
        super().__init__(f"{method} failed: {message}")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization"""
        return {
            'method': self.method,
            'message': self.message,
            'name': self.name,
        }


class ScanResult(Enum):
    """Recognized outcome of one verification cycle"""
    MATCH = Fprintd.RESULT_MATCH
    NO_MATCH = Fprintd.RESULT_NO_MATCH


@dataclass(frozen=True)
class VerificationEvent:
    """A status event received from the bus"""
    object_path: str
    result: str
    interface: str = Fprintd.DEVICE_INTERFACE
    member: str = Fprintd.VERIFY_STATUS
    done: bool = True

    def scan_result(self, object_path: str) -> Optional[ScanResult]:
        """
        Interpret this event for the device at object_path.

        Returns:
            The ScanResult, or None if the event is out of scope for the
            device or carries an unrecognized result.
        """
        if self.object_path != object_path:
            return None
        if self.interface != Fprintd.DEVICE_INTERFACE or self.member != Fprintd.VERIFY_STATUS:
            return None
        try:
            return ScanResult(self.result)
        except ValueError:
            return None


class DeviceProxy(ABC):
    """
    Handle to one remote scanner.

    Implementations raise RemoteError from claim, release and
    start_verification when the remote call fails.
    """

    @property
    @abstractmethod
    def object_path(self) -> str:
        """Identity of the device, used to scope events"""

    @abstractmethod
    def claim(self, identity: str) -> None:
        """Request exclusive ownership of the device for identity"""

    @abstractmethod
    def release(self) -> None:
        """Relinquish a previously acquired claim"""

    @abstractmethod
    def start_verification(self, mode: str = Fprintd.ANY_FINGER) -> None:
        """Begin a verification cycle against the enrolled finger(s) selected by mode"""

    def open(self) -> 'DeviceProxy':
        """Prepare the transport; returns self"""
        return self

    def close(self):
        """Tear down the transport and end the event stream"""

    def __enter__(self) -> 'DeviceProxy':
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @abstractmethod
    def events(self) -> Iterator[VerificationEvent]:
        """
        Iterate over status events in arrival order.

        Blocks until the next event arrives. The iterator ends when the
        underlying connection terminates.
        """
