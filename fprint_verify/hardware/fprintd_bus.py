"""
fprintd Bus Adapter - DeviceProxy over the D-Bus System Bus

Talks to the fprintd service (net.reactivated.Fprint) through pydbus.
Method calls are synchronous. VerifyStatus signals are delivered by a GLib
main loop running on a background thread and handed to the caller through
an ordered in-process queue.

Related material:
- https://fprint.freedesktop.org/fprintd-dev/Device.html#Device::VerifyStatus
"""

import logging
import queue
import threading
from typing import Iterator, Optional, Tuple

from ..auth.device_proxy import DeviceError, DeviceProxy, RemoteError, VerificationEvent
from ..constants import Fprintd, Timeouts

logger = logging.getLogger(__name__)

# Optional imports with graceful fallback
try:
    from gi.repository import GLib
    from pydbus import SystemBus
    DBUS_AVAILABLE = True
except ImportError:
    GLib = None
    SystemBus = None
    DBUS_AVAILABLE = False

# Exceptions raised by failed bus calls
BUS_ERRORS: Tuple[type, ...] = (GLib.Error,) if DBUS_AVAILABLE else ()

_REMOTE_ERROR_PREFIX = "GDBus.Error:"

# Queued after the last event once the connection is gone
_END_OF_STREAM = object()


class BusUnavailableError(DeviceError):
    """The system bus or the fprintd service cannot be reached"""
    pass


def split_bus_error(message: str) -> Tuple[Optional[str], str]:
    """
    Split a GDBus error message into (error_name, text).

    'GDBus.Error:net.reactivated.Fprint.Error.AlreadyInUse: Device was already claimed'
    becomes ('net.reactivated.Fprint.Error.AlreadyInUse', 'Device was already claimed').
    """
    if not message.startswith(_REMOTE_ERROR_PREFIX):
        return (None, message)
    name, _, text = message[len(_REMOTE_ERROR_PREFIX):].partition(':')
    return (name.strip() or None, text.strip() or message)


def connect_system_bus():
    """
    Connect to the D-Bus system bus.

    Raises:
        BusUnavailableError: If pydbus/PyGObject are missing or the bus is unreachable
    """
    if not DBUS_AVAILABLE:
        raise BusUnavailableError("D-Bus support not available. Install: pydbus, PyGObject")
    try:
        return SystemBus()
    except BUS_ERRORS as e:
        raise BusUnavailableError(f"Cannot connect to system bus: {e}") from e


class FprintdDevice(DeviceProxy):
    """
    One fprintd scanner device on the system bus.

    Use as a context manager, or call open() before and close() after use:

        with FprintdDevice() as device:
            VerificationSession(device).run()
    """

    def __init__(self, object_path: str = Fprintd.DEFAULT_DEVICE_PATH,
                 bus=None, timeout: Optional[float] = Timeouts.VERIFY_WAIT,
                 main_loop=None):
        """
        Initialize the device adapter.

        Args:
            object_path: fprintd device object path
            bus: Connected bus (defaults to the system bus, connected on open())
            timeout: Seconds to wait for each event before ending the stream
                     (None waits forever)
            main_loop: Loop that dispatches signals (defaults to a GLib.MainLoop)
        """
        self._object_path = object_path
        self._bus = bus
        self.timeout = timeout
        self._main_loop = main_loop

        self._device = None
        self._subscription = None
        self._loop_thread: Optional[threading.Thread] = None
        self._queue: "queue.Queue" = queue.Queue()
        self._closed = False

    @property
    def object_path(self) -> str:
        return self._object_path

    # ========== CONNECTION ==========

    def open(self) -> 'FprintdDevice':
        """
        Resolve the device object and subscribe to its status signals.

        Raises:
            BusUnavailableError: If the bus or the fprintd service is unreachable
        """
        if self._bus is None:
            self._bus = connect_system_bus()

        try:
            remote = self._bus.get(Fprintd.BUS_NAME, self._object_path)
            self._device = remote[Fprintd.DEVICE_INTERFACE]

            # Subscribe before any Claim so that no VerifyStatus can be missed
            self._subscription = self._bus.subscribe(
                object=self._object_path,
                iface=Fprintd.DEVICE_INTERFACE,
                signal=Fprintd.VERIFY_STATUS,
                signal_fired=self._on_signal,
            )
            self._bus.con.connect('closed', self._on_connection_closed)
        except BUS_ERRORS as e:
            if self._subscription is not None:
                self._subscription.unsubscribe()
                self._subscription = None
            raise BusUnavailableError(
                f"Cannot reach {Fprintd.BUS_NAME} at {self._object_path}: {e}"
            ) from e

        self._start_main_loop()
        logger.debug(f"Subscribed to {Fprintd.VERIFY_STATUS} on {self._object_path}")
        return self

    def close(self):
        """Unsubscribe, stop the signal loop and end the event stream"""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if self._main_loop is not None:
            self._main_loop.quit()
        if self._loop_thread is not None:
            self._loop_thread.join(timeout=Timeouts.MAIN_LOOP_JOIN)
            self._loop_thread = None

        self._end_stream()

    def _start_main_loop(self):
        if self._main_loop is None:
            if GLib is None:
                raise BusUnavailableError("GLib main loop not available. Install: PyGObject")
            self._main_loop = GLib.MainLoop()

        self._loop_thread = threading.Thread(
            target=self._main_loop.run,
            name="fprintd-signals",
            daemon=True,
        )
        self._loop_thread.start()

    # ========== SIGNAL DELIVERY ==========

    def _on_signal(self, sender, object_path, interface, member, params):
        result = params[0] if params else ""
        done = bool(params[1]) if len(params) > 1 else True
        logger.debug(f"{member}({result!r}, done={done}) from {object_path}")
        self._queue.put(VerificationEvent(
            object_path=object_path,
            interface=interface,
            member=member,
            result=result,
            done=done,
        ))

    def _on_connection_closed(self, connection, remote_peer_vanished, error):
        logger.warning(f"Bus connection closed (peer vanished: {remote_peer_vanished})")
        self._end_stream()

    def _end_stream(self):
        if not self._closed:
            self._closed = True
            self._queue.put(_END_OF_STREAM)

    def events(self) -> Iterator[VerificationEvent]:
        while True:
            if self._closed and self._queue.empty():
                return
            try:
                item = self._queue.get(timeout=self.timeout)
            except queue.Empty:
                logger.warning(f"No scanner event within {self.timeout}s")
                return
            if item is _END_OF_STREAM:
                return
            yield item

    # ========== REMOTE METHODS ==========

    def _call(self, method: str, *args):
        if self._device is None:
            raise RemoteError(method, "Device not opened")
        logger.debug(f"Calling {Fprintd.DEVICE_INTERFACE}.{method}{args}")
        try:
            return getattr(self._device, method)(*args)
        except BUS_ERRORS as e:
            name, text = split_bus_error(getattr(e, 'message', None) or str(e))
            raise RemoteError(method, text, name=name) from e

    def claim(self, identity: str) -> None:
        self._call(Fprintd.CLAIM, identity)

    def release(self) -> None:
        self._call(Fprintd.RELEASE)

    def start_verification(self, mode: str = Fprintd.ANY_FINGER) -> None:
        self._call(Fprintd.VERIFY_START, mode)
