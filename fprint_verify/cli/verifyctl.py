#!/usr/bin/env python3
"""
fprint-verify - Fingerprint Verification CLI

Authenticates the local user against an fprintd fingerprint scanner.
Exits 0 when the fingerprint matched and 1 otherwise.

Usage:
    fprint-verify
    fprint-verify --max-attempts 5 --timeout 30
    fprint-verify --user alice --finger right-index-finger
    fprint-verify --config /etc/fprint-verify.yaml --audit-log /var/log/fprint-verify/audit.log
    fprint-verify --json

Environment:
    FPRINT_VERIFY_MAX_ATTEMPTS   Non-matching scans allowed (default: 3)
    FPRINT_VERIFY_DEVICE         fprintd device object path
    FPRINT_VERIFY_USER           Username passed to Claim
    FPRINT_VERIFY_FINGER         Finger to verify (default: any)
    FPRINT_VERIFY_TIMEOUT        Seconds to wait for each scan event
    FPRINT_VERIFY_AUDIT_LOG      Path to the hash-chained audit log
    FPRINT_VERIFY_VERBOSE        Enable verbose logging
"""

import argparse
import json
import sys
from typing import Callable, List, Optional

from ..auth import DeviceError, VerificationOutcome, VerificationSession
from ..config import ConfigError, VerifyConfig, load_config
from ..event_logger import AuditLogError, EventLogger
from ..hardware import FprintdDevice
from ..logging_config import configure_from_environment
from ..utils.error_handling import ErrorCategory, handle_error

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


# ANSI colors
class Colors:
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'

    @classmethod
    def disable(cls):
        for attr in ['RESET', 'BOLD', 'RED', 'GREEN', 'YELLOW']:
            setattr(cls, attr, '')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fprint-verify',
        description='Verify the local user with the fingerprint scanner',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--config', '-c', help='Path to YAML or JSON config file')
    parser.add_argument('--device', '-d', dest='device_path', help='fprintd device object path')
    parser.add_argument('--user', '-u', dest='username', help='Username to claim the device for')
    parser.add_argument('--finger', '-f', help='Finger to verify (default: any)')
    parser.add_argument('--max-attempts', '-n', type=int, help='Non-matching scans allowed')
    parser.add_argument('--timeout', '-t', type=float, dest='verify_timeout',
                        help='Seconds to wait for each scan event')
    parser.add_argument('--audit-log', help='Append session events to this hash-chained log')
    parser.add_argument('--log-file', help='Write diagnostic logs to this file')
    parser.add_argument('--json', action='store_true', help='Print the outcome as JSON')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')
    parser.add_argument('--trace', action='store_true', help=argparse.SUPPRESS)
    parser.add_argument('--no-color', action='store_true', help='Disable colors')
    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict:
    return {
        'device_path': args.device_path,
        'username': args.username,
        'finger': args.finger,
        'max_attempts': args.max_attempts,
        'verify_timeout': args.verify_timeout,
        'audit_log': args.audit_log,
        'log_file': args.log_file,
        'verbose': args.verbose or None,
    }


def run_verification(config: VerifyConfig,
                     device_factory: Callable[..., object] = FprintdDevice,
                     notify: Optional[Callable[[str], None]] = None) -> VerificationOutcome:
    """
    Open the scanner and run one verification session.

    Raises:
        DeviceError: If the bus or device cannot be reached
        OSError: If the audit log cannot be written
    """
    event_logger = EventLogger(config.audit_log) if config.audit_log else None
    device = device_factory(object_path=config.device_path, timeout=config.verify_timeout)

    with device:
        session = VerificationSession(
            device,
            max_attempts=config.max_attempts,
            username=config.username,
            finger=config.finger,
            event_logger=event_logger,
            notify=notify,
        )
        return session.run()


def print_outcome(outcome: VerificationOutcome, as_json: bool = False):
    if as_json:
        print(json.dumps(outcome.to_dict(), indent=2))
        return

    if outcome.success:
        print(f"{Colors.GREEN}Verification successful ✅{Colors.RESET}")
        return

    print(f"{Colors.RED}Verification failed ❌{Colors.RESET}")
    print(f"  Reason: {outcome.reason.value} - {outcome.message}")
    if outcome.cleanup_error:
        print(f"  {Colors.YELLOW}Also failed to release device: {outcome.cleanup_error}{Colors.RESET}")


def _report_error(error: BaseException, operation: str, category: ErrorCategory) -> int:
    handle_error(error, operation, category)
    print(f"{Colors.RED}An error occurred: {error}{Colors.RESET}", file=sys.stderr)
    return EXIT_FAILURE


def main(argv: Optional[List[str]] = None,
         device_factory: Callable[..., object] = FprintdDevice) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_color or not sys.stdout.isatty():
        Colors.disable()

    configure_from_environment(verbose=args.verbose, trace=args.trace, log_file=args.log_file)

    try:
        config = load_config(args.config, overrides=_overrides_from_args(args))
    except ConfigError as e:
        return _report_error(e, "load_config", ErrorCategory.CONFIG)

    if config.log_file or config.verbose or config.json_logs:
        configure_from_environment(
            verbose=config.verbose,
            trace=args.trace,
            log_file=config.log_file,
            json_format=config.json_logs,
        )

    notify = None if args.json else print
    if notify:
        print("Place your finger on the scanner...")

    try:
        outcome = run_verification(config, device_factory=device_factory, notify=notify)
    except DeviceError as e:
        return _report_error(e, "open_device", ErrorCategory.TRANSPORT)
    except AuditLogError as e:
        return _report_error(e, "open_audit_log", ErrorCategory.FILESYSTEM)
    except OSError as e:
        return _report_error(e, "write_audit_log", ErrorCategory.FILESYSTEM)
    except KeyboardInterrupt:
        print("\nVerification cancelled.", file=sys.stderr)
        return EXIT_FAILURE

    print_outcome(outcome, as_json=args.json)
    return EXIT_SUCCESS if outcome.success else EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
