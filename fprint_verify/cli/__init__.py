"""
CLI Module for fprint-verify

Provides the command-line front end:
- verifyctl: run one fingerprint verification and report the outcome

Usage:
    python -m fprint_verify.cli.verifyctl --max-attempts 3
"""

from .verifyctl import main as verifyctl_main, run_verification

__all__ = [
    'verifyctl_main',
    'run_verification',
]
