"""Logger lookup for the telemetry packages.

The capture agent runs inside someone else's process, so nothing here touches
handlers. ``shared.logging.json.configure_logging`` is the only place that
installs one, and it records that it did so that a second package in the same
process does not replace it.
"""

from __future__ import annotations

import logging

ROOT_NAMESPACE = "telemetry"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``telemetry`` namespace, e.g. ``telemetry.capture.agent``."""
    return logging.getLogger(f"{ROOT_NAMESPACE}.{name}")


def is_configured() -> bool:
    return _configured


def mark_configured():
    global _configured
    _configured = True
