# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
User-facing notifications.

The core raises alerts as side-effect signals through an injected sink.
How and for how long they are displayed is up to the caller.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class AlertVariant(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Alert:
    """A single notification."""
    variant: AlertVariant
    title: str
    message: str


AlertSink = Callable[[Alert], None]


def log_alert(alert: Alert) -> None:
    """Default sink: route the alert to the module logger."""
    level = {
        AlertVariant.INFO: logging.INFO,
        AlertVariant.SUCCESS: logging.INFO,
        AlertVariant.WARNING: logging.WARNING,
        AlertVariant.ERROR: logging.ERROR,
    }[alert.variant]
    logger.log(level, f"{alert.title}: {alert.message}")


class AlertRecorder:
    """Sink that keeps every alert it receives (used by the CLI and tests)."""

    def __init__(self):
        self.alerts: List[Alert] = []

    def __call__(self, alert: Alert) -> None:
        self.alerts.append(alert)
        log_alert(alert)

    @property
    def last(self):
        return self.alerts[-1] if self.alerts else None

    def clear(self) -> None:
        self.alerts.clear()
