"""Error taxonomy for the CycleSync core.

"Not enough history yet" is never an error here: analytic functions return
explicit defaults or the ``insufficient_data`` verdict instead.
"""

from __future__ import annotations


class CycleCoreError(Exception):
    """Base class for all errors raised by the CycleSync core."""


class ValidationError(CycleCoreError, ValueError):
    """User input is malformed and must be corrected before it is stored.

    Raised for out-of-range temperatures, duplicate dates, overlapping
    periods and similar.  Never retried automatically.

    Attributes:
        field:   Name of the offending input field.
        message: Human-readable explanation suitable for the UI.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class SchedulingFailure(CycleCoreError):
    """The platform notification sink refused a schedule request.

    Typically means notification permission was revoked.  Non-fatal: the
    scheduler keeps the notification record with ``is_active=False``.
    """

    def __init__(self, notification_id: str, reason: str = "") -> None:
        super().__init__(f"Could not schedule {notification_id}: {reason or 'rejected'}")
        self.notification_id = notification_id
        self.reason = reason
