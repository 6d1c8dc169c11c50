"""Expiry status of stocked medications – date-only comparisons."""
import calendar
import enum
from datetime import date

EXPIRING_SOON_MONTHS = 3


class ExpiryStatus(str, enum.Enum):
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    VALID = "valid"

    @property
    def label(self):
        return {
            ExpiryStatus.EXPIRED: "Expired",
            ExpiryStatus.EXPIRING_SOON: "Expiring soon",
            ExpiryStatus.VALID: "Valid",
        }[self]


def add_months(d, months):
    """Shift a date by whole months, clamping to the last day of the target month."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def classify_expiry(expires_at, today=None, window_months=EXPIRING_SOON_MONTHS):
    """EXPIRED on or before today, EXPIRING_SOON within the window, VALID otherwise."""
    if expires_at is None:
        return ExpiryStatus.VALID
    today = today or date.today()
    if expires_at <= today:
        return ExpiryStatus.EXPIRED
    if expires_at <= add_months(today, window_months):
        return ExpiryStatus.EXPIRING_SOON
    return ExpiryStatus.VALID


def expiry_counts(medications, today=None):
    """Return dict with expired and expiring_soon totals."""
    today = today or date.today()
    counts = {"expired": 0, "expiring_soon": 0}
    for med in medications:
        status = classify_expiry(med.expires_at, today=today)
        if status is ExpiryStatus.EXPIRED:
            counts["expired"] += 1
        elif status is ExpiryStatus.EXPIRING_SOON:
            counts["expiring_soon"] += 1
    return counts
