"""
Withdrawal-period calculator.

    clearance_date = treatment_end_date + withdrawal_days
    days_remaining = clearance_date - today

All withdrawal date math flows through this module. Calendar month/year
rollover and leap days are handled by datetime.date arithmetic.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "Withdrawal active"
STATUS_CLEAR = "Clear to harvest"


@dataclass(frozen=True)
class WithdrawalStatus:
    """Result of a withdrawal calculation for one treatment."""

    treatment_end_date: date
    withdrawal_days: int
    clearance_date: date
    days_remaining: int  # negative once the clearance date has passed
    cleared: bool
    status: str

    def to_dict(self) -> dict:
        d = asdict(self)
        d["treatment_end_date"] = self.treatment_end_date.isoformat()
        d["clearance_date"] = self.clearance_date.isoformat()
        return d


def parse_date(value) -> date:
    """Coerce a date, datetime or ISO YYYY-MM-DD string to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from e
    raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def _check_days(days) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValueError(f"Withdrawal days must be an integer, got {days!r}")
    if days < 0:
        raise ValueError(f"Withdrawal days must be non-negative, got {days}")
    return days


def add_days(d, days: int) -> date:
    """Return the date exactly *days* days after *d*."""
    return parse_date(d) + timedelta(days=_check_days(days))


def days_between(start, end) -> int:
    """Signed whole days from *start* to *end*."""
    return (parse_date(end) - parse_date(start)).days


def compute_withdrawal(end_date, withdrawal_days: int, today=None) -> WithdrawalStatus:
    """
    Compute clearance date and days remaining for a treatment.

    Args:
        end_date: Last day of antimicrobial administration.
        withdrawal_days: Withdrawal period in days (non-negative).
        today: Reference date; defaults to the local current date.
    """
    end = parse_date(end_date)
    ref = parse_date(today) if today is not None else date.today()
    clearance = add_days(end, withdrawal_days)
    remaining = (clearance - ref).days
    cleared = remaining <= 0
    return WithdrawalStatus(
        treatment_end_date=end,
        withdrawal_days=withdrawal_days,
        clearance_date=clearance,
        days_remaining=remaining,
        cleared=cleared,
        status=STATUS_CLEAR if cleared else STATUS_ACTIVE,
    )
