from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class CirculationPolicy:
    fine_per_day: Decimal = Decimal("0.50")
    loan_duration_days: int = 14
    max_loans_per_user: int = 5
    lock_timeout_ms: int = 5000
    lock_retries: int = 3
    retry_backoff: float = 0.05

    def __post_init__(self):
        if self.fine_per_day < 0:
            raise ImproperlyConfigured("LIBRARY_FINE_PER_DAY must be >= 0")
        if self.loan_duration_days < 1:
            raise ImproperlyConfigured("LIBRARY_LOAN_DURATION_DAYS must be >= 1")
        if self.max_loans_per_user < 1:
            raise ImproperlyConfigured("LIBRARY_MAX_LOANS_PER_USER must be >= 1")
        if self.lock_retries < 1:
            raise ImproperlyConfigured("LIBRARY_LOCK_RETRIES must be >= 1")

    @classmethod
    def from_settings(cls):
        try:
            fine_per_day = Decimal(str(getattr(settings, "LIBRARY_FINE_PER_DAY", "0.50")))
        except InvalidOperation:
            raise ImproperlyConfigured("LIBRARY_FINE_PER_DAY must be a decimal")

        return cls(
            fine_per_day=fine_per_day,
            loan_duration_days=_setting("LIBRARY_LOAN_DURATION_DAYS", 14, int),
            max_loans_per_user=_setting("LIBRARY_MAX_LOANS_PER_USER", 5, int),
            lock_timeout_ms=_setting("LIBRARY_LOCK_TIMEOUT_MS", 5000, int),
            lock_retries=_setting("LIBRARY_LOCK_RETRIES", 3, int),
            retry_backoff=_setting("LIBRARY_RETRY_BACKOFF", 0.05, float),
        )


def _setting(name, default, cast):
    value = getattr(settings, name, default)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ImproperlyConfigured(f"{name} must be {cast.__name__}, got {value!r}")
