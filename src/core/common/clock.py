import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], int]

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def from_epoch_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_base36(value: int) -> str:
    if value < 0:
        return "-" + to_base36(-value)
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))
