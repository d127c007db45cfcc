from datetime import timezone, tzinfo
from typing import Optional

from src.core.common.clock import from_epoch_millis

THEMES = {
    "male": ("theme-male", "hearts", "romanticMale"),
    "female": ("theme-female", "stars", "romanticFemale"),
}


def format_time(timestamp: Optional[int], *, tz: tzinfo = timezone.utc) -> str:
    if not timestamp:
        return "-"
    moment = from_epoch_millis(timestamp).astimezone(tz)
    hour = moment.hour % 12 or 12
    return f"{moment:%b} {moment.day}, {hour}:{moment:%M %p}"


def format_celebration_date(
    timestamp: Optional[int], *, tz: tzinfo = timezone.utc
) -> Optional[str]:
    if not timestamp:
        return None
    moment = from_epoch_millis(timestamp).astimezone(tz)
    return f"Valentine's Day {moment:%A}, {moment:%B} {moment.day}, {moment.year}"


def subject_pronoun(gender: Optional[str]) -> str:
    if gender == "female":
        return "She"
    if gender == "male":
        return "He"
    return "They"


def object_pronoun(gender: Optional[str]) -> str:
    if gender == "female":
        return "her"
    if gender == "male":
        return "him"
    return "them"


def theme_for(gender: str) -> tuple[str, str, str]:
    """Return (body theme class, particle theme, music track) for the proposer gender."""
    return THEMES.get(gender, THEMES["male"])
