import html
import random
import re
import string
import uuid
from typing import Any

from src.core.common.clock import epoch_millis, to_base36

ID_PREFIX = "val_"
MIN_ID_LENGTH = 10
DEFAULT_MAX_LENGTH = 30

_ID_PATTERN = re.compile(r"val_[A-Za-z0-9_-]+")
_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]*>")
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)
_JAVASCRIPT_URI = re.compile(r"javascript:", re.IGNORECASE)
_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#039;", "'"),
    ("&amp;", "&"),
)
_FALLBACK_ALPHABET = string.digits + string.ascii_lowercase


def _decode_entities(value: str) -> str:
    for entity, char in _ENTITIES:
        value = value.replace(entity, char)
    return value


def _sanitize_pass(value: str, max_length: int) -> str:
    value = _SCRIPT_BLOCK.sub("", value)
    value = _TAG.sub("", value)
    value = _decode_entities(value)
    value = _EVENT_HANDLER.sub("", value)
    value = _JAVASCRIPT_URI.sub("", value)
    return value.strip()[:max_length]


def sanitize_text(value: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Strip markup from untrusted text and bound its length.

    Every step of a pass only ever shortens the value, so repeating passes until
    nothing changes terminates, and the result is a fixed point: sanitizing it
    again returns it unchanged.
    """
    if not isinstance(value, str):
        return ""
    max_length = max(0, max_length)
    current = value
    while True:
        cleaned = _sanitize_pass(current, max_length)
        if cleaned == current:
            return cleaned
        current = cleaned


def is_valid_id(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    if len(value) < MIN_ID_LENGTH:
        return False
    return _ID_PATTERN.fullmatch(value) is not None


def generate_id() -> str:
    try:
        return f"{ID_PREFIX}{uuid.uuid4()}"
    except NotImplementedError:
        # no OS random source
        suffix = "".join(random.choices(_FALLBACK_ALPHABET, k=8))
        return f"{ID_PREFIX}{to_base36(epoch_millis())}_{suffix}"


def escape_for_display(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return html.escape(value, quote=True)


def coerce_gender(value: Any) -> str:
    return "female" if value == "female" else "male"
