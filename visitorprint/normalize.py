import re
from typing import Any, Optional
from urllib.parse import urlparse

UNKNOWN = "Unknown"


def resolve_path(path: str, payload: Any) -> Any:
    """Follow a dot-separated path (e.g. "connection.isp") into nested mappings.

    Returns None as soon as a segment is missing or the current value is not a mapping.
    """
    current = payload
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def clean_field(value: Any, default: str = UNKNOWN) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def hostname(url: str) -> str:
    return urlparse(url).hostname or ""


def line_value(text: str, key: str) -> Optional[str]:
    """Return the value of the first `key=value` line in text, or None."""
    m = re.search(rf"^{re.escape(key)}=(.+?)\r?$", text, re.MULTILINE)
    if not m:
        return None
    return m.group(1).strip() or None
