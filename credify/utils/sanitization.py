import html
import re
from typing import Any, Optional

CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")


def sanitize_string(value: Optional[Any]) -> str:
    """
    Escape HTML special characters (& < > " ') so user text can be placed
    in an HTML body. None becomes an empty string.
    """
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def sanitize_multiline(value: Optional[Any]) -> str:
    """Escape, then render line breaks as <br>"""
    escaped = sanitize_string(value)
    return re.sub(r"\r\n|\r|\n", "<br>", escaped)


def sanitize_display_name(value: Optional[str], max_length: int = 100) -> str:
    """
    Make user text safe for a mail header display name by removing control
    characters (CR/LF header injection) and capping the length.
    """
    if not value:
        return ""
    value = CONTROL_CHARS.sub(" ", str(value))
    value = re.sub(r"\s+", " ", value).strip()
    return value[:max_length]
