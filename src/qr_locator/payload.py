from __future__ import annotations

import re
from urllib.parse import urlsplit

MAX_PAYLOAD_CHARS = 4000

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def payload_problem(text: str) -> str | None:
    """
    Return why a decoded payload looks corrupted, or None if it is plausible.

    Decoders occasionally report garbage for noise that happens to resemble
    finder patterns; these checks reject the obvious cases.
    """

    if not text or text.strip() == "":
        return "empty payload"
    if len(text) > MAX_PAYLOAD_CHARS:
        return f"payload longer than {MAX_PAYLOAD_CHARS} characters"
    if _CONTROL_CHARS.search(text):
        return "payload contains control characters"

    s = text.strip()
    if s.startswith(("http://", "https://")):
        try:
            parts = urlsplit(s)
        except ValueError:
            return "malformed URL"
        return None if parts.netloc else "URL without host"

    if "@" in s and "." in s:
        return None if _EMAIL.match(s) else "malformed e-mail address"

    return None


def is_valid_payload(text: str) -> bool:
    return payload_problem(text) is None
