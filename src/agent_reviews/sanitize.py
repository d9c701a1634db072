"""Strip review-bot boilerplate from comment bodies."""
from __future__ import annotations

import re

_HTML_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_ADDITIONAL_LOCATIONS_RE = re.compile(
    r"<details>\s*<summary>\s*Additional Locations[\s\S]*?</details>",
    re.IGNORECASE,
)
# "Fix in Cursor" / "Fix in Web" button rows
_CURSOR_BUTTONS_RE = re.compile(r"<p>\s*<a [^>]*cursor\.com[\s\S]*?</p>", re.IGNORECASE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")

_BOILERPLATE = (_HTML_COMMENT_RE, _ADDITIONAL_LOCATIONS_RE, _CURSOR_BUTTONS_RE)


def _strip_boilerplate(text: str) -> str:
    for pattern in _BOILERPLATE:
        text = pattern.sub("", text)
    return text


def clean_body(body: str | None) -> str | None:
    """Return ``body`` without HTML comments, location dropdowns and fix buttons.

    Falsy input is returned as-is. Applying the function twice gives the same
    result as applying it once.
    """
    if not body:
        return body

    cleaned = _strip_boilerplate(body)
    # A removal can splice two fragments into a new marker, e.g. "<!<!-- x -->-- y -->".
    while (again := _strip_boilerplate(cleaned)) != cleaned:
        cleaned = again

    cleaned = _BLANK_RUN_RE.sub("\n\n", cleaned)
    return cleaned.strip()
