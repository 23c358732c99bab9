from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from app.pipeline.errors import InsufficientContentError

logger = logging.getLogger(__name__)

DANGEROUS_ELEMENTS = (
    "script",
    "style",
    "noscript",
    "iframe",
    "object",
    "embed",
    "form",
    "input",
    "button",
)
MAX_SAFE_LENGTH = 15000
MIN_USABLE_LENGTH = 200
TRUNCATION_MARKER = "...[TRUNCATED_FOR_SAFETY]"

_WHITESPACE_RE = re.compile(r"\s+")


def _visible_text(raw_html_or_text: str) -> str:
    soup = BeautifulSoup(raw_html_or_text or "", "html.parser")
    for element in soup.find_all(list(DANGEROUS_ELEMENTS)):
        element.extract()
    root = soup.body or soup
    return root.get_text()


def sanitize(raw_html_or_text: str) -> str:
    """Reduce untrusted scraped markup to bounded plain text.

    Injection-prone elements are removed together with their content before
    any text is read, whitespace runs collapse to single spaces, and text over
    ``MAX_SAFE_LENGTH`` characters is cut and tagged with ``TRUNCATION_MARKER``.
    Raises ``InsufficientContentError`` when ``MIN_USABLE_LENGTH`` characters
    or fewer remain.
    """
    text = _WHITESPACE_RE.sub(" ", _visible_text(raw_html_or_text)).strip()

    if len(text) > MAX_SAFE_LENGTH:
        logger.info("sanitizer_truncated original_chars=%s", len(text))
        text = text[:MAX_SAFE_LENGTH] + TRUNCATION_MARKER

    if len(text) <= MIN_USABLE_LENGTH:
        raise InsufficientContentError(
            f"Sanitized profile text has only {len(text)} characters; more than {MIN_USABLE_LENGTH} are required."
        )
    return text
