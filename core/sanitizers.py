# core/sanitizers.py
"""
Input sanitization for user-generated text.

Listing notes, request messages, feedback comments and complaint
descriptions all pass through these helpers before being stored.
Nothing here is allowed to render markup, so all tags are stripped.
"""
import re
from typing import Optional

import bleach

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')


def sanitize_text(text: Optional[str], max_length: Optional[int] = None, strip: bool = True) -> str:
    """
    Sanitize plain text input.

    - Strips leading/trailing whitespace
    - Removes HTML tags and control characters (except newlines and tabs)
    - Enforces maximum length by truncation
    - Returns empty string for None input
    """
    if text is None:
        return ""

    text = bleach.clean(str(text), tags=[], attributes={}, strip=True)
    # bleach escapes the bare characters it leaves behind
    text = text.replace("&lt;", "<").replace("&gt;", ">").replace("&amp;", "&")
    text = _CONTROL_CHARS.sub('', text)

    if strip:
        text = text.strip()

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_line(text: Optional[str], max_length: int = 255) -> str:
    """
    Sanitize single-line values (categories, units, locations).

    - No HTML
    - Newlines collapsed to spaces
    """
    text = sanitize_text(text, max_length=max_length)
    text = re.sub(r'[\r\n]+', ' ', text)
    return re.sub(r'\s+', ' ', text)


def sanitize_list(values, max_items: int = 20, max_length: int = 64) -> list:
    """
    Sanitize a list of short labels (allergens), dropping blanks and duplicates.
    """
    cleaned = []
    for value in values or []:
        item = sanitize_line(value, max_length=max_length)
        if item and item not in cleaned:
            cleaned.append(item)
    return cleaned[:max_items]
