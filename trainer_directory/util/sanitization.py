"""Sanitisation helpers.

Listing descriptions and addresses are written by trainers and shown on
public pages, so HTML tags are stripped before they are stored.
"""
from __future__ import annotations

import re
from typing import Optional

TAG_RE = re.compile(r"<[^>]+>")


def strip_tags(text: Optional[str]) -> str:
    """Remove HTML tags from the given string and trim whitespace."""
    if not text:
        return ""
    return TAG_RE.sub("", text).strip()


def clean_optional(text: Optional[str]) -> Optional[str]:
    """Like :func:`strip_tags` but maps empty results to ``None``."""
    cleaned = strip_tags(text)
    return cleaned or None
