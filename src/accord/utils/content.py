"""Conversion between stored markdown and ActivityPub HTML content."""

from __future__ import annotations

import markdown
from markdownify import markdownify


def html_to_markdown(html: str | None) -> str:
    """Convert remote HTML content into the markdown stored on messages and bios."""
    if not html:
        return ""
    return markdownify(html, heading_style="ATX", bullets="-").strip()


def markdown_to_html(text: str | None) -> str:
    """Render stored markdown as HTML for outbound Notes."""
    if not text:
        return ""
    return markdown.markdown(text, extensions=["fenced_code"])
