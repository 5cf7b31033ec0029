"""Markdown helpers for content mirrored from Linear to GitHub.

These are pure functions; the reconcilers treat them as black boxes.
"""

import re
from typing import Dict, Optional

_MENTION_RE = re.compile(r"(?<![\w@/])@([A-Za-z0-9_](?:[A-Za-z0-9_.-]*[A-Za-z0-9_])?)")
_INLINE_IMG_TAG_RE = re.compile(r"<img\b[^>]*\bsrc\s*=", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\s*\d+(?:\.\d+)?\s*")


def sync_footer(app_name: str, app_url: str) -> str:
    """Marker appended to everything the bot writes. Also used to detect our own writes."""
    return f"From [{app_name}]({app_url})"


def issue_body_footer(footer: str, ticket_name: str, ticket_url: Optional[str]) -> str:
    link = f"[{ticket_name}]({ticket_url})" if ticket_url else ticket_name
    return f"\n\n<sub>{footer} | {link}</sub>"


def github_footer(display_name: Optional[str], footer: str) -> str:
    """Attribution appended to comments mirrored from Linear."""
    return f"\n\n<sub>{display_name or 'Unknown'} on Linear | {footer}</sub>"


def replace_mentions(body: Optional[str], mentions: Dict[str, str]) -> str:
    """Rewrite @linear-username mentions into @github-username mentions.

    Unmapped mentions are left as they are. Matching is case-insensitive.
    """
    if not body:
        return ""
    if not mentions:
        return body
    lowered = {name.lower(): target for name, target in mentions.items() if name and target}

    def _sub(match: re.Match) -> str:
        target = lowered.get(match.group(1).lower())
        return f"@{target}" if target else match.group(0)

    return _MENTION_RE.sub(_sub, body)


def prepare_markdown_content(markdown: Optional[str], mentions: Dict[str, str]) -> str:
    return replace_mentions(markdown, mentions)


def has_inline_images(markdown: Optional[str]) -> bool:
    return bool(markdown and _INLINE_IMG_TAG_RE.search(markdown))


def is_number(value) -> bool:
    return value is not None and bool(_NUMBER_RE.fullmatch(str(value)))
