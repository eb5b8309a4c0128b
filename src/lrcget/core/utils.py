import re
from datetime import datetime, timezone
from typing import Optional

INSTRUMENTAL_LRC = "[au: instrumental]"

_INSTRUMENTAL_RE = re.compile(r"\[au:\s*instrumental\]", re.IGNORECASE)
_LEADING_TAG_RE = re.compile(r"^(\[[^\]]*\]\s*)+")


def utc_now() -> str:
    """Timestamp format used by the created_at/updated_at columns."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def lower_shadow(value: Optional[str]) -> Optional[str]:
    """Lowercase copy stored next to a searchable text column."""
    if value is None:
        return None
    return value.lower()


def norm_text(value: Optional[str]) -> Optional[str]:
    """Blank or missing text becomes None; anything else is kept as given."""
    if value is None:
        return None
    if not value.strip():
        return None
    return value


def is_instrumental_lrc(lrc: Optional[str]) -> bool:
    return bool(lrc and _INSTRUMENTAL_RE.search(lrc))


def strip_timestamps(synced_lyrics: str) -> str:
    """
    Derive plain lyrics from LRC text by removing the leading [mm:ss.xx]
    (and [tag: value]) blocks of every line.
    """
    out_lines: list[str] = []
    for line in synced_lyrics.splitlines():
        stripped = line.strip()
        if not stripped:
            out_lines.append("")
            continue
        if _LEADING_TAG_RE.match(stripped) and not _LEADING_TAG_RE.sub("", stripped):
            # metadata-only line such as [ar: Someone]
            continue
        out_lines.append(_LEADING_TAG_RE.sub("", stripped))
    return "\n".join(out_lines).strip()
