"""Custom region extraction for idempotent regeneration of TypeScript files."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .logging import get_logger
from .models import PreservedZone

KEEP_TS_TAG = "keep-ts"
CUSTOM_HEAD_TAG = "custom-head"
CUSTOM_BODY_TAG = "custom-body"

ReadText = Callable[[Path], Optional[str]]


def _read_local(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


class ZoneParser:
    """Reads preserved zones delimited by `//<tag>` and `//</tag>` comment lines."""

    BEGIN_FMT = "//<{tag}>"
    END_FMT = "//</{tag}>"

    def __init__(self, read_text: ReadText | None = None) -> None:
        self._read_text = read_text or _read_local
        self.logger = get_logger("zones")

    def parse_zones(self, path: Path, tags: Iterable[str]) -> Dict[str, PreservedZone]:
        """Return zones found in the file at `path`, keyed by tag.

        A missing file yields an empty mapping. Zones without a matching end
        marker are skipped with a warning, and only the first zone for a tag
        is honoured.
        """
        text = self._read_text(Path(path))
        if text is None:
            return {}
        return self.extract(text, tags, source=str(path))

    def extract(
        self, text: str, tags: Iterable[str], *, source: str = "<text>"
    ) -> Dict[str, PreservedZone]:
        lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        zones: Dict[str, PreservedZone] = {}
        for tag in tags:
            if tag in zones:
                continue
            begin, end = _marker_patterns(tag)
            start = _find_line(lines, begin, 0)
            while start is not None:
                stop = _find_line(lines, end, start + 1)
                if stop is None:
                    self.logger.warning(
                        "Ignoring '%s' zone in %s: missing end marker %s",
                        tag,
                        source,
                        self.END_FMT.format(tag=tag),
                    )
                    break
                nested = _find_line(lines[: stop], begin, start + 1)
                if nested is not None:
                    self.logger.warning(
                        "Ignoring '%s' zone in %s: begin marker repeated before end marker",
                        tag,
                        source,
                    )
                    break
                zones[tag] = _make_zone(tag, lines[start + 1 : stop])
                later = _find_line(lines, begin, stop + 1)
                if later is not None:
                    self.logger.warning(
                        "Found more than one '%s' zone in %s; keeping the first", tag, source
                    )
                break
        return zones

    def wrap(self, zone: Optional[PreservedZone], indent: str = "", *, tag: str | None = None) -> str:
        """Render a zone back between its markers.

        The markers sit at `indent`; the content is restored at the zone's own
        recorded baseline so user text comes back byte-for-byte.
        """
        if zone is None or not zone.content.strip():
            return ""
        name = tag or zone.tag
        body = [line if not line.strip() else f"{zone.indent}{line}" for line in zone.lines]
        return "\n".join(
            [f"{indent}{self.BEGIN_FMT.format(tag=name)}", *body, f"{indent}{self.END_FMT.format(tag=name)}"]
        )


def first_zone(zones: Dict[str, PreservedZone], tags: Sequence[str]) -> Optional[PreservedZone]:
    """Return the first zone present among `tags`, in order."""
    for tag in tags:
        zone = zones.get(tag)
        if zone is not None:
            return zone
    return None


def _marker_patterns(tag: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    escaped = re.escape(tag)
    begin = re.compile(rf"^\s*//\s*<{escaped}>\s*$")
    end = re.compile(rf"^\s*//\s*</{escaped}>\s*$")
    return begin, end


def _find_line(lines: List[str], pattern: re.Pattern[str], start: int) -> Optional[int]:
    for index in range(start, len(lines)):
        if pattern.match(lines[index]):
            return index
    return None


def _make_zone(tag: str, lines: List[str]) -> PreservedZone:
    indents = [len(line) - len(line.lstrip()) for line in lines if line.strip()]
    width = min(indents) if indents else 0
    baseline = ""
    for line in lines:
        if line.strip():
            baseline = line[:width]
            break
    # mixed tabs and spaces: keep the text verbatim
    if any(line.strip() and not line.startswith(baseline) for line in lines):
        return PreservedZone(tag=tag, content="\n".join(lines))
    stripped = [line[width:] if line.strip() else line for line in lines]
    return PreservedZone(tag=tag, content="\n".join(stripped), indent=baseline)


__all__ = [
    "CUSTOM_BODY_TAG",
    "CUSTOM_HEAD_TAG",
    "KEEP_TS_TAG",
    "ZoneParser",
    "first_zone",
]
