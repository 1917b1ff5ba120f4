"""Line scanner and tag matcher.

The scanner turns a text buffer into line-scoped events. Tags must open and close
on one line; a line may hold several tags, which are reported in source order.
Declarations, comments and processing instructions are blanked out before tags
are matched, so a line holding nothing else is reported as a single SKIP event.
"""

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

# Opening, closing and self-closing tags. Names never start with "!" or "?", so
# comments, declarations and processing instructions are not matched as tags.
TAG_PATTERN = re.compile(r"<(/?)([^\s<>/!?][^\s<>/]*)([^<>]*?)(/?)>")
ATTRIBUTE_PATTERN = re.compile(r'([\w:.-]+)\s*=\s*"([^"]*)"')
# Comments, processing instructions, CDATA sections and declarations that close
# on the same line; they are blanked before tags are matched.
MARKUP_PATTERN = re.compile(
    r"<!--.*?-->|<\?.*?\?>|<!\[CDATA\[.*?\]\]>|<![^<>]*>"
)

_SKIP_PREFIXES = ("<?", "<!")


class EventKind(Enum):
    """Kinds of events produced for a scanned line."""

    OPEN = auto()           # <TAG ...>
    SELF_CLOSING = auto()   # <TAG .../>
    CLOSE = auto()          # </TAG>
    SHORT_NAME = auto()     # <SHORT-NAME>text</SHORT-NAME>
    SKIP = auto()           # blank line, comment or declaration


@dataclass
class ScanEvent:
    """Single event found on a line."""

    kind: EventKind
    line_number: int
    column: int = 1
    byte_offset: int = 0
    tag_name: str = ""
    attribute_string: str = ""
    text: Optional[str] = None
    source: str = ""

    def __post_init__(self) -> None:
        """Validate event position."""
        if self.line_number < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")

    @property
    def opens_element(self) -> bool:
        """Check whether this event creates an element."""
        return self.kind in (EventKind.OPEN, EventKind.SELF_CLOSING)


@dataclass
class ScannedLine:
    """All events of one source line."""

    number: int
    byte_offset: int
    raw: str
    events: List[ScanEvent] = field(default_factory=list)

    @property
    def is_skipped(self) -> bool:
        return len(self.events) == 1 and self.events[0].kind == EventKind.SKIP


def extract_attributes(attribute_string: str) -> Dict[str, str]:
    """Extract ``key="value"`` pairs; malformed fragments are skipped."""
    return {key: value for key, value in ATTRIBUTE_PATTERN.findall(attribute_string)}


def extract_namespace(tag_name: str, attributes: Dict[str, str]) -> Optional[str]:
    """Determine the namespace of a tag from its prefix.

    ``xmlns`` declarations only bind prefixes and never move the declaring tag
    into a namespace. ``None`` means the caller should inherit the namespace of
    the enclosing element.
    """
    if ":" in tag_name:
        return tag_name.split(":", 1)[0]
    return None


class LineScanner:
    """Turns a text buffer into a sequence of ``ScannedLine`` records."""

    def __init__(self, short_name_tag: str = "SHORT-NAME") -> None:
        """Initialize scanner.

        Args:
            short_name_tag: Marker tag whose text names the next element
        """
        self.short_name_tag = short_name_tag
        marker = re.escape(short_name_tag)
        self._short_name_pattern = re.compile(rf"<{marker}>([^<]+)</{marker}>")

    @staticmethod
    def split(text: str) -> List[str]:
        """Split a buffer into lines."""
        return text.split("\n")

    def scan(self, text: str) -> Iterator[ScannedLine]:
        """Scan a whole buffer."""
        return self.scan_lines(self.split(text))

    def scan_lines(self, lines: Iterable[str]) -> Iterator[ScannedLine]:
        """Scan pre-split lines, yielding one record per line."""
        offset = 0
        for number, raw in enumerate(lines, start=1):
            yield self.scan_line(raw, number, offset)
            offset += len(raw.encode("utf-8")) + 1

    def scan_line(self, raw: str, number: int, byte_offset: int = 0) -> ScannedLine:
        """Scan a single line."""
        scanned = ScannedLine(number=number, byte_offset=byte_offset, raw=raw)
        # blanking keeps every column where it was in the raw line
        masked = MARKUP_PATTERN.sub(lambda match: " " * len(match.group(0)), raw)
        remainder = masked.strip()

        if not remainder or remainder.startswith(_SKIP_PREFIXES):
            scanned.events.append(
                ScanEvent(EventKind.SKIP, number, byte_offset=byte_offset,
                          source=raw.strip())
            )
            return scanned

        short_names = [
            (match.start(), match.end(), match.group(1).strip())
            for match in self._short_name_pattern.finditer(masked)
        ]
        positioned: List[Tuple[int, ScanEvent]] = []

        for start, end, name in short_names:
            positioned.append((start, self._event(
                EventKind.SHORT_NAME, raw, number, byte_offset, start,
                tag_name=self.short_name_tag, text=name, source=raw[start:end],
            )))

        for match in TAG_PATTERN.finditer(masked):
            start = match.start()
            if any(s_start <= start < s_end for s_start, s_end, _ in short_names):
                continue
            closing, tag_name, attribute_string, self_closing = match.groups()
            if tag_name == self.short_name_tag:
                # marker tags without a single-line text body are dropped
                continue

            if closing:
                kind = EventKind.CLOSE
            elif self_closing or attribute_string.rstrip().endswith("/"):
                kind = EventKind.SELF_CLOSING
                attribute_string = attribute_string.rstrip().rstrip("/")
            else:
                kind = EventKind.OPEN

            text = None
            if kind == EventKind.OPEN:
                following = masked[match.end():].split("<", 1)[0].strip()
                text = following or None

            positioned.append((start, self._event(
                kind, raw, number, byte_offset, start,
                tag_name=tag_name, attribute_string=attribute_string,
                text=text, source=match.group(0),
            )))

        positioned.sort(key=lambda item: item[0])
        scanned.events.extend(event for _, event in positioned)
        return scanned

    @staticmethod
    def _event(
        kind: EventKind,
        raw: str,
        number: int,
        line_offset: int,
        start: int,
        **values: Optional[str]
    ) -> ScanEvent:
        return ScanEvent(
            kind=kind,
            line_number=number,
            column=start + 1,
            byte_offset=line_offset + len(raw[:start].encode("utf-8")),
            **values,
        )
