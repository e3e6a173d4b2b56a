"""Org-style outline text buffer used as the notes document.

Only the parts of the format the noter needs are modelled: headings
(``*``-prefixed lines), ``:PROPERTIES:`` drawers directly below a heading,
and free body text. Character-level read-only marks follow the usual
text-property rules: an insertion is refused when it would inherit a
read-only mark from the character before it (unless that character is
rear-nonsticky) or from the character after it (only when front-sticky).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from pagenoter.utils.logger import logger


HEADING_RE = re.compile(r"^(\*+)(?:[ \t]+(.*))?$")
PROPERTY_RE = re.compile(r"^[ \t]*:([^:\s]+):(?:[ \t]+(.*?))?[ \t]*$")
DRAWER_BEGIN = ":PROPERTIES:"
DRAWER_END = ":END:"

READ_ONLY = 1
FRONT_STICKY = 2
REAR_NONSTICKY = 4

ChangeListener = Callable[[int, int, str], None]


class ReadOnlyError(Exception):
    """Raised when an edit touches text marked read-only."""

    def __init__(self, position: int) -> None:
        super().__init__(f"Text is read-only at offset {position}")
        self.position = position


@dataclass(frozen=True)
class Heading:
    level: int
    title: str
    begin: int
    line_end: int
    contents_begin: int
    section_end: int
    end: int
    drawer_end: Optional[int] = None
    properties: Dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> Optional[str]:
        return self.properties.get(name.upper())


class OutlineDocument:
    """Mutable notes text with heading queries and read-only marks."""

    def __init__(self, text: str = "", path: Optional[Union[str, Path]] = None) -> None:
        self._text = text
        self._marks: List[int] = [0] * len(text)
        self.path: Optional[Path] = Path(path) if path else None
        self._modified = False
        self._headings: Optional[List[Heading]] = None
        self._listeners: List[ChangeListener] = []

    # ------------------------------------------------------------------ io
    @classmethod
    def load(cls, path: Union[str, Path]) -> "OutlineDocument":
        path = Path(path).expanduser()
        text = path.read_text(encoding="utf-8") if path.exists() else ""
        return cls(text, path=path)

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        target = Path(path) if path else self.path
        if target is None:
            raise ValueError("Document has no file path to save to.")
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f"{target.name}.tmp")
        tmp.write_text(self._text, encoding="utf-8")
        tmp.replace(target)
        self.path = target
        self._modified = False
        logger.info("Saved notes to %s", target)
        return target

    # ------------------------------------------------------------------ state
    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    @property
    def modified(self) -> bool:
        return self._modified

    def set_modified(self, flag: bool) -> None:
        self._modified = bool(flag)

    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------ editing
    def can_replace(self, start: int, end: int, inserting: bool = True) -> bool:
        try:
            self._check_writable(start, end, inserting)
        except ReadOnlyError:
            return False
        return True

    def _check_writable(self, start: int, end: int, inserting: bool) -> None:
        marks = self._marks
        for offset in range(start, end):
            if marks[offset] & READ_ONLY:
                raise ReadOnlyError(offset)
        if not inserting:
            return
        if start > 0:
            before = marks[start - 1]
            if before & READ_ONLY and not before & REAR_NONSTICKY:
                raise ReadOnlyError(start)
        if end < len(marks):
            after = marks[end]
            if after & READ_ONLY and after & FRONT_STICKY:
                raise ReadOnlyError(end)

    def replace(self, start: int, end: int, new_text: str, *, inhibit_read_only: bool = False) -> None:
        if not 0 <= start <= end <= len(self._text):
            raise IndexError(f"Invalid range {start}:{end}")
        if start == end and not new_text:
            return
        if not inhibit_read_only:
            self._check_writable(start, end, bool(new_text))
        self._text = self._text[:start] + new_text + self._text[end:]
        self._marks[start:end] = [0] * len(new_text)
        self._headings = None
        self._modified = True
        for listener in list(self._listeners):
            listener(start, end - start, new_text)

    def insert(self, position: int, new_text: str) -> None:
        self.replace(position, position, new_text)

    def delete(self, start: int, end: int) -> None:
        self.replace(start, end, "")

    def line_end(self, offset: int) -> int:
        found = self._text.find("\n", offset)
        return len(self._text) if found == -1 else found

    # ------------------------------------------------------------------ read-only marks
    def put_read_only(
        self,
        start: int,
        end: int,
        *,
        front_sticky: bool = False,
        rear_nonsticky: bool = False,
    ) -> None:
        flags = READ_ONLY
        if front_sticky:
            flags |= FRONT_STICKY
        if rear_nonsticky:
            flags |= REAR_NONSTICKY
        for offset in range(max(0, start), min(end, len(self._marks))):
            self._marks[offset] = flags
        self._modified = True

    def remove_read_only(self, start: int, end: int) -> None:
        for offset in range(max(0, start), min(end, len(self._marks))):
            self._marks[offset] = 0
        self._modified = True

    def is_read_only(self, offset: int) -> bool:
        return 0 <= offset < len(self._marks) and bool(self._marks[offset] & READ_ONLY)

    def read_only_count(self, start: int = 0, end: Optional[int] = None) -> int:
        end = len(self._marks) if end is None else end
        return sum(1 for flags in self._marks[max(0, start):end] if flags & READ_ONLY)

    # ------------------------------------------------------------------ headings
    def headings(self) -> List[Heading]:
        if self._headings is None:
            self._headings = self._parse_headings()
        return self._headings

    def _parse_headings(self) -> List[Heading]:
        text = self._text
        lines: List[tuple] = []
        pos = 0
        while True:
            newline = text.find("\n", pos)
            if newline == -1:
                lines.append((pos, len(text)))
                break
            lines.append((pos, newline))
            pos = newline + 1

        heading_rows = []
        for index, (start, stop) in enumerate(lines):
            match = HEADING_RE.match(text[start:stop])
            if match:
                heading_rows.append((index, len(match.group(1)), (match.group(2) or "").strip()))

        parsed: List[Heading] = []
        for row, (index, level, title) in enumerate(heading_rows):
            start, stop = lines[index]
            next_line_start = heading_rows[row + 1][0] if row + 1 < len(heading_rows) else None
            section_end = lines[next_line_start][0] if next_line_start is not None else len(text)
            end = len(text)
            for later_index, later_level, _ in heading_rows[row + 1:]:
                if later_level <= level:
                    end = lines[later_index][0]
                    break
            properties: Dict[str, str] = {}
            drawer_end = self._parse_drawer(lines, index + 1, section_end, properties)
            parsed.append(
                Heading(
                    level=level,
                    title=title,
                    begin=start,
                    line_end=stop,
                    contents_begin=min(stop + 1, len(text)),
                    section_end=section_end,
                    end=end,
                    drawer_end=drawer_end,
                    properties=properties,
                )
            )
        return parsed

    def _parse_drawer(self, lines, first: int, section_end: int, properties: Dict[str, str]) -> Optional[int]:
        text = self._text
        if first >= len(lines):
            return None
        start, stop = lines[first]
        if start >= section_end or text[start:stop].strip().upper() != DRAWER_BEGIN:
            return None
        found: Dict[str, str] = {}
        for index in range(first + 1, len(lines)):
            start, stop = lines[index]
            if start >= section_end:
                return None
            line = text[start:stop]
            if line.strip().upper() == DRAWER_END:
                drawer_end = min(stop + 1, len(text))
                for blank_start, blank_stop in lines[index + 1:]:
                    if blank_start >= section_end or text[blank_start:blank_stop].strip():
                        break
                    drawer_end = min(blank_stop + 1, len(text))
                properties.update(found)
                return drawer_end
            match = PROPERTY_RE.match(line)
            if match:
                found[match.group(1).upper()] = match.group(2) or ""
        return None

    def heading_at(self, offset: int) -> Optional[Heading]:
        """Return the heading whose section contains ``offset``."""
        current = None
        for heading in self.headings():
            if heading.begin > offset:
                break
            current = heading
        return current

    def heading_starting_at(self, begin: int) -> Heading:
        for heading in self.headings():
            if heading.begin == begin:
                return heading
        raise ValueError(f"No heading starts at offset {begin}")

    def parent_of(self, heading: Heading) -> Optional[Heading]:
        parent = None
        for candidate in self.headings():
            if candidate.begin >= heading.begin:
                break
            if candidate.level < heading.level and candidate.end >= heading.end:
                parent = candidate
        return parent

    def iter_ancestors(self, heading: Heading) -> Iterator[Heading]:
        parent = self.parent_of(heading)
        while parent is not None:
            yield parent
            parent = self.parent_of(parent)

    def get_property(self, heading: Heading, name: str) -> Optional[str]:
        return heading.get(name)

    def find_first_with_property(self, name: str, value: str) -> Optional[int]:
        for heading in self.headings():
            if heading.get(name) == value:
                return heading.begin
        return None

    def set_property(self, begin: int, name: str, value: str) -> None:
        heading = self.heading_starting_at(begin)
        key = name.upper()
        entry = f":{key}: {value}"
        text = self._text
        if heading.drawer_end is None:
            self.insert(heading.line_end, f"\n{DRAWER_BEGIN}\n{entry}\n{DRAWER_END}")
            return
        pos = heading.contents_begin
        while pos < heading.drawer_end:
            stop = self.line_end(pos)
            line = text[pos:stop]
            if line.strip().upper() == DRAWER_END:
                self.insert(pos, entry + "\n")
                return
            match = PROPERTY_RE.match(line)
            if match and match.group(1).upper() == key:
                self.replace(pos, stop, entry)
                return
            pos = stop + 1

    def insert_heading(self, point: int, title: str = "") -> int:
        """Insert a heading near ``point`` at the level of the enclosing heading.

        Returns the begin offset of the new heading line.
        """
        enclosing = self.heading_at(point)
        stars = "*" * (enclosing.level if enclosing is not None else 1)
        line = f"{stars} {title}".rstrip() if title else f"{stars} "
        text = self._text
        if point == 0:
            self.insert(0, line + "\n")
            return 0
        if text[point - 1] == "\n":
            self.insert(point - 1, "\n" + line)
            return point
        eol = self.line_end(point)
        self.insert(eol, "\n" + line)
        return eol + 1

    def promote(self, begin: int) -> None:
        heading = self.heading_starting_at(begin)
        if heading.level > 1:
            self.delete(begin, begin + 1)

    def demote(self, begin: int) -> None:
        self.heading_starting_at(begin)
        self.insert(begin + 1, "*")
