from typing import List, Optional

from unidiff.constants import (
    LINE_TYPE_ADDED,
    LINE_TYPE_CONTEXT,
    LINE_TYPE_REMOVED,
    RE_HUNK_HEADER,
)

from models import Hunk, Line, LineKind


def _classify(raw: str) -> Optional[LineKind]:
    """
    Map a raw patch line to its kind by the leading marker.
    File markers (+++ / ---) and anything else unrecognised return None.
    """
    if not raw:
        return None
    marker = raw[0]
    if marker == LINE_TYPE_ADDED and raw[1:2] != LINE_TYPE_ADDED:
        return LineKind.added
    if marker == LINE_TYPE_REMOVED and raw[1:2] != LINE_TYPE_REMOVED:
        return LineKind.removed
    if marker == LINE_TYPE_CONTEXT:
        return LineKind.context
    return None


def parse_hunks(patch: Optional[str]) -> List[Hunk]:
    """
    Split a unified diff patch into hunks, tracking the line number each
    added or context line has in the new version of the file.

    Lines before the first valid @@ header belong to no hunk. A header that
    does not match the @@ -a,b +c,d @@ grammar is dropped.
    """
    if not patch:
        return []

    hunks: List[Hunk] = []
    current: Optional[Hunk] = None
    cursor = 0

    for raw in patch.split("\n"):
        raw = raw.rstrip("\r")

        if raw.startswith("@@"):
            match = RE_HUNK_HEADER.match(raw)
            if match is None:
                continue
            if current is not None:
                hunks.append(current)
            cursor = int(match.group(3))
            current = Hunk(start_line=cursor)
            continue

        if current is None:
            continue

        kind = _classify(raw)
        if kind is None:
            continue

        if kind == LineKind.removed:
            current.lines.append(Line(kind=kind, content=raw[1:]))
            continue

        current.lines.append(Line(kind=kind, content=raw[1:], line_number=cursor))
        if kind == LineKind.added:
            current.added_line_numbers.append(cursor)
        cursor += 1

    if current is not None:
        hunks.append(current)
    return hunks


def extract_added_code(patch: Optional[str]) -> str:
    """Join the content of every added line in the patch, ignoring hunk boundaries."""
    if not patch:
        return ""
    added = []
    for raw in patch.split("\n"):
        raw = raw.rstrip("\r")
        if _classify(raw) == LineKind.added:
            added.append(raw[1:])
    return "\n".join(added)
