"""Parser for the bracketed work-item prefix of a project description.

A description opens with a bracketed list of segments joined by ``+``::

    [2x Post + 1x Carrousel 4p] Brand colours are in the shared folder.

Each segment is ``<count>x <type> [<pages>p]``; the page count is only legal
for carousels, and carousels must carry one.  A count above
``max_items_per_segment`` rejects the segment.  Segments are grouped by type
and expanded into one item per unit, labelled ``"<type> <n>"``.  Types are
emitted in :data:`TYPE_ORDER` whatever their order in the text.

Anything that does not fit the grammar never raises: a missing or unclosed
bracket yields no items, and individual bad segments are skipped and
reported in ``rejected_segments``.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping

from prodtrack.core.labels import canonical_type, make_label, normalize
from prodtrack.core.schema import ParsedSpecification, WorkItemSpec, WorkItemType
from prodtrack.core.settings import EngineSettings, get_settings

logger = logging.getLogger(__name__)

TYPE_ORDER: tuple[WorkItemType, ...] = ("Miniature", "Post", "Logo", "Carrousel")

PREFIX_PATTERN = re.compile(r"^\s*\[([^\[\]]*)\]")
SEGMENT_PATTERN = re.compile(
    r"^(?P<count>\d{1,9})\s*x\s*(?P<type>[^\W\d_]+)(?:\s+(?P<pages>\d{1,9})\s*p)?$",
    re.IGNORECASE,
)


def _split_prefix(text: str | None) -> tuple[str | None, str]:
    if not text:
        return None, ""
    match = PREFIX_PATTERN.match(text)
    if not match:
        return None, text.strip()
    return match.group(1), text[match.end():].strip()


def _parse_segment(segment: str, max_count: int) -> tuple[WorkItemType, int, int | None] | None:
    match = SEGMENT_PATTERN.match(segment)
    if not match:
        return None
    item_type = canonical_type(match.group("type"))
    if item_type is None:
        return None
    count = int(match.group("count"))
    pages = match.group("pages")
    page_count = int(pages) if pages is not None else None
    if count <= 0 or count > max_count:
        return None
    if item_type == "Carrousel":
        if not page_count:
            return None
    elif page_count is not None:
        return None
    return item_type, count, page_count


def parse_specification(text: str | None, settings: EngineSettings | None = None) -> ParsedSpecification:
    settings = settings or get_settings()
    body, free_text = _split_prefix(text)
    if body is None:
        return ParsedSpecification(items=[], free_text=free_text)

    grouped: dict[WorkItemType, list[int | None]] = {}
    rejected: list[str] = []
    for raw_segment in body.split("+"):
        segment = normalize(raw_segment)
        if not segment:
            continue
        parsed = _parse_segment(segment, settings.max_items_per_segment)
        if parsed is None:
            rejected.append(segment)
            continue
        item_type, count, page_count = parsed
        grouped.setdefault(item_type, []).extend([page_count] * count)

    if rejected:
        logger.info("skipped %d specification segment(s): %s", len(rejected), rejected)

    items: list[WorkItemSpec] = []
    for item_type in TYPE_ORDER:
        for index, page_count in enumerate(grouped.get(item_type, []), start=1):
            items.append(
                WorkItemSpec(
                    type=item_type,
                    sequence_index=index,
                    position=len(items) + 1,
                    label=make_label(item_type, index),
                    page_count=page_count,
                )
            )
    return ParsedSpecification(items=items, free_text=free_text, rejected_segments=rejected)


def parse_items(text: str | None, settings: EngineSettings | None = None) -> list[WorkItemSpec]:
    return parse_specification(text, settings).items


def describe_specification(
    counts: Mapping[str, int],
    carousel_pages: int | None = None,
    free_text: str = "",
) -> str:
    """Build a description whose prefix parses back into ``counts``."""

    segments: list[str] = []
    for name, count in counts.items():
        item_type = canonical_type(name)
        if item_type is None or count <= 0:
            continue
        if item_type == "Carrousel":
            segments.append(f"{count}x {item_type} {carousel_pages or 2}p")
        else:
            segments.append(f"{count}x {item_type}")
    if not segments:
        return free_text
    prefix = "[" + " + ".join(segments) + "]"
    return f"{prefix} {free_text}".strip()
