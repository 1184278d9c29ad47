from __future__ import annotations

import re
import unicodedata

from prodtrack.core.schema import WorkItemType

ANNOTATION_PATTERN = re.compile(r"^\s*\[([^\[\]]+?)\]")

TYPE_ALIASES: dict[str, WorkItemType] = {
    "miniature": "Miniature",
    "miniatures": "Miniature",
    "thumbnail": "Miniature",
    "thumbnails": "Miniature",
    "post": "Post",
    "posts": "Post",
    "logo": "Logo",
    "logos": "Logo",
    "carrousel": "Carrousel",
    "carrousels": "Carrousel",
    "carousel": "Carrousel",
    "carousels": "Carrousel",
}


def normalize(text: str) -> str:
    normalized = unicodedata.normalize("NFKC", text).strip()
    return " ".join(normalized.split())


def canonical_type(name: str) -> WorkItemType | None:
    return TYPE_ALIASES.get(normalize(name).lower())


def extract_label(notes: str | None) -> str | None:
    """Return the ``[label]`` annotation opening a delivery's notes, if any."""

    if not notes:
        return None
    match = ANNOTATION_PATTERN.match(notes)
    if not match:
        return None
    label = normalize(match.group(1))
    return label or None


def make_label(item_type: WorkItemType, sequence_index: int) -> str:
    return f"{item_type} {sequence_index}"
