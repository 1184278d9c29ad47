from __future__ import annotations

import os
from pathlib import Path

EXPORT_FORMATS = {"csv", "xlsx"}


def _base_root() -> Path:
    env_root = os.getenv("EXPORTS_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path(__file__).resolve().parents[2] / "exports"


def export_path(period: str, table: str, fmt: str) -> Path:
    """Location of an exported finance table, creating the period folder."""

    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"unsupported export format {fmt!r}")
    root = _base_root() / period
    root.mkdir(parents=True, exist_ok=True)
    return root / f"{table}_{period}.{fmt}"
