"""Engine configuration loaded from YAML with environment overrides."""

from __future__ import annotations

import os
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

RoundingMode = Literal[
    "ROUND_HALF_UP",
    "ROUND_HALF_EVEN",
    "ROUND_HALF_DOWN",
    "ROUND_DOWN",
    "ROUND_UP",
    "ROUND_FLOOR",
    "ROUND_CEILING",
]

ENV_OVERRIDES = {
    "PRODTRACK_UNIT_PRICE": "unit_price",
    "PRODTRACK_DEFAULT_VIDEO_RATE": "default_video_rate",
    "PRODTRACK_BATCH_SECONDS": "delivery_batch_seconds",
    "PRODTRACK_MAX_WORKERS": "max_workers",
    "PRODTRACK_MAX_ITEMS_PER_SEGMENT": "max_items_per_segment",
}


class EngineSettings(BaseModel):
    unit_price: Decimal = Decimal("40")
    default_video_rate: Decimal = Decimal("100")
    price_quantum: Decimal = Decimal("0.01")
    price_rounding: RoundingMode = "ROUND_HALF_UP"
    delivery_batch_seconds: int = Field(default=0, ge=0)
    freeze_video_rates: bool = False
    late_remaining_ratio: Decimal = Decimal("0.5")
    days_per_month: int = Field(default=30, gt=0)
    max_workers: int = Field(default=1, ge=1)
    max_items_per_segment: int = Field(default=500, ge=1)


def _config_path() -> Path:
    env_path = os.getenv("PRODTRACK_CONFIG")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return CONFIG_DIR / "engine.yaml"


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or {}


def load_settings(path: Path | None = None, **overrides: object) -> EngineSettings:
    """Build settings from the YAML file, then environment, then ``overrides``."""

    data = _load_yaml(path or _config_path())
    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[field_name] = value
    data.update(overrides)
    return EngineSettings(**data)


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    return load_settings()
