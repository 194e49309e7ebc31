"""Engine configuration and logging setup.

Categories and counters are deployment data: they are passed into the engine
at start-up (JSON file via `--config`, or the defaults below) and never
created or deleted at runtime.

Example config file::

    {
      "categories": [{"id": "1", "name": "Enrollment", "code_prefix": "M"}],
      "counters": [{"id": "m1", "number": 1, "attendant_label": "Desk 1"}],
      "poll_interval": 2.0,
      "publish_latency": 0.5
    }
"""

from __future__ import annotations

import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Category, Counter

DEFAULT_NAMESPACE = "servicequeue/v1"

# Observers re-read state at least this often (seconds).
DEFAULT_POLL_INTERVAL = 2.0
# Upper bound for a change event to reach a subscribed observer (seconds).
DEFAULT_PUBLISH_LATENCY = 0.5

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class CategorySettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str
    code_prefix: str = Field(min_length=1)

    def to_record(self) -> Category:
        return Category(id=self.id, name=self.name, code_prefix=self.code_prefix)


class CounterSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    number: int = Field(ge=1)
    attendant_label: str = ""

    def to_record(self) -> Counter:
        return Counter(id=self.id, number=self.number, attendant_label=self.attendant_label)


def default_categories() -> list[CategorySettings]:
    return [
        CategorySettings(id="1", name="Enrollment", code_prefix="M"),
        CategorySettings(id="2", name="Re-enrollment", code_prefix="R"),
    ]


def default_counters() -> list[CounterSettings]:
    return [CounterSettings(id=f"m{n}", number=n, attendant_label=f"Attendant {n}") for n in range(1, 5)]


class EngineConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    categories: list[CategorySettings] = Field(default_factory=default_categories, min_length=1)
    counters: list[CounterSettings] = Field(default_factory=default_counters, min_length=1)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    publish_latency: float = Field(default=DEFAULT_PUBLISH_LATENCY, ge=0)

    @field_validator("categories")
    @classmethod
    def _unique_categories(cls, value: list[CategorySettings]) -> list[CategorySettings]:
        _require_unique("category id", [c.id for c in value])
        _require_unique("category code_prefix", [c.code_prefix for c in value])
        return value

    @field_validator("counters")
    @classmethod
    def _unique_counters(cls, value: list[CounterSettings]) -> list[CounterSettings]:
        _require_unique("counter id", [c.id for c in value])
        _require_unique("counter number", [c.number for c in value])
        return value

    @property
    def max_staleness(self) -> float:
        """Longest time an observer may show outdated state."""
        return self.poll_interval + self.publish_latency

    def category_records(self) -> list[Category]:
        return [c.to_record() for c in self.categories]

    def counter_records(self) -> list[Counter]:
        return [c.to_record() for c in self.counters]


def load_config(path: str | Path | None) -> EngineConfig:
    """Load a JSON config file, or return the defaults when `path` is None.

    Invalid files raise `pydantic.ValidationError` (a ValueError).
    """
    if path is None:
        return EngineConfig()
    return EngineConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Install a single stream handler on the root logger."""
    lvl = getattr(logging, level.upper(), logging.INFO)
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": lvl,
                }
            },
            "root": {"handlers": ["default"], "level": lvl},
        }
    )
    return logging.getLogger("service_queue")


def _require_unique(what: str, values: list[Any]) -> None:
    seen: set[Any] = set()
    for v in values:
        if v in seen:
            raise ValueError(f"duplicate {what}: {v!r}")
        seen.add(v)
