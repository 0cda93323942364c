"""
Configuration loader for settlecore.

What it does:
- Reads static settings from `config/settlecore.yaml` (lock windows, record
  stream names, metrics port, and the assets to whitelist with their trade
  precision).
- Applies environment overrides: `SETTLECORE_TRADE_LOCK`,
  `SETTLECORE_RELEASE_LOCK`, `PROMETHEUS_PORT`, `LEDGER_EVENTS_STREAM`,
  `LEDGER_EVENTS_DLQ`, `REDIS_URL`.
- Validates the result with Pydantic models; a missing file yields defaults.

Where it is used:
- Called by `settlecore.main` to size the fund lock and whitelist assets.
"""

import os
import pathlib
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from ..ledger.model import DEFAULT_RELEASE_LOCK, DEFAULT_TRADE_LOCK, ONE_WEEK


class EventsConfig(BaseModel):
    """Where published ledger records go."""
    stream: str = "settlecore.events"
    dlq: str = "settlecore.dlq"
    redis_url: str = "redis://localhost:6379/0"


class AssetConfig(BaseModel):
    symbol: str
    decimals: int
    precision: int

    @model_validator(mode="after")
    def precision_within_decimals(self):
        if self.precision <= 0:
            raise ValueError(f"{self.symbol}: precision must be positive")
        if self.precision > self.decimals:
            raise ValueError(f"{self.symbol}: precision {self.precision} exceeds decimals {self.decimals}")
        return self


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    trade_lock: int = DEFAULT_TRADE_LOCK
    release_lock: int = DEFAULT_RELEASE_LOCK
    metrics_port: int = 8000
    events: EventsConfig = Field(default_factory=EventsConfig)
    assets: List[AssetConfig] = Field(default_factory=list)

    @field_validator("trade_lock")
    @classmethod
    def trade_lock_positive(cls, v):
        if v <= 0:
            raise ValueError("trade_lock must be positive")
        return v

    @field_validator("release_lock")
    @classmethod
    def release_lock_bounded(cls, v):
        if not 0 <= v <= ONE_WEEK:
            raise ValueError(f"release_lock must be within [0, {ONE_WEEK}] seconds")
        return v

    def asset(self, symbol: str) -> AssetConfig:
        for a in self.assets:
            if a.symbol == symbol:
                return a
        raise KeyError(symbol)


def _read_yaml(path: str) -> Dict[str, Any]:
    p = pathlib.Path(path)
    if not p.exists():
        return {}
    with open(p, "r") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: str = "config/settlecore.yaml") -> Settings:
    """Load YAML config, apply env-var overrides, and return Settings."""
    config = _read_yaml(path)
    events = dict(config.get("events") or {})
    if os.getenv("SETTLECORE_TRADE_LOCK"):
        config["trade_lock"] = int(os.environ["SETTLECORE_TRADE_LOCK"])
    if os.getenv("SETTLECORE_RELEASE_LOCK"):
        config["release_lock"] = int(os.environ["SETTLECORE_RELEASE_LOCK"])
    if os.getenv("PROMETHEUS_PORT"):
        config["metrics_port"] = int(os.environ["PROMETHEUS_PORT"])
    if os.getenv("LEDGER_EVENTS_STREAM"):
        events["stream"] = os.environ["LEDGER_EVENTS_STREAM"]
    if os.getenv("LEDGER_EVENTS_DLQ"):
        events["dlq"] = os.environ["LEDGER_EVENTS_DLQ"]
    if os.getenv("REDIS_URL"):
        events["redis_url"] = os.environ["REDIS_URL"]
    config["events"] = events
    return Settings(**config)
