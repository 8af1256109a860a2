"""Configuration management with YAML support and pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator


class MatcherConfig(BaseModel):
    max_tokens_per_word: int = Field(default=3, ge=1)
    broad_match_threshold: int = Field(default=3, ge=1)   # more candidates than this → penalty
    broad_match_penalty: float = Field(default=0.8, ge=0.0, le=1.0)
    fuzzy_min_length: int = Field(default=4, ge=1)
    fuzzy_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    fuzzy_discount: float = Field(default=0.8, ge=0.0, le=1.0)
    min_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    min_substring_length: int = Field(default=3, ge=1)


class TimelineConfig(BaseModel):
    min_word_length: int = Field(default=3, ge=1)
    adjacency_window_ms: int = Field(default=200, ge=0)
    estimated_word_ms: int = Field(default=500, gt=0)


class PlaybackConfig(BaseModel):
    tolerance_ms: int = Field(default=50, ge=0)
    use_calibration: bool = True


class CalibrationConfig(BaseModel):
    history_size: int = Field(default=50, ge=2)
    recent_window: int = Field(default=10, ge=1)
    max_stddev_ms: float = Field(default=100.0, gt=0)
    min_samples_for_confidence: int = Field(default=3, ge=1)
    min_samples_for_drift: int = Field(default=5, ge=2)
    underflow_confidence: float = Field(default=0.3, ge=0.0, le=1.0)


class TierConfig(BaseModel):
    high: float = Field(default=0.8, ge=0.0, le=1.0)
    medium: float = Field(default=0.5, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _ordered(self) -> TierConfig:
        if self.medium > self.high:
            raise ValueError("tiers.medium must not exceed tiers.high")
        return self


class AppConfig(BaseModel):
    matcher: MatcherConfig = MatcherConfig()
    timeline: TimelineConfig = TimelineConfig()
    playback: PlaybackConfig = PlaybackConfig()
    calibration: CalibrationConfig = CalibrationConfig()
    tiers: TierConfig = TierConfig()


def load_config(path: str | Path | None = None) -> AppConfig:
    if path is None:
        candidates = [Path("voicesync.yaml"), Path("voicesync.yml"), Path("config.yaml")]
        for c in candidates:
            if c.exists():
                path = c
                break
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}
            return AppConfig(**data)
    return AppConfig()


def merge_cli_overrides(cfg: AppConfig, overrides: dict[str, Any]) -> AppConfig:
    data = cfg.model_dump()
    for key, val in overrides.items():
        if val is None:
            continue
        parts = key.split(".")
        d = data
        for p in parts[:-1]:
            d = d.setdefault(p, {})
        d[parts[-1]] = val
    return AppConfig(**data)


DEFAULT_CONFIG_YAML = """\
# voicesync configuration

matcher:
  max_tokens_per_word: 3     # keep at most this many tokens per spoken word
  broad_match_threshold: 3   # more candidates than this → broad_match_penalty
  broad_match_penalty: 0.8
  fuzzy_min_length: 4        # fuzzy layer only for word and token longer than 3 chars
  fuzzy_threshold: 0.7       # normalized Levenshtein similarity must exceed this
  fuzzy_discount: 0.8
  min_confidence: 0.3
  min_substring_length: 3    # shorter side of a containment match

timeline:
  min_word_length: 3         # words of 2 chars or fewer are skipped
  adjacency_window_ms: 200   # merge same-token segments closer than this
  estimated_word_ms: 500     # per-word duration when no timings are supplied

playback:
  tolerance_ms: 50
  use_calibration: true

calibration:
  history_size: 50
  recent_window: 10
  max_stddev_ms: 100.0       # stddev at which confidence reaches 0
  min_samples_for_confidence: 3
  min_samples_for_drift: 5
  underflow_confidence: 0.3

tiers:
  high: 0.8
  medium: 0.5
"""
