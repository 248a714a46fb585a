"""Feature registry loaded from ``config/features.yaml``."""
from __future__ import annotations

from pathlib import Path
from typing import Mapping

import yaml
from pydantic import ValidationError

from jobwatch.core.errors import FeatureConfigError, UnknownFeatureError
from jobwatch.core.schema import FeatureConfig

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
FEATURES_FILE = CONFIG_DIR / "features.yaml"


def parse_features(raw: Mapping[str, object]) -> dict[str, FeatureConfig]:
    if not isinstance(raw, Mapping):
        raise FeatureConfigError("feature configuration must be a mapping")

    defaults = raw.get("defaults") or {}
    entries = raw.get("features") or {}
    if not isinstance(defaults, Mapping) or not isinstance(entries, Mapping):
        raise FeatureConfigError("'defaults' and 'features' must be mappings")

    features: dict[str, FeatureConfig] = {}
    for name, entry in entries.items():
        if not isinstance(entry, Mapping):
            raise FeatureConfigError(f"feature {name!r} must be a mapping")
        merged = {**defaults, **entry, "name": str(name)}
        try:
            features[str(name)] = FeatureConfig(**merged)
        except ValidationError as exc:
            raise FeatureConfigError(f"invalid feature {name!r}: {exc}") from exc
    return features


def load_features(path: Path | None = None) -> dict[str, FeatureConfig]:
    """Load and validate the feature table."""

    source = path or FEATURES_FILE
    if not source.exists():
        raise FeatureConfigError(f"feature configuration not found: {source}")
    with source.open("r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    return parse_features(raw)


def get_feature(features: Mapping[str, FeatureConfig], name: str) -> FeatureConfig:
    try:
        return features[name]
    except KeyError as exc:
        raise UnknownFeatureError(f"unknown feature: {name}") from exc
