from __future__ import annotations


# We keep typing intentionally flexible because overrides come from JSON payloads (dict-like objects)
# and we want clear error messages when clients send unexpected shapes.
from typing import Any, Mapping

from hazardroute.config.settings import Settings

"""
Per-session settings overrides (safe subset).

A planning session can be created with `settings_overrides` to tune the provider limits and
tracking thresholds for one routing provider or one vehicle. This module:
- validates the override payload against a whitelist,
- deep-merges the safe subset onto current settings,
- re-validates with Pydantic to ensure types/ranges remain correct.
"""

# A value of True allows any keys under that subtree; a nested dict only allows the listed keys.
# `app` (log level, name) is process-wide and stays out of reach.
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    "avoidance": True,
    "guard": True,
    "monitor": True,
    "simulation": True,
    "handoff": True,
    # Circle radius ceiling and step count shape every stored hazard, so only the buffer is tunable.
    "hazards": {"default_buffer_m": True},
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    # New dict so the caller's `base` (often a cached model dump) is never mutated.
    merged: dict[str, Any] = dict(base)
    for key, override_value in override.items():
        if isinstance(override_value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), override_value)
            continue
        merged[key] = override_value
    return merged


def _filter_overrides(
    overrides: Mapping[str, Any],
    *,
    allowed_tree: Mapping[str, Any],
    path: tuple[str, ...] = (),
) -> dict[str, Any]:
    filtered: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed_tree:
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides contains a disallowed key: '{dotted_path}'"
            )

        allowed = allowed_tree[key]
        if allowed is True:
            filtered[key] = value
            continue

        if not isinstance(value, Mapping):
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides key '{dotted_path}' must be a mapping"
            )

        filtered[key] = _filter_overrides(
            value, allowed_tree=allowed, path=(*path, key)
        )
    return filtered


def apply_settings_overrides(
    settings: Settings, overrides: Mapping[str, Any] | None
) -> Settings:
    """Return `settings` with the whitelisted `overrides` applied (a new, re-validated model)."""
    if not overrides:
        return settings

    safe_overrides = _filter_overrides(
        overrides, allowed_tree=ALLOWED_SETTINGS_OVERRIDES_TREE
    )
    merged_payload = _deep_merge(settings.model_dump(mode="python"), safe_overrides)
    return Settings.model_validate(merged_payload)
