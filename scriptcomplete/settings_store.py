from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

from scriptcomplete.settings_models import (
    CompletionSettings,
    default_settings,
    normalize_completion_settings,
)

logger = logging.getLogger(__name__)


class SettingsStoreError(RuntimeError):
    """Raised when a settings file cannot be written."""


def deep_merge_defaults(data: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Fill keys missing from ``data`` with copies of ``defaults``, recursing into dicts."""
    merged = deepcopy(dict(data))
    for key, fallback in defaults.items():
        value = merged.get(key)
        if key not in merged:
            merged[key] = deepcopy(fallback)
        elif isinstance(value, dict) and isinstance(fallback, dict):
            merged[key] = deep_merge_defaults(value, fallback)
    return merged


def dot_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    node: Any = data
    for part in key.split(".") if key else ():
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def dot_set(data: dict[str, Any], key: str, value: Any) -> None:
    if not key:
        raise ValueError("Key cannot be empty.")
    *parents, leaf = key.split(".")
    node = data
    for part in parents:
        if not isinstance(node.get(part), dict):
            node[part] = {}
        node = node[part]
    node[leaf] = value


class JsonSettingsStore:
    """JSON-backed settings with defaults and dot-key helpers.

    An unreadable or malformed file never prevents completion from working:
    the defaults are used and the problem is kept in ``last_error``.
    """

    def __init__(self, path: Path | str | None, defaults: Mapping[str, Any] | None = None) -> None:
        self.path = Path(path) if path else None
        self.defaults = deepcopy(dict(defaults if defaults is not None else default_settings()))
        self.data = deep_merge_defaults({}, self.defaults)
        self.dirty = False
        self.last_error: str | None = None

    def _read(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self.last_error = str(exc)
            return {}
        if not isinstance(raw, dict):
            self.last_error = f"Settings root in '{self.path}' must be a JSON object, found {type(raw).__name__}."
            return {}
        return raw

    def load(self) -> dict[str, Any]:
        self.last_error = None
        loaded = self._read()
        if self.last_error:
            logger.warning("Ignoring settings file %s: %s", self.path, self.last_error)
        self.data = deep_merge_defaults(loaded, self.defaults)
        self.dirty = False
        return self.data

    def save(self) -> None:
        if self.path is not None:
            payload = json.dumps(self.data, indent=2, sort_keys=True)
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(payload, encoding="utf-8")
            except OSError as exc:
                raise SettingsStoreError(f"Could not write settings file '{self.path}': {exc}") from exc
        self.dirty = False
        self.last_error = None

    def get(self, key: str, default: Any = None) -> Any:
        return dot_get(self.data, key, default)

    def set(self, key: str, value: Any) -> bool:
        if self.get(key) == value:
            return False
        dot_set(self.data, key, value)
        self.dirty = True
        return True

    def completion_settings(self) -> CompletionSettings:
        return normalize_completion_settings(self.get("completion", {}))
