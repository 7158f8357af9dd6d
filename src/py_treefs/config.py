"""Runtime configuration — where the store lives and how input ends.

Settings come from three layers, later ones winning:

1. Built-in defaults (``fs_data.txt`` in the working directory).
2. An optional JSON config file.
3. Environment variables (``TREEFS_STORE``, ``TREEFS_END_MARKER``,
   ``TREEFS_AUTOSAVE``).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_STORE = "fs_data.txt"
DEFAULT_END_MARKER = "EOF"

ENV_STORE = "TREEFS_STORE"
ENV_END_MARKER = "TREEFS_END_MARKER"
ENV_AUTOSAVE = "TREEFS_AUTOSAVE"

_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


class ConfigError(RuntimeError):
    """Raise when a config file cannot be read or holds invalid values."""


@dataclass(frozen=True)
class FsConfig:
    """Settings for a file store session.

    Attributes:
        store_path: The record file loaded at startup and saved on exit.
        end_marker: The line that ends multi-line ``write`` input.
        autosave: Whether ``exit`` saves the tree before quitting.

    """

    store_path: Path = Path(DEFAULT_STORE)
    end_marker: str = DEFAULT_END_MARKER
    autosave: bool = True


def load_config(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> FsConfig:
    """Build a config from defaults, an optional JSON file, and the environment.

    Args:
        path: JSON file with any of ``store_path``, ``end_marker``,
            ``autosave``.  Skipped if None.
        environ: Environment to read overrides from (default ``os.environ``).

    Raises:
        ConfigError: If the file cannot be read, is not a JSON object,
            or holds a value of the wrong type.

    """
    values: dict[str, Any] = {}
    if path is not None:
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            msg = f"Cannot load config: {e}"
            raise ConfigError(msg) from e
        if not isinstance(data, dict):
            msg = "Config file must contain a JSON object"
            raise ConfigError(msg)
        values.update(data)  # pyright: ignore[reportUnknownArgumentType]

    env = os.environ if environ is None else environ
    if ENV_STORE in env:
        values["store_path"] = env[ENV_STORE]
    if ENV_END_MARKER in env:
        values["end_marker"] = env[ENV_END_MARKER]
    if ENV_AUTOSAVE in env:
        values["autosave"] = env[ENV_AUTOSAVE].strip().lower() not in _FALSE_WORDS

    store_path = values.get("store_path", DEFAULT_STORE)
    end_marker = values.get("end_marker", DEFAULT_END_MARKER)
    autosave = values.get("autosave", True)
    if not isinstance(store_path, str) or not store_path:
        msg = f"store_path must be a non-empty string, got {store_path!r}"
        raise ConfigError(msg)
    if not isinstance(end_marker, str) or not end_marker:
        msg = f"end_marker must be a non-empty string, got {end_marker!r}"
        raise ConfigError(msg)
    if not isinstance(autosave, bool):
        msg = f"autosave must be true or false, got {autosave!r}"
        raise ConfigError(msg)
    return FsConfig(store_path=Path(store_path), end_marker=end_marker, autosave=autosave)
