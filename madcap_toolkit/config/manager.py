from __future__ import annotations

"""Configuration loading and access helpers.

This module centralises all declarative rules (condition taxonomy, list
heuristics, image classification, logging).  It loads YAML files packaged
with *madcap_toolkit* and optionally merges them with user overrides.

User overrides live in ``$MADCAP_TOOLKIT_CONFIG_DIR`` when set, otherwise in
``%LOCALAPPDATA%\\MadCapToolkit\\config`` on Windows and
``~/.madcap_toolkit`` elsewhere.  Each override file replaces the top-level
keys it defines.
"""

import importlib.resources as pkg_resources
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager"]

CONFIG_DIR_ENV = "MADCAP_TOOLKIT_CONFIG_DIR"


def _get_user_config_dir() -> Path:
    """Get the user configuration directory."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    if os.name == 'nt':  # Windows
        local_appdata = os.environ.get('LOCALAPPDATA')
        if local_appdata:
            return Path(local_appdata) / "MadCapToolkit" / "config"
        return Path.home() / "AppData" / "Local" / "MadCapToolkit" / "config"
    return Path.home() / ".madcap_toolkit"


class _Singleton(type):
    _instance: "ConfigManager" | None = None

    def __call__(cls, *args, **kwargs):  # type: ignore[no-self-use]
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance

    def reset(cls) -> None:
        """Forget the shared instance so the next call reloads from disk."""
        cls._instance = None


class ConfigManager(metaclass=_Singleton):
    """Lazy-loads and exposes configuration sections as dictionaries."""

    _DEFAULT_FILENAMES = {
        "condition_taxonomy": "condition_taxonomy.yml",
        "list_heuristics": "list_heuristics.yml",
        "image_classification": "image_classification.yml",
        "logging": "logging.yml",
    }

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        self._ensure_loaded()

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    def get_condition_taxonomy(self) -> Dict[str, Any]:
        return self._data.get("condition_taxonomy", {})

    def get_list_heuristics(self) -> Dict[str, Any]:
        return self._data.get("list_heuristics", {})

    def get_image_classification(self) -> Dict[str, Any]:
        return self._data.get("image_classification", {})

    def get_logging_config(self) -> Dict[str, Any]:
        return self._data.get("logging", {})

    # ------------------------------------------------------------------
    # Internal loading logic
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._data:
            return  # already loaded

        startup_summary = []
        user_config_dir = _get_user_config_dir()

        for key, filename in self._DEFAULT_FILENAMES.items():
            merged_cfg: Dict[str, Any] = {}
            status = "missing"

            # 1. load packaged default
            try:
                resource = pkg_resources.files(__package__).joinpath(filename)
                packaged_data = yaml.safe_load(resource.read_text(encoding="utf-8")) or {}
                merged_cfg.update(packaged_data)
                status = "loaded"
            except (FileNotFoundError, OSError):
                logger.error("Missing packaged config for %s (%s)", key, filename)
                status = "missing"
            except yaml.YAMLError as exc:
                logger.error("Invalid packaged config for %s (%s): %s", key, filename, exc)
                status = "invalid"

            # 2. load user overrides
            user_path = user_config_dir / filename
            if user_path.exists():
                try:
                    user_data = yaml.safe_load(user_path.read_text(encoding="utf-8")) or {}
                    merged_cfg.update(user_data)
                    if status == "loaded":
                        status = "loaded+overrides"
                except (OSError, yaml.YAMLError) as exc:
                    logger.error("Could not parse user config %s: %s", user_path, exc)

            self._data[key] = merged_cfg
            startup_summary.append(f"{key}: {status}")

        logger.info("Config startup: %s", " | ".join(startup_summary))
