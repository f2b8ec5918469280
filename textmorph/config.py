# config.py
from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_VAR = "TEXTMORPH_CONFIG"
DEFAULT_FILE = "textmorph.yaml"

DEFAULTS: Dict[str, Any] = {
    "modes": ["i", "n", "v", "x", "o"],
    "insert_mode": "i",
    "text_tag": "text",
    "cost": {
        "add": 1,
        "delete": 1,
        "keyed_match": 1,
        "keyed_mismatch": 2,
    },
    "log_level": "WARNING",
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """
    Config loader that layers a YAML file over the built-in defaults.

    Usage:
        cfg = Config()                       # TEXTMORPH_CONFIG, then ./textmorph.yaml
        cfg = Config("path/to/file.yaml")    # explicit file
        modes = cfg.get("modes")
        add_cost = cfg.get_nested("cost.add", 1)
        raw = cfg.as_dict()
        cfg.reload()                         # re-read the file (useful in dev)

    Parameters:
      config_file: path to a YAML file. When None, the TEXTMORPH_CONFIG
        environment variable is tried, then textmorph.yaml in the cwd.
      overrides: values applied on top of file and defaults (handy in tests).
    """

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        self.config_file_arg = config_file
        self._overrides: Dict[str, Any] = dict(overrides or {})
        self._config: Dict[str, Any] = {}
        self._source: Optional[str] = None  # 'file' or 'defaults'

        # resolved file path (may be None if not found)
        self._resolved_config_path: Optional[Path] = self._resolve_config_path(config_file)

        self.reload()

    # ----- public API -----
    def reload(self) -> None:
        """Re-read the configuration file. A missing file leaves the defaults."""
        data = self._try_load_file()
        if data is None:
            self._source = "defaults"
            data = {}
        else:
            self._source = "file"
        self._config = _merge(_merge(copy.deepcopy(DEFAULTS), data), self._overrides)

    def as_dict(self) -> Dict[str, Any]:
        """Return the effective configuration as a dict."""
        return copy.deepcopy(self._config)

    def get(self, key: str, default: Any = None) -> Any:
        """Shallow lookup in the top-level config dict."""
        return self._config.get(key, default)

    def get_nested(self, path: str, default: Any = None, sep: str = ".") -> Any:
        """
        Lookup nested keys using dot-path (e.g. "cost.add").
        Returns default if any step is missing.
        """
        cur = self._config
        if not path:
            return default
        for part in path.split(sep):
            if not isinstance(cur, dict):
                return default
            if part in cur:
                cur = cur[part]
            else:
                return default
        return cur

    @property
    def source(self) -> Optional[str]:
        """Return 'file' or 'defaults' depending on where config came from."""
        return self._source

    @property
    def resolved_config_path(self) -> Optional[Path]:
        """If a filesystem config was resolved, return its Path, otherwise None."""
        return self._resolved_config_path

    # ----- internal helpers -----
    def _resolve_config_path(self, config_file: Optional[Union[str, Path]]) -> Optional[Path]:
        """
        Resolve the YAML config path:
          1. explicit config_file -> returned even if missing (reported on load)
          2. TEXTMORPH_CONFIG environment variable
          3. textmorph.yaml in the cwd, if it exists
          4. else None (defaults only)
        """
        if config_file is not None:
            return Path(config_file).expanduser().resolve()

        from_env = os.environ.get(ENV_VAR)
        if from_env:
            return Path(from_env).expanduser().resolve()

        candidate = (Path.cwd() / DEFAULT_FILE).resolve()
        if candidate.exists():
            return candidate

        return None

    def _try_load_file(self) -> Optional[Dict[str, Any]]:
        """Load the resolved YAML file. Returns None when there is nothing to load."""
        if not self._resolved_config_path:
            return None
        if not self._resolved_config_path.exists():
            logger.warning("config file %s not found, using defaults", self._resolved_config_path)
            return None
        try:
            with self._resolved_config_path.open("r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise ConfigError(f"malformed config file {self._resolved_config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"cannot read config file {self._resolved_config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"config file {self._resolved_config_path} must contain a mapping, got {type(data).__name__}"
            )
        return data

    def __repr__(self):
        return f"Config(source={self._source!r}, path={self._resolved_config_path!r})"


_default_config: Optional[Config] = None


def get_config(*args, **kwargs) -> Config:
    """
    Convenience factory that returns the shared Config instance.
    Arguments are forwarded to Config() only on the first call.
    """
    global _default_config
    if _default_config is None:
        _default_config = Config(*args, **kwargs)
    return _default_config
