"""Load, validate, and hot-reload the Garmin backfill configuration.

The config lives in ``backfill_config.yaml`` alongside this module.  It is
loaded once on first use and cached.  Call ``reload_backfill_config()`` to
re-read it from disk.

Usage::

    from src.garmin.backfill.config_loader import get_backfill_config

    config = get_backfill_config()
    config.max_backfill_days("activities")   # 1825
    config.route_enabled("epochs")           # True
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("gateway.garmin.backfill.config")

_CONFIG_PATH = Path(__file__).parent / "backfill_config.yaml"

DEFAULT_MAX_DAYS_PER_REQUEST = 5
DEFAULT_MAX_BACKFILL_DAYS = 365 * 2
DEFAULT_MAX_REQUESTS_PER_USER = 20


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class RouteConfig:
    """Overrides for one backfill route."""

    name: str
    enabled: bool = True
    max_backfill_days: int | None = None


@dataclass
class BackfillConfig:
    """Complete, validated backfill configuration.

    Attributes:
        version:                    Config schema version string.
        max_days_per_request:       Width of one backfill window in days.
        default_max_backfill_days:  How far back a route may reach unless
                                    overridden per route.
        max_requests_per_user:      Requests generated per user and route in
                                    one pass.
        routes:                     Per-route overrides keyed by route name.
    """

    version: str = "1.0"
    max_days_per_request: int = DEFAULT_MAX_DAYS_PER_REQUEST
    default_max_backfill_days: int = DEFAULT_MAX_BACKFILL_DAYS
    max_requests_per_user: int = DEFAULT_MAX_REQUESTS_PER_USER
    routes: dict[str, RouteConfig] = field(default_factory=dict)

    def route_enabled(self, route: str) -> bool:
        cfg = self.routes.get(route)
        return cfg.enabled if cfg is not None else True

    def max_backfill_days(self, route: str) -> int:
        """Return the backfill period in days for a route.

        Args:
            route: Route name (e.g. 'dailies', 'activities').

        Returns:
            The route override if configured, else the default period.
        """
        cfg = self.routes.get(route)
        if cfg is not None and cfg.max_backfill_days is not None:
            return cfg.max_backfill_days
        return self.default_max_backfill_days


class ConfigValidationError(ValueError):
    """Raised when backfill_config.yaml fails validation."""


# ---------------------------------------------------------------------------
# Loading and validation
# ---------------------------------------------------------------------------


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Backfill config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc


def _positive_int(raw: dict[str, Any], key: str, default: int, errors: list[str]) -> int:
    value = raw.get(key, default)
    try:
        number = int(value)
    except (TypeError, ValueError):
        errors.append(f"{key} must be an integer, got {value!r}")
        return default
    if number <= 0:
        errors.append(f"{key} must be positive, got {number}")
        return default
    return number


def _validate_and_build(raw: dict[str, Any]) -> BackfillConfig:
    errors: list[str] = []

    max_days = _positive_int(raw, "max_days_per_request", DEFAULT_MAX_DAYS_PER_REQUEST, errors)
    default_backfill = _positive_int(
        raw, "default_max_backfill_days", DEFAULT_MAX_BACKFILL_DAYS, errors
    )
    max_requests = _positive_int(
        raw, "max_requests_per_user", DEFAULT_MAX_REQUESTS_PER_USER, errors
    )

    routes: dict[str, RouteConfig] = {}
    routes_raw = raw.get("routes") or {}
    if not isinstance(routes_raw, dict):
        errors.append("routes must be a mapping")
        routes_raw = {}
    for name, cfg in routes_raw.items():
        cfg = cfg or {}
        if not isinstance(cfg, dict):
            errors.append(f"routes.{name} must be a mapping")
            continue
        override = None
        if "max_backfill_days" in cfg:
            override = _positive_int(cfg, "max_backfill_days", default_backfill, errors)
        routes[name] = RouteConfig(
            name=name,
            enabled=bool(cfg.get("enabled", True)),
            max_backfill_days=override,
        )

    if errors:
        raise ConfigValidationError(
            f"backfill_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return BackfillConfig(
        version=str(raw.get("version", "1.0")),
        max_days_per_request=max_days,
        default_max_backfill_days=default_backfill,
        max_requests_per_user=max_requests,
        routes=routes,
    )


def load_backfill_config(path: Path | None = None) -> BackfillConfig:
    """Load and validate the backfill config from disk.

    Args:
        path: Override path to YAML. Uses the bundled backfill_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    config = _validate_and_build(_load_yaml(target))
    logger.info("Loaded backfill config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: BackfillConfig | None = None
_config_lock = threading.Lock()


def get_backfill_config() -> BackfillConfig:
    """Return the global BackfillConfig, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_backfill_config()
    return _config


def reload_backfill_config(path: Path | None = None) -> BackfillConfig:
    """Reload the config from disk and replace the global singleton.

    If validation fails the old config is kept and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_backfill_config(path)
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded backfill config: %s -> %s", old_version, new_config.version)
    return new_config
