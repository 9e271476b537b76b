"""
futureshop.config — YAML Configuration Loader
==============================================

**Why this file exists:**
Secrets and connection strings (``DATABASE_URL``, ``JWT_SECRET``) come from
the environment.  This module reads ``config.yaml`` for the soft,
non-secret settings: shop name, API port, log level and whether the
default catalog is seeded on startup.

Usage::

    from futureshop.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.shop_name)         # "FutureShop"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ShopConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    shop_name: str

    # API
    api_port: int

    # Operations
    log_level: str = "INFO"
    seed_catalog_on_start: bool = True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> ShopConfig:
    """Read *path* and return a :class:`ShopConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return ShopConfig(
        shop_name=raw["shop_name"],
        api_port=int(raw["api_port"]),
        log_level=str(raw.get("log_level", "INFO")).upper(),
        seed_catalog_on_start=bool(raw.get("seed_catalog_on_start", True)),
    )
