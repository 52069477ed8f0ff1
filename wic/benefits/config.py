"""TOML configuration loader for the benefits module."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

_DEFAULT_DB_PATH = "~/.config/wic-benefits/benefits.db"
_DEFAULT_OFF_URL = "https://world.openfoodfacts.org/api/v2"
_DEFAULT_USER_AGENT = "wic-benefits/0.1 (benefit scanner)"


def _default_allotments() -> dict[str, float]:
    return {
        "dairy": 4.0,
        "grains": 16.0,
        "protein": 2.0,
        "fruits": 12.0,
        "vegetables": 12.0,
    }


@dataclass
class DatabaseConfig:
    path: str = _DEFAULT_DB_PATH


@dataclass
class OpenFoodFactsConfig:
    base_url: str = _DEFAULT_OFF_URL
    user_agent: str = _DEFAULT_USER_AGENT


@dataclass
class LookupConfig:
    backend: str = "catalog"
    timeout: float = 10.0
    openfoodfacts: OpenFoodFactsConfig = field(default_factory=OpenFoodFactsConfig)


@dataclass
class SchedulerConfig:
    enabled: bool = False
    rollover_schedule: str = "5 0 1 * *"  # 00:05 on the 1st of each month


@dataclass
class BenefitsConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    lookup: LookupConfig = field(default_factory=LookupConfig)
    allotments: dict[str, float] = field(default_factory=_default_allotments)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


def load_config(path: str | Path | None = None) -> BenefitsConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The database path and lookup user agent can be overridden via
    environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    lkp = raw.get("lookup", {})
    alt = raw.get("allotments", {})
    sch = raw.get("scheduler", {})

    off_cfg = lkp.get("openfoodfacts", {})

    # Resolve settings: config file → environment variable → default
    db_path = (
        dbs.get("path", "")
        or os.environ.get("WIC_BENEFITS_DB", "")
        or _DEFAULT_DB_PATH
    )
    user_agent = (
        off_cfg.get("user_agent", "")
        or os.environ.get("OPENFOODFACTS_USER_AGENT", "")
        or _DEFAULT_USER_AGENT
    )

    # Merge custom allotments with defaults
    allotments = {**_default_allotments(), **{k: float(v) for k, v in alt.items()}}

    return BenefitsConfig(
        database=DatabaseConfig(path=db_path),
        lookup=LookupConfig(
            backend=lkp.get("backend", "catalog"),
            timeout=float(lkp.get("timeout", 10.0)),
            openfoodfacts=OpenFoodFactsConfig(
                base_url=off_cfg.get("base_url", _DEFAULT_OFF_URL),
                user_agent=user_agent,
            ),
        ),
        allotments=allotments,
        scheduler=SchedulerConfig(
            enabled=sch.get("enabled", False),
            rollover_schedule=sch.get("rollover_schedule", "5 0 1 * *"),
        ),
    )
