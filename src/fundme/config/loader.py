"""
Configuration loader for fundme.

What it does:
- Reads static settings from `config/config.yaml` (or `$FUNDME_CONFIG`).
- Applies environment overrides: `FUNDME_MINIMUM_USD`, `FUNDME_ORACLE_KIND`,
  `FUNDME_METRICS_PORT`.
- Resolves optional exchange credentials for the ccxt price feed using the
  prefix `{exchange.upper()}_{environment.replace('-', '_').upper()}`, e.g.
  `BINANCE_SPOT_API_KEY`.
- Validates the result with Pydantic models.

Where it is used:
- Called by `fundme.main` to build the price feed, accounts and ledger.
"""

import logging
import os
import yaml
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
import pathlib

from ..exec.model import parse_units


logger = logging.getLogger(__name__)

DEFAULT_PATH = "config/config.yaml"


class OracleConfig(BaseModel):
    """Price feed selection. Prices are human USD strings ("2000")."""
    kind: Literal["mock", "ccxt"] = "mock"
    decimals: int = Field(default=8, ge=0, le=36)
    initial_price: str = "2000"
    exchange: str = "binance"
    environment: str = "spot"
    symbol: str = "ETH/USDT"
    max_price_age_s: Optional[int] = Field(default=None, ge=0)
    api_key: str = ""
    api_secret: str = ""

    @field_validator("initial_price", mode="before")
    @classmethod
    def positive_price(cls, v):
        if parse_units(v) <= 0:
            raise ValueError("initial_price must be > 0")
        return str(v)

    @model_validator(mode="after")
    def price_fits_decimals(self):
        # the feed answer is initial_price scaled by `decimals`
        self.initial_answer()
        return self

    def initial_answer(self) -> int:
        return parse_units(self.initial_price, self.decimals)


class AccountsConfig(BaseModel):
    """Pre-funded identities created for the demo run."""
    count: int = Field(default=10, ge=1)
    starting_balance: str = "10000"

    @field_validator("starting_balance", mode="before")
    @classmethod
    def non_negative(cls, v):
        if parse_units(v) < 0:
            raise ValueError("starting_balance must be >= 0")
        return str(v)

    def starting_balance_units(self) -> int:
        return parse_units(self.starting_balance)


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    minimum_usd: str = "50"
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    accounts: AccountsConfig = Field(default_factory=AccountsConfig)
    journal_path: Optional[str] = "data/journal.jsonl"
    reports_dir: Optional[str] = None
    metrics_port: int = 0

    @field_validator("minimum_usd", mode="before")
    @classmethod
    def valid_minimum(cls, v):
        if parse_units(v) < 0:
            raise ValueError("minimum_usd must be >= 0")
        return str(v)

    def minimum_usd_units(self) -> int:
        """Minimum contribution in 18-decimal USD."""
        return parse_units(self.minimum_usd)


def _env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    cfg = dict(config)
    oracle = dict(cfg.get("oracle") or {})
    if os.getenv("FUNDME_MINIMUM_USD"):
        cfg["minimum_usd"] = os.environ["FUNDME_MINIMUM_USD"]
    if os.getenv("FUNDME_ORACLE_KIND"):
        oracle["kind"] = os.environ["FUNDME_ORACLE_KIND"]
    if os.getenv("FUNDME_METRICS_PORT"):
        cfg["metrics_port"] = int(os.environ["FUNDME_METRICS_PORT"])
    exchange = str(oracle.get("exchange", "binance"))
    environment = str(oracle.get("environment", "spot"))
    env_prefix = f"{exchange.upper()}_{environment.replace('-', '_').upper()}"
    oracle.setdefault("api_key", os.getenv(f"{env_prefix}_API_KEY", ""))
    oracle.setdefault("api_secret", os.getenv(f"{env_prefix}_API_SECRET", ""))
    cfg["oracle"] = oracle
    return cfg


def load_settings(path: Optional[str] = None) -> Settings:
    """Load YAML config, apply env overrides, and return validated Settings.

    A missing config file is not an error: defaults apply.
    """
    p = pathlib.Path(path or os.getenv("FUNDME_CONFIG", DEFAULT_PATH))
    config: Dict[str, Any] = {}
    if p.exists():
        with open(p, "r") as f:
            config = yaml.safe_load(f) or {}
    else:
        logger.warning(f"config file {p} not found; using defaults")
    return Settings(**_env_overrides(config))
