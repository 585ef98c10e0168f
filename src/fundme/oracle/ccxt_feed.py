"""
Live price feed backed by an exchange ticker via ccxt.

What it does:
- Initializes a ccxt exchange client from `OracleConfig` (credentials are
  optional; public tickers need none).
- Enables sandbox mode when the configured environment names a testnet.
- Serves `latest_round_data()` from the ticker's last price, scaled to the
  configured decimals, so it plugs into the ledger like any other feed.

Where it is used:
- Built by `fundme.main.build_price_feed` when `oracle.kind` is `ccxt`.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

import ccxt

from .feed import PriceOracle, RoundData
from ..config.loader import OracleConfig


logger = logging.getLogger(__name__)


class CcxtPriceFeed(PriceOracle):
    """Thin wrapper around a ccxt ticker exposing the aggregator interface."""

    def __init__(self, config: OracleConfig, exchange: Optional[Any] = None):
        super().__init__()
        self.config = config
        self.symbol = config.symbol
        self._decimals = int(config.decimals)
        self._round_id = 0
        self.exchange = exchange if exchange is not None else self._init_exchange()

    def _init_exchange(self):
        """Create and configure a ccxt exchange instance.

        Enables sandbox/testnet when `environment` contains "testnet".
        """
        exchange_class = getattr(ccxt, self.config.exchange)
        params = {}
        if self.config.api_key:
            params["apiKey"] = self.config.api_key
            params["secret"] = self.config.api_secret
        exchange = exchange_class(params)
        if "TESTNET" in (self.config.environment or "").upper():
            if hasattr(exchange, "set_sandbox_mode"):
                exchange.set_sandbox_mode(True)
        return exchange

    def decimals(self) -> int:
        return self._decimals

    def latest_round_data(self) -> RoundData:
        ticker = self.exchange.fetch_ticker(self.symbol)
        last = ticker.get("last") or ticker.get("close")
        if last is None:
            raise ValueError(f"ticker for {self.symbol} has no last price")
        answer = int(Decimal(str(last)).scaleb(self._decimals))
        # ccxt timestamps are milliseconds; some exchanges omit them, so fall
        # back to the exchange clock at fetch time
        ts_ms = ticker.get("timestamp")
        if ts_ms is None:
            ts_ms = self.exchange.milliseconds()
        updated = int(ts_ms // 1000)
        self._round_id += 1
        logger.debug(f"{self.config.exchange} {self.symbol} last={last}")
        return RoundData(self._round_id, answer, updated, updated, self._round_id)
