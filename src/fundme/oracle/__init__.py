"""Price feeds used to value contributions in USD."""

from .feed import MockV3Aggregator, PriceOracle, RoundData, get_conversion_rate, read_price

__all__ = ["MockV3Aggregator", "PriceOracle", "RoundData", "get_conversion_rate", "read_price"]
