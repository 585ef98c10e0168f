import pytest
from pydantic import ValidationError

from src.fundme.config.loader import Settings, load_settings
from src.fundme.exec.model import parse_units


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("FUNDME_CONFIG", "FUNDME_MINIMUM_USD", "FUNDME_ORACLE_KIND", "FUNDME_METRICS_PORT",
                "BINANCE_SPOT_API_KEY", "BINANCE_SPOT_API_SECRET"):
        monkeypatch.delenv(var, raising=False)


def test_load_settings_from_yaml(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "minimum_usd: 75\n"
        "oracle:\n"
        "  kind: mock\n"
        "  decimals: 8\n"
        "  initial_price: 2500\n"
        "accounts:\n"
        "  count: 3\n"
        "  starting_balance: 5\n"
        "journal_path: null\n"
    )
    s = load_settings(str(p))
    assert s.minimum_usd_units() == 75 * 10 ** 18
    assert s.oracle.initial_answer() == 2500 * 10 ** 8
    assert s.accounts.count == 3
    assert s.accounts.starting_balance_units() == parse_units("5")
    assert s.journal_path is None


def test_missing_file_uses_defaults(tmp_path):
    s = load_settings(str(tmp_path / "nope.yaml"))
    assert s.minimum_usd_units() == 50 * 10 ** 18
    assert s.oracle.kind == "mock"
    assert s.oracle.initial_answer() == 2000 * 10 ** 8


def test_env_overrides(tmp_path, monkeypatch):
    p = tmp_path / "config.yaml"
    p.write_text("minimum_usd: 50\noracle:\n  exchange: binance\n  environment: spot\n")
    monkeypatch.setenv("FUNDME_CONFIG", str(p))
    monkeypatch.setenv("FUNDME_MINIMUM_USD", "12.5")
    monkeypatch.setenv("FUNDME_ORACLE_KIND", "ccxt")
    monkeypatch.setenv("BINANCE_SPOT_API_KEY", "k")
    monkeypatch.setenv("BINANCE_SPOT_API_SECRET", "s")
    s = load_settings()
    assert s.minimum_usd_units() == parse_units("12.5")
    assert s.oracle.kind == "ccxt"
    assert s.oracle.api_key == "k" and s.oracle.api_secret == "s"


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        Settings(minimum_usd="-1")
    with pytest.raises(ValidationError):
        Settings(oracle={"kind": "chainlink"})
    with pytest.raises(ValidationError):
        Settings(oracle={"initial_price": "0"})
    with pytest.raises(ValidationError):
        Settings(accounts={"count": 0})
    with pytest.raises(ValidationError):
        Settings(minimum_usd="inf")
    with pytest.raises(ValidationError):
        Settings(accounts={"starting_balance": "NaN"})


def test_initial_price_must_fit_feed_decimals():
    with pytest.raises(ValidationError):
        Settings(oracle={"initial_price": "2000.123456789", "decimals": 8})
    s = Settings(oracle={"initial_price": "2000.12345678", "decimals": 8})
    assert s.oracle.initial_answer() == 200012345678


def test_infinite_minimum_from_env_is_a_validation_error(tmp_path, monkeypatch):
    monkeypatch.setenv("FUNDME_MINIMUM_USD", "inf")
    with pytest.raises(ValidationError):
        load_settings(str(tmp_path / "nope.yaml"))
