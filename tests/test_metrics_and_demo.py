import pandas as pd
import pytest
from prometheus_client import REGISTRY

from src.fundme.config.loader import AccountsConfig, Settings
from src.fundme.errors import InsufficientContribution, Unauthorized
from src.fundme.exec.accounts import AccountBook
from src.fundme.exec.model import format_units, parse_units
from src.fundme.main import build_ledger, main, run_demo


def _sample(metric: str, labels: dict) -> float:
    val = REGISTRY.get_sample_value(metric, labels)
    return 0.0 if val is None else float(val)


def test_fund_and_withdraw_counters(ledger, signers, deployer):
    accepted = _sample("fund_calls_total", {"outcome": "accepted"})
    below = _sample("fund_calls_total", {"outcome": "below_minimum"})
    unauthorized = _sample("withdrawals_total", {"outcome": "unauthorized"})

    ledger.fund(signers[1], parse_units("0.1"))
    with pytest.raises(InsufficientContribution):
        ledger.fund(signers[1], parse_units("0.001"))
    assert _sample("ledger_balance", {"ledger": ledger.address}) == float(parse_units("0.1"))
    with pytest.raises(Unauthorized):
        ledger.withdraw(signers[2])
    ledger.withdraw(deployer)

    assert _sample("fund_calls_total", {"outcome": "accepted"}) == accepted + 1
    assert _sample("fund_calls_total", {"outcome": "below_minimum"}) == below + 1
    assert _sample("withdrawals_total", {"outcome": "unauthorized"}) == unauthorized + 1
    assert _sample("ledger_balance", {"ledger": ledger.address}) == 0.0


def test_units_roundtrip_strings():
    assert parse_units("0.1") == 10 ** 17
    assert format_units(10 ** 17) == "0.1"
    assert format_units(parse_units("10000")) == "10000"
    with pytest.raises(ValueError):
        parse_units("0.0000000000000000001")
    with pytest.raises(ValueError):
        parse_units("abc")
    for bad in ("Infinity", "inf", "-inf", "NaN"):
        with pytest.raises(ValueError, match="invalid amount"):
            parse_units(bad)


def test_demo_scenario_and_reports(tmp_path):
    settings = Settings(
        accounts=AccountsConfig(count=4, starting_balance="100"),
        journal_path=str(tmp_path / "journal.jsonl"),
        reports_dir=str(tmp_path / "reports"),
    )
    accounts = AccountBook()
    ledger = build_ledger(settings, accounts)
    run_demo(ledger, parse_units("0.1"))

    assert ledger.balance == 0
    assert ledger.get_funders_count() == 0
    assert accounts.balance_of(ledger.get_owner()) == parse_units("100.3")
    assert len(ledger.contributions) == 3

    ledger.write_parquet(settings.reports_dir)
    df = pd.read_parquet(tmp_path / "reports" / "contributions.parquet")
    assert list(df["amount_units"]) == [0.1, 0.1, 0.1]
    assert list(df["usd_value"]) == [200.0, 200.0, 200.0]
    wd = pd.read_parquet(tmp_path / "reports" / "withdrawals.parquet")
    assert wd["funders_cleared"].tolist() == [3]


def test_main_runs_end_to_end(tmp_path, monkeypatch):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "accounts:\n"
        "  count: 3\n"
        f"journal_path: {tmp_path / 'journal.jsonl'}\n"
        f"reports_dir: {tmp_path / 'out'}\n"
    )
    monkeypatch.setenv("FUNDME_CONFIG", str(cfg))
    monkeypatch.delenv("FUNDME_MINIMUM_USD", raising=False)
    monkeypatch.delenv("FUNDME_ORACLE_KIND", raising=False)
    monkeypatch.delenv("FUNDME_METRICS_PORT", raising=False)
    main()
    assert (tmp_path / "out" / "contributions.parquet").exists()
    assert (tmp_path / "journal.jsonl").exists()
