import anyio
import pytest
import yaml

import ledger_insights.config as config
from ledger_insights.mcp_server import (
    health_report,
    recurring_payments,
    server,
    spending_anomalies,
    tax_planning,
    tax_projection,
)

LEDGER = {
    "transactions": [
        {"date": f"2024-{m:02d}-01", "type": "Income", "amount": 90000,
         "category": "Employment Income", "subcategory": "Salary"}
        for m in (6, 7, 8, 9)
    ]
    + [
        {"date": f"2024-{m:02d}-03", "type": "Expense", "amount": 1499,
         "category": "Utilities", "note": "Broadband"}
        for m in (6, 7, 8, 9)
    ]
    + [
        {"date": f"2024-{m:02d}-{d:02d}", "type": "Expense", "amount": 800 + 50 * m + d,
         "category": "Food"}
        for m in (6, 7, 8, 9)
        for d in (10, 20)
    ]
    + [
        {"date": "2024-09-15", "type": "Expense", "amount": 60000, "category": "Travel"},
    ]
}


@pytest.fixture(autouse=True)
def _no_config(monkeypatch, tmp_path):
    monkeypatch.delenv(config.CONFIG_ENV, raising=False)
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "ledger_insights.yaml")


def _write_ledger(tmp_path):
    path = tmp_path / "ledger.yaml"
    path.write_text(yaml.safe_dump(LEDGER))
    return str(path)


def test_server_name():
    assert server.name == "Ledger Insights"


def test_recurring_payments(tmp_path):
    ledger = _write_ledger(tmp_path)

    async def run():
        return await recurring_payments(ledger, as_of="2024-09-20")

    res = anyio.run(run)
    assert [p["description"] for p in res] == ["Broadband"]
    assert res[0]["frequency"] == "monthly"
    assert res[0]["is_active"] is True


def test_spending_anomalies(tmp_path):
    ledger = _write_ledger(tmp_path)

    async def run():
        return await spending_anomalies(ledger)

    res = anyio.run(run)
    assert len(res) == 1
    assert res[0]["transaction"]["category"] == "Travel"
    assert res[0]["severity"] == "high"


def test_tax_projection(tmp_path):
    ledger = _write_ledger(tmp_path)

    async def run():
        return await tax_projection(ledger, as_of="2024-09-20")

    res = anyio.run(run)
    assert res["months_remaining"] == 6
    assert res["avg_monthly_salary"] == 90000


def test_tax_planning(tmp_path):
    ledger = _write_ledger(tmp_path)

    async def run():
        return await tax_planning(ledger)

    res = anyio.run(run)
    assert res["available_years"] == ["FY 2024-25"]
    assert res["by_financial_year"]["FY 2024-25"]["salary_income"] == 360000
    assert res["overall"]["tax_regime"] == "new"


def test_tax_projection_without_salary_is_none(tmp_path):
    ledger = _write_ledger(tmp_path)

    async def run():
        return await tax_projection(ledger, as_of="2025-02-20")

    assert anyio.run(run) is None


def test_health_report_uses_config(tmp_path):
    ledger = _write_ledger(tmp_path)
    cfg = tmp_path / "config.yaml"
    cfg.write_text(yaml.safe_dump({"account_balances": {"Savings": 1000000}, "budgets": {"Travel": 10000}}))

    async def run():
        return await health_report(ledger, config_path=str(cfg))

    res = anyio.run(run)
    assert 0 <= res["score"] <= 100
    assert res["metrics"]["emergency_fund"] == 25
    assert ("warning", "Travel") in [(r["type"], r["category"]) for r in res["recommendations"]]


def test_missing_ledger_raises(tmp_path):
    async def run():
        return await health_report(str(tmp_path / "missing.csv"))

    with pytest.raises(FileNotFoundError):
        anyio.run(run)


def test_bad_as_of_raises(tmp_path):
    ledger = _write_ledger(tmp_path)

    async def run():
        return await recurring_payments(ledger, as_of="soon")

    with pytest.raises(ValueError):
        anyio.run(run)
