import json

import pytest
import yaml
from click.testing import CliRunner

import ledger_insights.config as config
from ledger_insights.cli import main as cli

LEDGER_CSV = """Period,Accounts,Category,Subcategory,Note,Amount,Income/Expense
2024-07-01,HDFC Bank,Employment Income,Salary,Salary,100000,Income
2024-08-01,HDFC Bank,Employment Income,Salary,Salary,100000,Income
2024-09-01,HDFC Bank,Employment Income,Salary,Salary,100000,Income
2024-10-01,HDFC Bank,Employment Income,Salary,Salary,100000,Income
2024-07-05,HDFC Credit Card,Entertainment,Subscriptions,Netflix,649,Expense
2024-08-05,HDFC Credit Card,Entertainment,Subscriptions,Netflix,649,Expense
2024-09-05,HDFC Credit Card,Entertainment,Subscriptions,Netflix,649,Expense
2024-10-05,HDFC Credit Card,Entertainment,Subscriptions,Netflix,649,Expense
2024-07-12,HDFC Bank,Food,Groceries,,2500,Expense
2024-08-14,HDFC Bank,Food,Groceries,,2700,Expense
2024-09-13,HDFC Bank,Food,Groceries,,2600,Expense
2024-10-10,HDFC Bank,Food,Groceries,,2550,Expense
2024-09-20,HDFC Credit Card,Shopping,Electronics,Laptop,45000,Expense
2024-10-02,HDFC Bank,Transfer,,Card bill,45649,Transfer-Out
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    # Registering the variables first makes monkeypatch undo anything a .env file sets.
    for name in (config.CONFIG_ENV, config.LOG_LEVEL_ENV):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def _write_ledger(tmp_path, text=LEDGER_CSV):
    path = tmp_path / "ledger.csv"
    path.write_text(text)
    return str(path)


def _write_config(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


def test_cli_prints_summary(tmp_path):
    ledger = _write_ledger(tmp_path)
    cfg = _write_config(tmp_path, {"account_balances": {"HDFC Bank": 300000}})
    runner = CliRunner()
    result = runner.invoke(cli, ["--file", ledger, "--config", cfg, "--as-of", "2024-10-15"])

    assert result.exit_code == 0, result.output
    assert "14 transaction(s): income 400,000.00" in result.output
    assert "Health score:" in result.output
    assert "Recurring payments: 1" in result.output
    assert "Netflix: 649.00 monthly" in result.output
    assert "[medium] 2024-09-20" in result.output
    assert "Projected tax:" in result.output


def test_cli_json_sections(tmp_path):
    ledger = _write_ledger(tmp_path)
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["--file", ledger, "--json", "--section", "summary", "--section", "recurring", "--as-of", "2024-10-15"],
    )

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert list(report) == ["summary", "recurring"]
    assert report["summary"]["total_expense"] == 2596 + 10350 + 45000
    assert report["recurring"][0]["frequency"] == "monthly"


def test_cli_reads_config_from_env_file(tmp_path):
    ledger = _write_ledger(tmp_path)
    cfg = _write_config(tmp_path, {"budgets": {"Food": 9000}})
    env_file = tmp_path / ".env"
    env_file.write_text(f"LEDGER_INSIGHTS_CONFIG={cfg}\n")

    runner = CliRunner()
    result = runner.invoke(cli, ["--file", ledger, "--env-file", str(env_file), "--json", "--section", "budgets"])

    assert result.exit_code == 0, result.output
    budgets = json.loads(result.stdout)["budgets"]
    assert budgets == [
        {
            "category": "Food",
            "spent": 10350.0,
            "budget": 9000.0,
            "remaining": -1350.0,
            "percent_used": 115.0,
            "status": "over",
        }
    ]


def test_cli_reports_empty_ledger(tmp_path):
    ledger = _write_ledger(tmp_path, LEDGER_CSV.splitlines()[0] + "\n")
    runner = CliRunner()
    result = runner.invoke(cli, ["--file", ledger])
    assert result.exit_code == 0
    assert "No transactions found." in result.output


def test_cli_rejects_bad_as_of(tmp_path):
    ledger = _write_ledger(tmp_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["--file", ledger, "--as-of", "15/10/2024"])
    assert result.exit_code == 2
    assert "expected YYYY-MM-DD" in result.output


def test_cli_surfaces_config_errors(tmp_path):
    ledger = _write_ledger(tmp_path)
    bad = tmp_path / "bad.yaml"
    bad.write_text("- not\n- a mapping\n")
    runner = CliRunner()
    result = runner.invoke(cli, ["--file", ledger, "--config", str(bad)])
    assert result.exit_code == 1
    assert "must contain a mapping" in result.output


def test_cli_unknown_loader(tmp_path):
    ledger = _write_ledger(tmp_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["--file", ledger, "--loader", "ofx"])
    assert result.exit_code == 1
    assert "Unknown loader" in result.output
