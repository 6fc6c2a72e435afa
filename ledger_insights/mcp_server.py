from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import anyio
from mcp.server.fastmcp import FastMCP

from ledger_insights.config import load_config, load_settings
from ledger_insights.loaders import get_loader, loader_for_path
from ledger_insights.report import build_report

server = FastMCP(
    name="Ledger Insights",
    instructions="Analyse a personal finance ledger export: health score, recurring payments, anomalies and tax projection.",
)


def _parse_as_of(as_of: str | None) -> datetime | None:
    if not as_of:
        return None
    try:
        day = date.fromisoformat(as_of)
    except ValueError as exc:
        raise ValueError(f"Invalid as_of: {as_of}") from exc
    return datetime(day.year, day.month, day.day)


async def _report_section(
    section: str,
    ledger_path: str,
    loader: str | None,
    config_path: str | None,
    as_of: str | None,
):
    when = _parse_as_of(as_of)
    if not Path(ledger_path).exists():
        raise FileNotFoundError(f"Ledger not found: {ledger_path}")

    def _run():
        cfg = load_config(Path(config_path) if config_path else None)
        reader = get_loader(loader or loader_for_path(ledger_path), cfg)
        report = build_report(
            reader.load(ledger_path),
            settings=load_settings(cfg),
            account_balances=cfg.get("account_balances") or {},
            budgets=cfg.get("budgets") or {},
            as_of=when,
            sections=[section],
        )
        return report[section]

    return await anyio.to_thread.run_sync(_run)


@server.tool(name="health_report", description="Financial health score, grade and recommendations for a ledger")
async def health_report(
    ledger_path: str,
    loader: str | None = None,
    config_path: str | None = None,
) -> dict:
    """Score the ledger at ``ledger_path`` from 0 to 100.

    Account balances and budgets come from the optional config file.
    """
    return await _report_section("health", ledger_path, loader, config_path, None)


@server.tool(name="recurring_payments", description="Detect subscriptions and other recurring payments")
async def recurring_payments(
    ledger_path: str,
    loader: str | None = None,
    config_path: str | None = None,
    as_of: str | None = None,
) -> list[dict]:
    return await _report_section("recurring", ledger_path, loader, config_path, as_of)


@server.tool(name="spending_anomalies", description="Flag unusually large expenses")
async def spending_anomalies(
    ledger_path: str,
    loader: str | None = None,
    config_path: str | None = None,
) -> list[dict]:
    return await _report_section("anomalies", ledger_path, loader, config_path, None)


@server.tool(name="tax_projection", description="Project the financial-year tax bill from recent salary")
async def tax_projection(
    ledger_path: str,
    loader: str | None = None,
    config_path: str | None = None,
    as_of: str | None = None,
) -> dict | None:
    """Return the projection, or ``None`` when there is not enough recent salary data."""
    return await _report_section("tax_projection", ledger_path, loader, config_path, as_of)


@server.tool(name="tax_planning", description="Income split, deductions and tax liability per financial year")
async def tax_planning(
    ledger_path: str,
    loader: str | None = None,
    config_path: str | None = None,
) -> dict:
    return await _report_section("tax_planning", ledger_path, loader, config_path, None)


def main() -> None:
    server.run()


if __name__ == "__main__":
    main()
