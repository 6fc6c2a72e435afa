# ledger_insights/cli.py
import json
import logging
from datetime import datetime

import click
from dotenv import load_dotenv

from ledger_insights.config import load_config, load_settings, resolve_log_level
from ledger_insights.loaders import get_loader, loader_for_path
from ledger_insights.loaders.yaml_ledger import load_investment_transactions
from ledger_insights.report import SECTIONS, build_report

logger = logging.getLogger(__name__)


def _parse_as_of(ctx, param, value):
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD") from None


def _echo_summary(report):
    summary = report.get("summary")
    if summary:
        click.echo(
            f"{summary['transactions']} transaction(s): income {summary['total_income']:,.2f}, "
            f"expense {summary['total_expense']:,.2f}, savings rate {summary['savings_rate']:.1f}%"
        )

    health = report.get("health")
    if health:
        click.echo(f"Health score: {health['score']}/100 ({health['grade']})")
        for rec in health.get("recommendations", []):
            click.echo(f"  [{rec['type']}] {rec['message']} - {rec['action']}")

    recurring = report.get("recurring")
    if recurring:
        click.echo(f"Recurring payments: {len(recurring)}")
        for pattern in recurring[:5]:
            click.echo(
                f"  {pattern['description']}: {pattern['average_amount']:,.2f} {pattern['frequency']}"
                f" (~{pattern['monthly_equivalent']:,.2f}/month)"
            )

    anomalies = report.get("anomalies")
    if anomalies:
        click.echo(f"Anomalies: {len(anomalies)}")
        for record in anomalies[:5]:
            click.echo(f"  [{record['severity']}] {record['transaction']['date'][:10]} {record['message']}")

    if "tax_projection" in report:
        tax = report["tax_projection"]
        if tax is None:
            click.echo("Tax projection: not enough recent salary data")
        else:
            click.echo(
                f"Projected tax: {tax['projected_total_tax']:,.2f} "
                f"(additional {tax['additional_tax_liability']:,.2f})"
            )

    for insight in report.get("insights") or []:
        click.echo(f"* {insight['title']}: {insight['message']}")


@click.command()
@click.option(
    '--file', 'ledger_file',
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help='Ledger export to analyse (CSV or YAML).'
)
@click.option(
    '--loader', 'loader_name',
    default=None,
    help='Loader name from config (default: picked from the file extension).'
)
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Path to a YAML config file.'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file with LEDGER_INSIGHTS_* settings.'
)
@click.option(
    '--as-of', 'as_of',
    default=None,
    callback=_parse_as_of,
    help='Treat this date (YYYY-MM-DD) as today.'
)
@click.option(
    '--section', 'sections',
    multiple=True,
    type=click.Choice(SECTIONS),
    help='Only build the given report section (repeatable).'
)
@click.option(
    '--json', 'as_json',
    is_flag=True,
    default=False,
    help='Print the report as JSON.'
)
def main(ledger_file, loader_name, config_path, env_file, as_of, sections, as_json):
    """
    Load a personal ledger export and print analytics: totals, recurring
    payments, anomalies, trends, tax projection, and a health score.
    """
    if env_file:
        load_dotenv(env_file)

    try:
        cfg = load_config(config_path)
        logging.basicConfig(level=resolve_log_level(cfg), format="%(levelname)s %(name)s: %(message)s")
        settings = load_settings(cfg)

        loader = get_loader(loader_name or loader_for_path(ledger_file), cfg)
        transactions = list(loader.load(ledger_file))
        investments = []
        if loader_for_path(ledger_file) == "yaml":
            investments = load_investment_transactions(ledger_file)

        report = build_report(
            transactions,
            settings=settings,
            account_balances=cfg.get("account_balances") or {},
            budgets=cfg.get("budgets") or {},
            investments=investments,
            as_of=as_of,
            sections=list(sections) or None,
        )
    except (ValueError, KeyError) as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(json.dumps(report, indent=2))
        return

    if not transactions:
        click.echo("No transactions found.", err=True)
        return
    _echo_summary(report)


if __name__ == "__main__":
    main()
