"""Cron entry points.

Suggested crontab::

    0 */6 * * *  flask --app run gunmerch scan-trends
    0 1-23/6 * * *  flask --app run gunmerch generate-designs
    30 3 * * *   flask --app run gunmerch sync-sales
    45 3 * * *   flask --app run gunmerch maintenance
"""
import click
from flask.cli import AppGroup

from .errors import Outcome
from .extensions import get_pipeline

gunmerch_cli = AppGroup("gunmerch", help="GunMerch AI pipeline jobs.")


def _report(outcome: Outcome):
    click.echo(outcome.message)
    if not outcome.ok:
        raise SystemExit(1)


@gunmerch_cli.command("scan-trends")
def scan_trends():
    """Scan trend sources and store new topics."""
    _report(get_pipeline().orchestrator.scan_trends())


@gunmerch_cli.command("generate-designs")
@click.option("--count", type=int, default=None, help="Defaults to the designs_per_scan setting.")
def generate_designs(count):
    """Generate pending designs from current trends."""
    _report(get_pipeline().orchestrator.generate_designs(count))


@gunmerch_cli.command("sync-sales")
def sync_sales():
    """Reconcile fulfilled storefront orders with design sales."""
    _report(get_pipeline().orchestrator.sync_sales())


@gunmerch_cli.command("maintenance")
def maintenance():
    """Prune old trends and activity log entries."""
    _report(get_pipeline().orchestrator.run_maintenance())
