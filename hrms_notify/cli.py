# hrms_notify/cli.py
import asyncio

import click
from dotenv import load_dotenv

from hrms_notify.config import Settings
from hrms_notify.core.logging import configure_logging
from hrms_notify.infra.account_repository import AccountRepository
from hrms_notify.infra.table_client import Tables
from hrms_notify.services.notification_store import NotificationStore


async def run_cleanup(settings: Settings, days: int) -> int:
    tables = await Tables.connect(settings)
    try:
        store = NotificationStore(tables.notifications, AccountRepository(tables.accounts))
        return await store.cleanup(days)
    finally:
        await tables.close()


@click.command()
@click.option("--days", type=int, default=None,
              help="Delete read notifications older than this many days "
                   "(default: NOTIFICATION_RETENTION_DAYS).")
def cleanup(days):
    """Delete old read notifications once and exit."""
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if days is None:
        days = settings.notification_retention_days
    if days < 0:
        raise click.BadParameter("must not be negative", param_hint="--days")
    deleted = asyncio.run(run_cleanup(settings, days))
    click.echo(f"Deleted {deleted} old notifications")


@click.command()
@click.option("--host", default="0.0.0.0")
@click.option("--port", type=int, default=8001)
def serve(host, port):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("hrms_notify.main:app", host=host, port=port)
