"""
Status reconciliation job

Advances elections whose voting window opened or closed while nobody wrote
to them. Run once from cron (`reconcile`) or as a long-lived process
(`daemon`) that sweeps every EVOTE_RECONCILE_INTERVAL_SECONDS.
"""

import asyncio
import json
import signal
from datetime import datetime, timezone

from config import config, get_logger
from database.db_postgres import Database
from elections.reconcile import reconcile_statuses
from exceptions import DatabaseError

logger = get_logger(__name__).bind(component="reconcile_job")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def run_daemon(db: Database, interval: int, shutdown: asyncio.Event, metrics=None) -> int:
    """Sweep until shutdown is set. Returns the number of sweeps run."""
    sweeps = 0
    while not shutdown.is_set():
        try:
            await reconcile_statuses(db.elections, _utcnow(), metrics=metrics)
        except DatabaseError as e:
            # Keep the loop alive across transient database failures
            logger.error("sweep failed", error=str(e), error_type=type(e).__name__)
        sweeps += 1

        try:
            await asyncio.wait_for(shutdown.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    logger.info("daemon stopped", sweeps=sweeps)
    return sweeps


def main():
    """Entry point for the evote-reconcile CLI"""
    import click

    from server.metrics import metrics

    @click.group(invoke_without_command=True)
    @click.pass_context
    def cli(ctx):
        """Election status reconciliation"""
        if ctx.invoked_subcommand is None:
            click.echo(ctx.get_help())

    @cli.command("reconcile")
    def reconcile():
        """Run a single reconciliation sweep"""
        async def run():
            db = await Database.create()
            try:
                return await reconcile_statuses(db.elections, _utcnow(), metrics=metrics)
            finally:
                await db.close()

        stats = asyncio.run(run())
        click.echo(json.dumps(stats, indent=2))

    @cli.command("daemon")
    @click.option(
        "--interval",
        type=click.IntRange(min=1),
        default=config.RECONCILE_INTERVAL_SECONDS,
        show_default=True,
        help="Seconds between sweeps",
    )
    def daemon(interval):
        """Sweep periodically until SIGINT/SIGTERM"""
        async def run():
            db = await Database.create()
            shutdown = asyncio.Event()

            def signal_handler(sig_name):
                logger.info("received signal - graceful shutdown", signal=sig_name)
                shutdown.set()

            loop = asyncio.get_running_loop()
            loop.add_signal_handler(signal.SIGTERM, signal_handler, "SIGTERM")
            loop.add_signal_handler(signal.SIGINT, signal_handler, "SIGINT")

            logger.info("starting reconciliation daemon", interval_seconds=interval)
            try:
                await run_daemon(db, interval, shutdown, metrics=metrics)
            finally:
                await db.close()

        asyncio.run(run())

    @cli.command("init-db")
    def init_db():
        """Create tables and load default settings"""
        async def run():
            db = await Database.create()
            try:
                await db.init_schema()
                return await db.settings.load_or_create_default()
            finally:
                await db.close()

        settings = asyncio.run(run())
        click.echo(f"Schema initialized, settings: {json.dumps(settings.to_dict())}")

    cli()


if __name__ == "__main__":
    main()
