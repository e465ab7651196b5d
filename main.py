#!/usr/bin/env python3
"""
Main entry point for the node version dashboard.
"""

import asyncio
import argparse
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from nodewatch import __version__
from nodewatch.api.client import SnapshotApiClient
from nodewatch.pipeline.scheduler import DashboardScheduler
from nodewatch.presentation.render import DashboardRenderer
from nodewatch.storage.backends import StorageBackend, create_backend
from nodewatch.storage.cache import TTLCache
from nodewatch.utils.config import load_config, Config
from nodewatch.utils.logger import setup_logging, log_system_info
from nodewatch.utils.monitoring import initialize_monitoring


class DashboardApp:
    """Main application class for the dashboard."""

    def __init__(self):
        self.scheduler: Optional[DashboardScheduler] = None
        self.backend: Optional[StorageBackend] = None
        self.logger = logging.getLogger(__name__)
        self._shutdown_event = asyncio.Event()

    def request_shutdown(self, signum=None):
        """Ask the running dashboard to stop."""
        self.logger.info(f"Received signal {signum}, initiating shutdown...")
        self._shutdown_event.set()

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(self.request_shutdown, signum))

    async def _run_until_shutdown(self, work) -> bool:
        """
        Run work until it finishes or shutdown is requested.

        Returns True when the work completed, False when it was cancelled by
        a shutdown request.
        """
        work_task = asyncio.create_task(work)
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())

        done, pending = await asyncio.wait(
            [work_task, shutdown_task],
            return_when=asyncio.FIRST_COMPLETED
        )

        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if work_task in done:
            # Surface any error from the work itself
            work_task.result()
            return True

        self.logger.info("Shutdown requested, stopping dashboard...")
        return False

    async def run(self, config_path: str, output: Optional[str] = None, watch: bool = False,
                  include_history: bool = True, dry_run: bool = False):
        """Run the dashboard."""
        try:
            config = load_config(config_path)
            setup_logging(asdict(config.logging), enable_json=config.logging.json)
            log_system_info()
            self.setup_signal_handlers()

            if not include_history:
                config.backfill.enabled = False
            output_path = output or config.presentation.output

            self.logger.info("=== NODE DASHBOARD STARTING ===")
            self.logger.info(f"Configuration loaded from: {config_path}")
            self.logger.info(f"API base URL: {config.api.base_url}")
            self.logger.info(f"Marker: {config.aggregation.marker}")
            self.logger.info(f"Cache type: {config.cache.type}")
            self.logger.info(f"History backfill: {'on' if config.backfill.enabled else 'off'}")
            self.logger.info(f"Output: {output_path}")

            monitor = initialize_monitoring(config.monitoring.metrics_enabled, config.monitoring.prometheus_port)
            monitor.metrics.start_server()

            if dry_run:
                self.logger.info("DRY RUN MODE: no dashboard will be written")
                await self._dry_run(config)
                return 0

            self.backend = create_backend(config.cache)
            await self.backend.initialize()
            cache = TTLCache(self.backend)
            renderer = DashboardRenderer(config.presentation, config.aggregation)

            async with SnapshotApiClient(
                base_url=config.api.base_url,
                user_agent=config.api.user_agent,
                request_timeout=config.api.request_timeout
            ) as client:
                self.scheduler = DashboardScheduler(
                    config, client, cache,
                    on_update=lambda state: renderer.save(state, output_path, config.backfill.enabled)
                )

                if watch:
                    self.logger.info(f"Refreshing every {config.presentation.refresh_interval:.0f}s")
                    work = self.scheduler.watch(config.presentation.refresh_interval, self._shutdown_event)
                else:
                    work = self.scheduler.run_once()

                # Either the work finishes or a signal cancels it
                await self._run_until_shutdown(work)

                self.logger.info(f"Scheduler stats: {self.scheduler.get_stats()}")
                self.logger.info(f"Client stats: {client.get_stats()}")
                self.logger.info(f"Metrics: {monitor.get_summary()}")

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            if self.scheduler:
                self.scheduler.close()
            if self.backend:
                await self.backend.close()
            self.logger.info("=== NODE DASHBOARD FINISHED ===")

        return 0

    async def _dry_run(self, config: Config):
        """Perform a dry run to test configuration and connections."""
        self.logger.info("Testing cache backend...")
        try:
            backend = create_backend(config.cache)
            await backend.initialize()
            await backend.close()
            self.logger.info("✓ Cache backend initialization successful")
        except Exception as e:
            self.logger.error(f"✗ Cache backend initialization failed: {e}")

        self.logger.info("Testing snapshot API...")
        try:
            async with SnapshotApiClient(
                base_url=config.api.base_url,
                user_agent=config.api.user_agent,
                request_timeout=config.api.request_timeout
            ) as client:
                listing = await client.snapshot_listing()
                self.logger.info(f"✓ Listing reachable: {listing.count} snapshots")
        except Exception as e:
            self.logger.error(f"✗ Snapshot API test failed: {e}")

        self.logger.info("Dry run completed")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Bitcoin node version dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                            # Render once with default config.yaml
  python main.py --config my_config.yaml   # Run with custom config
  python main.py --output site/index.html  # Write the page elsewhere
  python main.py --watch                    # Keep refreshing the page
  python main.py --no-history               # Skip the historical backfill
  python main.py --dry-run                  # Test configuration only
        """
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )

    parser.add_argument(
        '--output',
        help='Path of the HTML dashboard (default: presentation.output from config)'
    )

    parser.add_argument(
        '--watch',
        action='store_true',
        help='Keep polling and re-rendering until interrupted'
    )

    parser.add_argument(
        '--no-history',
        action='store_true',
        help='Do not backfill or draw the historical chart'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Test configuration without rendering'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'nodewatch {__version__}'
    )

    args = parser.parse_args()

    if not Path(args.config).exists():
        print(f"Error: Configuration file '{args.config}' not found.")
        print("Please create a config.yaml file or specify a different path with --config")
        return 1

    app = DashboardApp()
    try:
        return asyncio.run(app.run(
            config_path=args.config,
            output=args.output,
            watch=args.watch,
            include_history=not args.no_history,
            dry_run=args.dry_run
        ))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
