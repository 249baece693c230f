"""
Allocator Governance Service - Main Entry Point

Usage:
    python main.py --env dev          # Development mode (Postgres + devnet)
    python main.py --env prod         # Production mode
    python main.py --demo             # In-memory stores, no database
"""

from __future__ import annotations
import asyncio
import argparse
import signal
import sys
from dataclasses import dataclass
from typing import Optional

from config.config_manager import ConfigManager
from config.models import AppConfig
from allocator_governance.application.command_bus import CommandBus
from allocator_governance.application.commands import register_command_handlers
from allocator_governance.application.services import MetaAllocatorApprovalPoller
from allocator_governance.application.simple_event_bus import SimpleEventBus
from allocator_governance.domain.exceptions import ChainError, FatalError
from allocator_governance.domain.interfaces import (
    AllocatorRepository,
    ApplicationDetailsRepository,
    IssueDetailsRepository,
)
from allocator_governance.domain.services import AllocationPathResolver
from allocator_governance.infrastructure.chain import Web3ChainClient
from allocator_governance.infrastructure.persistence import (
    Database,
    DatabaseError,
    InMemoryAllocatorRepository,
    PostgresAllocatorRepository,
)
from allocator_governance.infrastructure.persistence.repositories import (
    InMemoryApplicationDetailsRepository,
    InMemoryIssueDetailsRepository,
    PostgresApplicationDetailsRepository,
    PostgresIssueDetailsRepository,
)
from allocator_governance.utils import (
    StructuredLogger,
    LogCategory,
    flush_all_loggers,
    setup_logging_from_config,
    shutdown_logging,
)
from migrations.runner import MigrationError, run_migrations


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Allocator Governance Service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --env dev              # Run against local Postgres and devnet
  python main.py --env prod --no-poller # Serve commands only
  python main.py --demo -v              # In-memory stores, console logging
        """
    )

    parser.add_argument(
        "--env",
        type=str,
        default="dev",
        choices=["dev", "prod", "demo"],
        help="Environment to run in (default: dev)"
    )

    parser.add_argument(
        "--config-dir",
        type=str,
        default="config",
        help="Directory containing base.yaml and environment overrides"
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use in-memory event store and read models (no database)"
    )

    parser.add_argument(
        "--no-poller",
        action="store_true",
        help="Do not start the meta-allocator approval poller"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level for all categories, console output)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level (ignored if --verbose is set)"
    )

    return parser.parse_args()


@dataclass
class Stores:
    """Event store and read models the handlers write through."""
    repository: AllocatorRepository
    application_details: ApplicationDetailsRepository
    issues: IssueDetailsRepository
    database: Optional[Database] = None


async def open_stores(config: AppConfig, demo: bool, system_structured: StructuredLogger) -> Stores:
    """Connect Postgres and apply migrations, or fall back to in-memory stores."""
    if demo or config.database is None:
        system_structured.info(LogCategory.SYSTEM, "Using in-memory stores", {"demo": demo})
        return Stores(
            repository=InMemoryAllocatorRepository(),
            application_details=InMemoryApplicationDetailsRepository(),
            issues=InMemoryIssueDetailsRepository(),
        )

    db = Database(config.database)
    await db.connect()
    applied = await run_migrations(db)
    system_structured.info(
        LogCategory.SYSTEM,
        "Database ready",
        {"host": config.database.host, "database": config.database.database,
         "migrations_applied": [m.version for m in applied]}
    )
    return Stores(
        repository=PostgresAllocatorRepository(db, snapshot_every=config.event_store.snapshot_every),
        application_details=PostgresApplicationDetailsRepository(db),
        issues=PostgresIssueDetailsRepository(db),
        database=db,
    )


def install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still reaches main()
            pass


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    config_manager = ConfigManager(config_dir=args.config_dir, env=args.env)
    config = config_manager.load()

    if args.log_level:
        config.logging.level = args.log_level

    category_loggers = setup_logging_from_config(
        config.logging,
        env=args.env,
        console=args.verbose or args.demo,
        verbose=args.verbose,
    )
    system_logger = category_loggers["system"]
    system_structured = StructuredLogger(system_logger)

    system_structured.info(
        LogCategory.SYSTEM,
        "Starting Allocator Governance Service",
        {"env": args.env, "log_timezone": config.logging.timezone}
    )

    stores: Optional[Stores] = None
    poller: Optional[MetaAllocatorApprovalPoller] = None
    exit_code = 0

    try:
        stores = await open_stores(config, args.demo, system_structured)

        resolver = AllocationPathResolver(config.governance)
        event_bus = SimpleEventBus()
        command_bus = register_command_handlers(
            CommandBus(),
            stores.repository,
            resolver,
            stores.application_details,
            stores.issues,
            event_bus=event_bus,
            rkh_approval_threshold=config.governance.rkh_approval_threshold,
        )
        system_structured.info(
            LogCategory.SYSTEM,
            "Command handlers registered",
            {"meta_allocators": [m.name for m in resolver.meta_allocators()]}
        )

        if args.no_poller or not config.poller.enabled:
            system_structured.info(LogCategory.SYSTEM, "Approval poller disabled")
        else:
            chain_client = Web3ChainClient(config.chain)
            try:
                await chain_client.check_chain_id()
            except ChainError as e:
                system_structured.warning(
                    LogCategory.SYSTEM,
                    f"RPC endpoint not reachable at startup: {e}. Poller will retry each tick."
                )
            poller = MetaAllocatorApprovalPoller(
                chain_client,
                command_bus,
                stores.application_details,
                stores.issues,
                config.chain,
                config.poller,
            )
            await poller.start()
            system_structured.info(
                LogCategory.SYSTEM,
                "Approval poller started",
                {"rpc_url": config.chain.rpc_url, "interval_sec": config.poller.interval_sec}
            )

        stop_event = asyncio.Event()
        install_signal_handlers(stop_event)
        await stop_event.wait()
        system_structured.info(LogCategory.SYSTEM, "Received shutdown signal")

    except (FatalError, DatabaseError, MigrationError) as e:
        system_structured.error(LogCategory.SYSTEM, "Fatal error", {"error": str(e)})
        system_logger.exception("Fatal error:")
        exit_code = 1
    finally:
        if poller:
            await poller.stop()
            system_structured.info(LogCategory.SYSTEM, "Approval poller stopped")
        if stores and stores.database:
            await stores.database.close()
            system_structured.info(LogCategory.SYSTEM, "Database closed")

        system_structured.info(LogCategory.SYSTEM, "System shutdown complete")
        flush_all_loggers()
        shutdown_logging()

    return exit_code


def main() -> None:
    """Main entry point."""
    args = parse_args()

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("Shutdown requested")
        sys.exit(0)
    except Exception as e:
        print(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
