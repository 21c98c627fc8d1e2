"""
Command-line interface for the Trac to GitHub migration tool.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import TYPE_CHECKING

from .config import load_config
from .exceptions import ConfigurationError, MigrationCancelledError, MigrationError
from .github_utils import GithubIssueTracker
from .labels import LabelMapper
from .migrator import MigrationStats, TracToGithubMigrator
from .trac_store import TracTicketStore
from .utils import setup_logging

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import FrameType

# Logger handed to the migrator and everything it drives
RUN_LOGGER_NAME = "trac_to_github_migrator"


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Migrate Trac tickets and their history to GitHub issues")

    _ = parser.add_argument(
        "--config", "-c", default="config.yaml", help="Path to the YAML configuration file (default: config.yaml)"
    )
    _ = parser.add_argument(
        "--deduplicate",
        "-d",
        action="store_true",
        help="Skip tickets whose summary equals the title of an existing GitHub issue",
    )
    _ = parser.add_argument(
        "--start-at", "-s", type=int, default=0, metavar="ID", help="Start at this Trac ticket id (default: 0)"
    )
    _ = parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def _cancel_handler(cancel: threading.Event, log: logging.Logger) -> Callable[[int, FrameType | None], None]:
    def handler(_signum: int, _frame: FrameType | None) -> None:
        if cancel.is_set():
            # Second interrupt: stop immediately
            raise KeyboardInterrupt
        cancel.set()
        log.warning("Interrupt received, stopping after the current mutation")

    return handler


def _print_summary(stats: MigrationStats) -> None:
    print("\n" + "=" * 50)
    print("MIGRATION SUMMARY")
    print("=" * 50)
    print(f"Milestones: created={stats.milestones_created}, existing={stats.milestones_existing}")
    print(f"Issues: created={stats.issues_created}, skipped as duplicates={stats.tickets_skipped}")
    print(f"Comments: {stats.comments_created}")
    print(f"Mutations: applied={stats.mutations}, skipped events={stats.events_skipped}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    # Setup logging
    setup_logging(verbose=args.verbose)
    log = logging.getLogger(RUN_LOGGER_NAME)

    cancel = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, _cancel_handler(cancel, log))
    store: TracTicketStore | None = None
    migrator: TracToGithubMigrator | None = None

    try:
        config = load_config(args.config)
        label_mapper = LabelMapper(config.labels, log=log)
        store = TracTicketStore(config.database)
        tracker = GithubIssueTracker.connect(config.repository, config.identities, config.base_url)

        migrator = TracToGithubMigrator(
            store,
            tracker,
            label_mapper,
            config.users,
            deduplicate=args.deduplicate,
            start_at=args.start_at,
            cancel=cancel,
            log=log,
        )
        stats = migrator.migrate()

    except MigrationCancelledError as e:
        log.error(f"{e}. Resume with --start-at {e.ticket_id}")
        if migrator is not None:
            _print_summary(migrator.stats)
        sys.exit(1)
    except ConfigurationError as e:
        log.error(f"Configuration error: {e}")
        sys.exit(1)
    except MigrationError as e:
        log.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log.error("Migration interrupted")
        sys.exit(1)
    except Exception:
        log.exception("Migration failed")
        sys.exit(1)
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        if store is not None:
            store.close()

    _print_summary(stats)
    sys.exit(0)
