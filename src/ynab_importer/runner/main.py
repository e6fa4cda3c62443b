"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from ..config import Config, create_default_config, load_config
from ..services.importer import ImportRunError, ImportService
from ..services.notifier import LogNotifier, Notifier, PushbulletNotifier
from ..services.staleness import find_stale_accounts, format_staleness_alerts
from ..state_store import HistoryStore
from ..ynab_client import YNABClient

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ynab-importer",
        description="Normalize scraped transactions and import them to YNAB",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # upload command
    upload_parser = subparsers.add_parser(
        "upload", help="Import all per-account data files to YNAB"
    )
    upload_parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory with per-account JSON files (overrides config)",
    )
    upload_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be imported without submitting or recording history",
    )

    # status command
    status_parser = subparsers.add_parser(
        "status", help="Show run history and accounts that have gone silent"
    )
    status_parser.add_argument(
        "--hours",
        type=int,
        help="Staleness threshold in hours (default: from config)",
    )

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file",
    )

    return parser


def create_notifier(config: Config) -> Notifier:
    """Pushbullet when a token is configured, otherwise log only."""
    if config.notifications.pushbullet_token:
        return PushbulletNotifier(
            token=config.notifications.pushbullet_token,
            title=config.notifications.title,
            device_iden=config.notifications.device_iden,
        )
    return LogNotifier()


def cmd_upload(config: Config, data_dir: Path | None, dry_run: bool) -> int:
    """Run one import."""
    if data_dir is not None:
        config.data_dir = data_dir

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ {error}")
        return 1

    client = YNABClient(
        base_url=config.ynab.base_url,
        token=config.ynab.token,
        budget_id=config.ynab.budget_id,
        timeout=config.ynab.timeout_seconds,
        max_retries=config.ynab.max_retries,
    )
    service = ImportService(
        config=config,
        client=client,
        history=HistoryStore(config.history.path),
        notifier=create_notifier(config),
    )

    print(f"📥 Importing from {config.data_dir}...")

    try:
        result = service.run(dry_run=dry_run)
    except FileNotFoundError as e:
        print(f"❌ {e}")
        return 1
    except ImportRunError as e:
        for account in e.result.accounts:
            _print_account(account)
        print(f"\n❌ {len(e.result.failures)} account(s) failed")
        for failure in e.result.failures:
            print(f"  [{failure.account}] {failure.error}")
        return 1

    for account in result.accounts:
        _print_account(account)

    if dry_run:
        print(json.dumps({"transactions": service.preview_payloads(result)}, indent=2))
        print(f"\n✓ Dry run: {result.total_transactions} transaction(s) would be submitted")
        return 0

    print(
        f"\n✓ Done. New transactions: {result.new_transactions}. "
        f"Total transactions: {result.total_transactions}"
    )
    if result.message:
        print(f"\n{result.message}")
    return 0


def _print_account(account) -> None:
    if account.success:
        print(
            f"  ✓ [{account.account}] {account.total_transactions} transaction(s), "
            f"{account.new_transactions} new"
        )
    else:
        print(f"  ❌ [{account.account}] {account.error}")


def cmd_status(config: Config, hours: int | None) -> int:
    """Show last successful run per account and staleness alerts."""
    history = HistoryStore(config.history.path)
    now = datetime.now(timezone.utc)
    threshold = hours if hours is not None else config.history.stale_after_hours

    accounts = history.accounts()
    if not accounts:
        print("No run history yet")
        return 0

    print("📊 Run history")
    for title in accounts:
        last = history.last_successful(title)
        runs = len(history.entries_for(title))
        if last is None:
            print(f"  {title}: never succeeded ({runs} run(s))")
        else:
            print(f"  {title}: last success {last.date.isoformat()} ({runs} run(s))")

    alerts = format_staleness_alerts(
        find_stale_accounts(history, now=now, threshold_hours=threshold), now=now
    )
    if alerts:
        print(f"\n⚠ Stale accounts (> {threshold}h):")
        for line in alerts:
            print(f"  {line}")
        return 1

    print(f"\n✓ All accounts ran successfully within {threshold}h")
    return 0


def cmd_init_config(config_path: Path, force: bool) -> int:
    """Write a default config file."""
    if config_path.exists() and not force:
        print(f"❌ {config_path} already exists (use --force to overwrite)")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config, parsed.force)

    # Load config
    try:
        config = load_config(parsed.config)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    # Route to command
    if parsed.command == "upload":
        return cmd_upload(config, parsed.data_dir, parsed.dry_run)
    elif parsed.command == "status":
        return cmd_status(config, parsed.hours)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
