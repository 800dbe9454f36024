"""
Command-line interface for Imagebox.

Provides commands for initializing the configuration store, inspecting it,
and creating and restoring encrypted configuration backups.

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, NoReturn

from imagebox import __version__
from imagebox.backup.errors import BackupError
from imagebox.config.settings import (
    ConfigurationError,
    Settings,
    get_config_path,
    load_config,
    save_config,
)
from imagebox.storage import ConfigStore, StorageError
from imagebox.storage.presets import PRESETS_INITIALIZED_KEY

# Set up logging
logger = logging.getLogger(__name__)

# Backup password source for non-interactive use
PASSWORD_ENV_VAR = "IMAGEBOX_BACKUP_PASSWORD"

# Global verbosity settings (set during main() based on args)
_quiet_mode = False


def set_output_mode(quiet: bool = False) -> None:
    """
    Set the output mode for the CLI.

    Args:
        quiet: If True, suppress non-essential output.
    """
    global _quiet_mode
    _quiet_mode = quiet


def output(message: str = "", force: bool = False) -> None:
    """
    Print a message to stdout, respecting quiet mode.

    Args:
        message: The message to print.
        force: If True, print even in quiet mode (for essential output like JSON).
    """
    if force or not _quiet_mode:
        print(message)


def output_error(message: str) -> None:
    """Print an error message (always shown, even in quiet mode)."""
    print(message, file=sys.stderr)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for Imagebox CLI."""
    parser = argparse.ArgumentParser(
        prog="imagebox",
        description="Imagebox configuration backup and restore",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"imagebox {__version__}",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.imagebox/config.yaml)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize Imagebox configuration",
        description="Create the config file and database, and install preset providers.",
    )
    init_parser.set_defaults(func=cmd_init)

    # info command
    info_parser = subparsers.add_parser(
        "info",
        help="Show configuration paths and statistics",
        description="Display version, configuration paths and stored item counts.",
    )
    info_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    info_parser.set_defaults(func=cmd_info)

    # backup command
    backup_parser = subparsers.add_parser(
        "backup",
        help="Create an encrypted configuration backup",
        description=(
            "Write providers, models, templates, access tokens and the remote "
            "access setting to a password-protected file. The password is read "
            f"from {PASSWORD_ENV_VAR} if set, otherwise prompted for."
        ),
    )
    backup_parser.add_argument(
        "-o", "--output",
        metavar="DIR",
        help="Output directory (default: backup.output_dir from config)",
    )
    backup_parser.set_defaults(func=cmd_backup)

    # restore command
    restore_parser = subparsers.add_parser(
        "restore",
        help="Restore configuration from a backup file",
        description=(
            "Merge a backup into the current configuration. Existing items "
            "with the same name are kept; only missing items are added."
        ),
    )
    restore_parser.add_argument(
        "backup_file",
        metavar="FILE",
        help="Path to backup file",
    )
    restore_parser.set_defaults(func=cmd_restore)

    # reset command
    reset_parser = subparsers.add_parser(
        "reset",
        help="Reset configuration to first-run state",
        description=(
            "Delete user providers, models, templates and access tokens, and "
            "clear API keys on preset providers."
        ),
    )
    reset_parser.add_argument(
        "--force",
        action="store_true",
        help="Skip confirmation prompt",
    )
    reset_parser.set_defaults(func=cmd_reset)

    return parser


def setup_logging(verbose: int, quiet: bool) -> None:
    """Configure logging based on verbosity level."""
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = Path(args.config) if args.config else None
    return load_config(config_path)


def _read_password(confirm: bool = False) -> str:
    """
    Get the backup password from the environment or the terminal.

    Args:
        confirm: Ask twice and require both entries to match.

    Returns:
        The password, possibly empty if the user entered nothing.
    """
    env_password = os.environ.get(PASSWORD_ENV_VAR)
    if env_password is not None:
        return env_password

    password = getpass.getpass("Backup password: ")
    if confirm and password:
        again = getpass.getpass("Confirm password: ")
        if password != again:
            raise ValueError("Passwords do not match")
    return password


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize Imagebox configuration."""
    output("Imagebox Initialization")
    output("=" * 50)
    output()

    config_path = Path(args.config) if args.config else get_config_path()

    settings = load_config(config_path)
    if config_path.exists():
        output(f"Configuration file exists: {config_path}")
    else:
        save_config(settings, config_path)
        output(f"Configuration file created: {config_path}")

    store = ConfigStore(Path(settings.data_dir).expanduser())
    output(f"Database: {store.db_path}")

    if store.ensure_presets():
        output("Preset providers, models and templates installed.")
    else:
        output("Presets already installed.")

    output()
    output("Initialization complete.")
    output()
    output("Next steps:")
    output("  1. Add your API keys to the preset providers")
    output("  2. Run 'imagebox backup' to save your configuration")
    output()
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Show configuration paths and statistics."""
    settings = _load_settings(args)
    data_dir = Path(settings.data_dir).expanduser()

    info: dict[str, Any] = {
        "version": __version__,
        "config_file": str(Path(args.config) if args.config else get_config_path()),
        "data_dir": str(data_dir),
        "backup_dir": settings.backup.output_dir,
        "initialized": False,
        "counts": {},
        "remote_access_enabled": False,
    }

    store = ConfigStore(data_dir)
    info["initialized"] = store.get_setting(PRESETS_INITIALIZED_KEY) == "true"
    info["counts"] = store.count_rows()
    info["remote_access_enabled"] = store.is_remote_access_enabled()

    if args.json:
        output(json.dumps(info, indent=2), force=True)
        return 0

    output("Imagebox Information")
    output("=" * 60)
    output()
    output(f"Version: {info['version']}")
    output()
    output("Paths:")
    output(f"  Config file: {info['config_file']}")
    output(f"  Data directory: {info['data_dir']}")
    output(f"  Backup directory: {info['backup_dir']}")
    output()
    output("Status:")
    output(f"  Initialized: {'Yes' if info['initialized'] else 'No'}")
    output(f"  Remote access: {'Enabled' if info['remote_access_enabled'] else 'Disabled'}")
    output()
    output("Stored items:")
    for table, count in info["counts"].items():
        output(f"  {table.replace('_', ' ').capitalize()}: {count:,}")
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    """Create an encrypted configuration backup."""
    from imagebox.backup import BackupManager

    settings = _load_settings(args)
    output_dir = Path(args.output) if args.output else Path(settings.backup.output_dir)

    output("Imagebox Backup")
    output("=" * 50)
    output()

    try:
        password = _read_password(confirm=True)
    except ValueError as e:
        output_error(f"Error: {e}")
        return 1

    manager = BackupManager(ConfigStore(Path(settings.data_dir).expanduser()), settings)

    output("Creating backup...")
    result = manager.create_backup(password)
    path = manager.write_backup_file(result, output_dir)

    snapshot = result.snapshot
    output()
    output("Backup created successfully!")
    output()
    output(f"  File: {path}")
    output(f"  Providers: {len(snapshot.providers)}")
    output(f"  Models: {len(snapshot.models)}")
    output(f"  Templates: {len(snapshot.templates)}")
    output(f"  Access tokens: {len(snapshot.access_tokens or [])}")
    output()
    output("To restore from this backup, run:")
    output(f"  imagebox restore {path}")
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore configuration from a backup file."""
    from imagebox.backup import BackupManager

    backup_path = Path(args.backup_file)
    if not backup_path.exists():
        output_error(f"Error: Backup file not found: {backup_path}")
        return 1

    settings = _load_settings(args)

    output("Imagebox Restore")
    output("=" * 50)
    output()
    output(f"Backup file: {backup_path}")
    output()

    manager = BackupManager(ConfigStore(Path(settings.data_dir).expanduser()), settings)
    blob = manager.read_backup_file(backup_path)
    password = _read_password()

    output("Restoring...")
    summary = manager.restore_backup(blob, password)

    output()
    output("Restore completed successfully!")
    output()
    output(f"  Providers restored: {summary.providers_restored}")
    output(f"  Models restored: {summary.models_restored}")
    output(f"  Templates restored: {summary.templates_restored}")
    output(f"  Access tokens restored: {summary.tokens_restored}")
    if summary.total == 0:
        output()
        output("Nothing to restore: every item in the backup already exists.")
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    """Reset configuration to first-run state."""
    settings = _load_settings(args)

    if not args.force:
        output("WARNING: This deletes all custom providers, models, templates")
        output("and access tokens, and clears API keys on preset providers.")
        output()
        response = input("Proceed with reset? [y/N]: ").strip().lower()
        if response not in ("y", "yes"):
            output("Reset cancelled.")
            return 0

    store = ConfigStore(Path(settings.data_dir).expanduser())
    deleted = store.reset_configuration()

    output("Configuration reset.")
    for table, count in deleted.items():
        output(f"  {table.replace('_', ' ').capitalize()} deleted: {count}")
    return 0


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for Imagebox CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Set up logging and output mode
    setup_logging(args.verbose, args.quiet)
    set_output_mode(args.quiet)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        output("\nOperation cancelled.")
        sys.exit(130)
    except BackupError as e:
        output_error(f"Error: {e.message}")
        sys.exit(1)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        sys.exit(2)
    except StorageError as e:
        output_error(f"Storage error: {e}")
        sys.exit(2)
    except Exception as e:
        if args.verbose > 0:
            raise
        output_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
