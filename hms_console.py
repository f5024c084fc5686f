#!/usr/bin/env python3
"""
Hospital Management System - Console Interface

Loads the CSV data directory, opens the menu for the given user's role
and writes every store back when the session ends.

Usage:
    python hms_console.py --user P1001
    python hms_console.py --user D001 --data-dir ./data
    python hms_console.py --user D001 --no-save --verbose
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List

from hms_scheduler import __version__
from hms_scheduler.config import configure_logging, load_settings
from hms_scheduler.console import menu_for
from hms_scheduler.csv_io import init_data_dir, load_stores, save_stores
from hms_scheduler.engine import SchedulingEngine
from hms_scheduler.exceptions import DataFileError, SchedulingError

logger = logging.getLogger("hms_scheduler.cli")


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="hms_console",
        description="Hospital appointment scheduling console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --user P1001
      Open the patient menu for P1001 using ./data

  %(prog)s --user D001 --data-dir /srv/hms
      Open the doctor menu with data files from /srv/hms

  %(prog)s --init --data-dir ./data
      Create empty data files and exit
""",
    )

    parser.add_argument("-u", "--user", dest="user_id", help="ID of the user logging in")

    parser.add_argument(
        "-d",
        "--data-dir",
        type=Path,
        help="Directory holding the CSV data files (default: $HMS_DATA_DIR or ./data)",
    )

    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write changes back to the data files on exit",
    )

    parser.add_argument(
        "--init",
        action="store_true",
        help="Create any missing data files with headers only, then exit",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log loading, saving and state changes to stderr",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def main(
    args: List[str] = None,
    input_func: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
        input_func: Source of console input
        output: Sink for console output

    Returns:
        Exit code (0 for success, 1 for data file errors, 2 for other
        domain errors, 3 for unexpected errors)
    """
    parser = create_argument_parser()
    parsed_args = parser.parse_args(args)

    settings = load_settings(
        parsed_args.data_dir,
        verbose=parsed_args.verbose,
        save_on_exit=not parsed_args.no_save,
    )
    configure_logging(settings.verbose)

    try:
        if parsed_args.init:
            init_data_dir(settings.data_dir)
            output(f"Data files ready in {settings.data_dir}")
            return 0

        if not parsed_args.user_id:
            parser.error("--user is required unless --init is given")

        stores = load_stores(settings.data_dir)
        user = stores.users.get(parsed_args.user_id)
        if user is None:
            print(f"Unknown user: {parsed_args.user_id}", file=sys.stderr)
            return 1

        output(f"Welcome, {user.name} ({user.role.value.title()})")
        engine = SchedulingEngine(stores)
        menu_for(user.role)(engine, user.user_id, input_func=input_func, output=output).run()

        if settings.save_on_exit:
            save_stores(settings.data_dir, stores)
        else:
            logger.info("Changes discarded (--no-save)")

        return 0

    except DataFileError as e:
        print(f"Data file error: {e}", file=sys.stderr)
        return 1

    except SchedulingError as e:
        print(f"Scheduling error: {e}", file=sys.stderr)
        return 2

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if parsed_args.verbose:
            import traceback

            traceback.print_exc()
        return 3


if __name__ == "__main__":
    sys.exit(main())
