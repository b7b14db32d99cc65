"""Checkout database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

from rich.console import Console

console = Console()


def _domain():
    from checkout.domain import checkout

    checkout.init()
    return checkout


def setup_databases():
    """Create database schemas for the checkout domain."""
    from checkout.utils.db import setup_db

    console.print("Initializing checkout domain...")
    touched = setup_db(_domain())
    if touched:
        console.print(f"  [green]schema ready[/green] on {', '.join(touched)}")
    else:
        console.print("  [yellow]no SQL provider configured, nothing to create[/yellow]")


def drop_databases():
    """Drop database schemas for the checkout domain."""
    from checkout.utils.db import drop_db

    console.print("Initializing checkout domain...")
    touched = drop_db(_domain())
    if touched:
        console.print(f"  [red]schema dropped[/red] on {', '.join(touched)}")
    else:
        console.print("  [yellow]no SQL provider configured, nothing to drop[/yellow]")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Checkout database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
