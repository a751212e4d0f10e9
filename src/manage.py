"""Settlement database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py reset-db   # Drop, then create all tables
"""

import argparse

from settlement.domain import settlement
from settlement.utils import db
from settlement.utils.logging import configure_logging

COMMANDS = {
    "setup-db": ("Create all database tables", db.setup_db),
    "drop-db": ("Drop all database tables", db.drop_db),
    "reset-db": ("Drop and recreate all database tables", db.reset_db),
}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Settlement database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, (help_text, _) in COMMANDS.items():
        subparsers.add_parser(name, help=help_text)

    args = parser.parse_args(argv)

    configure_logging()
    settlement.init()

    _, action = COMMANDS[args.command]
    print(f"Running {args.command} for the {settlement.name} domain...")
    result = action(settlement)
    if result:
        print(f"Tables ready for: {', '.join(sorted(result))}")
    print("Done.")


if __name__ == "__main__":
    main()
