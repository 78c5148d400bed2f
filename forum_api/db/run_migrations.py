"""
Programmatic Alembic runner for the forum schema.

No alembic.ini is needed: the script location points at the migrations
package next to this file and the URL comes from forum_api.db.config.

Usage examples:
    python -m forum_api.db.run_migrations upgrade head
    python -m forum_api.db.run_migrations downgrade -1
    python -m forum_api.db.run_migrations current
"""

import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from forum_api.db.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# command name -> (alembic function, default arguments)
_COMMANDS: Dict[str, tuple[Callable[..., object], List[str]]] = {
    "upgrade": (command.upgrade, ["head"]),
    "downgrade": (command.downgrade, ["-1"]),
    "history": (command.history, []),
    "current": (command.current, []),
    "heads": (command.heads, []),
}


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Alembic Config bound to the forum migrations and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # env.py switches to the async URL for online runs
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run one Alembic command, e.g. ``main(["upgrade", "head"])``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    name, rest = args[0], args[1:]
    if name not in _COMMANDS:
        print(f"Unsupported Alembic command: {name}. Choose from {', '.join(sorted(_COMMANDS))}")
        sys.exit(2)

    func, defaults = _COMMANDS[name]
    func(build_config(), *(rest or defaults))


if __name__ == "__main__":
    main()
