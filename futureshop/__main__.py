"""
futureshop.__main__ — Operator CLI for ``python -m futureshop``
================================================================

Commands::

    python -m futureshop init-db            # create tables + seed catalog
    python -m futureshop seed               # seed categories/items if empty
    python -m futureshop restore-catalog    # put back missing default items
    python -m futureshop status             # catalog diagnostics
    python -m futureshop grant UID 50 --reason "support refund"
    python -m futureshop serve --port 8000  # run the HTTP API

``DATABASE_URL`` comes from ``.env``; ``config.yaml`` is optional and only
read for the shop name, log level and API port.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from futureshop.config import ShopConfig, load_config
from futureshop.database.engine import create_db_engine, init_db
from futureshop.database.seed import catalog_status, restore_default_catalog, seed_catalog
from futureshop.errors import ShopError

logger = logging.getLogger("futureshop")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config_or_none() -> ShopConfig | None:
    try:
        return load_config()
    except FileNotFoundError:
        return None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
def cmd_init_db(args: argparse.Namespace) -> int:
    engine = create_db_engine()
    init_db(engine, seed=not args.no_seed)
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    inserted = seed_catalog(create_db_engine())
    print(f"Inserted {inserted} items.")
    return 0


def cmd_restore_catalog(args: argparse.Namespace) -> int:
    changed = restore_default_catalog(create_db_engine())
    print(f"Restored {changed} items.")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    cfg = _load_config_or_none()
    status = catalog_status(create_db_engine())
    print(f"{cfg.shop_name if cfg else 'FutureShop'} catalog")
    print(f"Items: {status.total_items} total, {status.active_items} active")
    for name, exclusive in status.categories.items():
        print(f"  category {name:<10} {'exclusive' if exclusive else 'stackable'}")
    for name, category, price in status.sample:
        print(f"  - {name} ({category}) {price}")
    if status.is_empty:
        print("Catalog is empty. Run `python -m futureshop seed`.")
        return 1
    return 0


def cmd_grant(args: argparse.Namespace) -> int:
    from futureshop.services.balance_service import adjust_balance

    balance = adjust_balance(
        create_db_engine(), args.user_id, args.amount, note=args.reason
    )
    print(f"{args.user_id} now has {balance} coins.")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    cfg = _load_config_or_none()
    port = args.port or (cfg.api_port if cfg else 8000)
    uvicorn.run("futureshop.api.main:app", host=args.host, port=port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="futureshop", description="FutureShop operator commands"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create tables and seed")
    init_parser.add_argument("--no-seed", action="store_true", help="Skip the catalog seed")
    init_parser.set_defaults(func=cmd_init_db)

    subparsers.add_parser("seed", help="Seed the default catalog").set_defaults(func=cmd_seed)
    subparsers.add_parser(
        "restore-catalog", help="Re-insert or re-activate default items"
    ).set_defaults(func=cmd_restore_catalog)
    subparsers.add_parser("status", help="Show catalog diagnostics").set_defaults(func=cmd_status)

    grant_parser = subparsers.add_parser("grant", help="Add or remove coins")
    grant_parser.add_argument("user_id", help="Account uid")
    grant_parser.add_argument("amount", type=int, help="Coin delta (may be negative)")
    grant_parser.add_argument("--reason", default="", help="Note stored in the ledger")
    grant_parser.set_defaults(func=cmd_grant)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    cfg = _load_config_or_none()
    _configure_logging(cfg.log_level if cfg else "INFO")

    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ShopError as exc:
        logger.error("%s: %s", exc.code, exc.message)
        return 2
    except RuntimeError as exc:
        logger.critical("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
