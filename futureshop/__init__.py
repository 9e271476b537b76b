"""
FutureShop — Virtual-Economy Engine for the FutureCoins Item Shop
==================================================================
Server-side ledger behind the habit tracker's item shop: users spend
FutureCoins on cosmetic items, equip and unequip them, and receive coin
grants for progress.  Every balance change happens inside one database
transaction together with its ledger entry.

Package layout::

    futureshop/
    ├── __main__.py        # Operator CLI (init-db, seed, status, grant, serve)
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Category defaults, ledger reasons, level formula
    ├── errors.py          # ShopError taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine and session helper
    │   ├── models.py      # users, item_categories, items, user_items, coin_ledger
    │   └── seed.py        # Default catalog seeder + diagnostics
    ├── services/
    │   ├── account_service.py   # Idempotent account bootstrap
    │   ├── catalog_service.py   # Catalog + owned-item reads
    │   ├── purchase_service.py  # Coins → ownership exchange
    │   ├── equip_service.py     # Equip toggle with category exclusivity
    │   └── balance_service.py   # Grants, adjustments, progress, ledger reads
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine/config/JWT dependencies
        └── routes/        # /items and /users endpoints
"""

__version__ = "0.1.0"
