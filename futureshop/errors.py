"""
futureshop.errors — Economy Error Taxonomy
===========================================

Every rejection the engine can produce is a :class:`ShopError`.  Business
rejections (``AlreadyOwned``, ``InsufficientFunds``, ``NotFound``) are
expected outcomes: the API renders them as ``{"success": false, ...}`` and
they are never logged as server errors.

``TransientStoreError`` wraps connection / lock failures reported by the
database driver.  The engine never retries it; the HTTP layer retries once.
"""

from __future__ import annotations


class ShopError(Exception):
    """Base class for all economy rejections."""

    status_code = 400
    code = "shop_error"
    default_message = "The request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ShopError):
    """Missing or malformed identifiers / amounts."""
    code = "validation_error"
    default_message = "Invalid request."


class NotFound(ShopError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class ItemNotFound(NotFound):
    code = "item_not_found"
    default_message = "Item not found"


class NotOwned(NotFound):
    code = "not_owned"
    default_message = "Item not found in your inventory"


class AccountNotFound(NotFound):
    code = "account_not_found"
    default_message = "User not found"


class AlreadyOwned(ShopError):
    code = "already_owned"
    default_message = "You already own this item"


class InsufficientFunds(ShopError):
    code = "insufficient_funds"
    default_message = "Not enough FutureCoins"


class TransientStoreError(ShopError):
    """Connection, pool or lock failure; safe to retry the whole operation."""
    status_code = 503
    code = "transient_store_error"
    default_message = "The shop is temporarily unavailable. Please try again."
