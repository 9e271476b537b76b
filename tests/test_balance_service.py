"""
tests/test_balance_service.py — Balance, Grants & Progress Tests
=================================================================
"""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from futureshop.constants import MAX_COIN_BALANCE, MAX_COIN_DELTA, apply_xp
from futureshop.database.models import LedgerReason, User
from futureshop.errors import AccountNotFound, InsufficientFunds, ValidationError
from futureshop.services import balance_service
from futureshop.services.balance_service import (
    adjust_balance,
    apply_progress,
    get_balance,
    list_ledger,
)
from futureshop.services.purchase_service import purchase


class TestGetBalance:
    def test_reads_current_balance(self, shop_engine, funded_user):
        uid = funded_user(coins=120)
        assert get_balance(shop_engine, uid) == 120

    def test_unknown_user_is_created_with_zero(self, shop_engine):
        assert get_balance(shop_engine, "uid-new") == 0
        with Session(shop_engine) as s:
            assert s.get(User, "uid-new") is not None

    def test_reports_zero_when_bootstrap_fails(self, shop_engine, monkeypatch):
        monkeypatch.setattr(balance_service, "ensure_account_quietly", lambda *a, **k: None)
        assert get_balance(shop_engine, "uid-ghost") == 0


class TestAdjustBalance:
    def test_positive_grant(self, shop_engine, funded_user):
        uid = funded_user(coins=10)
        assert adjust_balance(shop_engine, uid, 40, note="streak bonus") == 50

    def test_negative_adjustment(self, shop_engine, funded_user):
        uid = funded_user(coins=50)
        assert adjust_balance(shop_engine, uid, -20) == 30

    def test_cannot_go_below_zero(self, shop_engine, funded_user):
        uid = funded_user(coins=50)
        with pytest.raises(InsufficientFunds):
            adjust_balance(shop_engine, uid, -51)
        assert get_balance(shop_engine, uid) == 50

    def test_zero_delta_returns_balance_without_ledger_row(self, shop_engine, funded_user):
        uid = funded_user(coins=50)
        before = len(list_ledger(shop_engine, uid))
        assert adjust_balance(shop_engine, uid, 0) == 50
        assert len(list_ledger(shop_engine, uid)) == before

    def test_grant_is_ledgered_with_note(self, shop_engine, funded_user):
        uid = funded_user(coins=10)
        adjust_balance(shop_engine, uid, 5, note="support refund")
        latest = list_ledger(shop_engine, uid)[0]
        assert latest.delta == 5
        assert latest.balance_after == 15
        assert latest.reason == LedgerReason.MANUAL_ADJUST
        assert latest.metadata_ == {"note": "support refund"}

    def test_purchase_reason_is_refused(self, shop_engine, funded_user):
        uid = funded_user(coins=10)
        with pytest.raises(ValidationError):
            adjust_balance(shop_engine, uid, -5, reason=LedgerReason.PURCHASE)

    @pytest.mark.parametrize("bad", [1.5, "10", None, True])
    def test_rejects_non_integer_amounts(self, shop_engine, funded_user, bad):
        uid = funded_user()
        with pytest.raises(ValidationError):
            adjust_balance(shop_engine, uid, bad)

    @pytest.mark.parametrize("huge", [MAX_COIN_DELTA + 1, -(MAX_COIN_DELTA + 1), 2**70])
    def test_rejects_out_of_range_amounts(self, shop_engine, funded_user, huge):
        uid = funded_user(coins=10)
        with pytest.raises(ValidationError):
            adjust_balance(shop_engine, uid, huge)
        assert get_balance(shop_engine, uid) == 10

    def test_largest_allowed_grant(self, shop_engine, funded_user):
        uid = funded_user(coins=0)
        assert adjust_balance(shop_engine, uid, MAX_COIN_DELTA) == MAX_COIN_DELTA

    def test_grant_cannot_push_balance_past_cap(self, shop_engine, funded_user):
        uid = funded_user(coins=MAX_COIN_BALANCE - 5)
        with pytest.raises(ValidationError):
            adjust_balance(shop_engine, uid, 10)
        assert adjust_balance(shop_engine, uid, 5) == MAX_COIN_BALANCE
        assert list_ledger(shop_engine, uid)[0].delta == 5

    def test_missing_account_after_failed_bootstrap(self, shop_engine, monkeypatch):
        monkeypatch.setattr(balance_service, "ensure_account_quietly", lambda *a, **k: None)
        with pytest.raises(AccountNotFound):
            adjust_balance(shop_engine, "uid-ghost", 5)


class TestApplyProgress:
    def test_xp_rolls_over_into_levels(self, shop_engine, funded_user):
        uid = funded_user(coins=0)
        apply_progress(shop_engine, uid, xp=80)
        result = apply_progress(shop_engine, uid, xp=45)
        assert (result.level, result.xp) == (2, 25)
        assert result.leveled_up is True

    def test_no_level_up_below_threshold(self, shop_engine, funded_user):
        uid = funded_user(coins=0)
        result = apply_progress(shop_engine, uid, xp=99)
        assert (result.level, result.xp, result.leveled_up) == (1, 99, False)

    def test_coins_are_ledgered_as_reward(self, shop_engine, funded_user):
        uid = funded_user(coins=10)
        result = apply_progress(shop_engine, uid, xp=10, coins=15)
        assert result.future_coins == 25
        latest = list_ledger(shop_engine, uid)[0]
        assert latest.reason == LedgerReason.REWARD
        assert latest.delta == 15

    def test_negative_xp_is_rejected(self, shop_engine, funded_user):
        uid = funded_user()
        with pytest.raises(ValidationError):
            apply_progress(shop_engine, uid, xp=-1)

    def test_rejects_out_of_range_xp(self, shop_engine, funded_user):
        uid = funded_user()
        with pytest.raises(ValidationError):
            apply_progress(shop_engine, uid, xp=2**70)

    def test_coin_cap_rolls_back_xp(self, shop_engine, funded_user):
        uid = funded_user(coins=MAX_COIN_BALANCE)
        with pytest.raises(ValidationError):
            apply_progress(shop_engine, uid, xp=150, coins=1)
        with Session(shop_engine) as s:
            user = s.get(User, uid)
            assert (user.level, user.xp, user.future_coins) == (1, 0, MAX_COIN_BALANCE)

    def test_coin_overdraw_rolls_back_xp(self, shop_engine, funded_user):
        uid = funded_user(coins=5)
        with pytest.raises(InsufficientFunds):
            apply_progress(shop_engine, uid, xp=150, coins=-10)
        with Session(shop_engine) as s:
            user = s.get(User, uid)
            assert (user.level, user.xp, user.future_coins) == (1, 0, 5)

    def test_apply_xp_formula(self):
        assert apply_xp(1, 0, 0) == (1, 0)
        assert apply_xp(1, 99, 1) == (2, 0)
        assert apply_xp(3, 50, 260) == (6, 10)


class TestLedger:
    def test_newest_first_and_limited(self, shop_engine, funded_user):
        uid = funded_user(coins=100)
        purchase(shop_engine, uid, 6)
        adjust_balance(shop_engine, uid, 7)
        entries = list_ledger(shop_engine, uid)
        assert [e.reason for e in entries] == [
            LedgerReason.MANUAL_ADJUST,
            LedgerReason.PURCHASE,
            LedgerReason.BOOTSTRAP_GRANT,
        ]
        assert len(list_ledger(shop_engine, uid, limit=1)) == 1

    def test_ledger_sums_to_balance(self, shop_engine, funded_user):
        uid = funded_user(coins=100)
        purchase(shop_engine, uid, 6)
        adjust_balance(shop_engine, uid, -15)
        apply_progress(shop_engine, uid, coins=30)
        assert sum(e.delta for e in list_ledger(shop_engine, uid)) == get_balance(shop_engine, uid)
