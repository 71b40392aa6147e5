"""Tests for bw_common.enums — values must match the migrations' CHECK constraints."""

import re
from enum import Enum
from pathlib import Path

import pytest

from src.bw_common.enums import (
    EscrowPaymentStatus,
    EscrowStatus,
    ListingStatus,
    NotificationKind,
    OrderPaymentStatus,
    OrderStatus,
    PaymentProvider,
    TradeStatus,
)

_VERSIONS = Path(__file__).resolve().parents[2] / "alembic" / "versions"


def _check_values(migration_prefix: str, column: str) -> set[str]:
    """Values listed in `<column> IN (...)` of the given migration."""
    (path,) = _VERSIONS.glob(f"{migration_prefix}_*.py")
    match = re.search(rf"\b{column} IN \(([^)]*)\)", path.read_text())
    assert match is not None, f"no CHECK on {column} in {path.name}"
    return set(re.findall(r"'([^']+)'", match.group(1)))


@pytest.mark.parametrize(
    ("enum_cls", "migration", "column"),
    [
        (ListingStatus, "003", "status"),
        (OrderStatus, "004", "status"),
        (OrderPaymentStatus, "004", "payment_status"),
        (EscrowStatus, "005", "status"),
        (EscrowPaymentStatus, "005", "payment_status"),
        (PaymentProvider, "005", "payment_provider"),
        (TradeStatus, "006", "status"),
    ],
)
def test_enum_matches_check_constraint(enum_cls: type[Enum], migration: str, column: str) -> None:
    assert {m.value for m in enum_cls} == _check_values(migration, column)


class TestAllEnumsAreStr:
    """All enums inherit from (str, Enum) for JSON serialization."""

    def test_escrow_status(self) -> None:
        assert isinstance(EscrowStatus.HELD, str)
        assert EscrowStatus.HELD == "held"

    def test_trade_status(self) -> None:
        assert TradeStatus.AWAITING_FULFILLMENT == "awaiting_fulfillment"

    def test_notification_kind_values_are_names(self) -> None:
        assert all(kind.value == kind.name for kind in NotificationKind)
