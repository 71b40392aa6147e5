"""Tests for bw_common.cents — integer arithmetic utilities."""

from src.bw_common.cents import apply_bps, cents_to_display


class TestCentsToDisplay:
    def test_naira_default(self) -> None:
        assert cents_to_display(150000) == "₦1,500.00"

    def test_zero(self) -> None:
        assert cents_to_display(0) == "₦0.00"

    def test_small_amount(self) -> None:
        assert cents_to_display(5) == "₦0.05"

    def test_large_amount(self) -> None:
        assert cents_to_display(123_456_789) == "₦1,234,567.89"

    def test_negative(self) -> None:
        assert cents_to_display(-1200) == "-₦12.00"

    def test_other_currencies(self) -> None:
        assert cents_to_display(999, "USD") == "$9.99"
        assert cents_to_display(999, "gbp") == "£9.99"

    def test_unknown_currency_uses_code(self) -> None:
        assert cents_to_display(100, "KES") == "KES 1.00"


class TestApplyBps:
    def test_floor_rounding(self) -> None:
        # 1.5% of 9,999,999 = 149,999.985
        assert apply_bps(9_999_999, 150) == 149_999

    def test_exact(self) -> None:
        assert apply_bps(10_000_000, 100) == 100_000

    def test_zero_inputs(self) -> None:
        assert apply_bps(0, 150) == 0
        assert apply_bps(1_000, 0) == 0
