"""
test_core.py - Unit tests for core data structures and pure functions

Tests:
- TokenMetadata: creation, validation, immutability
- Events: immutability, repr
- Account validation and unsigned integer validation
- Checked arithmetic
- Conversion functions: to_shares, to_amount
- Rebase step: next_index, rebases_remaining, index_path
"""

import pytest
from datetime import datetime

from scaled_ledger import (
    TokenMetadata, TransferEvent, RebaseEvent,
    ArithmeticOverflow, ZeroAddress,
    BASE, MIN_INDEX, UINT256_MAX, ZERO_ADDRESS,
    is_valid_account, to_shares, to_amount,
    next_index, rebases_remaining, index_path,
)
from scaled_ledger.core import (
    require_account, require_uint, checked_mul, checked_add, checked_sub,
)


class TestTokenMetadata:
    """Tests for TokenMetadata dataclass."""

    def test_create_valid_metadata(self):
        meta = TokenMetadata("Contracting Dollar", "CUSD", 18)
        assert meta.name == "Contracting Dollar"
        assert meta.symbol == "CUSD"
        assert meta.decimals == 18

    def test_default_decimals(self):
        assert TokenMetadata("Token", "TKN").decimals == 18

    def test_empty_name_raises(self):
        with pytest.raises(ValueError, match="name cannot be empty"):
            TokenMetadata("  ", "CUSD")

    def test_empty_symbol_raises(self):
        with pytest.raises(ValueError, match="symbol cannot be empty"):
            TokenMetadata("Token", "")

    def test_decimals_out_of_range_raises(self):
        with pytest.raises(ValueError, match="decimals"):
            TokenMetadata("Token", "TKN", 256)

    def test_decimals_bool_raises(self):
        with pytest.raises(TypeError):
            TokenMetadata("Token", "TKN", True)

    def test_metadata_is_frozen(self):
        meta = TokenMetadata("Token", "TKN")
        with pytest.raises(AttributeError):
            meta.symbol = "X"


class TestEvents:
    """Tests for event records."""

    def test_transfer_event_is_frozen(self):
        event = TransferEvent(0, datetime(2025, 1, 1), "alice", "bob", 100)
        with pytest.raises(AttributeError):
            event.amount = 200

    def test_transfer_event_repr(self):
        event = TransferEvent(3, datetime(2025, 1, 1), "alice", "bob", 100)
        assert "alice" in repr(event)
        assert "bob" in repr(event)
        assert "100" in repr(event)
        assert "#3" in repr(event)

    def test_rebase_event_repr_includes_timestamp(self):
        event = RebaseEvent(1, datetime(2025, 1, 2), BASE, BASE * 99 // 100)
        assert "2025-01-02" in repr(event)

    def test_events_compare_by_value(self):
        t = datetime(2025, 1, 1)
        assert TransferEvent(0, t, "a", "b", 1) == TransferEvent(0, t, "a", "b", 1)


class TestAccountValidation:

    @pytest.mark.parametrize("account", ["alice", "0xabc", ZERO_ADDRESS[:-1] + "1"])
    def test_valid_accounts(self, account):
        assert is_valid_account(account)

    @pytest.mark.parametrize("account", [None, "", "   ", ZERO_ADDRESS, 42])
    def test_invalid_accounts(self, account):
        assert not is_valid_account(account)

    def test_require_account_names_role(self):
        with pytest.raises(ZeroAddress, match="spender"):
            require_account(ZERO_ADDRESS, "spender")

    def test_require_account_returns_account(self):
        assert require_account("alice", "owner") == "alice"


class TestRequireUint:

    def test_accepts_zero_and_max(self):
        assert require_uint(0, "x") == 0
        assert require_uint(UINT256_MAX, "x") == UINT256_MAX

    def test_negative_raises_value_error(self):
        with pytest.raises(ValueError, match="non-negative"):
            require_uint(-1, "amount")

    def test_above_max_raises_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            require_uint(UINT256_MAX + 1, "amount")

    @pytest.mark.parametrize("value", [1.0, "1", True, None])
    def test_non_int_raises_type_error(self, value):
        with pytest.raises(TypeError):
            require_uint(value, "amount")


class TestCheckedArithmetic:

    def test_mul_within_range(self):
        assert checked_mul(UINT256_MAX // BASE, BASE) <= UINT256_MAX

    def test_mul_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_mul(UINT256_MAX // BASE + 1, BASE)

    def test_add_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_add(UINT256_MAX, 1)

    def test_sub_underflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_sub(1, 2)

    def test_sub_to_zero(self):
        assert checked_sub(5, 5) == 0


class TestConversions:
    """Truncating conversions between external amounts and shares."""

    def test_identity_at_base(self):
        assert to_shares(12345, BASE) == 12345
        assert to_amount(12345, BASE) == 12345

    def test_to_shares_truncates(self):
        index = BASE * 99 // 100
        # 100 / 0.99 = 101.0101...
        assert to_shares(100, index) == 101

    def test_to_amount_truncates(self):
        index = BASE * 99 // 100
        # 101 * 0.99 = 99.99
        assert to_amount(101, index) == 99

    def test_single_share_rounds_to_zero_after_rebase(self):
        assert to_amount(1, BASE * 99 // 100) == 0

    def test_zero(self):
        assert to_shares(0, MIN_INDEX) == 0
        assert to_amount(0, MIN_INDEX) == 0

    def test_to_shares_rejects_non_positive_index(self):
        with pytest.raises(ValueError):
            to_shares(1, 0)

    def test_to_shares_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            to_shares(UINT256_MAX // BASE + 1, BASE)

    def test_to_shares_largest_amount(self):
        amount = UINT256_MAX // BASE
        assert to_shares(amount, BASE) == amount

    def test_to_amount_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            to_amount(UINT256_MAX, 2)

    @pytest.mark.parametrize("convert", [to_shares, to_amount])
    def test_negative_operand_rejected(self, convert):
        # Floor division would round -1 away from zero
        with pytest.raises(ValueError, match="non-negative"):
            convert(-1, BASE * 99 // 100)

    @pytest.mark.parametrize("convert", [to_shares, to_amount])
    @pytest.mark.parametrize("value", [1.5, True, "1"])
    def test_non_int_operand_rejected(self, convert, value):
        with pytest.raises(TypeError):
            convert(value, BASE)

    @pytest.mark.parametrize("convert", [to_shares, to_amount])
    @pytest.mark.parametrize("index", [0, -BASE, BASE + 1])
    def test_index_out_of_range_rejected(self, convert, index):
        with pytest.raises(ValueError, match="index"):
            convert(1, index)

    @pytest.mark.parametrize("convert", [to_shares, to_amount])
    @pytest.mark.parametrize("index", [float(BASE), True])
    def test_non_int_index_rejected(self, convert, index):
        with pytest.raises(TypeError, match="index"):
            convert(1, index)


class TestRebaseStep:

    def test_next_index_one_percent(self):
        assert next_index(BASE) == BASE * 99 // 100

    def test_next_index_truncates(self):
        assert next_index(101) == 99  # 99.99

    def test_index_path(self):
        path = index_path(BASE, 3)
        assert path == [BASE, 99 * 10 ** 16, 9801 * 10 ** 14, 970299 * 10 ** 12]

    def test_rebases_remaining_from_floor_is_zero(self):
        assert rebases_remaining(MIN_INDEX) == 0

    def test_rebases_remaining_boundary(self):
        count = rebases_remaining(BASE)
        last = index_path(BASE, count)[-1]
        assert last >= MIN_INDEX
        assert next_index(last) < MIN_INDEX

    def test_rebases_remaining_is_about_687(self):
        # 0.99 ** n >= 0.001  =>  n <= ln(1000) / -ln(0.99) ~= 687.3
        assert 680 <= rebases_remaining(BASE) <= 687
