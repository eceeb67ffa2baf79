import pytest
from decimal import Decimal

from accounts import (
    Account,
    AccountStatus,
    AccountType,
    MAX_INTEGER_DIGITS,
    round_amount,
    split_fractions,
    to_amount,
)
from errors import InvalidAmountError

IBAN = "BY84ALFA10000000000000000002"


class TestAmounts:
    """Test amount coercion and rounding."""

    def test_float_keeps_its_short_repr(self):
        assert to_amount(23.48) == Decimal("23.48")
        assert to_amount(0.1) == Decimal("0.1")

    def test_int_str_and_decimal(self):
        assert to_amount(250) == Decimal("250")
        assert to_amount("10.005") == Decimal("10.005")
        assert to_amount(Decimal("1.5")) == Decimal("1.5")

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "abc", None, True, "-Infinity"])
    def test_non_finite_or_non_numeric_rejected(self, value):
        with pytest.raises(InvalidAmountError):
            to_amount(value)

    def test_amounts_beyond_supported_range(self):
        assert to_amount(Decimal("9" * MAX_INTEGER_DIGITS)) == Decimal("9" * MAX_INTEGER_DIGITS)
        assert to_amount("1e-64") == Decimal("1e-64")
        assert to_amount("1.5000000000000000000000000000000000000000000000000000000000000000000000") == Decimal("1.5")
        for value in (Decimal("1e64"), "-1e99999", Decimal("1e-65"), 1e300):
            with pytest.raises(InvalidAmountError):
                to_amount(value)

    def test_round_half_away_from_zero(self):
        assert round_amount(Decimal("10.005")) == Decimal("10.01")
        assert round_amount(Decimal("-10.005")) == Decimal("-10.01")
        assert round_amount(Decimal("10.004")) == Decimal("10.00")

    def test_split_fractions(self):
        rounded, fractions = split_fractions(Decimal("12.3456"))
        assert rounded == Decimal("12.35")
        assert fractions == Decimal("-0.0044")
        assert rounded + fractions == Decimal("12.3456")


class TestAccount:
    """Test the account entity."""

    def test_new_account_defaults(self):
        account = Account(IBAN)
        assert account.status == AccountStatus.active
        assert account.type == AccountType.ordinary
        assert account.balance == Decimal("0")
        assert account.fractions == Decimal("0")

    def test_initial_balance_is_split(self):
        account = Account(IBAN, balance=Decimal("5.678"))
        assert account.balance == Decimal("5.68")
        assert account.fractions == Decimal("-0.002")

    def test_add_and_deduct(self):
        account = Account(IBAN)
        account.add(Decimal("100.50"))
        account.deduct(Decimal("20.25"))
        assert account.balance == Decimal("80.25")
        assert account.fractions == 0

    def test_credited_and_debited_leave_account_untouched(self):
        account = Account(IBAN, balance=Decimal("10"))
        assert account.credited(Decimal("0.125")) == (Decimal("10.13"), Decimal("-0.005"))
        assert account.debited(Decimal("0.125")) == (Decimal("9.87"), Decimal("0.005"))
        assert account.balance == Decimal("10.00")
        assert account.fractions == 0

    def test_unrepresentable_balance_is_rejected(self):
        account = Account(IBAN, balance=Decimal("9" * 510))
        with pytest.raises(InvalidAmountError):
            account.add(Decimal("1"))
        assert account.balance == Decimal("9" * 510)

    def test_wide_amounts_stay_exact(self):
        amount = Decimal("1234567890123456789012345678901234567890.125")
        account = Account(IBAN)
        account.add(amount)
        assert account.balance == Decimal("1234567890123456789012345678901234567890.13")
        assert account.fractions == Decimal("-0.005")
        account.deduct(amount)
        assert account.balance == 0
        assert account.fractions == 0

    def test_fractions_accumulate_without_loss(self):
        account = Account(IBAN)
        for _ in range(1000):
            account.add(Decimal("0.004"))
        # Each 0.004 rounds away to 0.00; the remainder keeps the value
        assert account.balance == 0
        assert account.fractions == Decimal("4.000")
        assert account.balance + account.fractions == Decimal("4")

    def test_add_then_deduct_is_symmetric(self):
        account = Account(IBAN)
        account.add(Decimal("33.3333"))
        account.deduct(Decimal("33.3333"))
        assert account.balance == 0
        assert account.fractions == 0

    def test_balance_is_read_only(self):
        account = Account(IBAN)
        with pytest.raises(AttributeError):
            account.balance = Decimal("1000")

    def test_block_and_activate(self):
        account = Account(IBAN)
        account.block()
        assert account.is_blocked
        account.block()
        assert account.status == AccountStatus.blocked
        account.activate()
        assert not account.is_blocked

    def test_snapshot_is_detached(self):
        account = Account(IBAN, account_type=AccountType.emission)
        account.add(Decimal("10"))
        snapshot = account.snapshot()
        account.add(Decimal("5"))
        assert snapshot.balance == Decimal("10.00")
        assert snapshot.type == AccountType.emission
        with pytest.raises(AttributeError):
            snapshot.balance = Decimal("0")
