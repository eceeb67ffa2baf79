"""Account entity and the cent-rounding arithmetic behind its balance."""
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from enum import Enum
from typing import Tuple, Union

from errors import InvalidAmountError

CENT = Decimal("0.01")

# Accepted amounts stay below 10**64 and carry at most 64 decimal places
MAX_INTEGER_DIGITS = 64
MAX_SCALE = 64
MONEY_PRECISION = 512

Amount = Union[Decimal, int, float, str]
Balance = Tuple[Decimal, Decimal]


class AccountStatus(str, Enum):
    active = "active"
    blocked = "blocked"


class AccountType(str, Enum):
    ordinary = "ordinary"
    emission = "emission"
    destruction = "destruction"


@contextmanager
def money_context():
    """Decimal context wide enough for exact balance arithmetic."""
    context = Context(prec=MONEY_PRECISION, rounding=ROUND_HALF_UP, Emax=999999, Emin=-999999)
    with localcontext(context) as ctx:
        yield ctx


def to_amount(value: Amount) -> Decimal:
    """Coerce a caller-supplied amount to a finite, representable Decimal.

    Floats go through their shortest repr so 23.48 stays 23.48.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(amount=value)
    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(amount=value)
    if not amount.is_finite():
        raise InvalidAmountError(amount=value)
    if amount.is_zero():
        return amount
    with money_context():
        reduced = amount.normalize()
    if reduced.adjusted() >= MAX_INTEGER_DIGITS or reduced.as_tuple().exponent < -MAX_SCALE:
        raise InvalidAmountError("Amount is out of the supported range", amount=str(value))
    return amount


def round_amount(amount: Decimal) -> Decimal:
    """Round to the nearest cent, ties away from zero."""
    with money_context():
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def split_fractions(amount: Decimal) -> Balance:
    """Split an amount into its cent-rounded part and the sub-cent remainder."""
    with money_context():
        rounded = round_amount(amount)
        return rounded, amount - rounded


def moved(balance: Balance, amount: Decimal) -> Balance:
    """Return the balance and fractions after adding a signed amount."""
    with money_context():
        try:
            rounded, fractions = split_fractions(amount)
            return round_amount(balance[0] + rounded), balance[1] + fractions
        except InvalidOperation:
            raise InvalidAmountError("Resulting balance cannot be represented", amount=str(amount))


@dataclass(frozen=True)
class AccountSnapshot:
    iban: str
    status: AccountStatus
    type: AccountType
    balance: Decimal
    fractions: Decimal


class Account:
    """A balance-holding account.

    The balance is kept in whole cents. Whatever rounding discards on each
    add or deduct is accumulated in ``fractions`` so that
    ``balance + fractions`` always equals the exact sum of movements.
    Callers are expected to have validated the amount beforehand.
    """

    def __init__(
        self,
        iban: str,
        status: AccountStatus = AccountStatus.active,
        account_type: AccountType = AccountType.ordinary,
        balance: Decimal = Decimal("0"),
    ):
        self._iban = iban
        self.status = status
        self._type = account_type
        self._balance, self._fractions = split_fractions(balance)

    @property
    def iban(self) -> str:
        return self._iban

    @property
    def type(self) -> AccountType:
        return self._type

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def fractions(self) -> Decimal:
        return self._fractions

    @property
    def is_blocked(self) -> bool:
        return self.status == AccountStatus.blocked

    def block(self) -> None:
        self.status = AccountStatus.blocked

    def activate(self) -> None:
        self.status = AccountStatus.active

    def credited(self, amount: Decimal) -> Balance:
        """Balance and fractions this account would hold after ``add``."""
        return moved((self._balance, self._fractions), amount)

    def debited(self, amount: Decimal) -> Balance:
        """Balance and fractions this account would hold after ``deduct``."""
        return moved((self._balance, self._fractions), amount.copy_negate())

    def settle(self, state: Balance) -> None:
        self._balance, self._fractions = state

    def add(self, amount: Decimal) -> None:
        self.settle(self.credited(amount))

    def deduct(self, amount: Decimal) -> None:
        self.settle(self.debited(amount))

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            iban=self._iban,
            status=self.status,
            type=self._type,
            balance=self._balance,
            fractions=self._fractions,
        )

    def __repr__(self):
        return f"Account(iban={self._iban!r}, type={self._type.value}, status={self.status.value}, balance={self._balance})"
