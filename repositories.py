from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import threading

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from accounts import Account, AccountSnapshot, AccountStatus, AccountType, Amount, round_amount, to_amount
from errors import (
    AccountBlockedError,
    AccountCreationError,
    AccountNotFoundError,
    AccountTypeMismatchError,
    IbanGenerationExhaustedError,
    IbanMismatchError,
    InsufficientBalanceError,
    InvalidIbanError,
    MalformedRequestError,
    NegativeAmountError,
    SerializationError,
)
from iban import IbanGenerator, is_well_formed, normalize
from localization import Locale, status_label
from models import AccountDetails, TransferRequest

_listing_adapter = TypeAdapter(List[AccountDetails])


class AccountRepository(ABC):
    @abstractmethod
    def get_emission_iban(self) -> str:
        """Get the IBAN of the money emission account."""
        pass

    @abstractmethod
    def get_destruction_iban(self) -> str:
        """Get the IBAN of the money destruction account."""
        pass

    @abstractmethod
    def emit_money(self, amount: Amount) -> None:
        """Create money on the emission account."""
        pass

    @abstractmethod
    def destruct_money(self, iban: str, amount: Amount) -> None:
        """Move money from an account to the destruction account."""
        pass

    @abstractmethod
    def open_account(self) -> AccountSnapshot:
        """Open an active, empty ordinary account under a fresh IBAN."""
        pass

    @abstractmethod
    def transfer_money(self, sender: str, recipient: str, amount: Amount) -> None:
        """Move money between two accounts."""
        pass

    @abstractmethod
    def transfer_money_from_envelope(self, envelope: str) -> None:
        """Decode a JSON transfer request and perform it."""
        pass

    @abstractmethod
    def list_accounts_as_envelope(self) -> str:
        """Serialize every account, special accounts first, as a JSON array."""
        pass

    @abstractmethod
    def block_account(self, iban: str) -> None:
        pass

    @abstractmethod
    def activate_account(self, iban: str) -> None:
        pass

    @abstractmethod
    def get_account(self, iban: str) -> AccountSnapshot:
        pass

    @abstractmethod
    def count_accounts(self) -> int:
        pass


class InMemoryAccountRepository(AccountRepository):
    """Process-lifetime ledger guarded by a single lock.

    Every public method holds ``_lock`` for its whole duration and checks all
    preconditions before touching any balance, so a failed call leaves no
    trace and no caller ever sees half of a transfer.
    """

    def __init__(
        self,
        emission_iban: str,
        destruction_iban: str,
        generator: Optional[IbanGenerator] = None,
        locale: Locale = Locale.english,
    ):
        emission_iban = normalize(emission_iban)
        destruction_iban = normalize(destruction_iban)
        for iban in (emission_iban, destruction_iban):
            if not is_well_formed(iban):
                raise InvalidIbanError(iban=iban)
        if emission_iban == destruction_iban:
            raise InvalidIbanError("Emission and destruction accounts must differ", iban=emission_iban)

        self.generator = generator or IbanGenerator()
        self.locale = locale
        self._lock = threading.Lock()
        self._emission: Optional[Account] = Account(emission_iban, account_type=AccountType.emission)
        self._destruction: Optional[Account] = Account(destruction_iban, account_type=AccountType.destruction)
        self._accounts: Dict[str, Account] = {
            emission_iban: self._emission,
            destruction_iban: self._destruction,
        }

    def _account_exists(self, iban: str) -> bool:
        return iban in self._accounts

    def _get_existing(self, iban: str) -> Account:
        account = self._accounts.get(iban)
        if account is None:
            raise AccountNotFoundError(iban=iban)
        if account.iban != iban:
            raise IbanMismatchError(iban=iban, stored_iban=account.iban)
        return account

    def _special_account(self, account: Optional[Account], expected: AccountType) -> Account:
        if account is None:
            raise AccountNotFoundError(account_type=expected.value)
        if account.type != expected:
            raise AccountTypeMismatchError(expected=expected.value, actual=account.type.value)
        return account

    @staticmethod
    def _non_negative(amount: Amount):
        value = to_amount(amount)
        if value < 0:
            raise NegativeAmountError(amount=str(value))
        return value

    @staticmethod
    def _ensure_active(account: Account) -> None:
        if account.is_blocked:
            raise AccountBlockedError(iban=account.iban)

    @staticmethod
    def _ensure_covers(account: Account, amount) -> None:
        if account.balance < round_amount(amount):
            raise InsufficientBalanceError(
                iban=account.iban, balance=str(account.balance), amount=str(amount)
            )

    @staticmethod
    def _move(source: Account, target: Account, amount) -> None:
        # Both post-states are computed before either account changes
        debited = source.debited(amount)
        credited = target.credited(amount)
        if source is target:
            return
        source.settle(debited)
        target.settle(credited)

    def get_emission_iban(self) -> str:
        with self._lock:
            return self._special_account(self._emission, AccountType.emission).iban

    def get_destruction_iban(self) -> str:
        with self._lock:
            return self._special_account(self._destruction, AccountType.destruction).iban

    def emit_money(self, amount: Amount) -> None:
        value = self._non_negative(amount)
        with self._lock:
            emission = self._special_account(self._emission, AccountType.emission)
            self._ensure_active(emission)
            emission.add(value)

    def destruct_money(self, iban: str, amount: Amount) -> None:
        value = self._non_negative(amount)
        iban = normalize(iban)
        with self._lock:
            destruction = self._special_account(self._destruction, AccountType.destruction)
            self._ensure_active(destruction)
            source = self._get_existing(iban)
            self._ensure_active(source)
            self._ensure_covers(source, value)

            self._move(source, destruction, value)

    def open_account(self) -> AccountSnapshot:
        with self._lock:
            try:
                iban = self.generator.generate_unique(self._account_exists)
            except IbanGenerationExhaustedError as e:
                raise AccountCreationError(attempts=self.generator.max_attempts) from e
            account = Account(iban)
            self._accounts[iban] = account
            return account.snapshot()

    def transfer_money(self, sender: str, recipient: str, amount: Amount) -> None:
        value = self._non_negative(amount)
        sender = normalize(sender)
        recipient = normalize(recipient)
        with self._lock:
            sender_account = self._get_existing(sender)
            recipient_account = self._get_existing(recipient)
            self._ensure_active(sender_account)
            # Blocked accounts cannot receive transfers either
            self._ensure_active(recipient_account)
            self._ensure_covers(sender_account, value)

            self._move(sender_account, recipient_account, value)

    def transfer_money_from_envelope(self, envelope: str) -> None:
        try:
            request = TransferRequest.model_validate_json(envelope)
        except ValidationError as e:
            raise MalformedRequestError(reason=str(e)) from e
        self.transfer_money(request.sender, request.recipient, request.amount)

    def _details(self, account: Account) -> AccountDetails:
        return AccountDetails(
            iban=account.iban,
            balance=float(account.balance),
            fractions=float(account.fractions),
            status=status_label(account.status, self.locale),
        )

    def list_accounts_as_envelope(self) -> str:
        with self._lock:
            details = []
            if self._emission is not None:
                details.append(self._details(self._emission))
            if self._destruction is not None:
                details.append(self._details(self._destruction))
            for account in self._accounts.values():
                if account is not self._emission and account is not self._destruction:
                    details.append(self._details(account))
            try:
                return _listing_adapter.dump_json(details).decode("utf-8")
            except PydanticSerializationError as e:
                raise SerializationError(reason=str(e)) from e

    def _set_status(self, iban: str, status: AccountStatus) -> None:
        iban = normalize(iban)
        with self._lock:
            account = self._get_existing(iban)
            if status == AccountStatus.blocked:
                account.block()
            else:
                account.activate()

    def block_account(self, iban: str) -> None:
        self._set_status(iban, AccountStatus.blocked)

    def activate_account(self, iban: str) -> None:
        self._set_status(iban, AccountStatus.active)

    def get_account(self, iban: str) -> AccountSnapshot:
        iban = normalize(iban)
        with self._lock:
            return self._get_existing(iban).snapshot()

    def count_accounts(self) -> int:
        with self._lock:
            return len(self._accounts)
