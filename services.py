from contextlib import contextmanager
import structlog

from accounts import AccountSnapshot, Amount
from errors import LedgerError
from repositories import AccountRepository

# Configure structured logging
logger = structlog.get_logger()


class AccountService:
    """Forwards every call to the repository, logging the outcome."""

    def __init__(self, account_repo: AccountRepository):
        self.account_repo = account_repo

    @contextmanager
    def _logged(self, operation: str, **fields):
        try:
            yield
        except LedgerError as e:
            logger.warning(
                "Ledger operation failed",
                operation=operation,
                error_code=e.code.name,
                error=str(e),
                **{**e.context, **fields}
            )
            raise
        logger.info("Ledger operation completed", operation=operation, **fields)

    def get_emission_iban(self) -> str:
        with self._logged("get_emission_iban"):
            return self.account_repo.get_emission_iban()

    def get_destruction_iban(self) -> str:
        with self._logged("get_destruction_iban"):
            return self.account_repo.get_destruction_iban()

    def emit_money(self, amount: Amount) -> None:
        with self._logged("emit_money", amount=str(amount)):
            self.account_repo.emit_money(amount)

    def destruct_money(self, iban: str, amount: Amount) -> None:
        with self._logged("destruct_money", iban=iban, amount=str(amount)):
            self.account_repo.destruct_money(iban, amount)

    def open_account(self) -> AccountSnapshot:
        with self._logged("open_account"):
            account = self.account_repo.open_account()
        logger.debug("Account opened", iban=account.iban)
        return account

    def transfer_money(self, sender: str, recipient: str, amount: Amount) -> None:
        with self._logged("transfer_money", sender=sender, recipient=recipient, amount=str(amount)):
            self.account_repo.transfer_money(sender, recipient, amount)

    def transfer_money_from_envelope(self, envelope: str) -> None:
        with self._logged("transfer_money_from_envelope"):
            self.account_repo.transfer_money_from_envelope(envelope)

    def list_accounts_as_envelope(self) -> str:
        with self._logged("list_accounts_as_envelope"):
            return self.account_repo.list_accounts_as_envelope()

    def block_account(self, iban: str) -> None:
        with self._logged("block_account", iban=iban):
            self.account_repo.block_account(iban)

    def activate_account(self, iban: str) -> None:
        with self._logged("activate_account", iban=iban):
            self.account_repo.activate_account(iban)

    def get_account(self, iban: str) -> AccountSnapshot:
        with self._logged("get_account", iban=iban):
            return self.account_repo.get_account(iban)

    def count_accounts(self) -> int:
        return self.account_repo.count_accounts()


# Factory function for dependency injection
def get_account_service(account_repo: AccountRepository) -> AccountService:
    return AccountService(account_repo)
