"""Walk-through of the ledger's use cases against a fresh service.

Run with ``python scenarios.py``; every use case logs its outcome and the
final account listing is printed to stdout.
"""
from concurrent.futures import ThreadPoolExecutor
import json
import random
from typing import Optional

import structlog

from config import Settings, get_settings_for_environment
from errors import LedgerError
from main import build_repository, configure_logging
from models import TransferRequest
from services import AccountService, get_account_service

logger = structlog.get_logger()


def get_emission_iban(service: AccountService) -> Optional[str]:
    try:
        iban = service.get_emission_iban()
    except LedgerError as e:
        logger.error("Use case failed", use_case="emission account IBAN", error=str(e))
        return None
    logger.info("Use case succeeded", use_case="emission account IBAN", iban=iban)
    return iban


def get_destruction_iban(service: AccountService) -> Optional[str]:
    try:
        iban = service.get_destruction_iban()
    except LedgerError as e:
        logger.error("Use case failed", use_case="destruction account IBAN", error=str(e))
        return None
    logger.info("Use case succeeded", use_case="destruction account IBAN", iban=iban)
    return iban


def open_account_with_negative_topup(service: AccountService, emission_iban: str) -> bool:
    """Expected to fail: a negative amount cannot be transferred."""
    try:
        account = service.open_account()
        service.transfer_money(emission_iban, account.iban, -23.48)
    except LedgerError as e:
        logger.info("Use case failed as expected", use_case="negative top-up", error=str(e))
        return True
    logger.error("Use case unexpectedly succeeded", use_case="negative top-up")
    return False


def open_zero_balance_account(service: AccountService) -> Optional[str]:
    try:
        account = service.open_account()
    except LedgerError as e:
        logger.error("Use case failed", use_case="zero balance account", error=str(e))
        return None
    logger.info("Use case succeeded", use_case="zero balance account", iban=account.iban, balance=str(account.balance))
    return account.iban


def open_account_and_top_up(service: AccountService, emission_iban: str, rng: random.Random) -> Optional[str]:
    amount = rng.random() * rng.randrange(1000)
    try:
        account = service.open_account()
        service.emit_money(amount)
        service.transfer_money(emission_iban, account.iban, amount)
    except LedgerError as e:
        logger.error("Use case failed", use_case="account top-up", error=str(e))
        return None
    logger.info("Use case succeeded", use_case="account top-up", iban=account.iban, amount=round(amount, 2))
    return account.iban


def destruct_negative_amount(service: AccountService, emission_iban: str) -> bool:
    """Expected to fail: negative amounts cannot be destroyed."""
    try:
        service.destruct_money(emission_iban, -10000)
    except LedgerError as e:
        logger.info("Use case failed as expected", use_case="negative destruction", error=str(e))
        return True
    logger.error("Use case unexpectedly succeeded", use_case="negative destruction")
    return False


def emit_money(service: AccountService, amount: float) -> bool:
    try:
        service.emit_money(amount)
    except LedgerError as e:
        logger.error("Use case failed", use_case="emission", error=str(e))
        return False
    logger.info("Use case succeeded", use_case="emission", amount=amount)
    return True


def destruct_money(service: AccountService, iban: str, amount: float) -> bool:
    try:
        service.destruct_money(iban, amount)
    except LedgerError as e:
        logger.error("Use case failed", use_case="destruction", error=str(e))
        return False
    logger.info("Use case succeeded", use_case="destruction", iban=iban, amount=amount)
    return True


def transfer_money(service: AccountService, sender: str, recipient: str, amount: float) -> bool:
    try:
        service.transfer_money(sender, recipient, amount)
    except LedgerError as e:
        logger.error("Use case failed", use_case="transfer", error=str(e))
        return False
    logger.info("Use case succeeded", use_case="transfer", sender=sender, recipient=recipient, amount=amount)
    return True


def transfer_from_blocked_account(service: AccountService, sender: str, recipient: str) -> bool:
    """Block the sender, expect the transfer to fail, then reactivate it."""
    try:
        service.block_account(sender)
    except LedgerError as e:
        logger.error("Use case failed", use_case="blocked transfer", error=str(e))
        return False
    try:
        service.transfer_money(sender, recipient, 50)
        rejected = False
        logger.error("Use case unexpectedly succeeded", use_case="blocked transfer")
    except LedgerError as e:
        rejected = True
        logger.info("Use case failed as expected", use_case="blocked transfer", error=str(e))
    finally:
        service.activate_account(sender)
    return rejected


def transfer_between_random_accounts(service: AccountService, rng: random.Random) -> bool:
    """Pick two ordinary accounts from the listing and transfer via a JSON envelope."""
    accounts = json.loads(service.list_accounts_as_envelope())[2:]
    if len(accounts) < 2:
        logger.error("Use case failed", use_case="JSON transfer", error="Not enough ordinary accounts")
        return False
    sender, recipient = rng.sample(accounts, 2)
    request = TransferRequest(
        sender=sender["iban"],
        recipient=recipient["iban"],
        amount=rng.random() + rng.randrange(100),
    )
    envelope = request.model_dump_json()
    try:
        service.transfer_money_from_envelope(envelope)
    except LedgerError as e:
        # Insufficient balance is a legitimate outcome for a random pair
        logger.info("Use case rejected", use_case="JSON transfer", envelope=envelope, error=str(e))
        return False
    logger.info("Use case succeeded", use_case="JSON transfer", envelope=envelope)
    return True


def run(service: AccountService, openings: int = 20, transfers: int = 100, seed: Optional[int] = None) -> str:
    """Execute every use case and return the final account listing."""
    rng = random.Random(seed)

    emission_iban = get_emission_iban(service)
    destruction_iban = get_destruction_iban(service)
    open_account_with_negative_topup(service, emission_iban)
    open_zero_balance_account(service)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(
            lambda worker_rng: open_account_and_top_up(service, emission_iban, worker_rng),
            [random.Random(rng.random()) for _ in range(openings)],
        ))

    destruct_negative_amount(service, emission_iban)
    emit_money(service, 250)
    destruct_money(service, emission_iban, 10)
    transfer_money(service, emission_iban, destruction_iban, 50)
    transfer_from_blocked_account(service, emission_iban, destruction_iban)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(
            lambda worker_rng: transfer_between_random_accounts(service, worker_rng),
            [random.Random(rng.random()) for _ in range(transfers)],
        ))

    listing = service.list_accounts_as_envelope()
    logger.info("Use case succeeded", use_case="account listing", accounts=len(json.loads(listing)))
    return listing


def main(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings_for_environment("development")
    configure_logging(settings)
    service = get_account_service(build_repository(settings))
    print(run(service))


if __name__ == "__main__":
    main()
