import json
import random
from decimal import Decimal

import scenarios
from iban import IbanGenerator
from repositories import InMemoryAccountRepository
from services import get_account_service

EMISSION_IBAN = "BY84ALFA10000000000000000000"
DESTRUCTION_IBAN = "BY84ALFA10000000000000000001"


def make_service():
    repository = InMemoryAccountRepository(
        EMISSION_IBAN, DESTRUCTION_IBAN, generator=IbanGenerator(rng=random.Random(5))
    )
    return get_account_service(repository)


class TestScenarios:
    """Test the demonstration walk-through."""

    def test_full_run(self):
        service = make_service()
        listing = json.loads(scenarios.run(service, openings=10, transfers=30, seed=11))

        # Two special accounts, the negative top-up account, the zero balance
        # account and every concurrently opened one
        assert len(listing) == 2 + 2 + 10
        assert all(entry["status"] == "Active" for entry in listing)

        # 250 emitted, 10 destroyed and 50 sent straight to the destruction
        # account; top-ups leave the emission account where they found it
        assert listing[0]["balance"] == 190.0
        assert listing[1]["balance"] == 60.0

    def test_failures_are_expected(self):
        service = make_service()
        assert scenarios.open_account_with_negative_topup(service, EMISSION_IBAN)
        assert scenarios.destruct_negative_amount(service, EMISSION_IBAN)

    def test_blocked_transfer_restores_status(self):
        service = make_service()
        service.emit_money(100)
        assert scenarios.transfer_from_blocked_account(service, EMISSION_IBAN, DESTRUCTION_IBAN)
        assert service.get_account(EMISSION_IBAN).balance == Decimal("100.00")
        assert service.get_account(EMISSION_IBAN).status.value == "active"

    def test_random_transfer_needs_two_ordinary_accounts(self):
        service = make_service()
        service.open_account()
        assert not scenarios.transfer_between_random_accounts(service, random.Random(1))
