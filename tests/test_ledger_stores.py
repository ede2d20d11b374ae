"""Tests for the account store, offer catalog and request ledger."""

import pytest

from timebank.accounts import AccountStore
from timebank.config import LedgerConfig
from timebank.errors import (
    AccountNotFoundError,
    AlreadyRegisteredError,
    InsufficientBalanceError,
    InvalidInputError,
    InvalidStateError,
    OfferInactiveError,
    OfferNotFoundError,
    RequestNotFoundError,
    SelfRequestError,
    UnauthorizedError,
)
from timebank.models import RequestStatus
from timebank.offers import OfferCatalog
from timebank.request_ledger import RequestLedger
from timebank.storage import InMemoryLedgerStorage, ReadOnlyViewError


@pytest.fixture
def unit():
    """A writable view over a fresh in-memory ledger."""
    storage = InMemoryLedgerStorage()
    with storage.transaction() as view:
        yield view


@pytest.fixture
def accounts(unit, config):
    store = AccountStore(unit, config)
    store.register("alice", "Alice", ["tutoring"])
    store.register("bob", "Bob")
    return store


class TestAccountStore:
    def test_register_uses_configured_grant(self, unit):
        store = AccountStore(unit, LedgerConfig(initial_balance=25, initial_reputation=10))
        account = store.register("carol", "Carol")
        assert account.balance == 25
        assert account.reputation == 10
        assert account.created_at is not None

    def test_register_duplicate(self, accounts):
        with pytest.raises(AlreadyRegisteredError):
            accounts.register("alice", "Alice again")

    def test_register_strips_name(self, unit, config):
        account = AccountStore(unit, config).register("carol", " Carol\x00 ")
        assert account.identity == "carol"
        assert account.name == "Carol"

    @pytest.mark.parametrize("identity", ["  carol ", "carol\x00", "bob\x07"])
    def test_register_rejects_identity_cleaning_would_change(self, unit, config, identity):
        with pytest.raises(InvalidInputError):
            AccountStore(unit, config).register(identity, "Carol")
        assert unit.get_account(identity.strip("\x00\x07 ")) is None

    @pytest.mark.parametrize("identity,name", [("", "Name"), ("id", ""), ("id", "   ")])
    def test_register_rejects_blank(self, unit, config, identity, name):
        with pytest.raises(InvalidInputError):
            AccountStore(unit, config).register(identity, name)

    def test_register_rejects_too_many_skills(self, unit):
        store = AccountStore(unit, LedgerConfig(max_skills=2))
        with pytest.raises(InvalidInputError, match="Too many skills"):
            store.register("carol", "Carol", ["a", "b", "c"])

    def test_unknown_identity(self, accounts):
        with pytest.raises(AccountNotFoundError):
            accounts.get_balance("nobody")
        with pytest.raises(AccountNotFoundError):
            accounts.get_reputation("nobody")

    def test_debit_and_credit(self, accounts):
        accounts.debit("bob", 30)
        accounts.credit("alice", 30)
        assert accounts.get_balance("bob") == 70
        assert accounts.get_balance("alice") == 130
        assert accounts.total_credits() == 200

    def test_debit_exact_balance_reaches_zero(self, accounts):
        accounts.debit("bob", 100)
        assert accounts.get_balance("bob") == 0

    def test_debit_beyond_balance(self, accounts):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            accounts.debit("bob", 101)
        assert exc_info.value.balance == 100
        assert exc_info.value.required == 101
        assert accounts.get_balance("bob") == 100

    @pytest.mark.parametrize("amount", [0, -5, True, 1.5])
    def test_amount_must_be_positive_int(self, accounts, amount):
        with pytest.raises(InvalidInputError):
            accounts.credit("alice", amount)

    def test_bump_reputation_caps_at_max(self, unit):
        store = AccountStore(unit, LedgerConfig(initial_reputation=99))
        store.register("carol", "Carol")
        assert store.bump_reputation("carol").reputation == 100
        assert store.bump_reputation("carol").reputation == 100

    def test_list_by_skill(self, accounts):
        assert [a.identity for a in accounts.list_accounts(skill="Tutoring")] == ["alice"]
        assert len(accounts.list_accounts()) == 2


class TestOfferCatalog:
    def test_create_assigns_sequential_ids(self, accounts, unit, config):
        catalog = OfferCatalog(unit, config)
        first = catalog.create_offer("alice", "Tutoring", "Algebra", 60, 30)
        second = catalog.create_offer("bob", "cooking", "Dinner", 90, 45)
        assert (first.id, second.id) == (1, 2)
        assert first.category == "tutoring"
        assert first.active

    def test_create_requires_registered_provider(self, unit, config):
        with pytest.raises(AccountNotFoundError):
            OfferCatalog(unit, config).create_offer("ghost", "c", "d", 10, 10)

    @pytest.mark.parametrize(
        "category,description,time_required,time_cost",
        [("", "d", 10, 10), ("c", " ", 10, 10), ("c", "d", 0, 10), ("c", "d", 10, -1)],
    )
    def test_create_rejects_invalid(
        self, accounts, unit, config, category, description, time_required, time_cost
    ):
        with pytest.raises(InvalidInputError):
            OfferCatalog(unit, config).create_offer(
                "alice", category, description, time_required, time_cost
            )

    def test_get_missing(self, unit, config):
        with pytest.raises(OfferNotFoundError):
            OfferCatalog(unit, config).get_offer(5)

    def test_deactivate(self, accounts, unit, config):
        catalog = OfferCatalog(unit, config)
        offer = catalog.create_offer("alice", "tutoring", "Algebra", 60, 30)

        with pytest.raises(UnauthorizedError):
            catalog.deactivate(offer.id, "bob")

        updated, changed = catalog.deactivate(offer.id, "alice")
        assert changed and not updated.active

        again, changed = catalog.deactivate(offer.id, "alice")
        assert not changed and not again.active

    def test_list_filters(self, accounts, unit, config):
        catalog = OfferCatalog(unit, config)
        catalog.create_offer("alice", "tutoring", "Algebra", 60, 30)
        catalog.create_offer("alice", "cooking", "Soup", 30, 15)
        catalog.create_offer("bob", "cooking", "Bread", 120, 60)
        catalog.deactivate(2, "alice")

        assert [o.id for o in catalog.list_offers(provider="alice")] == [1, 2]
        assert [o.id for o in catalog.list_offers(category="Cooking")] == [2, 3]
        assert [o.id for o in catalog.list_offers(active=True)] == [1, 3]
        assert [o.id for o in catalog.list_offers(limit=1, offset=1)] == [2]


class TestRequestLedger:
    @pytest.fixture
    def ledger(self, accounts, unit, config):
        OfferCatalog(unit, config).create_offer("alice", "tutoring", "Algebra", 60, 30)
        return RequestLedger(unit, config)

    def test_create_pending(self, ledger):
        request = ledger.create_request("bob", 1)
        assert request.id == 1
        assert request.status is RequestStatus.PENDING
        assert request.provider == "alice"
        assert ledger.accounts.get_balance("bob") == 100

    def test_create_records_transition(self, ledger):
        request = ledger.create_request("bob", 1)
        [transition] = ledger.get_transitions(request.id)
        assert transition.from_status is None
        assert transition.to_status is RequestStatus.PENDING
        assert transition.actor == "bob"

    def test_unregistered_requester(self, ledger):
        with pytest.raises(AccountNotFoundError):
            ledger.create_request("ghost", 1)

    def test_missing_offer(self, ledger):
        with pytest.raises(OfferNotFoundError):
            ledger.create_request("bob", 9)

    def test_inactive_offer(self, ledger):
        ledger.offers.deactivate(1, "alice")
        with pytest.raises(OfferInactiveError):
            ledger.create_request("bob", 1)

    def test_self_request(self, ledger):
        with pytest.raises(SelfRequestError):
            ledger.create_request("alice", 1)

    def test_insufficient_balance(self, ledger):
        ledger.accounts.debit("bob", 80)
        with pytest.raises(InsufficientBalanceError):
            ledger.create_request("bob", 1)

    def test_check_order_offer_before_balance(self, ledger):
        ledger.accounts.debit("bob", 100)
        with pytest.raises(OfferNotFoundError):
            ledger.create_request("bob", 9)

    def test_mark_completed_once(self, ledger):
        request = ledger.create_request("bob", 1)
        completed = ledger.mark_completed(request, "alice")
        assert completed.status is RequestStatus.COMPLETED
        assert completed.completed_at is not None
        with pytest.raises(InvalidStateError):
            ledger.mark_completed(completed, "alice")
        assert len(ledger.get_transitions(request.id)) == 2

    def test_history_of_missing_request(self, ledger):
        with pytest.raises(RequestNotFoundError):
            ledger.get_transitions(3)

    def test_list_by_role_and_status(self, ledger):
        first = ledger.create_request("bob", 1)
        ledger.create_request("bob", 1)
        ledger.mark_completed(first, "alice")
        assert len(ledger.list_requests(requester="bob")) == 2
        assert len(ledger.list_requests(provider="alice")) == 2
        pending = ledger.list_requests(status=RequestStatus.PENDING)
        assert [r.id for r in pending] == [2]


class TestSnapshotViews:
    def test_snapshot_is_read_only(self, config):
        storage = InMemoryLedgerStorage()
        with storage.snapshot() as view:
            with pytest.raises(ReadOnlyViewError):
                AccountStore(view, config).register("alice", "Alice")
