"""Tests for the exchange engine.

Every test here runs against both the in-memory and the SQLite backend via
the parametrized ``storage`` fixture.
"""

import pytest

from timebank import ExchangeEngine, LedgerConfig
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
from timebank.events import LedgerEventType
from timebank.models import RequestStatus


class TestRegistration:
    def test_register_grants_initial_credits(self, engine):
        account = engine.register("alice", "Alice", ["Tutoring"])
        assert account.balance == 100
        assert account.reputation == 50
        assert engine.get_balance("alice") == 100
        assert engine.get_reputation("alice") == 50
        assert engine.get_account("alice").skills == ["tutoring"]

    def test_register_twice_changes_nothing(self, engine):
        engine.register("alice", "Alice")
        with pytest.raises(AlreadyRegisteredError):
            engine.register("alice", "Someone else")
        assert engine.get_account("alice").name == "Alice"
        assert engine.total_credits() == 100

    def test_unknown_identity(self, engine):
        with pytest.raises(AccountNotFoundError):
            engine.get_balance("carol")

    @pytest.mark.parametrize("identity", [" alice ", "alice\n", "bob\x07", "   ", "x" * 129])
    def test_identity_must_be_usable_as_given(self, engine, identity):
        with pytest.raises(InvalidInputError):
            engine.register(identity, "Someone")
        assert engine.list_accounts() == []
        assert engine.total_credits() == 0

    def test_identity_is_stored_exactly(self, engine):
        engine.register("Alice.Smith@example", "Alice")
        assert engine.get_balance("Alice.Smith@example") == 100
        offer = engine.create_offer("Alice.Smith@example", "tutoring", "Algebra", 60, 30)
        assert offer.provider == "Alice.Smith@example"
        with pytest.raises(AccountNotFoundError):
            engine.get_balance("alice.smith@example")

    def test_supply_grows_only_by_registration(self, engine, config):
        for i, identity in enumerate(["a", "b", "c"], start=1):
            engine.register(identity, identity.upper())
            assert engine.total_credits() == i * config.initial_balance


class TestScenario:
    def test_full_exchange(self, alice_and_bob, event_sink):
        engine = alice_and_bob
        offer = engine.create_offer("alice", "tutoring", "Algebra help", 60, 30)
        assert offer.id == 1 and offer.active

        request = engine.create_request("bob", offer.id)
        assert request.id == 1
        assert request.status is RequestStatus.PENDING
        assert engine.get_balance("bob") == 100

        completed = engine.complete_request("alice", request.id)
        assert completed.status is RequestStatus.COMPLETED
        assert completed.completed_at is not None
        assert engine.get_balance("alice") == 130
        assert engine.get_balance("bob") == 70
        assert engine.get_reputation("alice") == 51
        assert engine.get_reputation("bob") == 50
        assert engine.total_credits() == 200

        assert [e.event_type for e in event_sink.events] == [
            LedgerEventType.ACCOUNT_REGISTERED,
            LedgerEventType.ACCOUNT_REGISTERED,
            LedgerEventType.OFFER_CREATED,
            LedgerEventType.REQUEST_CREATED,
            LedgerEventType.REQUEST_COMPLETED,
        ]
        settled = event_sink.events[-1]
        assert settled.payload == {"provider": "alice", "requester": "bob", "amount": 30}

    def test_completing_twice_changes_nothing(self, alice_and_bob, tutoring_offer):
        engine = alice_and_bob
        request = engine.create_request("bob", tutoring_offer.id)
        engine.complete_request("alice", request.id)

        with pytest.raises(InvalidStateError):
            engine.complete_request("alice", request.id)
        # The requester is checked for authority before the state
        with pytest.raises(UnauthorizedError):
            engine.complete_request("bob", request.id)

        assert engine.get_balance("alice") == 130
        assert engine.get_balance("bob") == 70
        assert engine.get_reputation("alice") == 51

    def test_self_request_rejected(self, alice_and_bob, tutoring_offer):
        with pytest.raises(SelfRequestError):
            alice_and_bob.create_request("alice", tutoring_offer.id)
        assert alice_and_bob.list_requests() == []

    def test_unaffordable_request_rejected(self, alice_and_bob):
        offer = alice_and_bob.create_offer("alice", "tutoring", "Semester", 600, 150)
        with pytest.raises(InsufficientBalanceError):
            alice_and_bob.create_request("bob", offer.id)
        assert alice_and_bob.list_requests() == []


class TestCompletion:
    def test_only_provider_may_complete(self, alice_and_bob, tutoring_offer):
        engine = alice_and_bob
        engine.register("carol", "Carol")
        request = engine.create_request("bob", tutoring_offer.id)
        for caller in ("bob", "carol", "nobody"):
            with pytest.raises(UnauthorizedError):
                engine.complete_request(caller, request.id)
        assert engine.get_request(request.id).status is RequestStatus.PENDING

    def test_missing_request(self, alice_and_bob):
        with pytest.raises(RequestNotFoundError):
            alice_and_bob.complete_request("alice", 99)

    def test_deactivated_offer_still_settles(self, alice_and_bob, tutoring_offer):
        engine = alice_and_bob
        request = engine.create_request("bob", tutoring_offer.id)
        engine.deactivate_offer("alice", tutoring_offer.id)
        engine.complete_request("alice", request.id)
        assert engine.get_balance("alice") == 130

    def test_settlement_is_all_or_nothing(self, alice_and_bob, tutoring_offer, event_sink):
        engine = alice_and_bob
        first = engine.create_request("bob", tutoring_offer.id)
        second = engine.create_request("bob", tutoring_offer.id)
        third = engine.create_request("bob", tutoring_offer.id)
        fourth = engine.create_request("bob", tutoring_offer.id)
        for request in (first, second, third):
            engine.complete_request("alice", request.id)
        assert engine.get_balance("bob") == 10

        event_sink.clear()
        with pytest.raises(InsufficientBalanceError):
            engine.complete_request("alice", fourth.id)

        assert engine.get_balance("bob") == 10
        assert engine.get_balance("alice") == 190
        assert engine.get_reputation("alice") == 53
        assert engine.get_request(fourth.id).status is RequestStatus.PENDING
        assert len(engine.get_request_history(fourth.id)) == 1
        assert event_sink.events == []

    def test_reputation_caps_at_maximum(self, storage):
        engine = ExchangeEngine(storage, config=LedgerConfig(initial_reputation=100))
        engine.register("alice", "Alice")
        engine.register("bob", "Bob")
        offer = engine.create_offer("alice", "tutoring", "Algebra", 60, 10)
        request = engine.create_request("bob", offer.id)
        engine.complete_request("alice", request.id)
        assert engine.get_reputation("alice") == 100

    def test_history(self, alice_and_bob, tutoring_offer):
        engine = alice_and_bob
        request = engine.create_request("bob", tutoring_offer.id)
        engine.complete_request("alice", request.id)
        history = engine.get_request_history(request.id)
        assert [(t.from_status, t.to_status, t.actor) for t in history] == [
            (None, RequestStatus.PENDING, "bob"),
            (RequestStatus.PENDING, RequestStatus.COMPLETED, "alice"),
        ]


class TestOffers:
    def test_create_offer_unregistered(self, engine):
        with pytest.raises(AccountNotFoundError):
            engine.create_offer("ghost", "tutoring", "Algebra", 60, 30)

    def test_ids_are_sequential_and_never_reused(self, alice_and_bob):
        ids = [
            alice_and_bob.create_offer("alice", "tutoring", f"Lesson {i}", 60, 10).id
            for i in range(3)
        ]
        assert ids == [1, 2, 3]
        alice_and_bob.deactivate_offer("alice", 3)
        assert alice_and_bob.create_offer("bob", "cooking", "Soup", 30, 5).id == 4

    def test_deactivate(self, alice_and_bob, tutoring_offer, event_sink):
        engine = alice_and_bob
        with pytest.raises(UnauthorizedError):
            engine.deactivate_offer("bob", tutoring_offer.id)
        assert engine.deactivate_offer("alice", tutoring_offer.id).active is False
        assert engine.deactivate_offer("alice", tutoring_offer.id).active is False
        assert len(event_sink.of_type(LedgerEventType.OFFER_DEACTIVATED)) == 1

        with pytest.raises(OfferInactiveError):
            engine.create_request("bob", tutoring_offer.id)

    def test_deactivate_missing(self, alice_and_bob):
        with pytest.raises(OfferNotFoundError):
            alice_and_bob.deactivate_offer("alice", 12)

    def test_list_offers(self, alice_and_bob, tutoring_offer):
        alice_and_bob.create_offer("bob", "Cooking", "Soup", 30, 5)
        assert [o.id for o in alice_and_bob.list_offers(category="cooking")] == [2]
        assert [o.id for o in alice_and_bob.list_offers(provider="alice")] == [1]
        assert len(alice_and_bob.list_offers(active=True)) == 2


class TestEventsDoNotAffectLedger:
    def test_failing_sink_is_logged_not_raised(self, alice_and_bob, caplog):
        class BrokenSink:
            def emit(self, event):
                raise RuntimeError("sink down")

        alice_and_bob.events.add_sink(BrokenSink())
        offer = alice_and_bob.create_offer("alice", "tutoring", "Algebra", 60, 30)
        assert alice_and_bob.get_offer(offer.id).active
        assert "BrokenSink" in caplog.text
