import sys
import os
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from errors import TransactionError, InsufficientFunds
from models import Transaction, TransactionType, DisputeStatus
from payments_engine import InMemoryPaymentEngine
from state_manager import StateManager
from transaction_processor import TransactionProcessor

AMOUNTS = st.decimals(min_value=0, max_value=10000, places=4, allow_nan=False, allow_infinity=False)
CLIENTS = st.integers(min_value=0, max_value=3)
TRANSACTION_IDS = st.integers(min_value=0, max_value=8)

MONEY_MOVEMENTS = st.builds(
    Transaction,
    transaction_type=st.sampled_from([TransactionType.DEPOSIT, TransactionType.WITHDRAWAL]),
    client_id=CLIENTS,
    transaction_id=TRANSACTION_IDS,
    amount=AMOUNTS,
)
REFERENCES = st.builds(
    Transaction,
    transaction_type=st.sampled_from([TransactionType.DISPUTE, TransactionType.RESOLVE, TransactionType.CHARGEBACK]),
    client_id=CLIENTS,
    transaction_id=TRANSACTION_IDS,
)
EVENTS = st.lists(st.one_of(MONEY_MOVEMENTS, REFERENCES), max_size=60)


def account_state(state: StateManager):
    return {
        client_id: (account.available, account.held, account.locked)
        for client_id, account in state.get_all_accounts().items()
    }


class TestLedgerProperties:
    @settings(max_examples=200, deadline=None)
    @given(amounts=st.lists(st.tuples(st.booleans(), AMOUNTS), max_size=40))
    def test_balance_conservation(self, amounts):
        engine = InMemoryPaymentEngine()
        expected = Decimal("0")

        for transaction_id, (is_deposit, amount) in enumerate(amounts):
            if is_deposit:
                engine.process(Transaction(TransactionType.DEPOSIT, 1, transaction_id, amount))
                expected += amount
            elif amount > expected:
                with pytest.raises(InsufficientFunds):
                    engine.process(Transaction(TransactionType.WITHDRAWAL, 1, transaction_id, amount))
            else:
                engine.process(Transaction(TransactionType.WITHDRAWAL, 1, transaction_id, amount))
                expected -= amount

        for summary in engine.snapshot():
            assert summary.total == expected
            assert summary.held == Decimal("0")

    @settings(max_examples=300, deadline=None)
    @given(events=EVENTS)
    def test_invariants_hold_after_every_event(self, events):
        state = StateManager()
        processor = TransactionProcessor(state)

        for transaction in events:
            before = account_state(state)
            try:
                processor.process_transaction(transaction)
            except TransactionError:
                after = account_state(state)
                # A rejected event never moves money, it may only introduce an empty account
                for client_id, balances in before.items():
                    assert after[client_id] == balances
                continue

            for client_id, account in state.get_all_accounts().items():
                disputed = sum(
                    (record.amount for record in state.get_client_records(client_id)
                     if record.status == DisputeStatus.DISPUTED),
                    Decimal("0"),
                )
                assert account.total == account.available + account.held
                assert account.available >= 0
                assert account.held >= 0
                assert account.held == disputed

    @settings(max_examples=100, deadline=None)
    @given(amount=AMOUNTS, client_id=CLIENTS)
    def test_dispute_round_trip(self, amount, client_id):
        engine = InMemoryPaymentEngine()
        engine.process(Transaction(TransactionType.DEPOSIT, client_id, 1, amount))
        after_deposit = engine.snapshot()

        engine.process(Transaction(TransactionType.DISPUTE, client_id, 1))
        engine.process(Transaction(TransactionType.RESOLVE, client_id, 1))

        assert engine.snapshot() == after_deposit

    @settings(max_examples=100, deadline=None)
    @given(events=st.lists(MONEY_MOVEMENTS, max_size=30))
    def test_clients_are_independent(self, events):
        combined = InMemoryPaymentEngine()
        separate = {}

        for transaction in events:
            engine = separate.setdefault(transaction.client_id, InMemoryPaymentEngine())
            combined_error = separate_error = None
            try:
                combined.process(transaction)
            except TransactionError as e:
                combined_error = type(e)
            try:
                engine.process(transaction)
            except TransactionError as e:
                separate_error = type(e)
            assert combined_error == separate_error

        expected = sorted(
            (summary for engine in separate.values() for summary in engine.snapshot()),
            key=lambda summary: summary.client,
        )
        assert combined.snapshot() == expected
