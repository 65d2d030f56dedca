"""
Tests for the atomic transfer between accounts
"""
import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.exc import OperationalError

from fintrack.application.accounts import CreateAccountUseCase
from fintrack.application.categories import EnsureDefaultCategoriesUseCase, find_transfer_category
from fintrack.application.errors import NotFoundError, TransportError
from fintrack.application.goals import CreateGoalUseCase, AddFundsToGoalUseCase
from fintrack.application.transactions import (
    CreateTransferUseCase, TransactionValidationError, DEFAULT_TRANSFER_DESCRIPTION,
)
from fintrack.infrastructure.db.models import Account, EventLog, Transaction
from fintrack.infrastructure.eventlog.repository import EventLogRepository


@pytest.fixture
def accounts(db_session, sample_user_id):
    uc = CreateAccountUseCase(db_session)
    a = uc.execute(user_id=sample_user_id, name="A", initial_balance="1000")
    b = uc.execute(user_id=sample_user_id, name="B", initial_balance="500")
    return a, b


def balances(db_session, *account_ids):
    db_session.expire_all()
    return [db_session.get(Account, i).balance for i in account_ids]


class TestTransfer:
    def test_transfer_moves_money(self, db_session, sample_user_id, accounts):
        a, b = accounts
        result = CreateTransferUseCase(db_session).execute(
            user_id=sample_user_id, from_account_id=a, to_account_id=b,
            amount=Decimal("200"), transfer_date=date(2026, 4, 1),
        )

        assert balances(db_session, a, b) == [Decimal("800"), Decimal("700")]

        rows = db_session.query(Transaction).order_by(Transaction.id).all()
        assert [(r.account_id, r.amount) for r in rows] == [(a, Decimal("-200")), (b, Decimal("200"))]
        assert [r.id for r in rows] == [result.debit_transaction_id, result.credit_transaction_id]
        assert all(r.description == DEFAULT_TRANSFER_DESCRIPTION for r in rows)
        assert result.replayed is False

    def test_transfer_tagged_with_transfer_category(self, db_session, sample_user_id, accounts):
        a, b = accounts
        EnsureDefaultCategoriesUseCase(db_session).execute(sample_user_id)
        transfer = find_transfer_category(db_session, sample_user_id)

        CreateTransferUseCase(db_session).execute(
            user_id=sample_user_id, from_account_id=a, to_account_id=b, amount=Decimal("1"),
        )

        assert {r.category_id for r in db_session.query(Transaction).all()} == {transfer.id}

    def test_without_transfer_category_rows_are_uncategorized(self, db_session, sample_user_id, accounts):
        a, b = accounts
        CreateTransferUseCase(db_session).execute(
            user_id=sample_user_id, from_account_id=a, to_account_id=b, amount=Decimal("1"),
        )
        assert {r.category_id for r in db_session.query(Transaction).all()} == {None}

    @pytest.mark.parametrize("amount", ["200", "0", "-5"])
    def test_same_account_rejected_regardless_of_amount(self, db_session, sample_user_id, accounts, amount):
        a, _ = accounts
        with pytest.raises(TransactionValidationError, match="must differ"):
            CreateTransferUseCase(db_session).execute(
                user_id=sample_user_id, from_account_id=a, to_account_id=a, amount=Decimal(amount),
            )
        assert db_session.query(Transaction).count() == 0

    @pytest.mark.parametrize("amount", ["0", "-10"])
    def test_non_positive_amount_rejected(self, db_session, sample_user_id, accounts, amount):
        a, b = accounts
        with pytest.raises(TransactionValidationError, match="greater than zero"):
            CreateTransferUseCase(db_session).execute(
                user_id=sample_user_id, from_account_id=a, to_account_id=b, amount=Decimal(amount),
            )

    def test_foreign_destination_rejected(self, db_session, sample_user_id, other_user_id, accounts):
        a, _ = accounts
        theirs = CreateAccountUseCase(db_session).execute(user_id=other_user_id, name="Theirs")

        with pytest.raises(NotFoundError):
            CreateTransferUseCase(db_session).execute(
                user_id=sample_user_id, from_account_id=a, to_account_id=theirs, amount=Decimal("10"),
            )
        assert balances(db_session, a, theirs) == [Decimal("1000"), Decimal("0")]


class TestTransferAtomicity:
    def test_failure_mid_write_leaves_no_partial_state(self, db_session, sample_user_id, accounts, monkeypatch):
        a, b = accounts

        def boom(self, **kwargs):
            raise RuntimeError("event log down")

        monkeypatch.setattr(EventLogRepository, "append_event", boom)

        with pytest.raises(RuntimeError, match="event log down"):
            CreateTransferUseCase(db_session).execute(
                user_id=sample_user_id, from_account_id=a, to_account_id=b, amount=Decimal("200"),
            )

        assert balances(db_session, a, b) == [Decimal("1000"), Decimal("500")]
        assert db_session.query(Transaction).count() == 0

    def test_transient_error_is_retried(self, db_session, sample_user_id, accounts, monkeypatch):
        a, b = accounts
        real_append = EventLogRepository.append_event
        calls = []

        def flaky(self, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("INSERT", {}, Exception("connection reset"))
            return real_append(self, **kwargs)

        monkeypatch.setattr(EventLogRepository, "append_event", flaky)

        CreateTransferUseCase(db_session).execute(
            user_id=sample_user_id, from_account_id=a, to_account_id=b, amount=Decimal("200"),
        )

        assert len(calls) == 2
        assert balances(db_session, a, b) == [Decimal("800"), Decimal("700")]
        assert db_session.query(Transaction).count() == 2

    def test_persistent_outage_raises_transport_error(self, db_session, sample_user_id, accounts, monkeypatch):
        a, b = accounts

        def down(self, **kwargs):
            raise OperationalError("INSERT", {}, Exception("server closed the connection"))

        monkeypatch.setattr(EventLogRepository, "append_event", down)

        with pytest.raises(TransportError):
            CreateTransferUseCase(db_session).execute(
                user_id=sample_user_id, from_account_id=a, to_account_id=b, amount=Decimal("200"),
            )
        assert balances(db_session, a, b) == [Decimal("1000"), Decimal("500")]


class TestTransferIdempotency:
    def test_same_key_returns_first_result(self, db_session, sample_user_id, accounts):
        a, b = accounts
        uc = CreateTransferUseCase(db_session)

        first = uc.execute(
            user_id=sample_user_id, from_account_id=a, to_account_id=b,
            amount=Decimal("200"), idempotency_key="req-1",
        )
        second = uc.execute(
            user_id=sample_user_id, from_account_id=a, to_account_id=b,
            amount=Decimal("200"), idempotency_key="req-1",
        )

        assert second.replayed is True
        assert second.debit_transaction_id == first.debit_transaction_id
        assert second.credit_transaction_id == first.credit_transaction_id
        assert balances(db_session, a, b) == [Decimal("800"), Decimal("700")]
        assert db_session.query(Transaction).count() == 2
        assert db_session.query(EventLog).count() == 1

    def test_different_keys_write_twice(self, db_session, sample_user_id, accounts):
        a, b = accounts
        uc = CreateTransferUseCase(db_session)
        uc.execute(user_id=sample_user_id, from_account_id=a, to_account_id=b,
                   amount=Decimal("100"), idempotency_key="req-1")
        uc.execute(user_id=sample_user_id, from_account_id=a, to_account_id=b,
                   amount=Decimal("100"), idempotency_key="req-2")

        assert balances(db_session, a, b) == [Decimal("800"), Decimal("700")]

    def test_same_key_from_another_user_is_independent(self, db_session, sample_user_id, other_user_id, accounts):
        a, b = accounts
        uc = CreateAccountUseCase(db_session)
        c = uc.execute(user_id=other_user_id, name="C", initial_balance="300")
        d = uc.execute(user_id=other_user_id, name="D", initial_balance="0")

        mine = CreateTransferUseCase(db_session).execute(
            user_id=sample_user_id, from_account_id=a, to_account_id=b,
            amount=Decimal("200"), idempotency_key="1",
        )
        theirs = CreateTransferUseCase(db_session).execute(
            user_id=other_user_id, from_account_id=c, to_account_id=d,
            amount=Decimal("50"), idempotency_key="1",
        )

        assert theirs.replayed is False
        assert theirs.debit_transaction_id != mine.debit_transaction_id
        assert balances(db_session, a, b, c, d) == [
            Decimal("800"), Decimal("700"), Decimal("250"), Decimal("50")
        ]

    def test_same_key_for_goal_funding_is_independent(self, db_session, sample_user_id, accounts):
        a, b = accounts
        goal_id = CreateGoalUseCase(db_session).execute(
            user_id=sample_user_id, name="Bike", target_amount="400"
        )

        CreateTransferUseCase(db_session).execute(
            user_id=sample_user_id, from_account_id=a, to_account_id=b,
            amount=Decimal("200"), idempotency_key="k",
        )
        funding = AddFundsToGoalUseCase(db_session).execute(
            sample_user_id, goal_id, Decimal("100"), idempotency_key="k"
        )

        assert funding.replayed is False
        assert funding.current_amount == Decimal("100")
        assert db_session.query(EventLog).count() == 2
