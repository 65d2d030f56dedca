"""
Tests for recurring transaction templates and their materialization
"""
import pytest
from datetime import date
from decimal import Decimal

from fintrack.application.accounts import CreateAccountUseCase
from fintrack.application.errors import NotFoundError
from fintrack.application.recurring import (
    CreateRecurringUseCase, UpdateRecurringUseCase, DeleteRecurringUseCase,
    MaterializeDueRecurringUseCase, RecurringValidationError, list_recurring,
)
from fintrack.infrastructure.db.models import Account, RecurringTransaction, Transaction


@pytest.fixture
def account_id(db_session, sample_user_id):
    return CreateAccountUseCase(db_session).execute(
        user_id=sample_user_id, name="Main", initial_balance="1000"
    )


def create(db_session, user_id, account_id, **overrides):
    params = dict(
        user_id=user_id,
        amount=Decimal("-50"),
        frequency="monthly",
        start_date=date(2026, 1, 31),
        account_id=account_id,
        description="Gym",
    )
    params.update(overrides)
    return CreateRecurringUseCase(db_session).execute(**params)


class TestTemplates:
    def test_first_due_date_is_start_date(self, db_session, sample_user_id, account_id):
        recurring_id = create(db_session, sample_user_id, account_id)
        item = db_session.get(RecurringTransaction, recurring_id)
        assert item.next_due_date == date(2026, 1, 31)

    def test_invalid_frequency_rejected(self, db_session, sample_user_id, account_id):
        with pytest.raises(RecurringValidationError, match="Invalid frequency"):
            create(db_session, sample_user_id, account_id, frequency="hourly")

    def test_zero_amount_rejected(self, db_session, sample_user_id, account_id):
        with pytest.raises(RecurringValidationError, match="must not be zero"):
            create(db_session, sample_user_id, account_id, amount=Decimal("0"))

    def test_unknown_account_rejected(self, db_session, sample_user_id):
        with pytest.raises(NotFoundError):
            create(db_session, sample_user_id, 4242)

    def test_update_resets_next_due_date(self, db_session, sample_user_id, account_id):
        recurring_id = create(db_session, sample_user_id, account_id)
        MaterializeDueRecurringUseCase(db_session).execute(today=date(2026, 2, 28))

        UpdateRecurringUseCase(db_session).execute(
            recurring_id, sample_user_id,
            amount=Decimal("-60"), frequency="weekly", start_date=date(2026, 3, 2),
            account_id=account_id,
        )

        item = db_session.get(RecurringTransaction, recurring_id)
        assert item.next_due_date == date(2026, 3, 2)
        assert (item.amount, item.frequency) == (Decimal("-60"), "weekly")

    def test_list_ordered_by_next_due_date(self, db_session, sample_user_id, account_id):
        late = create(db_session, sample_user_id, account_id, start_date=date(2026, 6, 1))
        early = create(db_session, sample_user_id, account_id, start_date=date(2026, 2, 1))

        assert [r.id for r in list_recurring(db_session, sample_user_id)] == [early, late]

    def test_delete(self, db_session, sample_user_id, account_id):
        recurring_id = create(db_session, sample_user_id, account_id)
        DeleteRecurringUseCase(db_session).execute(recurring_id, sample_user_id)
        assert db_session.query(RecurringTransaction).count() == 0


class TestMaterialize:
    def test_catches_up_and_advances(self, db_session, sample_user_id, account_id):
        recurring_id = create(db_session, sample_user_id, account_id)

        created = MaterializeDueRecurringUseCase(db_session).execute(today=date(2026, 3, 31))

        assert created == 3
        rows = db_session.query(Transaction).order_by(Transaction.transaction_date).all()
        assert [r.transaction_date for r in rows] == [
            date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 31)
        ]
        assert all(r.amount == Decimal("-50") and r.description == "Gym" for r in rows)

        db_session.expire_all()
        assert db_session.get(RecurringTransaction, recurring_id).next_due_date == date(2026, 4, 30)
        assert db_session.get(Account, account_id).balance == Decimal("850")

    def test_second_run_same_day_creates_nothing(self, db_session, sample_user_id, account_id):
        create(db_session, sample_user_id, account_id)
        uc = MaterializeDueRecurringUseCase(db_session)
        uc.execute(today=date(2026, 2, 1))

        assert uc.execute(today=date(2026, 2, 1)) == 0
        assert db_session.query(Transaction).count() == 1

    def test_not_yet_due(self, db_session, sample_user_id, account_id):
        create(db_session, sample_user_id, account_id, start_date=date(2026, 5, 1))
        assert MaterializeDueRecurringUseCase(db_session).execute(today=date(2026, 4, 30)) == 0

    def test_restricted_to_one_user(self, db_session, sample_user_id, other_user_id, account_id):
        theirs = CreateAccountUseCase(db_session).execute(user_id=other_user_id, name="Theirs")
        create(db_session, sample_user_id, account_id, frequency="daily", start_date=date(2026, 1, 1))
        create(db_session, other_user_id, theirs, frequency="daily", start_date=date(2026, 1, 1))

        created = MaterializeDueRecurringUseCase(db_session).execute(
            user_id=sample_user_id, today=date(2026, 1, 2)
        )

        assert created == 2
        assert {t.user_id for t in db_session.query(Transaction).all()} == {sample_user_id}

    def test_run_with_stale_due_list_does_not_duplicate(
        self, db_session, session_factory, sample_user_id, account_id, monkeypatch
    ):
        create(db_session, sample_user_id, account_id, start_date=date(2026, 2, 1))
        today = date(2026, 2, 1)
        stale_ids = MaterializeDueRecurringUseCase(db_session)._due_ids(None, today)
        db_session.commit()

        # another run (the daily job) gets there first
        other = session_factory()
        try:
            assert MaterializeDueRecurringUseCase(other).execute(today=today) == 1
        finally:
            other.close()

        monkeypatch.setattr(
            MaterializeDueRecurringUseCase, "_due_ids", lambda self, user_id, today: stale_ids
        )
        assert MaterializeDueRecurringUseCase(db_session).execute(today=today) == 0

        db_session.expire_all()
        assert db_session.query(Transaction).count() == 1
        assert db_session.get(Account, account_id).balance == Decimal("950")
