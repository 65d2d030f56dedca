"""
Saving goal use cases
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fintrack.application.atomic import run_atomic
from fintrack.application.errors import ValidationError, NotFoundError, ConflictError
from fintrack.application.transactions import CreateTransactionUseCase
from fintrack.domain.goal import goal_progress, default_funding_description
from fintrack.infrastructure.db.models import SavingGoal
from fintrack.infrastructure.eventlog.repository import EventLogRepository
from fintrack.utils.dates import today

logger = logging.getLogger(__name__)

EVENT_GOAL_FUNDED = "goal_funded"


class GoalValidationError(ValidationError):
    """Saving goal validation error"""
    pass


@dataclass(frozen=True)
class GoalView:
    id: int
    name: str
    target_amount: Decimal
    current_amount: Decimal
    progress: Decimal


@dataclass(frozen=True)
class FundingResult:
    goal_id: int
    transaction_id: int
    current_amount: Decimal
    replayed: bool = False


def _parse_target(target_amount) -> Decimal:
    try:
        target = Decimal(str(target_amount))
    except InvalidOperation:
        raise GoalValidationError(f"Invalid target amount: {target_amount}")
    if target <= 0:
        raise GoalValidationError("Target amount must be greater than zero")
    return target


def get_goal(db: Session, goal_id: int, user_id: int, for_update: bool = False) -> SavingGoal:
    query = db.query(SavingGoal).filter(
        SavingGoal.id == goal_id,
        SavingGoal.user_id == user_id
    )
    if for_update:
        query = query.with_for_update()
    goal = query.first()
    if not goal:
        raise NotFoundError(f"Saving goal #{goal_id} not found")
    return goal


def to_goal_view(goal: SavingGoal) -> GoalView:
    return GoalView(
        id=goal.id,
        name=goal.name,
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        progress=goal_progress(goal.current_amount, goal.target_amount),
    )


def list_goals(db: Session, user_id: int) -> list[GoalView]:
    """Goals with progress, newest first"""
    goals = db.query(SavingGoal).filter(
        SavingGoal.user_id == user_id
    ).order_by(SavingGoal.created_at.desc(), SavingGoal.id.desc()).all()
    return [to_goal_view(g) for g in goals]


class CreateGoalUseCase:
    """Use case: create a saving goal"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, name: str, target_amount) -> int:
        """
        Returns:
            goal_id
        """
        name = name.strip()
        if not name:
            raise GoalValidationError("Goal name must not be empty")

        goal = SavingGoal(
            user_id=user_id,
            name=name,
            target_amount=_parse_target(target_amount),
            current_amount=Decimal("0"),
        )
        self.db.add(goal)
        self.db.commit()
        return goal.id


class UpdateGoalUseCase:
    """Use case: rename a goal or change its target. current_amount is not editable."""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        goal_id: int,
        user_id: int,
        name: str | None = None,
        target_amount=None,
    ) -> None:
        goal = get_goal(self.db, goal_id, user_id)

        if name is not None:
            name = name.strip()
            if not name:
                raise GoalValidationError("Goal name must not be empty")
            goal.name = name

        if target_amount is not None:
            goal.target_amount = _parse_target(target_amount)

        self.db.commit()


class DeleteGoalUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, goal_id: int, user_id: int) -> None:
        goal = get_goal(self.db, goal_id, user_id)
        self.db.delete(goal)
        self.db.commit()


class AddFundsToGoalUseCase:
    """
    Use case: put money towards a goal

    Writes, in one commit:
    1. goal.current_amount += amount (may go past the target)
    2. an expense transaction of -amount with the funding description,
       booked on account_id when one is given
    3. a goal_funded event (carries the idempotency key)
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        goal_id: int,
        amount: Decimal,
        description: str | None = None,
        account_id: int | None = None,
        idempotency_key: str | None = None,
    ) -> FundingResult:
        """
        Raises:
            GoalValidationError: amount <= 0
            NotFoundError: goal or account missing or foreign
            TransportError: database unavailable after retries
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise GoalValidationError("Amount must be greater than zero")

        def unit() -> FundingResult:
            if idempotency_key:
                previous = self._replay(user_id, idempotency_key)
                if previous:
                    return previous
            return self._write(user_id, goal_id, amount, description, account_id, idempotency_key)

        try:
            result = run_atomic(self.db, unit, label="add_funds_to_goal")
        except IntegrityError:
            previous = self._replay(user_id, idempotency_key) if idempotency_key else None
            if previous:
                return previous
            raise ConflictError("Goal funding conflicts with an existing record")

        if not result.replayed:
            logger.info("Goal %s funded with %s by user %s", goal_id, amount, user_id)
        return result

    def _write(
        self,
        user_id: int,
        goal_id: int,
        amount: Decimal,
        description: str | None,
        account_id: int | None,
        idempotency_key: str | None,
    ) -> FundingResult:
        goal = get_goal(self.db, goal_id, user_id, for_update=True)
        goal.current_amount += amount

        description = (description or "").strip() or default_funding_description(goal.name)
        tx = CreateTransactionUseCase(self.db).build(
            user_id=user_id,
            amount=-amount,
            transaction_date=today(),
            account_id=account_id,
            description=description,
        )

        self.event_repo.append_event(
            user_id=user_id,
            event_type=EVENT_GOAL_FUNDED,
            payload={
                "goal_id": goal.id,
                "transaction_id": tx.id,
                "amount": str(amount),
                "current_amount": str(goal.current_amount),
                "account_id": account_id,
            },
            idempotency_key=idempotency_key,
        )

        return FundingResult(goal_id=goal.id, transaction_id=tx.id, current_amount=goal.current_amount)

    def _replay(self, user_id: int, idempotency_key: str) -> FundingResult | None:
        event = self.event_repo.get_by_idempotency_key(user_id, EVENT_GOAL_FUNDED, idempotency_key)
        if not event:
            return None
        p = event.payload_json
        return FundingResult(
            goal_id=p["goal_id"],
            transaction_id=p["transaction_id"],
            current_amount=Decimal(p["current_amount"]),
            replayed=True,
        )
