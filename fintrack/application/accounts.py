"""
Account use cases - business logic for account operations
"""
import logging
from decimal import Decimal, InvalidOperation
from sqlalchemy.orm import Session

from fintrack.application.errors import ValidationError, NotFoundError
from fintrack.infrastructure.db.models import Account, Transaction, RecurringTransaction

logger = logging.getLogger(__name__)


class AccountValidationError(ValidationError):
    """Account validation error"""
    pass


def get_account(db: Session, account_id: int, user_id: int, for_update: bool = False) -> Account:
    """
    Load an account owned by the user

    Raises:
        NotFoundError: unknown id or owned by someone else
    """
    query = db.query(Account).filter(
        Account.id == account_id,
        Account.user_id == user_id
    )
    if for_update:
        query = query.with_for_update()
    account = query.first()
    if not account:
        raise NotFoundError(f"Account #{account_id} not found")
    return account


def list_accounts(db: Session, user_id: int) -> list[Account]:
    return db.query(Account).filter(
        Account.user_id == user_id
    ).order_by(Account.name.asc()).all()


class CreateAccountUseCase:
    """
    Use case: create an account with an opening balance
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, name: str, initial_balance: str | Decimal = "0") -> int:
        """
        Create an account

        Args:
            user_id: Owner
            name: Account name
            initial_balance: Opening balance (may be negative, e.g. a credit card)

        Returns:
            account_id
        """
        name = name.strip()
        if not name:
            raise AccountValidationError("Account name must not be empty")

        try:
            balance = Decimal(str(initial_balance))
        except InvalidOperation:
            raise AccountValidationError(f"Invalid opening balance: {initial_balance}")

        account = Account(user_id=user_id, name=name, balance=balance)
        self.db.add(account)
        self.db.commit()

        logger.info("Account %s created for user %s", account.id, user_id)
        return account.id


class UpdateAccountUseCase:
    """
    Use case: rename an account. The balance is not editable directly.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, account_id: int, user_id: int, name: str) -> None:
        account = get_account(self.db, account_id, user_id)

        name = name.strip()
        if not name:
            raise AccountValidationError("Account name must not be empty")

        account.name = name
        self.db.commit()


class DeleteAccountUseCase:
    """
    Use case: delete an account together with its transactions and
    recurring templates
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, account_id: int, user_id: int) -> None:
        account = get_account(self.db, account_id, user_id)

        # Mirrors ON DELETE CASCADE for stores that do not enforce foreign keys
        self.db.query(Transaction).filter(
            Transaction.account_id == account.id
        ).delete(synchronize_session=False)
        self.db.query(RecurringTransaction).filter(
            RecurringTransaction.account_id == account.id
        ).delete(synchronize_session=False)

        self.db.delete(account)
        self.db.commit()

        logger.info("Account %s deleted for user %s", account_id, user_id)
