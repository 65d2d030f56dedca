"""
Category use cases
"""
from sqlalchemy.orm import Session

from fintrack.application.errors import ValidationError, NotFoundError
from fintrack.domain.category import (
    CATEGORY_TYPE_EXPENSE, CATEGORY_TYPES, DEFAULT_CATEGORIES, TRANSFER_CATEGORY_NAME,
)
from fintrack.infrastructure.db.models import Category, Transaction, RecurringTransaction, Budget


class CategoryValidationError(ValidationError):
    pass


def get_category(db: Session, category_id: int, user_id: int) -> Category:
    """
    Raises:
        NotFoundError: unknown id or owned by someone else
    """
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.user_id == user_id
    ).first()
    if not category:
        raise NotFoundError(f"Category #{category_id} not found")
    return category


def list_categories(db: Session, user_id: int, category_type: str | None = None) -> list[Category]:
    """Categories ordered by type, then name"""
    query = db.query(Category).filter(Category.user_id == user_id)

    if category_type is not None:
        if category_type not in CATEGORY_TYPES:
            raise CategoryValidationError(
                f"Invalid category type: {category_type}. Use income or expense"
            )
        query = query.filter(Category.type == category_type)

    return query.order_by(Category.type.asc(), Category.name.asc()).all()


def find_transfer_category(db: Session, user_id: int) -> Category | None:
    return db.query(Category).filter(
        Category.user_id == user_id,
        Category.name == TRANSFER_CATEGORY_NAME
    ).first()


def _validate(name: str, category_type: str) -> str:
    name = name.strip()
    if not name:
        raise CategoryValidationError("Category name must not be empty")
    if category_type not in CATEGORY_TYPES:
        raise CategoryValidationError(
            f"Invalid category type: {category_type}. Use income or expense"
        )
    return name


class CreateCategoryUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, name: str, category_type: str) -> int:
        name = _validate(name, category_type)

        category = Category(user_id=user_id, name=name, type=category_type)
        self.db.add(category)
        self.db.commit()
        return category.id


class UpdateCategoryUseCase:
    """
    Use case: rename a category or change its type.

    Budgets exist only for expense categories, so turning one into income
    removes its budgets.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, category_id: int, user_id: int, name: str, category_type: str) -> None:
        category = get_category(self.db, category_id, user_id)
        category.name = _validate(name, category_type)

        if category.type == CATEGORY_TYPE_EXPENSE and category_type != CATEGORY_TYPE_EXPENSE:
            self.db.query(Budget).filter(
                Budget.category_id == category.id
            ).delete(synchronize_session=False)

        category.type = category_type
        self.db.commit()


class DeleteCategoryUseCase:
    """
    Use case: delete a category.

    Transactions and recurring templates keep existing with no category;
    budgets of the category go with it.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, category_id: int, user_id: int) -> None:
        category = get_category(self.db, category_id, user_id)

        self.db.query(Transaction).filter(
            Transaction.category_id == category.id
        ).update({Transaction.category_id: None}, synchronize_session=False)
        self.db.query(RecurringTransaction).filter(
            RecurringTransaction.category_id == category.id
        ).update({RecurringTransaction.category_id: None}, synchronize_session=False)
        self.db.query(Budget).filter(
            Budget.category_id == category.id
        ).delete(synchronize_session=False)

        self.db.delete(category)
        self.db.commit()


class EnsureDefaultCategoriesUseCase:
    """
    Use case: seed the default categories for a new user (idempotent)
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int) -> int:
        """
        Returns:
            Number of categories created
        """
        existing = {
            (c.name, c.type)
            for c in self.db.query(Category).filter(Category.user_id == user_id).all()
        }
        created = 0
        for name, category_type in DEFAULT_CATEGORIES:
            if (name, category_type) in existing:
                continue
            self.db.add(Category(user_id=user_id, name=name, type=category_type))
            created += 1

        if created:
            self.db.commit()
        return created
