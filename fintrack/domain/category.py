"""
Category constants
"""

# Category types
CATEGORY_TYPE_INCOME = "income"
CATEGORY_TYPE_EXPENSE = "expense"
CATEGORY_TYPES = (CATEGORY_TYPE_INCOME, CATEGORY_TYPE_EXPENSE)

# Transfers are tagged with this category when the user has one
TRANSFER_CATEGORY_NAME = "Transfer"

# Seeded for every new user
DEFAULT_CATEGORIES = [
    ("Salary", CATEGORY_TYPE_INCOME),
    ("Food", CATEGORY_TYPE_EXPENSE),
    (TRANSFER_CATEGORY_NAME, CATEGORY_TYPE_EXPENSE),
]


def signed_amount(category_type: str, amount):
    """
    Apply the sign convention of a transaction kind to a positive amount.

    Expenses are stored negative, income positive.
    """
    if category_type == CATEGORY_TYPE_EXPENSE:
        return -abs(amount)
    return abs(amount)
