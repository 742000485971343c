"""Visibility and mutation rules for user data.

Anything a caller is not allowed to see is reported as ``NotFound``, whether
or not the row exists, so ids belonging to other users cannot be probed.
Shared default categories are visible to everyone; trying to change one is
reported as ``Forbidden``.
"""

from typing import Optional

from sqlalchemy import ColumnElement, or_

from errors import Forbidden, NotFound
from models import Category, Expense


def visible_categories(user_id: int) -> ColumnElement[bool]:
    return or_(Category.user_id == user_id, Category.user_id.is_(None))


def require_expense_owner(expense: Optional[Expense], user_id: int) -> Expense:
    if expense is None or expense.user_id != user_id:
        raise NotFound("Expense not found")
    return expense


def require_visible_category(category: Optional[Category], user_id: int) -> Category:
    if category is None or not category.visible_to(user_id):
        raise NotFound("Category not found")
    return category


def require_mutable_category(category: Optional[Category], user_id: int) -> Category:
    category = require_visible_category(category, user_id)
    if not category.mutable_by(user_id):
        raise Forbidden("Default categories cannot be modified")
    return category
