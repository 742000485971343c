from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from auth import burn_password_check, hash_password, verify_password
from config import get_settings
from errors import Conflict, InvalidInput, NotFound, Unauthenticated
from expense_query import (
    ExpenseFilters,
    ExpensePage,
    ExpensePaging,
    ExpenseQueryEngine,
    ExpenseTotals,
)
from models import Category, Expense, User
from ownership import (
    require_expense_owner,
    require_mutable_category,
    require_visible_category,
    visible_categories,
)
from periods import resolve_period, today_in
from schemas import (
    CategoryIn,
    CategoryUpdateIn,
    ExpenseFilterQuery,
    ExpenseIn,
    ExpenseListQuery,
    ExpenseUpdateIn,
    ProfileUpdateIn,
    RegisterIn,
)

logger = logging.getLogger(__name__)


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_amount(cents: float) -> float:
    return round(cents / 100, 2)


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def register(self, data: RegisterIn) -> User:
        user = User(
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
        )
        self.session.add(user)
        # the unique index on users.email decides races between registrations
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise Conflict("Email already registered") from exc
        self.session.refresh(user)
        logger.info(f"user_registered: id={user.id}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.session.scalar(select(User).where(User.email == email.lower()))
        if user is None:
            burn_password_check()
            raise Unauthenticated("Invalid credentials")
        if not verify_password(password, user.password_hash):
            raise Unauthenticated("Invalid credentials")
        return user

    def get(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def update_profile(self, user: User, data: ProfileUpdateIn) -> User:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        user.updated_at = datetime.utcnow()
        self.session.commit()
        self.session.refresh(user)
        return user


class CategoryService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_visible(self, include_defaults: bool = True) -> list[Category]:
        if include_defaults:
            scope = visible_categories(self.user_id)
        else:
            scope = Category.user_id == self.user_id
        stmt = (
            select(Category)
            .where(scope)
            .order_by(Category.user_id.is_(None).desc(), Category.name, Category.id)
        )
        return list(self.session.scalars(stmt).all())

    def get(self, category_id: int) -> Category:
        return require_visible_category(
            self.session.get(Category, category_id), self.user_id
        )

    def create(self, data: CategoryIn) -> Category:
        category = Category(
            user_id=self.user_id,
            name=data.name,
            description=data.description,
            color=data.color,
            icon=data.icon,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        logger.info(f"category_created: id={category.id} user_id={self.user_id}")
        return category

    def update(self, category_id: int, data: CategoryUpdateIn) -> Category:
        category = require_mutable_category(
            self.session.get(Category, category_id), self.user_id
        )
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(category, field, value)
        category.updated_at = datetime.utcnow()
        self.session.commit()
        self.session.refresh(category)
        logger.info(f"category_updated: id={category.id} user_id={self.user_id}")
        return category

    def delete(self, category_id: int) -> None:
        in_use = (
            select(Expense.id).where(Expense.category_id == category_id).exists()
        )
        stmt = (
            delete(Category)
            .where(
                Category.id == category_id,
                Category.user_id == self.user_id,
                ~in_use,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
        except IntegrityError as exc:
            self.session.rollback()
            raise Conflict(
                "Cannot delete category that is being used by expenses"
            ) from exc
        if result.rowcount == 1:
            self.session.commit()
            logger.info(f"category_deleted: id={category_id} user_id={self.user_id}")
            return

        self.session.rollback()
        # nothing was deleted: report why
        require_mutable_category(
            self.session.get(Category, category_id), self.user_id
        )
        raise Conflict("Cannot delete category that is being used by expenses")

    def expense_count(self, category_id: int) -> int:
        category = self.get(category_id)
        stmt = select(func.count(Expense.id)).where(
            Expense.category_id == category.id, Expense.user_id == self.user_id
        )
        return int(self.session.execute(stmt).scalar_one() or 0)


class ExpenseService:
    def __init__(
        self, session: Session, user_id: int, *, today: Optional[date] = None
    ) -> None:
        self.session = session
        self.user_id = user_id
        self.today = today
        self.engine = ExpenseQueryEngine(session, user_id)

    def _usable_category(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category or not category.visible_to(self.user_id):
            raise InvalidInput("Category not found")
        return category

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            # the category vanished between the check and the write
            self.session.rollback()
            raise InvalidInput("Category not found") from exc

    def get(self, expense_id: int) -> Expense:
        stmt = (
            select(Expense)
            .options(joinedload(Expense.category))
            .where(Expense.id == expense_id)
        )
        return require_expense_owner(self.session.scalar(stmt), self.user_id)

    def create(self, data: ExpenseIn) -> Expense:
        self._usable_category(data.category_id)
        expense = Expense(
            user_id=self.user_id,
            amount_cents=to_cents(data.amount),
            description=data.description,
            date=data.date,
            category_id=data.category_id,
            receipt_filename=data.receipt_filename,
            notes=data.notes,
        )
        expense.tags = data.tags
        self.session.add(expense)
        self._commit()
        logger.info(f"expense_created: id={expense.id} user_id={self.user_id}")
        return self.get(expense.id)

    def update(self, expense_id: int, data: ExpenseUpdateIn) -> Expense:
        expense = self.get(expense_id)
        changes = data.model_dump(exclude_unset=True)
        if "category_id" in changes:
            self._usable_category(changes["category_id"])

        for field, value in changes.items():
            if field == "amount":
                expense.amount_cents = to_cents(value)
            elif field == "tags":
                expense.tags = value
            else:
                setattr(expense, field, value)
        expense.updated_at = datetime.utcnow()
        self._commit()
        self.session.refresh(expense)
        logger.info(
            f"expense_updated: id={expense.id} user_id={self.user_id} "
            f"fields={','.join(sorted(changes)) or '-'}"
        )
        return expense

    def delete(self, expense_id: int) -> None:
        stmt = (
            delete(Expense)
            .where(Expense.id == expense_id, Expense.user_id == self.user_id)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            self.session.rollback()
            raise NotFound("Expense not found")
        self.session.commit()
        logger.info(f"expense_deleted: id={expense_id} user_id={self.user_id}")

    def filters_from_query(self, query: ExpenseFilterQuery) -> ExpenseFilters:
        start_date, end_date = query.start_date, query.end_date
        if query.period:
            today = self.today or today_in(get_settings().timezone)
            period = resolve_period(query.period, today=today)
            start_date, end_date = period.start, period.end
        return ExpenseFilters(
            category_id=query.category_id,
            start_date=start_date,
            end_date=end_date,
            search=query.search,
        )

    def list(self, query: ExpenseListQuery) -> ExpensePage:
        paging = ExpensePaging(
            page=query.page,
            limit=query.limit,
            sort_by=query.sort_by,
            sort_order=query.sort_order,
        )
        return self.engine.page(self.filters_from_query(query), paging)

    def summary(self, query: ExpenseFilterQuery) -> ExpenseTotals:
        return self.engine.totals(self.filters_from_query(query))
