"""Filtered, sorted and paginated expense listing.

Every figure the engine returns (the page of rows, the row count and the
amount sum) is computed from the list of conditions produced by
:meth:`ExpenseQueryEngine.conditions`, so the three cannot drift apart.

Pagination is offset based. Rows inserted or deleted by another request
while a client walks through the pages can shift between pages; within a
single call all three figures come from the same session.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.orm import Session, joinedload

from models import Expense

SORT_COLUMNS = {
    "date": Expense.date,
    "amount": Expense.amount_cents,
    "description": Expense.description,
    "created_at": Expense.created_at,
}


@dataclass
class ExpenseFilters:
    category_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None


@dataclass
class ExpensePaging:
    page: int = 1
    limit: int = 20
    sort_by: str = "date"
    sort_order: str = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class ExpenseTotals:
    count: int
    amount_cents: int

    @property
    def average_cents(self) -> float:
        if self.count == 0:
            return 0
        return self.amount_cents / self.count


@dataclass
class ExpensePage:
    items: list[Expense]
    totals: ExpenseTotals
    page: int
    limit: int

    @property
    def total_count(self) -> int:
        return self.totals.count

    @property
    def total_amount_cents(self) -> int:
        return self.totals.amount_cents

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def _like_pattern(text: str) -> str:
    escaped = (
        text.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    return f"%{escaped}%"


class ExpenseQueryEngine:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def conditions(self, filters: ExpenseFilters) -> list[ColumnElement[bool]]:
        # owner scoping is always applied and never comes from the client
        clauses: list[ColumnElement[bool]] = [Expense.user_id == self.user_id]
        if filters.category_id is not None:
            clauses.append(Expense.category_id == filters.category_id)
        if filters.start_date is not None:
            clauses.append(Expense.date >= filters.start_date)
        if filters.end_date is not None:
            clauses.append(Expense.date <= filters.end_date)
        if filters.search:
            like = _like_pattern(filters.search)
            clauses.append(
                or_(
                    func.lower(Expense.description).like(like, escape="\\"),
                    func.lower(func.coalesce(Expense.notes, "")).like(
                        like, escape="\\"
                    ),
                )
            )
        return clauses

    def totals(
        self,
        filters: ExpenseFilters,
        *,
        conditions: Optional[list[ColumnElement[bool]]] = None,
    ) -> ExpenseTotals:
        if conditions is None:
            conditions = self.conditions(filters)
        stmt = select(
            func.count(Expense.id), func.coalesce(func.sum(Expense.amount_cents), 0)
        ).where(*conditions)
        count, amount = self.session.execute(stmt).one()
        return ExpenseTotals(count=int(count or 0), amount_cents=int(amount or 0))

    def items(
        self,
        filters: ExpenseFilters,
        paging: ExpensePaging,
        *,
        conditions: Optional[list[ColumnElement[bool]]] = None,
    ) -> list[Expense]:
        if conditions is None:
            conditions = self.conditions(filters)
        column = SORT_COLUMNS[paging.sort_by]
        ordering = column.asc() if paging.sort_order == "asc" else column.desc()
        stmt = (
            select(Expense)
            .options(joinedload(Expense.category))
            .where(*conditions)
            .order_by(ordering, Expense.id.asc())
            .offset(paging.offset)
            .limit(paging.limit)
        )
        return list(self.session.scalars(stmt).all())

    def page(self, filters: ExpenseFilters, paging: ExpensePaging) -> ExpensePage:
        conditions = self.conditions(filters)
        items = self.items(filters, paging, conditions=conditions)
        totals = self.totals(filters, conditions=conditions)
        return ExpensePage(
            items=items, totals=totals, page=paging.page, limit=paging.limit
        )
