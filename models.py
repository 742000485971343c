import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


@dataclass(frozen=True)
class Owned:
    user_id: int


@dataclass(frozen=True)
class Shared:
    pass


Ownership = Union[Owned, Shared]
SHARED = Shared()


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    categories: Mapped[list["Category"]] = relationship(
        "Category", back_populates="owner"
    )
    expenses: Mapped[list["Expense"]] = relationship("Expense", back_populates="owner")

    __table_args__ = (Index("ux_users_email", "email", unique=True),)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # NULL owner marks a shared default category
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    color: Mapped[str] = mapped_column(String(7), nullable=False)
    icon: Mapped[str] = mapped_column(String(50), nullable=False)

    owner: Mapped[Optional["User"]] = relationship("User", back_populates="categories")
    expenses: Mapped[list["Expense"]] = relationship(
        "Expense", back_populates="category"
    )

    __table_args__ = (Index("ix_categories_user_name", "user_id", "name"),)

    @property
    def ownership(self) -> Ownership:
        if self.user_id is None:
            return SHARED
        return Owned(self.user_id)

    @property
    def is_default(self) -> bool:
        return isinstance(self.ownership, Shared)

    def visible_to(self, user_id: int) -> bool:
        ownership = self.ownership
        return isinstance(ownership, Shared) or ownership.user_id == user_id

    def mutable_by(self, user_id: int) -> bool:
        ownership = self.ownership
        return isinstance(ownership, Owned) and ownership.user_id == user_id


class Expense(Base, TimestampMixin):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    receipt_filename: Mapped[Optional[str]] = mapped_column(String(255))
    tags_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    notes: Mapped[Optional[str]] = mapped_column(Text)

    owner: Mapped["User"] = relationship("User", back_populates="expenses")
    category: Mapped["Category"] = relationship("Category", back_populates="expenses")

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        Index("ix_expenses_user_category_date", "user_id", "category_id", "date"),
        Index("ix_expenses_category", "category_id"),
        CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
        CheckConstraint(
            "amount_cents <= 99999999", name="ck_expenses_amount_upper_bound"
        ),
    )

    @property
    def tags(self) -> list[str]:
        if not self.tags_json:
            return []
        return list(json.loads(self.tags_json))

    @tags.setter
    def tags(self, value: list[str]) -> None:
        self.tags_json = json.dumps(list(value or []))

    @property
    def amount(self) -> float:
        return self.amount_cents / 100
