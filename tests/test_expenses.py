from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from errors import Conflict, InvalidInput, NotFound, Unauthenticated
from models import Expense
from schemas import (
    ExpenseFilterQuery,
    ExpenseIn,
    ExpenseListQuery,
    ExpenseUpdateIn,
    ProfileUpdateIn,
    RegisterIn,
)
from services import ExpenseService, UserService, cents_to_amount, to_cents


def _expense_in(category_id: int, **overrides) -> ExpenseIn:
    values = {
        "amount": Decimal("42.50"),
        "description": "Lunch",
        "date": date(2024, 3, 1),
        "category_id": category_id,
    }
    values.update(overrides)
    return ExpenseIn(**values)


def test_cents_conversion() -> None:
    assert to_cents(Decimal("42.50")) == 4250
    assert to_cents(Decimal("0.01")) == 1
    assert to_cents(Decimal("999999.99")) == 99999999
    assert cents_to_amount(4250) == 42.5
    assert cents_to_amount(0) == 0


def test_create_stores_cents_and_tags(session, make_user, make_category) -> None:
    alice = make_user()
    food = make_category(None)

    expense = ExpenseService(session, alice.id).create(
        _expense_in(food.id, tags=["work", "team"], notes="with the team")
    )

    assert expense.amount_cents == 4250
    assert expense.amount == 42.5
    assert expense.user_id == alice.id
    assert expense.tags == ["work", "team"]
    assert expense.category.name == "Food"


def test_create_with_foreign_category_is_rejected(
    session, make_user, make_category
) -> None:
    alice = make_user()
    bob = make_user("bob@gmail.com", "Bob")
    bobs = make_category(bob, "Golf")
    service = ExpenseService(session, alice.id)

    with pytest.raises(InvalidInput):
        service.create(_expense_in(bobs.id))
    with pytest.raises(InvalidInput):
        service.create(_expense_in(424242))

    assert session.scalar(select(func.count(Expense.id))) == 0


def test_partial_update_keeps_other_fields(
    session, make_user, make_category, make_expense
) -> None:
    alice = make_user()
    food = make_category(None)
    expense = make_expense(
        alice, food, 1000, day=date(2024, 2, 2), description="Dinner", notes="pasta"
    )
    before = expense.updated_at

    updated = ExpenseService(session, alice.id).update(
        expense.id, ExpenseUpdateIn(amount=Decimal("12.34"))
    )

    assert updated.amount_cents == 1234
    assert updated.description == "Dinner"
    assert updated.notes == "pasta"
    assert updated.date == date(2024, 2, 2)
    assert updated.category_id == food.id
    assert updated.updated_at >= before


def test_update_can_move_to_own_category(
    session, make_user, make_category, make_expense
) -> None:
    alice = make_user()
    food = make_category(None)
    snacks = make_category(alice, "Snacks")
    expense = make_expense(alice, food, 1000)

    updated = ExpenseService(session, alice.id).update(
        expense.id, ExpenseUpdateIn(category_id=snacks.id, tags=["sweet"])
    )

    assert updated.category_id == snacks.id
    assert updated.tags == ["sweet"]


def test_update_to_foreign_category_is_rejected(
    session, make_user, make_category, make_expense
) -> None:
    alice = make_user()
    bob = make_user("bob@gmail.com", "Bob")
    food = make_category(None)
    bobs = make_category(bob, "Golf")
    expense = make_expense(alice, food, 1000)

    with pytest.raises(InvalidInput):
        ExpenseService(session, alice.id).update(
            expense.id, ExpenseUpdateIn(category_id=bobs.id)
        )

    session.expire_all()
    assert session.get(Expense, expense.id).category_id == food.id


def test_other_users_expense_is_not_found(
    session, make_user, make_category, make_expense
) -> None:
    alice = make_user()
    bob = make_user("bob@gmail.com", "Bob")
    food = make_category(None)
    expense = make_expense(alice, food, 1000, description="Mine")
    service = ExpenseService(session, bob.id)

    with pytest.raises(NotFound):
        service.get(expense.id)
    with pytest.raises(NotFound):
        service.update(expense.id, ExpenseUpdateIn(description="Taken"))
    with pytest.raises(NotFound):
        service.delete(expense.id)

    session.expire_all()
    kept = session.get(Expense, expense.id)
    assert kept.description == "Mine"
    assert kept.amount_cents == 1000


def test_delete_removes_only_that_expense(
    session, make_user, make_category, make_expense
) -> None:
    alice = make_user()
    food = make_category(None)
    doomed = make_expense(alice, food, 1000)
    make_expense(alice, food, 2000)
    doomed_id = doomed.id

    service = ExpenseService(session, alice.id)
    service.delete(doomed_id)

    assert session.scalar(select(func.count(Expense.id))) == 1
    with pytest.raises(NotFound):
        service.delete(doomed_id)


def test_list_with_named_period(session, make_user, make_category, make_expense) -> None:
    alice = make_user()
    food = make_category(None)
    make_expense(alice, food, 100, day=date(2024, 1, 31))
    make_expense(alice, food, 200, day=date(2024, 2, 1))
    make_expense(alice, food, 300, day=date(2024, 2, 29))
    make_expense(alice, food, 400, day=date(2024, 3, 1))
    service = ExpenseService(session, alice.id, today=date(2024, 3, 15))

    page = service.list(ExpenseListQuery(period="last_month"))
    assert page.total_count == 2
    assert page.total_amount_cents == 500

    totals = service.summary(ExpenseFilterQuery(period="this_year"))
    assert totals.count == 4
    assert totals.amount_cents == 1000


def test_register_and_authenticate(session) -> None:
    service = UserService(session)
    user = service.register(
        RegisterIn(
            email="Carol@Gmail.com",
            password="hunter22",
            first_name="Carol",
            last_name="Jones",
        )
    )

    assert user.email == "carol@gmail.com"
    assert user.password_hash != "hunter22"
    assert service.authenticate("CAROL@gmail.com", "hunter22").id == user.id

    with pytest.raises(Unauthenticated):
        service.authenticate("carol@gmail.com", "wrong-password")
    with pytest.raises(Unauthenticated):
        service.authenticate("nobody@gmail.com", "hunter22")


def test_duplicate_email_conflicts_case_insensitively(session) -> None:
    service = UserService(session)
    payload = {"password": "hunter22", "first_name": "Dan", "last_name": "Smith"}
    service.register(RegisterIn(email="dan@gmail.com", **payload))

    with pytest.raises(Conflict):
        service.register(RegisterIn(email="DAN@gmail.com", **payload))


def test_update_profile_changes_only_given_fields(session, make_user) -> None:
    alice = make_user()

    updated = UserService(session).update_profile(
        alice, ProfileUpdateIn(first_name="Alicia")
    )

    assert updated.first_name == "Alicia"
    assert updated.last_name == "Tester"
    assert updated.display_name == "Alicia Tester"
