from datetime import date
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, enable_sqlite_pragmas, get_db
from main import app
from models import Category, Expense, User
from seed import seed_default_categories


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(eng, "connect", enable_sqlite_pragmas)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    def _make(email: str = "alice@gmail.com", first_name: str = "Alice") -> User:
        user = User(
            email=email,
            password_hash="not-a-real-hash",
            first_name=first_name,
            last_name="Tester",
        )
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def make_category(session):
    def _make(owner: Optional[User], name: str = "Food") -> Category:
        category = Category(
            user_id=owner.id if owner else None,
            name=name,
            color="#FF6B6B",
            icon="🍽️",
        )
        session.add(category)
        session.commit()
        return category

    return _make


@pytest.fixture
def make_expense(session):
    def _make(
        owner: User,
        category: Category,
        amount_cents: int,
        day: date = date(2024, 3, 1),
        description: str = "Item",
        notes: Optional[str] = None,
    ) -> Expense:
        expense = Expense(
            user_id=owner.id,
            category_id=category.id,
            amount_cents=amount_cents,
            description=description,
            date=day,
            notes=notes,
        )
        session.add(expense)
        session.commit()
        return expense

    return _make


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    with TestingSession() as db:
        seed_default_categories(db)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def default_category_ids(engine, client) -> dict[str, int]:
    with Session(engine) as db:
        rows = db.scalars(select(Category).where(Category.user_id.is_(None))).all()
        return {row.name: row.id for row in rows}
