import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import Category

logger = logging.getLogger(__name__)

# name, description, color, icon
DEFAULT_CATEGORIES: list[tuple[str, str, str, str]] = [
    ("Food & Dining", "Restaurants, groceries and takeout", "#FF6B6B", "🍽️"),
    ("Transportation", "Fuel, transit, taxis and parking", "#4ECDC4", "🚗"),
    ("Shopping", "Clothing, electronics and household items", "#45B7D1", "🛍️"),
    ("Entertainment", "Movies, games, concerts and hobbies", "#96CEB4", "🎬"),
    ("Bills & Utilities", "Rent, electricity, water and internet", "#FFEAA7", "💡"),
    ("Healthcare", "Doctor visits, pharmacy and insurance", "#DDA0DD", "🏥"),
    ("Education", "Courses, books and tuition", "#98D8C8", "📚"),
    ("Travel", "Flights, hotels and vacations", "#F7DC6F", "✈️"),
    ("Other", "Everything else", "#BDC3C7", "📦"),
]


def seed_default_categories(session: Session) -> int:
    """Insert the shared default categories unless some already exist."""
    existing = session.execute(
        select(func.count(Category.id)).where(Category.user_id.is_(None))
    ).scalar_one()
    if existing:
        logger.info(f"seed_default_categories: skipped existing={existing}")
        return 0

    session.add_all(
        [
            Category(
                user_id=None,
                name=name,
                description=description,
                color=color,
                icon=icon,
            )
            for name, description, color, icon in DEFAULT_CATEGORIES
        ]
    )
    session.commit()
    logger.info(f"seed_default_categories: inserted={len(DEFAULT_CATEGORIES)}")
    return len(DEFAULT_CATEGORIES)
