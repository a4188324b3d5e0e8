from sqlalchemy.orm import Session
import structlog
from slugify import slugify

from ecofinds.db.base import Base
from ecofinds.db.session import SessionLocal, engine
from ecofinds.models.category import Category

logger = structlog.get_logger()

DEFAULT_CATEGORIES = [
    ("Electronics", "Computers, phones, gadgets, and electronic devices"),
    ("Furniture", "Home and office furniture, decor items"),
    ("Clothing", "Apparel, shoes, and fashion accessories"),
    ("Books", "Books, magazines, and educational materials"),
    ("Sports & Recreation", "Sports equipment, outdoor gear, fitness items"),
    ("Tools & Equipment", "Hand tools, power tools, machinery"),
    ("Automotive", "Car parts, accessories, and automotive equipment"),
    ("Home & Garden", "Household items, gardening tools, appliances"),
    ("Art & Collectibles", "Artwork, antiques, collectible items"),
    ("Musical Instruments", "Guitars, keyboards, audio equipment"),
]


def init_db(db: Session) -> int:
    """Seed default categories. Returns the number of categories created."""
    created = 0
    for name, description in DEFAULT_CATEGORIES:
        existing = db.query(Category).filter(Category.name == name).first()
        if existing:
            continue
        db.add(Category(name=name, slug=slugify(name), description=description))
        logger.info("category_created", name=name)
        created += 1

    db.commit()
    logger.info("database_initialized", categories_created=created)
    return created


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()
