"""
First-run catalog seeding.

Fills the food collection with sample items when it is empty; a catalog that
already holds anything is left untouched.
"""

import logging
import random
from typing import List, Optional

from database import Store
from schemas import Food

logger = logging.getLogger(__name__)

CATEGORIES = ["Burger", "Pizza", "Pasta", "Fries", "Sandwich"]
SEED_COUNT = 25
MIN_PRICE = 80
MAX_PRICE = 280  # exclusive


def sample_foods(rng: Optional[random.Random] = None) -> List[Food]:
    rng = rng or random.Random()
    foods = []
    for i in range(1, SEED_COUNT + 1):
        category = CATEGORIES[i % len(CATEGORIES)]
        foods.append(
            Food(
                name=f"{category} {i}",
                description=f"{category} delicious #{i}",
                price=rng.randrange(MIN_PRICE, MAX_PRICE),
                category=category,
            )
        )
    return foods


def seed_foods_if_empty(store: Store, rng: Optional[random.Random] = None) -> int:
    """Insert the sample catalog in one bulk write. Returns how many foods were added."""
    if store.count_documents("food") > 0:
        logger.info("Foods already exist, skipping seed.")
        return 0

    logger.info("Seeding %d food items...", SEED_COUNT)
    inserted = store.create_documents("food", sample_foods(rng))
    logger.info("Seed complete.")
    return len(inserted)
