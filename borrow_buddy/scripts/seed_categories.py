"""
Seed Tool Categories Script
Populates tool_categories with the default category list.
Run with: python -m borrow_buddy.scripts.seed_categories
"""

import sys
from borrow_buddy.database.supabase_client import get_service_supabase
from borrow_buddy.modules.tools.models import TOOL_CATEGORIES_TABLE, DEFAULT_CATEGORIES
from supabase import Client
from typing import List
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_categories(supabase: Client, names: List[str] = DEFAULT_CATEGORIES) -> int:
    """Insert missing categories; returns how many were created"""
    logger.info("Seeding tool categories...")

    existing = supabase.table(TOOL_CATEGORIES_TABLE)\
        .select("name")\
        .execute()
    known = {c["name"] for c in existing.data or []}

    created_count = 0
    for name in names:
        if name in known:
            logger.debug(f"Category exists: {name}")
            continue
        try:
            supabase.table(TOOL_CATEGORIES_TABLE).insert({"name": name}).execute()
            created_count += 1
            logger.debug(f"Created category: {name}")
        except Exception as e:
            logger.error(f"Error creating category {name}: {e}")

    logger.info(f"Categories seeded: {created_count} created, {len(names) - created_count} already present")
    return created_count


def main():
    try:
        seed_categories(get_service_supabase())
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
