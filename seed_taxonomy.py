#!/usr/bin/env python3
"""Seed the HR issue taxonomy (or any taxonomy JSON) into the database."""
import argparse
import logging
import sys
from pathlib import Path

from app.db.session import SessionLocal
from app.services.taxonomy_loader import TaxonomyLoader

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_FILE = Path(__file__).parent / "data" / "taxonomy" / "hr_issues.json"


def main():
    parser = argparse.ArgumentParser(description="Load a category taxonomy into a collection")
    parser.add_argument("file", nargs="?", default=str(DEFAULT_FILE), help="Taxonomy JSON file")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        result = TaxonomyLoader(db).load_from_file(args.file)
        logger.info(
            "Seed complete: collection=%s categories_created=%s subcategories_created=%s",
            result.collection_id,
            result.categories_created,
            result.subcategories_created,
        )
    except (FileNotFoundError, ValueError) as e:
        logger.error("Seed failed: %s", e)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
