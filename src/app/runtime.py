"""Bootstrap logic for the review scheduler."""

from __future__ import annotations

import logging
from typing import Optional

from src.app.settings import AppSettings
from src.db import get_session_factory, run_migrations_if_needed
from src.scheduling.interfaces import ItemLookup, MasteryTierClassifier
from src.scheduling.service import ReviewService


LOGGER = logging.getLogger(__name__)


def configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def prepare_database() -> None:
    """Bring the schema up to date before any scheduling work runs."""
    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise


def build_review_service(
    settings: AppSettings,
    item_lookup: ItemLookup,
    tier_classifier: Optional[MasteryTierClassifier] = None,
) -> ReviewService:
    """Wire a review service to the configured database."""
    LOGGER.info("Starting %s in %s mode.", settings.app_name, settings.app_env)
    return ReviewService(
        get_session_factory(),
        item_lookup,
        tier_classifier,
        strict_tags=settings.strict_tags,
        history_size=settings.history_size,
    )
