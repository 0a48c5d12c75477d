"""Application bootstrap helpers for the review scheduler."""

from .runtime import build_review_service, configure_logging, prepare_database
from .settings import AppSettings

__all__ = ["AppSettings", "build_review_service", "configure_logging", "prepare_database"]
