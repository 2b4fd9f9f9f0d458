"""
SQLAlchemy Models for the Adjudication Core.

This module exports all database models for the application.
"""

from src.models.base import Base, TimeStampedModel, UUIDModel
from src.models.audit import (
    APPEND_ONLY_MODELS,
    EligibilityCheckRecord,
    StatusTransitionRecord,
)
from src.models.claim import ClaimRecord

__all__ = [
    "Base",
    "TimeStampedModel",
    "UUIDModel",
    "APPEND_ONLY_MODELS",
    "EligibilityCheckRecord",
    "StatusTransitionRecord",
    "ClaimRecord",
]
