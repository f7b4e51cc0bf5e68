"""
Database Package - SQLAlchemy
=============================

Persistence layer for the decision map.
"""

from .models import (
    Base,
    Tenant,
    Court, Division, Adjudicator,
    Decision,
)
from .session import DecisionStore, get_db, get_store

__all__ = [
    # Base
    "Base",
    # Tenancy
    "Tenant",
    # Hierarchy
    "Court", "Division", "Adjudicator",
    # Decisions
    "Decision",
    # Store
    "DecisionStore", "get_db", "get_store",
]
