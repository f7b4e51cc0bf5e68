"""
SQLAlchemy Models for Database
==============================

Schema for the decision map:
- Multi-tenant isolation (Tenant)
- Three-level hierarchy per instance (Court -> Division -> Adjudicator)
- Decisions keyed by process number within tenant + instance

Deletion is permanent and cascades down the hierarchy.
Supports both PostgreSQL and SQLite via SQLAlchemy.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Boolean, Date, DateTime, Enum, ForeignKey,
    UniqueConstraint, Index
)
from sqlalchemy.orm import relationship, declarative_base

from ..schemas import Instance, Outcome, LiabilityType, AdjudicatorRole

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


# =============================================================================
# TENANCY
# =============================================================================

class Tenant(Base):
    """Client organisation / cliente"""
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    primary_company = Column(String(100), nullable=True)  # default empresa for rows without one
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    courts = relationship("Court", back_populates="tenant", cascade="all, delete-orphan")


# =============================================================================
# HIERARCHY
# =============================================================================

class Court(Base):
    """TRT"""
    __tablename__ = "courts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    instance = Column(Enum(Instance), nullable=False)
    name = Column(String(255), nullable=False)
    region_code = Column(String(2), nullable=True)  # "01".."24"
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_court_scope", "tenant_id", "instance"),
    )

    # Relationships
    tenant = relationship("Tenant", back_populates="courts")
    divisions = relationship("Division", back_populates="court", cascade="all, delete-orphan")


class Division(Base):
    """Turma (segunda instância) / vara (primeira instância)"""
    __tablename__ = "divisions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    court_id = Column(String(36), ForeignKey("courts.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    court = relationship("Court", back_populates="divisions")
    adjudicators = relationship("Adjudicator", back_populates="division", cascade="all, delete-orphan")


class Adjudicator(Base):
    """Desembargador (segunda instância) / juiz (primeira instância)"""
    __tablename__ = "adjudicators"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    division_id = Column(String(36), ForeignKey("divisions.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(Enum(AdjudicatorRole), default=AdjudicatorRole.TITULAR, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    division = relationship("Division", back_populates="adjudicators")
    decisions = relationship("Decision", back_populates="adjudicator", cascade="all, delete-orphan")


# =============================================================================
# DECISIONS
# =============================================================================

class Decision(Base):
    """Decisão / julgamento"""
    __tablename__ = "decisions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    adjudicator_id = Column(String(36), ForeignKey("adjudicators.id", ondelete="CASCADE"), nullable=False)

    # Scope (denormalized so the scoped read needs no joins)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    instance = Column(Enum(Instance), nullable=False)

    process_number = Column(String(50), nullable=False)
    decision_date = Column(Date, nullable=True)
    outcome = Column(Enum(Outcome), default=Outcome.EM_ANALISE, nullable=False)
    liability = Column(Enum(LiabilityType), nullable=True)
    upi = Column(Boolean, default=False, nullable=False)
    company = Column(String(100), nullable=False)
    region_code = Column(String(2), nullable=True)  # derived from process number

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Natural key: one decision per process number within tenant + instance
    __table_args__ = (
        UniqueConstraint("tenant_id", "instance", "process_number", name="uq_decision_scope_process"),
        Index("ix_decision_scope", "tenant_id", "instance"),
    )

    # Relationships
    adjudicator = relationship("Adjudicator", back_populates="decisions")
