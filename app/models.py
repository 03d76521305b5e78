from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from .db import Base

def utcnow() -> datetime:
    # naive UTC, matches the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)

class Cow(Base):
    __tablename__ = "cows"

    id = Column(Integer, primary_key=True, index=True)
    cow_id = Column(String, unique=True, index=True, nullable=False)  # ear tag

    name = Column(String, nullable=True)
    breed = Column(String, nullable=False, default="Holstein")
    birth_date = Column(Date, nullable=True)

    last_calving_date = Column(Date, nullable=True)
    last_insemination_date = Column(Date, nullable=True)
    expected_calving_date = Column(Date, nullable=True)  # only ever written from compute_expected_calving
    actual_calving_date = Column(Date, nullable=True)

    parity = Column(Integer, nullable=True)  # number of calvings
    is_active = Column(Boolean, nullable=False, default=True)

    mother_id = Column(Integer, ForeignKey("cows.id"), nullable=True)

    inseminations = relationship("Insemination", back_populates="cow", cascade="all, delete-orphan")
    calvings = relationship("Calving", back_populates="cow", cascade="all, delete-orphan", foreign_keys="Calving.cow_id")

class Insemination(Base):
    __tablename__ = "inseminations"

    id = Column(Integer, primary_key=True, index=True)
    cow_id = Column(String, ForeignKey("cows.cow_id"), nullable=False)
    insemination_date = Column(Date, nullable=False)

    status = Column(String, nullable=False, default="pending")  # pending/confirmed/failed/needs_repeat
    bull_tag = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    cow = relationship("Cow", back_populates="inseminations")

    __table_args__ = (
        Index("idx_insem_cow_date", "cow_id", "insemination_date"),
    )

class Calving(Base):
    __tablename__ = "calvings"

    id = Column(Integer, primary_key=True, index=True)
    cow_id = Column(String, ForeignKey("cows.cow_id"), nullable=False)
    insemination_id = Column(Integer, ForeignKey("inseminations.id"), nullable=True)
    calving_date = Column(Date, nullable=False)

    is_successful = Column(Boolean, nullable=False, default=True)
    calves_count = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False)

    cow = relationship("Cow", back_populates="calvings", foreign_keys=[cow_id])

    __table_args__ = (
        Index("idx_calving_cow_date", "cow_id", "calving_date"),
    )
