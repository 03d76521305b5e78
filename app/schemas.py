from __future__ import annotations
from datetime import date
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

InseminationStatus = Literal["pending", "confirmed", "failed", "needs_repeat"]

class CowCreate(BaseModel):
    cow_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    breed: str = Field(default="Holstein")
    birth_date: Optional[date] = None
    last_calving_date: Optional[date] = None
    last_insemination_date: Optional[date] = None
    parity: Optional[int] = Field(default=None, ge=0, le=20)

class CowUpdate(BaseModel):
    name: Optional[str] = None
    breed: str = Field(default="Holstein", min_length=1)
    birth_date: Optional[date] = None
    last_calving_date: Optional[date] = None
    last_insemination_date: Optional[date] = None
    actual_calving_date: Optional[date] = None
    parity: Optional[int] = Field(default=None, ge=0, le=20)
    is_active: bool = True

class InseminationCreate(BaseModel):
    insemination_date: date
    bull_tag: Optional[str] = None
    notes: Optional[str] = None

class InseminationStatusUpdate(BaseModel):
    status: InseminationStatus
    notes: Optional[str] = None

class CalfCreate(BaseModel):
    cow_id: str = Field(..., min_length=1)
    name: Optional[str] = None

class CalvingCreate(BaseModel):
    calving_date: date
    is_successful: bool = True
    notes: Optional[str] = None
    calves: List[CalfCreate] = Field(default_factory=list)
