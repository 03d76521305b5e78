from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import desc

from .db import Base, engine, get_db
from .models import Cow, Insemination, Calving, utcnow
from .observability import configure_logging
from .schemas import CowCreate, CowUpdate, InseminationCreate, InseminationStatusUpdate, CalvingCreate
from .services.cycle import (
    CalvingRecord,
    InvalidInputError,
    compute_expected_calving,
    compute_pregnancy_progress,
    is_pregnant,
    window_for,
)
from .services.herd import upcoming_calvings, cows_needing_insemination, paginate
from .services.notifications import rank_notifications, summarize_notifications

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Breeding Cycle Monitor", version="0.1.0")
Base.metadata.create_all(bind=engine)

@app.exception_handler(InvalidInputError)
def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.warning("Rejected input on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field})

def _today(as_of: Optional[date]) -> date:
    # the only place a wall clock is read
    return as_of or date.today()

def _log_extra(cow_id: str) -> dict:
    return {"extra_fields": {"cow_id": cow_id}}

def _get_cow(db: Session, cow_id: str) -> Cow:
    cow = db.query(Cow).filter(Cow.cow_id == cow_id).first()
    if not cow:
        raise HTTPException(status_code=404, detail="Cow not found.")
    return cow

def _iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d else None

def cow_to_dict(c: Cow) -> dict:
    return {
        "cow_id": c.cow_id,
        "name": c.name,
        "breed": c.breed,
        "birth_date": _iso(c.birth_date),
        "last_calving_date": _iso(c.last_calving_date),
        "last_insemination_date": _iso(c.last_insemination_date),
        "expected_calving_date": _iso(c.expected_calving_date),
        "actual_calving_date": _iso(c.actual_calving_date),
        "parity": c.parity,
        "is_active": c.is_active,
        "is_pregnant": is_pregnant(c),
    }

def insemination_to_dict(i: Insemination) -> dict:
    return {
        "id": i.id,
        "cow_id": i.cow_id,
        "insemination_date": i.insemination_date.isoformat(),
        "status": i.status,
        "bull_tag": i.bull_tag,
        "notes": i.notes,
        "created_at": i.created_at.isoformat() + "Z",
        "updated_at": i.updated_at.isoformat() + "Z",
    }

def _active_cows(db: Session):
    return db.query(Cow).filter(Cow.is_active.is_(True)).order_by(Cow.cow_id).all()

@app.get("/")
def root():
    return {"service": "Breeding Cycle Monitor API", "docs": "/docs", "health": "/health"}

@app.get("/health")
def health():
    return {"ok": True}

# ---------------------------
# Cows
# ---------------------------
@app.get("/cows")
def list_cows(db: Session = Depends(get_db)):
    cows = db.query(Cow).order_by(Cow.cow_id).all()
    return [cow_to_dict(c) for c in cows]

@app.post("/cows")
def create_cow(payload: CowCreate, db: Session = Depends(get_db)):
    existing = db.query(Cow).filter(Cow.cow_id == payload.cow_id).first()
    if existing:
        raise HTTPException(status_code=409, detail="cow_id already exists.")

    cow = Cow(
        cow_id=payload.cow_id,
        name=payload.name,
        breed=payload.breed,
        birth_date=payload.birth_date,
        last_calving_date=payload.last_calving_date,
        parity=payload.parity,
        is_active=True,
    )
    if payload.last_insemination_date:
        cow.last_insemination_date = payload.last_insemination_date
        cow.expected_calving_date = compute_expected_calving(payload.last_insemination_date)
        # an insemination before the last calving belongs to a closed cycle
        if payload.last_calving_date and payload.last_calving_date >= payload.last_insemination_date:
            cow.actual_calving_date = payload.last_calving_date

    db.add(cow)
    db.commit()
    logger.info("Created cow", extra=_log_extra(cow.cow_id))
    return {"created": True, "cow_id": cow.cow_id}

def cow_detail(cow: Cow, today: date) -> dict:
    out = cow_to_dict(cow)
    out["pregnancy_progress"] = None
    out["next_insemination_period"] = None
    if cow.last_insemination_date:
        out["pregnancy_progress"] = compute_pregnancy_progress(
            cow.last_insemination_date, cow.actual_calving_date, today
        ).as_dict()
    if cow.last_calving_date and not is_pregnant(cow):
        out["next_insemination_period"] = window_for(cow.last_calving_date, today).as_dict()
    return out

@app.get("/cows/{cow_id}")
def get_cow(cow_id: str, as_of: Optional[date] = Query(default=None), db: Session = Depends(get_db)):
    return cow_detail(_get_cow(db, cow_id), _today(as_of))

@app.patch("/cows/{cow_id}")
def update_cow(cow_id: str, payload: CowUpdate, as_of: Optional[date] = Query(default=None), db: Session = Depends(get_db)):
    cow = _get_cow(db, cow_id)
    changes = payload.model_dump(exclude_unset=True)

    insem = changes.get("last_insemination_date", cow.last_insemination_date)
    actual = changes.get("actual_calving_date", cow.actual_calving_date)
    if insem is not None:
        # raises when the calving predates the insemination
        CalvingRecord.from_values(insem, actual)
    elif actual is not None:
        raise InvalidInputError("actual_calving_date requires last_insemination_date.", field="actual_calving_date")

    for field, value in changes.items():
        setattr(cow, field, value)
    cow.expected_calving_date = compute_expected_calving(insem) if insem is not None else None

    db.commit()
    logger.info("Updated cow fields: %s", ", ".join(sorted(changes)) or "none", extra=_log_extra(cow.cow_id))
    return cow_detail(cow, _today(as_of))

# ---------------------------
# Inseminations
# ---------------------------
@app.post("/cows/{cow_id}/insemination")
def record_insemination(cow_id: str, payload: InseminationCreate, db: Session = Depends(get_db)):
    cow = _get_cow(db, cow_id)

    if is_pregnant(cow):
        raise HTTPException(status_code=400, detail="Cow is already pregnant.")
    if cow.last_calving_date and payload.insemination_date < cow.last_calving_date:
        raise InvalidInputError("insemination_date cannot be before last_calving_date.", field="insemination_date")

    now = utcnow()
    insem = Insemination(
        cow_id=cow.cow_id,
        insemination_date=payload.insemination_date,
        status="pending",
        bull_tag=payload.bull_tag,
        notes=payload.notes,
        created_at=now,
        updated_at=now,
    )
    cow.last_insemination_date = payload.insemination_date
    cow.expected_calving_date = compute_expected_calving(payload.insemination_date)
    cow.actual_calving_date = None

    db.add(insem)
    db.commit()
    logger.info("Recorded insemination on %s", payload.insemination_date.isoformat(), extra=_log_extra(cow.cow_id))
    return {
        "created": True,
        "id": insem.id,
        "cow_id": cow.cow_id,
        "expected_calving_date": cow.expected_calving_date.isoformat(),
    }

@app.get("/cows/{cow_id}/insemination-history")
def insemination_history(cow_id: str, db: Session = Depends(get_db)):
    _get_cow(db, cow_id)
    recs = (
        db.query(Insemination)
        .filter(Insemination.cow_id == cow_id)
        .order_by(desc(Insemination.insemination_date), desc(Insemination.id))
        .all()
    )
    return [insemination_to_dict(i) for i in recs]

@app.patch("/inseminations/{insemination_id}")
def update_insemination_status(insemination_id: int, payload: InseminationStatusUpdate, db: Session = Depends(get_db)):
    insem = db.query(Insemination).filter(Insemination.id == insemination_id).first()
    if not insem:
        raise HTTPException(status_code=404, detail="Insemination not found.")

    cow = insem.cow
    latest = (
        db.query(Insemination)
        .filter(Insemination.cow_id == insem.cow_id)
        .order_by(desc(Insemination.insemination_date), desc(Insemination.id))
        .first()
    )
    is_latest = latest is not None and latest.id == insem.id

    insem.status = payload.status
    if payload.notes is not None:
        insem.notes = payload.notes
    insem.updated_at = utcnow()

    if is_latest and cow.actual_calving_date is None:
        if payload.status in ("failed", "needs_repeat"):
            # open pregnancy is gone, cow returns to the insemination worklist
            cow.last_insemination_date = None
            cow.expected_calving_date = None
        elif cow.last_insemination_date is None:
            if cow.last_calving_date is None or insem.insemination_date >= cow.last_calving_date:
                cow.last_insemination_date = insem.insemination_date
                cow.expected_calving_date = compute_expected_calving(insem.insemination_date)

    db.commit()
    logger.info("Insemination %s marked %s", insem.id, payload.status, extra=_log_extra(cow.cow_id))
    return insemination_to_dict(insem)

# ---------------------------
# Calvings
# ---------------------------
@app.post("/cows/{cow_id}/calving")
def record_calving(cow_id: str, payload: CalvingCreate, db: Session = Depends(get_db)):
    cow = _get_cow(db, cow_id)

    if cow.last_insemination_date and cow.actual_calving_date is not None:
        raise HTTPException(status_code=400, detail="Calving already recorded for the current pregnancy.")
    if cow.last_insemination_date:
        # raises when the calving predates the insemination
        CalvingRecord.from_values(cow.last_insemination_date, payload.calving_date)
    if cow.last_calving_date and payload.calving_date < cow.last_calving_date:
        raise InvalidInputError("calving_date cannot be before last_calving_date.", field="calving_date")

    tags = [c.cow_id for c in payload.calves]
    if len(set(tags)) != len(tags):
        raise HTTPException(status_code=409, detail="Duplicate calf cow_id in request.")
    if tags and db.query(Cow).filter(Cow.cow_id.in_(tags)).first():
        raise HTTPException(status_code=409, detail="A calf cow_id already exists.")

    insem = None
    if cow.last_insemination_date:
        insem = (
            db.query(Insemination)
            .filter(Insemination.cow_id == cow.cow_id)
            .filter(Insemination.insemination_date == cow.last_insemination_date)
            .order_by(desc(Insemination.id))
            .first()
        )
        if insem and insem.status == "pending":
            insem.status = "confirmed"
            insem.updated_at = utcnow()

    calving = Calving(
        cow_id=cow.cow_id,
        insemination_id=insem.id if insem else None,
        calving_date=payload.calving_date,
        is_successful=payload.is_successful,
        calves_count=len(payload.calves),
        notes=payload.notes,
        created_at=utcnow(),
    )
    db.add(calving)

    for calf in payload.calves:
        db.add(Cow(
            cow_id=calf.cow_id,
            name=calf.name,
            breed=cow.breed,
            birth_date=payload.calving_date,
            parity=0,
            is_active=True,
            mother_id=cow.id,
        ))

    if cow.last_insemination_date:
        cow.actual_calving_date = payload.calving_date
    cow.last_calving_date = payload.calving_date
    cow.parity = (cow.parity or 0) + 1

    db.commit()
    logger.info(
        "Recorded calving on %s (%d calves)", payload.calving_date.isoformat(), len(payload.calves),
        extra=_log_extra(cow.cow_id),
    )
    return {"created": True, "id": calving.id, "cow_id": cow.cow_id, "calves": tags}

# ---------------------------
# Derived cycle facts
# ---------------------------
@app.get("/cows/{cow_id}/pregnancy-progress")
def pregnancy_progress(cow_id: str, as_of: Optional[date] = Query(default=None), db: Session = Depends(get_db)):
    cow = _get_cow(db, cow_id)
    if not cow.last_insemination_date:
        raise HTTPException(status_code=404, detail="No insemination recorded for this cow.")
    progress = compute_pregnancy_progress(cow.last_insemination_date, cow.actual_calving_date, _today(as_of))
    return {"cow_id": cow.cow_id, **progress.as_dict()}

@app.get("/cows/{cow_id}/next-insemination-period")
def next_insemination_period(cow_id: str, as_of: Optional[date] = Query(default=None), db: Session = Depends(get_db)):
    cow = _get_cow(db, cow_id)
    if not cow.last_calving_date:
        raise HTTPException(status_code=404, detail="Cow has never calved.")
    window = window_for(cow.last_calving_date, _today(as_of))
    return {"cow_id": cow.cow_id, **window.as_dict()}

@app.get("/breeding/upcoming-calvings")
def list_upcoming_calvings(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=25, ge=1, le=100),
    as_of: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    rows = upcoming_calvings(_active_cows(db), _today(as_of))
    result = paginate(rows, page=page, per_page=per_page)
    return {"upcoming_calvings": result.pop("items"), **result}

@app.get("/breeding/needing-insemination")
def list_needing_insemination(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=25, ge=1, le=100),
    as_of: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    rows = cows_needing_insemination(_active_cows(db), _today(as_of))
    result = paginate(rows, page=page, per_page=per_page)
    return {"cows": result.pop("items"), **result}

@app.get("/breeding/notifications")
def notifications(
    priority: Optional[str] = Query(default=None, description="Filter by high/medium/low"),
    as_of: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    notices = rank_notifications(_active_cows(db), _today(as_of))
    if priority is not None:
        notices = [n for n in notices if n.priority == priority]
    return {
        "notifications": [n.as_dict() for n in notices],
        "counts": summarize_notifications(notices),
    }
