from __future__ import annotations

import logging
import random
from datetime import date, timedelta
from typing import Optional
from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from app.db import Base, engine, SessionLocal
from app.models import Cow, Insemination, Calving, utcnow
from app.observability import configure_logging
from app.services.cycle import DEFAULT_CONSTANTS, compute_expected_calving

random.seed(42)
logger = logging.getLogger(__name__)

def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

def add_cow(
    db: Session,
    cow_id: str,
    breed: str,
    today: date,
    last_calving_days_ago: Optional[int],
    last_insemination_days_ago: Optional[int],
    parity: int,
    name: Optional[str] = None,
):
    last_calving = today - timedelta(days=last_calving_days_ago) if last_calving_days_ago is not None else None
    last_insem = today - timedelta(days=last_insemination_days_ago) if last_insemination_days_ago is not None else None

    cow = Cow(
        cow_id=cow_id,
        name=name,
        breed=breed,
        birth_date=today - relativedelta(years=random.randint(3, 7), months=random.randint(0, 11)),
        last_calving_date=last_calving,
        parity=parity,
        is_active=True,
    )
    db.add(cow)

    stamp = utcnow()
    if last_calving is not None:
        db.add(Calving(cow_id=cow_id, calving_date=last_calving, is_successful=True, calves_count=1, created_at=stamp))

    if last_insem is not None:
        cow.last_insemination_date = last_insem
        cow.expected_calving_date = compute_expected_calving(last_insem)
        db.add(Insemination(
            cow_id=cow_id,
            insemination_date=last_insem,
            status="confirmed" if last_insemination_days_ago > 45 else "pending",
            created_at=stamp,
            updated_at=stamp,
        ))

def seed_scenarios(db: Session, today: date):
    gestation = DEFAULT_CONSTANTS.gestation_days

    # Fixed demo cows (IDs you can reference during presentations)
    demo_cows = [
        # A) Fresh cow, window still ahead
        dict(cow_id="DEMO-A-FRESH", name="Bella", last_calving_days_ago=20, last_insemination_days_ago=None, parity=2),
        # B) In the 50-90 day window
        dict(cow_id="DEMO-B-READY", name="Daisy", last_calving_days_ago=60, last_insemination_days_ago=None, parity=3),
        # C) Past the window, not yet bred
        dict(cow_id="DEMO-C-LATE", name="Rosie", last_calving_days_ago=110, last_insemination_days_ago=None, parity=2),
        # D) Calving within the week
        dict(cow_id="DEMO-D-DUE", name="Molly", last_calving_days_ago=380, last_insemination_days_ago=gestation - 4, parity=4),
        # E) Past expected calving date
        dict(cow_id="DEMO-E-OVERDUE", name="Clover", last_calving_days_ago=400, last_insemination_days_ago=gestation + 3, parity=3),
        # F) Mid pregnancy
        dict(cow_id="DEMO-F-MID", name="Buttercup", last_calving_days_ago=200, last_insemination_days_ago=130, parity=1),
    ]

    for c in demo_cows:
        add_cow(db, breed="Holstein", today=today, **c)
    db.commit()

def seed_random_herd(db: Session, today: date, n_cows: int = 35):
    breeds = ["Holstein", "Jersey", "Holstein", "Holstein"]

    for i in range(n_cows):
        since_calving = random.randint(10, 420)
        # roughly half the herd bred somewhere after the voluntary waiting period
        since_insem = None
        if since_calving > 55 and random.random() < 0.6:
            since_insem = random.randint(0, min(since_calving - 50, DEFAULT_CONSTANTS.gestation_days + 5))

        add_cow(
            db,
            cow_id=f"COW-{2000+i}",
            breed=random.choice(breeds),
            today=today,
            last_calving_days_ago=since_calving,
            last_insemination_days_ago=since_insem,
            parity=random.randint(1, 5),
        )
    db.commit()

def main():
    configure_logging()
    reset_db()
    db = SessionLocal()
    today = date.today()
    try:
        seed_scenarios(db, today)
        seed_random_herd(db, today, n_cows=35)
        db.commit()
        logger.info("Seed complete: scenario-based demo cows + random herd created")
        logger.info("Demo cow IDs: DEMO-A-FRESH, DEMO-B-READY, DEMO-C-LATE, DEMO-D-DUE, DEMO-E-OVERDUE, DEMO-F-MID")
    finally:
        db.close()

if __name__ == "__main__":
    main()
