"""Shared helpers for tests.

Intended usage:
- spin up a temporary SQLite database
- create all SQLAlchemy tables
- point the app's `db` module at that database
- build small SDN/ALT/ADD fixtures

These utilities keep tests small and consistent.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

import db
from models import Base

__all__ = [
    "make_sqlite_engine",
    "create_empty_sqlite_db",
    "patch_app_db",
    "SDN_CSV",
    "ALT_CSV",
    "ADD_CSV",
    "FakeClock",
]


def make_sqlite_engine(db_path: Path | str) -> Engine:
    """Create a SQLite engine suitable for tests."""

    if isinstance(db_path, Path):
        db_path = str(db_path)
    return create_engine(f"sqlite:///{db_path}")


def create_empty_sqlite_db(db_path: Path) -> tuple[Session, Engine]:
    """Create an empty SQLite DB file and initialize all models.

    Returns (session, engine).
    """

    engine = make_sqlite_engine(db_path)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    return SessionLocal(), engine


def patch_app_db(monkeypatch, engine: Engine) -> sessionmaker:
    """Point `db.engine` / `db.SessionLocal` at `engine` for the test's duration."""

    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(db, "SessionLocal", factory)
    return factory


class FakeClock:
    """Monotonic clock stand-in; advance it explicitly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


# Header row variants as seen across OFAC publications.
SDN_CSV = (
    "\ufeffEnt Num,SDN Name,SDN-Type,Program(s),Remarks\n"
    '36,"AEROCARIBBEAN AIRLINES",-0-,CUBA,-0-\n'
    '173,"ANGLO-CARIBBEAN CO., LTD.",Entity,CUBA,\n'
    '306,"BANCO NACIONAL DE CUBA",Entity,"CUBA; IRAN",Also BNC.\n'
    "\n"
    ',"NO IDENTIFIER LTD.",Entity,CUBA,\n'
    "999,,Individual,SDGT,\n"
)

ALT_CSV = (
    "ent_num,alt_num,alt_type,alt_name,alt_remarks\n"
    "36,12,aka,AERO-CARIBBEAN,\n"
    "306,220,aka,BNC,\n"
    "306,221,aka,NATIONAL BANK OF CUBA,\n"
    "5000,1,aka,NOBODY,\n"
    "173,2,aka,,\n"
)

ADD_CSV = (
    "Ent_Num,Add_Num,Address,City,Country,Add_Remarks\n"
    "36,25,-0-,Havana,Cuba,\n"
    '173,129,"Ibex House, The Minories",London EC3N 1DY,United Kingdom,\n'
    "306,199,Zweierstrasse 35,Zurich CH-8022,Switzerland,\n"
    "306,200,-0-,-0-,-0-,\n"
    "5000,1,Nowhere,Nowhere,Nowhere,\n"
)
