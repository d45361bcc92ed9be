# repository.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlalchemy import DateTime, text
from sqlmodel import SQLModel, Field, Session, create_engine, select

from domain import Shift
from errors import DeleteError, LoadError, SaveError

logger = logging.getLogger(__name__)


class ShiftDB(SQLModel, table=True):
    __tablename__ = "shifts"

    id: str = Field(primary_key=True)
    owner_id: str = Field(index=True)
    # naive local time
    start: datetime | None = Field(default=None, sa_type=DateTime, index=True)
    actual_start: datetime | None = Field(default=None, sa_type=DateTime)
    end: datetime | None = Field(default=None, sa_type=DateTime)
    pause_minutes: int = 0
    duration_minutes: int | None = None
    running: bool = False


def build_engine(db_url: str, echo: bool = False):
    is_sqlite = db_url.startswith("sqlite")
    kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
        "connect_args": {},
    }
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Serverless Postgres: no local pool, bounded connect time
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"connect_timeout": 10}
        if "sslmode=" not in db_url:
            db_url += ("&" if "?" in db_url else "?") + "sslmode=require"
    return create_engine(db_url, **kwargs)


def _to_row(s: Shift, owner_id: str) -> ShiftDB:
    return ShiftDB(
        id=s.id,
        owner_id=owner_id,
        start=s.start,
        actual_start=s.actual_start,
        end=s.end,
        pause_minutes=s.pause_minutes,
        duration_minutes=s.duration_minutes,
        running=s.running,
    )


def _to_shift(r: ShiftDB) -> Shift:
    return Shift(
        id=r.id,
        start=r.start,
        actual_start=r.actual_start,
        end=r.end,
        pause_minutes=max(0, r.pause_minutes or 0),
        duration_minutes=r.duration_minutes,
        running=bool(r.running),
    )


class ShiftRepository:
    """Stores shifts per owner. Upserts by id; deletes are idempotent."""
    def __init__(self, url: str = "sqlite:///shifts.db", echo: bool = False):
        self.primary_url = url
        self.engine = build_engine(url, echo=echo)

        # Postgres: fail fast when the server is unreachable
        if not url.startswith("sqlite"):
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("select 1"))
            except SQLAlchemyError as e:
                raise RuntimeError(f"Could not connect to Postgres: {e}") from e

        SQLModel.metadata.create_all(self.engine)

    def load_shifts(self, owner_id: str) -> List[Shift]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(ShiftDB).where(ShiftDB.owner_id == owner_id).order_by(ShiftDB.start, ShiftDB.id)
                ).all()
                return [_to_shift(r) for r in rows]
        except SQLAlchemyError as e:
            logger.error("Loading shifts for %s failed: %s", owner_id, e)
            raise LoadError(f"Could not load shifts: {e}") from e

    def save_shifts(self, shifts: Iterable[Shift], owner_id: str) -> None:
        shifts = list(shifts)
        if not shifts:
            return
        try:
            with Session(self.engine) as session:
                for s in shifts:
                    session.merge(_to_row(s, owner_id))
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Saving %d shift(s) failed: %s", len(shifts), e)
            raise SaveError(f"Could not save shifts: {e}") from e

    def delete_shift(self, shift_id: str) -> None:
        try:
            with Session(self.engine) as session:
                row = session.get(ShiftDB, shift_id)
                if row is None:
                    return
                session.delete(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Deleting shift %s failed: %s", shift_id, e)
            raise DeleteError(f"Could not delete shift: {e}") from e


__all__ = ["ShiftDB", "ShiftRepository", "build_engine"]
