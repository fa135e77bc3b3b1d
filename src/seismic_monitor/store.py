"""Durable event storage on SQLAlchemy, and the storage interface shared with the fallback cache."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import asdict
from typing import Protocol

from sqlalchemy import (
    BigInteger,
    Boolean,
    Engine,
    Float,
    Integer,
    String,
    create_engine,
    delete,
    func,
    select,
    text,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from seismic_monitor.models import SeismicEvent

logger = logging.getLogger(__name__)


class DuplicateKeyError(Exception):
    """An insert collided with an existing external_id."""

    def __init__(self, external_id: str) -> None:
        super().__init__(f"Event {external_id!r} already exists")
        self.external_id = external_id


class EventStore(Protocol):
    """Operations every storage variant supports."""

    mode: str

    def upsert_many(self, events: Sequence[SeismicEvent]) -> tuple[int, int]: ...

    def insert_one(self, event: SeismicEvent) -> None: ...

    def query(self, min_magnitude: float = 0.0) -> list[SeismicEvent]: ...

    def delete_one(self, external_id: str) -> bool: ...

    def count(self) -> int: ...


class Base(DeclarativeBase):
    pass


class SeismicEventRow(Base):
    __tablename__ = "seismic_events"

    external_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    magnitude: Mapped[float] = mapped_column(Float, index=True, nullable=False)
    place: Mapped[str | None] = mapped_column(String(256))
    occurred_at_ms: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
    depth_km: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    casualties: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_user_reported: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


_COLUMNS = [col.name for col in SeismicEventRow.__table__.columns]


def _to_event(row: SeismicEventRow) -> SeismicEvent:
    return SeismicEvent(**{name: getattr(row, name) for name in _COLUMNS})


def _safe_url(database_url: str) -> str:
    try:
        return make_url(database_url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<invalid url>"


class SqlEventStore:
    """Persistent upsert-by-id storage.

    ``connect()`` probes the database once; ``available`` reports the result.
    Every other method requires a successful probe.
    """

    mode = "durable"

    def __init__(self, database_url: str, engine: Engine | None = None) -> None:
        self.database_url = database_url
        self.available = False
        self._engine = engine
        self._session_factory: sessionmaker[Session] | None = None

    def connect(self) -> bool:
        """Create the schema and run a trivial query. Never raises."""
        if self._engine is None and not self.database_url:
            logger.info("No database URL configured; durable store disabled")
            self.available = False
            return False

        try:
            engine = self._engine or self._build_engine()
            Base.metadata.create_all(engine)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, ImportError) as exc:
            logger.warning(
                "Durable store unavailable at %s: %s", _safe_url(self.database_url), exc
            )
            self.available = False
            return False

        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )
        self.available = True
        logger.info("Connected to durable store at %s", _safe_url(self.database_url))
        return True

    def _build_engine(self) -> Engine:
        url = make_url(self.database_url)
        connect_args = {"check_same_thread": False} if url.get_backend_name() == "sqlite" else {}
        return create_engine(url, connect_args=connect_args)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self._session_factory is None:
            raise RuntimeError("Durable store is not connected")
        with self._session_factory() as session:
            yield session

    def upsert_many(self, events: Sequence[SeismicEvent]) -> tuple[int, int]:
        """Insert new ids, overwrite every field of known ids.

        Returns (new_count, updated_count).
        """
        if not events:
            return (0, 0)

        records = list({ev.external_id: asdict(ev) for ev in events}.values())
        ids = [r["external_id"] for r in records]
        with self._session() as session:
            existing = set(
                session.scalars(
                    select(SeismicEventRow.external_id).where(SeismicEventRow.external_id.in_(ids))
                ).all()
            )
            if session.get_bind().dialect.name == "sqlite":
                # Stay under SQLite's bound-variable limit.
                chunk_size = max(1, 900 // len(_COLUMNS))
                for i in range(0, len(records), chunk_size):
                    stmt = sqlite_insert(SeismicEventRow).values(records[i : i + chunk_size])
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[SeismicEventRow.external_id],
                        set_={
                            name: getattr(stmt.excluded, name)
                            for name in _COLUMNS
                            if name != "external_id"
                        },
                    )
                    session.execute(stmt)
            else:
                for record in records:
                    session.merge(SeismicEventRow(**record))
            session.commit()

        new_count = sum(1 for event_id in ids if event_id not in existing)
        return (new_count, len(ids) - new_count)

    def insert_one(self, event: SeismicEvent) -> None:
        with self._session() as session:
            if session.get(SeismicEventRow, event.external_id) is not None:
                raise DuplicateKeyError(event.external_id)
            session.add(SeismicEventRow(**asdict(event)))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKeyError(event.external_id) from exc

    def query(self, min_magnitude: float = 0.0) -> list[SeismicEvent]:
        with self._session() as session:
            rows = session.scalars(
                select(SeismicEventRow).where(SeismicEventRow.magnitude >= min_magnitude)
            ).all()
            return [_to_event(row) for row in rows]

    def delete_one(self, external_id: str) -> bool:
        """Delete by id. Reports success even when nothing matched."""
        with self._session() as session:
            result = session.execute(
                delete(SeismicEventRow).where(SeismicEventRow.external_id == external_id)
            )
            session.commit()
        logger.debug("Deleted %d row(s) for %s", result.rowcount, external_id)
        return True

    def count(self) -> int:
        with self._session() as session:
            return session.scalar(select(func.count()).select_from(SeismicEventRow)) or 0
