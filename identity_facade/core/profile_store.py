"""Local profile store (business attributes of registered users).

The store owns email uniqueness: the unique index on ``profiles.email`` is
the only guard against concurrent registrations for the same address.
"""
from __future__ import annotations
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import DateTime, String, create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import DuplicateEmailError, ProfileStoreError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_profile_id() -> str:
    """24 hex chars, the same shape as a document-store object id."""
    return secrets.token_hex(12)


class Base(DeclarativeBase):
    pass


class ProfileModel(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_profile_id)
    name: Mapped[str] = mapped_column(String(128))
    company_name: Mapped[str] = mapped_column(String(128))
    last_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    email: Mapped[str] = mapped_column(String(254), unique=True, index=True)
    phone_number: Mapped[str] = mapped_column(String(32))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


@dataclass(frozen=True)
class ProfileRecord:
    """A persisted local profile."""
    id: str
    name: str
    company_name: str
    email: str
    phone_number: str
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_public_dict(self) -> dict:
        """Fields returned to callers; ``lastName`` only when one was given."""
        data = {
            "_id": self.id,
            "email": self.email,
            "name": self.name,
            "companyName": self.company_name,
            "phoneNumber": self.phone_number,
        }
        if self.last_name is not None:
            data["lastName"] = self.last_name
        return data


class ProfileStore(ABC):
    """Minimal contract the orchestrators rely on."""

    @abstractmethod
    def create(self, fields: dict) -> ProfileRecord:
        """Persist a new profile atomically.

        Raises:
            DuplicateEmailError: If the email is already taken
            ProfileStoreError: On any other store failure
        """

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[ProfileRecord]:
        """Return the profile for email, or None."""

    def ping(self) -> bool:
        return True


def _ensure_sqlite_parent_dir(db_url: str) -> None:
    # sqlite:///relative/path.db or sqlite:////abs/path.db
    if not db_url.startswith("sqlite:///"):
        return
    path = db_url[len("sqlite:///"):]
    if path in (":memory:", ""):
        return
    Path(path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(db_url: str) -> Engine:
    _ensure_sqlite_parent_dir(db_url)
    if db_url.startswith("sqlite:"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(db_url, **kwargs)
    return create_engine(db_url, pool_pre_ping=True)


class SqlAlchemyProfileStore(ProfileStore):
    """ProfileStore on any SQLAlchemy-supported database.

    Usage:
        store = SqlAlchemyProfileStore("sqlite:///data/profiles.db")
        record = store.create({"name": "Ann", ..., "email": "ann@x.com"})
    """

    def __init__(self, db_url: str, create_schema: bool = True):
        self.db_url = db_url
        self.engine = create_db_engine(db_url)
        self._factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        if create_schema:
            Base.metadata.create_all(self.engine)

    def create(self, fields: dict) -> ProfileRecord:
        email = fields.get("email")
        now = _utcnow()
        try:
            with self._factory() as session:
                row = ProfileModel(
                    name=fields["name"],
                    company_name=fields["company_name"],
                    last_name=fields.get("last_name"),
                    email=email,
                    phone_number=fields["phone_number"],
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                try:
                    session.commit()
                except IntegrityError as exc:
                    session.rollback()
                    if self._email_taken(session, email):
                        raise DuplicateEmailError(f"Profile with email {email} already exists") from exc
                    raise
                return self._to_record(row)
        except SQLAlchemyError as exc:
            logger.error("Profile store write failed for %s: %s", email, exc)
            raise ProfileStoreError("Profile store write failed") from exc

    def find_by_email(self, email: str) -> Optional[ProfileRecord]:
        try:
            with self._factory() as session:
                row = session.execute(
                    select(ProfileModel).where(ProfileModel.email == email)
                ).scalar_one_or_none()
                return self._to_record(row) if row else None
        except SQLAlchemyError as exc:
            logger.error("Profile store lookup failed for %s: %s", email, exc)
            raise ProfileStoreError("Profile store read failed") from exc

    @staticmethod
    def _email_taken(session, email: Optional[str]) -> bool:
        if email is None:
            return False
        return session.execute(
            select(ProfileModel.id).where(ProfileModel.email == email)
        ).first() is not None

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning("Profile store ping failed: %s", exc)
            return False

    @staticmethod
    def _to_record(row: ProfileModel) -> ProfileRecord:
        return ProfileRecord(
            id=row.id,
            name=row.name,
            company_name=row.company_name,
            last_name=row.last_name,
            email=row.email,
            phone_number=row.phone_number,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
