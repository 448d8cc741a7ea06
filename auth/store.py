"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
IdentityStore and PasscodeStore are the repositories; the _row_to_* functions
are the mappers. Route, guard and MFA code never touch SQL directly.

Both stores share one Engine (see auth/schema.create_db_engine) so they see
the same database; they are split by concern, not by storage.

Security:
  All queries use bound parameters. No f-strings in SQL.

  [C1] PasscodeStore.mark_used() is a conditional UPDATE
       (WHERE id = :id AND used = 0). The database serializes concurrent
       updates to the same row, so when two verifiers race on one passcode
       exactly one sees rowcount == 1. This holds across processes; no
       in-process lock is involved.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Admin, AdminVerification, Guest, Hotel
from auth.schema import admin_verifications, admins, guests, hotels, now_iso, orders

logger = logging.getLogger("zapmenu.store")


# ---------------------------------------------------------------------------
# Identity repository
# ---------------------------------------------------------------------------


class IdentityStore:
    """Repository for hotels, admins, guests and hotel-access facts.

    Usage:
        store = IdentityStore(create_db_engine("sqlite:///zapmenu.db"))
        admin = store.get_admin_by_email("a@hotel.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Hotels
    # ------------------------------------------------------------------

    def create_hotel(self, hotel: Hotel) -> int:
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(hotels.insert().values(name=hotel.name, created_at=now, updated_at=now))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_hotel(self, hotel_id: int) -> Hotel | None:
        with self.engine.connect() as conn:
            row = conn.execute(hotels.select().where(hotels.c.id == hotel_id)).fetchone()
        return Hotel(id=row.id, name=row.name, created_at=row.created_at) if row is not None else None

    # ------------------------------------------------------------------
    # Admins
    # ------------------------------------------------------------------

    def create_admin(self, admin: Admin) -> int:
        """Insert an admin and return its ID.

        Admins are provisioned out-of-band (CLI, seed scripts); the HTTP
        surface never calls this. Raises sqlalchemy.exc.IntegrityError for a
        duplicate email or an unknown hotel_id.
        """
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                admins.insert().values(
                    name=admin.name,
                    email=admin.email,
                    phone=admin.phone,
                    hotel_id=admin.hotel_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_admin_by_email(self, email: str) -> Admin | None:
        """Look up an admin by exact email, joined with the owning hotel."""
        with self.engine.connect() as conn:
            row = conn.execute(_admin_query().where(admins.c.email == email)).fetchone()
        return _row_to_admin(row) if row is not None else None

    def get_admin_by_id(self, admin_id: int) -> Admin | None:
        with self.engine.connect() as conn:
            row = conn.execute(_admin_query().where(admins.c.id == admin_id)).fetchone()
        return _row_to_admin(row) if row is not None else None

    def list_admin_ids(self) -> list[int]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(admins.c.id).order_by(admins.c.id)).fetchall()
        return [r.id for r in rows]

    def delete_admin(self, admin_id: int) -> bool:
        """Delete an admin. Their verification records cascade at the DB level."""
        with self.engine.connect() as conn:
            result = conn.execute(admins.delete().where(admins.c.id == admin_id))
            conn.commit()
        return result.rowcount > 0

    def admin_belongs_to_hotel(self, admin_id: int, hotel_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(admins.c.id).where(and_(admins.c.id == admin_id, admins.c.hotel_id == hotel_id))
            ).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Guests
    # ------------------------------------------------------------------

    def find_or_create_guest(self, email: str, name: str) -> tuple[Guest, bool]:
        """Return (guest, created) for email, creating the guest if absent.

        An existing guest's name is replaced when a non-empty, different
        name is supplied. If a concurrent first login inserts the same email
        between our read and our insert, the unique constraint rejects ours
        and we fall through to the winner's row.
        """
        guest = self.get_guest_by_email(email)
        if guest is None:
            now = now_iso()
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(
                        guests.insert().values(name=name, email=email, created_at=now, updated_at=now)
                    )
                    conn.commit()
                    guest_id = result.inserted_primary_key[0]
                return Guest(id=guest_id, name=name, email=email, created_at=now, updated_at=now), True
            except IntegrityError:
                logger.info("Concurrent guest creation detected; using existing record")
                guest = self.get_guest_by_email(email)
                if guest is None:
                    raise

        if name and guest.name != name:
            now = now_iso()
            with self.engine.connect() as conn:
                conn.execute(guests.update().where(guests.c.id == guest.id).values(name=name, updated_at=now))
                conn.commit()
            guest.name = name
            guest.updated_at = now
        return guest, False

    def get_guest_by_email(self, email: str) -> Guest | None:
        with self.engine.connect() as conn:
            row = conn.execute(guests.select().where(guests.c.email == email)).fetchone()
        return _row_to_guest(row) if row is not None else None

    def get_guest_by_id(self, guest_id: int) -> Guest | None:
        with self.engine.connect() as conn:
            row = conn.execute(guests.select().where(guests.c.id == guest_id)).fetchone()
        return _row_to_guest(row) if row is not None else None

    def delete_guest(self, guest_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(guests.delete().where(guests.c.id == guest_id))
            conn.commit()
        return result.rowcount > 0

    def guest_has_ordered_at_hotel(self, guest_id: int, hotel_id: int) -> bool:
        """Guest hotel access is earned by having at least one order there."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(orders.c.id).where(and_(orders.c.guest_id == guest_id, orders.c.hotel_id == hotel_id)).limit(1)
            ).fetchone()
        return row is not None

    def create_order(self, guest_id: int, hotel_id: int, table_number: str = "1") -> int:
        """Insert a bare order row. Order logic lives outside the auth core."""
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                orders.insert().values(
                    guest_id=guest_id,
                    hotel_id=hotel_id,
                    table_number=table_number,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Passcode store
# ---------------------------------------------------------------------------


class PasscodeStore:
    """Repository for AdminVerification records."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, admin_id: int, passcode: str, expires_at: str, created_at: str | None = None) -> AdminVerification:
        """Insert an unused record. created_at defaults to the current time."""
        created_at = created_at or now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                admin_verifications.insert().values(
                    admin_id=admin_id,
                    passcode=passcode,
                    expires_at=expires_at,
                    used=False,
                    created_at=created_at,
                )
            )
            conn.commit()
            verification_id = result.inserted_primary_key[0]
        return AdminVerification(
            id=verification_id,
            admin_id=admin_id,
            passcode=passcode,
            expires_at=expires_at,
            used=False,
            created_at=created_at,
        )

    def find_active(self, admin_id: int, passcode: str, now: str) -> AdminVerification | None:
        """Return the newest unused, unexpired record matching passcode exactly."""
        t = admin_verifications
        with self.engine.connect() as conn:
            row = conn.execute(
                t.select()
                .where(
                    and_(
                        t.c.admin_id == admin_id,
                        t.c.passcode == passcode,
                        t.c.used.is_(False),
                        t.c.expires_at > now,
                    )
                )
                .order_by(t.c.created_at.desc(), t.c.id.desc())
                .limit(1)
            ).fetchone()
        return _row_to_verification(row) if row is not None else None

    def mark_used(self, verification_id: int) -> bool:
        """Flip used false -> true. Returns False if another caller got there first [C1]."""
        t = admin_verifications
        with self.engine.connect() as conn:
            result = conn.execute(
                t.update().where(and_(t.c.id == verification_id, t.c.used.is_(False))).values(used=True)
            )
            conn.commit()
        return result.rowcount == 1

    def delete_stale_used(self, admin_id: int, cutoff: str) -> int:
        """Delete used records for admin_id that expired before cutoff."""
        t = admin_verifications
        with self.engine.connect() as conn:
            result = conn.execute(
                t.delete().where(and_(t.c.admin_id == admin_id, t.c.used.is_(True), t.c.expires_at < cutoff))
            )
            conn.commit()
        return result.rowcount

    def list_for_admin(self, admin_id: int) -> list[AdminVerification]:
        """Return all records for an admin, newest first."""
        t = admin_verifications
        with self.engine.connect() as conn:
            rows = conn.execute(
                t.select().where(t.c.admin_id == admin_id).order_by(t.c.created_at.desc(), t.c.id.desc())
            ).fetchall()
        return [_row_to_verification(r) for r in rows]


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _admin_query():
    return select(
        admins.c.id,
        admins.c.name,
        admins.c.email,
        admins.c.phone,
        admins.c.hotel_id,
        admins.c.created_at,
        hotels.c.name.label("hotel_name"),
    ).select_from(admins.outerjoin(hotels, admins.c.hotel_id == hotels.c.id))


def _row_to_admin(row) -> Admin:
    return Admin(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        hotel_id=row.hotel_id,
        hotel_name=row.hotel_name,
        created_at=row.created_at,
    )


def _row_to_guest(row) -> Guest:
    return Guest(
        id=row.id,
        name=row.name,
        email=row.email,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_verification(row) -> AdminVerification:
    return AdminVerification(
        id=row.id,
        admin_id=row.admin_id,
        passcode=row.passcode,
        expires_at=row.expires_at,
        used=bool(row.used),
        created_at=row.created_at,
    )
