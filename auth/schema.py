"""
auth/schema.py -- SQLAlchemy Core schema and engine factory.

The auth core owns hotels, admins, admin_verifications and guests. The menu,
order and payment tables are declared so the schema is complete and foreign
keys resolve; the auth core only reads orders (guest hotel access).

SQLite notes:
  check_same_thread=False -- TestClient and uvicorn run handlers in a thread
      pool, so one connection may be used from more than one thread.
  journal_mode=WAL        -- readers do not block behind the writer.
  foreign_keys=ON         -- SQLite ignores ON DELETE CASCADE without it.
      Deleting an admin must cascade to their verification records.

Timestamps are stored as ISO 8601 UTC strings with fixed microsecond
precision (see now_iso), so string comparison in SQL matches chronological
order.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

# ---------------------------------------------------------------------------
# Tables owned by the auth core
# ---------------------------------------------------------------------------

hotels = Table(
    "hotels",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

admins = Table(
    "admins",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(32), nullable=False),
    Column("hotel_id", Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("admins_hotel_id_idx", "hotel_id"),
    Index("admins_email_idx", "email"),
)

admin_verifications = Table(
    "admin_verifications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("admin_id", Integer, ForeignKey("admins.id", ondelete="CASCADE"), nullable=False),
    Column("passcode", String(6), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("used", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Index("admin_verifications_admin_id_idx", "admin_id"),
    Index("admin_verifications_passcode_idx", "passcode"),
)

guests = Table(
    "guests",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("guests_email_idx", "email"),
)

# ---------------------------------------------------------------------------
# Domain tables -- foreign-key targets only
# ---------------------------------------------------------------------------

menu_categories = Table(
    "menu_categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("hotel_id", Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("menu_categories_hotel_id_idx", "hotel_id"),
)

menu_items = Table(
    "menu_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("description", Text),
    Column("price", Numeric(10, 2), nullable=False),
    Column("stock", Integer, nullable=False, server_default="0"),
    Column("category_id", Integer, ForeignKey("menu_categories.id", ondelete="CASCADE"), nullable=False),
    Column("hotel_id", Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("menu_items_hotel_id_idx", "hotel_id"),
    Index("menu_items_category_id_idx", "category_id"),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("guest_id", Integer, ForeignKey("guests.id", ondelete="RESTRICT"), nullable=False),
    Column("hotel_id", Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False),
    Column("table_number", String(16), nullable=False),
    Column("status", String(16), nullable=False, server_default="PENDING"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("orders_hotel_id_idx", "hotel_id"),
    Index("orders_guest_id_idx", "guest_id"),
    Index("orders_status_idx", "status"),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
    Column("menu_item_id", Integer, ForeignKey("menu_items.id", ondelete="RESTRICT"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("price", Numeric(10, 2), nullable=False),
    Column("created_at", String(32), nullable=False),
    Index("order_items_order_id_idx", "order_id"),
    Index("order_items_menu_item_id_idx", "menu_item_id"),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("hotel_id", Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("method", String(32), nullable=False),
    Column("status", String(16), nullable=False, server_default="PENDING"),
    Column("reference", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("payments_hotel_id_idx", "hotel_id"),
    Index("payments_status_idx", "status"),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Per-connection PRAGMAs. SQLite does not persist these across connections."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Create an engine for db_url and make sure every table exists."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _sqlite_pragmas)
    init_db(engine)
    return engine


def init_db(engine: Engine) -> None:
    """Create all tables. Idempotent -- existing tables are left alone."""
    metadata.create_all(engine)


def now_iso(moment: datetime | None = None) -> str:
    """Format moment (default: now) as a fixed-width ISO 8601 UTC string."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")
