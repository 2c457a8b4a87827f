import logging
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy import text, inspect
from sqlalchemy.exc import NoSuchTableError
from .config import DATABASE_URL

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, pool_pre_ping=True, connect_args=connect_args)

# one form document per key; older tables may predate the index
UNIQUE_KEYS = {
    "seller_disclosures": ("uq_seller_disclosures_property_seller", ("property_id", "seller_id")),
    "fsbo_checklists": ("uq_fsbo_checklists_seller_property", ("seller_id", "property_key")),
}

def init_db():
    from .models import Property, SellerDisclosure, FSBOChecklist, DisclosureShare, AnalyticsEvent
    SQLModel.metadata.create_all(engine)
    _ensure_checklist_property_key_column()
    for table, (index_name, columns) in UNIQUE_KEYS.items():
        _ensure_unique_index(table, index_name, columns)

def get_session():
    with Session(engine) as session:
        yield session

def _ensure_checklist_property_key_column():
    inspector = inspect(engine)
    try:
        columns = [col["name"] for col in inspector.get_columns("fsbo_checklists")]
    except NoSuchTableError:
        return
    if "property_key" in columns:
        return
    with engine.begin() as conn:
        conn.execute(text("ALTER TABLE fsbo_checklists ADD COLUMN property_key VARCHAR NOT NULL DEFAULT ''"))
        conn.execute(text("UPDATE fsbo_checklists SET property_key = property_id WHERE property_id IS NOT NULL"))


def _ensure_unique_index(table, index_name, columns):
    inspector = inspect(engine)
    try:
        indexes = inspector.get_indexes(table)
    except NoSuchTableError:
        return
    if any(idx.get("name") == index_name for idx in indexes):
        return
    cols = ", ".join(columns)
    with engine.begin() as conn:
        duplicates = conn.execute(
            text(f"SELECT {cols} FROM {table} GROUP BY {cols} HAVING COUNT(*) > 1")
        ).fetchall()
        if duplicates:
            logger.warning(
                "duplicate rows in %s for (%s); resolve before enforcing uniqueness: %s",
                table, cols, [tuple(row) for row in duplicates],
            )
            return
        conn.execute(text(f"CREATE UNIQUE INDEX IF NOT EXISTS {index_name} ON {table}({cols})"))
