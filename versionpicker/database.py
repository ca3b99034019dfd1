"""
Database schema and connection management.

Uses SQLite with SQLAlchemy. Factory and Item are both versionable; the
factory_items association stores the item identity only, so which item
version a factory sees is decided when reading.
"""

from datetime import datetime
from pathlib import Path
from typing import Iterable

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKeyConstraint,
    Integer,
    String,
    Table,
    create_engine,
    func,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from .repository import RelationSpec
from .versioning import VersionMixin, current_version_name

Base = declarative_base()


factory_items = Table(
    "factory_items",
    Base.metadata,
    Column("factory_id", Integer, primary_key=True),
    Column("factory_version_name", String, primary_key=True, default=""),
    Column("item_id", Integer, primary_key=True),  # identity only, no version
    Column("position", Integer, nullable=False, default=0),
    ForeignKeyConstraint(
        ["factory_id", "factory_version_name"],
        ["factories.id", "factories.version_name"],
    ),
)


class Factory(VersionMixin, Base):
    """Parent model: a versioned factory owning many items."""

    __tablename__ = "factories"

    name = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<Factory {self.id}:{self.version_name!r} {self.name!r}>"


class Item(VersionMixin, Base):
    """Child model: a versioned item selectable from a factory."""

    __tablename__ = "items"

    name = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<Item {self.id}:{self.version_name!r} {self.name!r}>"


FACTORY_ITEMS = RelationSpec(
    name="items",
    parent_model=Factory,
    child_model=Item,
    table=factory_items,
    parent_columns=(
        ("factory_id", lambda factory: factory.id),
        ("factory_version_name", current_version_name),
    ),
    child_column="item_id",
    position_column="position",
)

RELATIONS = (FACTORY_ITEMS,)


def get_engine(db_path: Path):
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)


def get_session_factory(db_path: Path) -> sessionmaker:
    """
    Get a session factory bound to the database.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy sessionmaker
    """
    return sessionmaker(bind=get_engine(db_path))


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    return get_session_factory(db_path)()


def next_identity(session, model) -> int:
    """Next unused identity for a versionable model."""
    current = session.query(func.max(model.id)).scalar()
    return 1 if current is None else current + 1


def link_items(session, factory: Factory, item_ids: Iterable[int]) -> None:
    """
    Append item identities to a factory's association, keeping order.

    Identities already linked are skipped. Does not commit.
    """
    session.flush()
    version_name = current_version_name(factory)
    rows = session.execute(
        factory_items.select().where(
            factory_items.c.factory_id == factory.id,
            factory_items.c.factory_version_name == version_name,
        )
    ).fetchall()
    linked = {row.item_id for row in rows}
    position = max((row.position for row in rows), default=-1) + 1

    for item_id in item_ids:
        if item_id in linked:
            continue
        session.execute(
            factory_items.insert().values(
                factory_id=factory.id,
                factory_version_name=version_name,
                item_id=item_id,
                position=position,
            )
        )
        linked.add(item_id)
        position += 1
