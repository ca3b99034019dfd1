"""
Tests for database.py - SQLite schema and association helpers.
"""

import pytest
from datetime import datetime
from sqlalchemy.exc import IntegrityError

from versionpicker.database import (
    Factory,
    Item,
    factory_items,
    get_session,
    init_database,
    link_items,
    next_identity,
)


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        """Test that init_database creates the database file."""
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_creates_tables(self, tmp_path):
        """Test that init_database creates the versioned tables."""
        db_path = tmp_path / "test.db"
        init_database(db_path)

        session = get_session(db_path)
        assert session.query(Factory).count() == 0
        assert session.query(Item).count() == 0
        assert session.execute(factory_items.select()).fetchall() == []
        session.close()

    def test_init_creates_parent_directories(self, tmp_path):
        """Test that init_database creates parent directories if missing."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        init_database(db_path)

        assert db_path.exists()


class TestVersionFamilies:
    """Rows sharing an identity across versions."""

    @pytest.fixture
    def db_session(self, db_path):
        session = get_session(db_path)
        yield session
        session.close()

    def test_same_identity_different_versions(self, db_session):
        """One identity can be stored under several version names."""
        db_session.add_all([
            Item(id=1, version_name="draft", name="Widget"),
            Item(id=1, version_name="published", name="Widget"),
        ])
        db_session.commit()

        family = db_session.query(Item).filter_by(id=1).order_by(Item.version_name).all()
        assert [row.version_name for row in family] == ["draft", "published"]

    def test_duplicate_composite_key_fails(self, db_session):
        """The same (id, version_name) cannot be stored twice."""
        db_session.add(Item(id=1, version_name="draft", name="Widget"))
        db_session.commit()

        db_session.add(Item(id=1, version_name="draft", name="Other"))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_default_version_on_insert(self, db_session):
        """Rows without a version name are stored in the default version."""
        db_session.add(Item(id=2, name="Gadget"))
        db_session.commit()

        assert db_session.get(Item, (2, "")).name == "Gadget"

    def test_missing_name_fails(self, db_session):
        """Items require a name."""
        db_session.add(Item(id=3, version_name=""))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_timestamps_set_on_insert(self, db_session):
        """created_at and updated_at are set when a row is inserted."""
        before = datetime.now()
        db_session.add(Item(id=4, name="Timed"))
        db_session.commit()
        after = datetime.now()

        saved = db_session.get(Item, (4, ""))
        assert before <= saved.created_at <= after
        assert saved.updated_at is not None

    def test_next_identity(self, db_session):
        """next_identity continues after the highest stored identity."""
        assert next_identity(db_session, Item) == 1

        db_session.add_all([
            Item(id=5, version_name="a", name="x"),
            Item(id=5, version_name="b", name="x"),
        ])
        db_session.commit()

        assert next_identity(db_session, Item) == 6


class TestLinkItems:
    """Association rows hold item identities in order."""

    @pytest.fixture
    def db_session(self, db_path):
        session = get_session(db_path)
        yield session
        session.close()

    def _links(self, session):
        rows = session.execute(
            factory_items.select().order_by(factory_items.c.position, factory_items.c.factory_version_name)
        ).fetchall()
        return [(row.factory_version_name, row.item_id, row.position) for row in rows]

    def test_links_preserve_order(self, db_session):
        """Links are stored with increasing positions."""
        factory = Factory(id=1, version_name="", name="F")
        db_session.add(factory)
        link_items(db_session, factory, [9, 7, 8])
        db_session.commit()

        assert self._links(db_session) == [("", 9, 0), ("", 7, 1), ("", 8, 2)]

    def test_relinking_skips_existing(self, db_session):
        """Linking an identity twice keeps the first position."""
        factory = Factory(id=1, version_name="", name="F")
        db_session.add(factory)
        link_items(db_session, factory, [9, 7])
        link_items(db_session, factory, [7, 3, 3])
        db_session.commit()

        assert self._links(db_session) == [("", 9, 0), ("", 7, 1), ("", 3, 2)]

    def test_links_are_per_parent_version(self, db_session):
        """Each parent version keeps its own links."""
        draft = Factory(id=1, version_name="draft", name="F")
        published = Factory(id=1, version_name="published", name="F")
        db_session.add_all([draft, published])
        link_items(db_session, draft, [1])
        link_items(db_session, published, [2])
        db_session.commit()

        assert self._links(db_session) == [("draft", 1, 0), ("published", 2, 0)]

    def test_links_store_identity_only(self):
        """The association table has no child version column."""
        assert "item_version_name" not in factory_items.c
        assert "item_id" in factory_items.c
