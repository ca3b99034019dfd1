"""
Pytest configuration and shared fixtures.
"""

import pytest

from versionpicker.binding import AssociationEditorBinding
from versionpicker.database import (
    RELATIONS,
    Factory,
    Item,
    get_session_factory,
    init_database,
    link_items,
)
from versionpicker.logger import StructuredLogger, reset_logger
from versionpicker.repository import SqlAlchemyRepository
from versionpicker.resolver import VersionedRelationResolver
from versionpicker.selector import SelectorResource


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep env settings and the global logger from leaking between tests."""
    for var in (
        "VERSIONPICKER_DB_PATH",
        "VERSIONPICKER_LOG_LEVEL",
        "VERSIONPICKER_LOG_DIR",
        "VERSIONPICKER_MAX_RETRIES",
        "VERSIONPICKER_RETRY_DELAY",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def quiet_logger() -> StructuredLogger:
    """Logger with no handlers attached."""
    return StructuredLogger(name="versionpicker.test", enable_file=False, enable_console=False)


@pytest.fixture
def db_path(tmp_path):
    """Temporary database with tables created."""
    path = tmp_path / "test.db"
    init_database(path)
    return path


@pytest.fixture
def session_factory(db_path):
    return get_session_factory(db_path)


@pytest.fixture
def repository(session_factory) -> SqlAlchemyRepository:
    return SqlAlchemyRepository(session_factory, relations=RELATIONS)


@pytest.fixture
def resolver(repository, quiet_logger) -> VersionedRelationResolver:
    return VersionedRelationResolver(repository, logger=quiet_logger)


@pytest.fixture
def selector(repository, quiet_logger) -> SelectorResource:
    return SelectorResource(repository, Item, name="ItemSelector", logger=quiet_logger)


@pytest.fixture
def binding(resolver, selector) -> AssociationEditorBinding:
    return AssociationEditorBinding(resolver, selector, "items")


@pytest.fixture
def seed(session_factory):
    """
    Return a function that stores a factory, items and links.

    The returned factory is loaded fresh and detached from its session.
    """
    def _seed(factory, items=(), links=()):
        with session_factory() as session:
            session.add(factory)
            session.add_all(list(items))
            link_items(session, factory, links)
            session.commit()
            return session.get(Factory, (factory.id, factory.version_name))
    return _seed


@pytest.fixture
def catalog(seed):
    """
    Factory 1 linked to Gadget B (9) then Widget A (7, draft + published).

    Sprocket C (11) exists but is not linked.
    """
    return seed(
        Factory(id=1, version_name="", name="Main Factory"),
        items=[
            Item(id=7, version_name="draft", name="Widget A"),
            Item(id=7, version_name="published", name="Widget A"),
            Item(id=9, version_name="", name="Gadget B"),
            Item(id=11, version_name="", name="Sprocket C"),
        ],
        links=[9, 7],
    )
