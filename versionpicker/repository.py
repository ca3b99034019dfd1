"""
SQLAlchemy-backed repository for versioned rows.

Responsibilities:
- Load the children linked to a parent through a named association.
- Run scoped, searched queries over a selectable model.

Non-Responsibilities:
- No version policy beyond narrowing by version name.
- No token encoding.

Invariant:
Each call opens and closes its own session and never writes.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import Table, or_
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query

from .retry import exponential_backoff, is_transient_error

ScopeHandler = Callable[[Query], Query]


@dataclass(frozen=True)
class RelationSpec:
    """
    Descriptor for a many-to-many association between versioned models.

    parent_columns maps association columns to accessors on the parent row.
    child_column holds the child identity only, never the child version.
    """

    name: str
    parent_model: type
    child_model: type
    table: Table
    parent_columns: Tuple[Tuple[str, Callable[[Any], Any]], ...]
    child_column: str
    position_column: Optional[str] = "position"


def escape_like(term: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so term matches literally."""
    return (
        term.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


class SqlAlchemyRepository:
    """Read-only access to versioned rows through a session factory."""

    def __init__(
        self,
        session_factory: Callable,
        relations: Iterable[RelationSpec] = (),
        max_retries: int = 0,
        retry_delay: float = 0.05,
    ):
        """
        Args:
            session_factory: Callable returning a new Session (e.g. a sessionmaker)
            relations: Association descriptors, addressed by name
            max_retries: Retries for transient database errors (0 = none)
            retry_delay: Initial backoff delay in seconds
        """
        self.session_factory = session_factory
        self.relations: Dict[str, RelationSpec] = {spec.name: spec for spec in relations}
        self._retry = exponential_backoff(
            max_retries=max_retries,
            base_delay=retry_delay,
            exceptions=(OperationalError,),
            retry_if=is_transient_error,
        )

    def relation(self, parent: Any, relation_name: str) -> RelationSpec:
        """
        Look up the descriptor for relation_name on parent.

        Raises:
            KeyError: no relation registered under that name
            TypeError: parent is not an instance of the relation's parent model
        """
        spec = self.relations.get(relation_name)
        if spec is None:
            raise KeyError(f"Unknown relation: {relation_name}")
        if not isinstance(parent, spec.parent_model):
            raise TypeError(
                f"Relation {relation_name} expects {spec.parent_model.__name__}, "
                f"got {type(parent).__name__}"
            )
        return spec

    def load_related(
        self,
        parent: Any,
        relation_name: str,
        version_names: Optional[Sequence[str]] = None,
    ) -> List[Any]:
        """
        Load every child row linked to parent, across versions.

        Rows come back in association order, then by version name.

        Args:
            parent: Parent row
            relation_name: Registered relation name
            version_names: If given, only rows with one of these version names
        """
        spec = self.relation(parent, relation_name)
        child = spec.child_model
        table = spec.table
        keys = [(table.c[column], accessor(parent)) for column, accessor in spec.parent_columns]

        def run():
            with self.session_factory() as session:
                query = session.query(child).join(table, child.id == table.c[spec.child_column])
                for column, value in keys:
                    query = query.filter(column == value)
                if version_names is not None:
                    query = query.filter(child.version_name.in_(list(version_names)))
                if spec.position_column:
                    query = query.order_by(table.c[spec.position_column])
                return query.order_by(child.id, child.version_name).all()

        return self._retry(run)()

    def query_candidates(
        self,
        model: type,
        scope_handler: ScopeHandler,
        term: Optional[str] = None,
        search_attrs: Sequence[str] = (),
    ) -> List[Any]:
        """
        Run a scoped query over model, optionally filtered by a search term.

        The term matches case-insensitively as a substring of any search attribute.
        """
        def run():
            with self.session_factory() as session:
                query = scope_handler(session.query(model))
                if term:
                    pattern = f"%{escape_like(term)}%"
                    query = query.filter(
                        or_(*[getattr(model, attr).ilike(pattern, escape="\\") for attr in search_attrs])
                    )
                return query.order_by(model.id, model.version_name).all()

        return self._retry(run)()
