"""
Selector resources: searchable catalogs of versioned rows for a picker.

A selector lists candidate rows independently of any parent. Each candidate
carries the token of its own (identity, version) pair, the same token the
relation read path produces, so a picker can match existing selections by
value.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from .deadline import Deadline, check_deadline
from .errors import CodecError, SearchError
from .logger import StructuredLogger, get_logger
from .repository import ScopeHandler
from .retry import RetryError
from .versioning import entity_token


class SelectorCandidate(NamedTuple):
    token: str
    label: str


@dataclass(frozen=True)
class Scope:
    """Named predicate applied to the selector's base query."""

    name: str
    handler: ScopeHandler
    default: bool = False


def passthrough(query):
    return query


DEFAULT_SCOPE = Scope(name="", handler=passthrough, default=True)


class SelectorResource:
    """Read-only, searchable catalog of a versionable model."""

    def __init__(
        self,
        repository,
        model: type,
        name: Optional[str] = None,
        label_attr: str = "name",
        search_attrs: Sequence[str] = ("name",),
        index_attrs: Sequence[str] = ("id", "name", "composite_primary_key"),
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            repository: Repository providing query_candidates()
            model: Versionable model to list
            name: Resource name (default: "<Model>Selector")
            label_attr: Attribute shown to the operator
            search_attrs: Attributes a search term is matched against
            index_attrs: Fields included in index rows
            logger: Optional logger (default: global logger)
        """
        self.repository = repository
        self.model = model
        self.name = name or f"{model.__name__}Selector"
        self.label_attr = label_attr
        self.search_attrs = tuple(search_attrs)
        self.index_attrs = tuple(index_attrs)
        self.logger = logger or get_logger()

        self.scopes: Dict[str, Scope] = {DEFAULT_SCOPE.name: DEFAULT_SCOPE}
        self.default_scope = DEFAULT_SCOPE.name

        # Field name -> accessor
        self.fields: Dict[str, Callable[[Any], Any]] = {
            "id": lambda entity: entity.id,
            "name": self.label,
            "composite_primary_key": self.token,
        }

        unknown = [attr for attr in self.index_attrs if attr not in self.fields]
        if unknown:
            raise ValueError(f"Unknown index attributes: {', '.join(unknown)}")

        mapped = set(inspect(model).column_attrs.keys())
        unsearchable = [attr for attr in self.search_attrs if attr not in mapped]
        if unsearchable:
            raise ValueError(f"Unknown search attributes: {', '.join(unsearchable)}")

    def add_scope(self, scope: Scope) -> None:
        """Register a scope; a default scope replaces the current default."""
        self.scopes[scope.name] = scope
        if scope.default:
            self.default_scope = scope.name

    def label(self, entity: Any) -> str:
        value = getattr(entity, self.label_attr, None)
        return "" if value is None else str(value)

    def token(self, entity: Any) -> str:
        """Token from the entity's own identity and version, never a parent's."""
        return entity_token(entity)

    def candidate(self, entity: Any) -> SelectorCandidate:
        return SelectorCandidate(self.token(entity), self.label(entity))

    def index_row(self, entity: Any) -> Dict[str, Any]:
        return {attr: self.fields[attr](entity) for attr in self.index_attrs}

    def search(
        self,
        term: Optional[str] = None,
        scope: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[SelectorCandidate]:
        """
        List candidates in a scope, optionally narrowed by a search term.

        Args:
            term: Case-insensitive substring matched against search_attrs;
                None or blank means no filtering
            scope: Scope name (default scope when None)
            deadline: Optional deadline; checked around the database call

        Returns:
            Candidates ordered by identity, then version name

        Raises:
            SearchError: unknown scope or persistence failure
            DeadlineExceededError: deadline passed
        """
        entities = self.search_entities(term, scope, deadline)
        try:
            return [self.candidate(entity) for entity in entities]
        except CodecError as e:
            self._fail(e, scope or self.default_scope)
            raise SearchError(f"Cannot encode candidate from {self.name}: {e}") from e

    def search_entities(
        self,
        term: Optional[str] = None,
        scope: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[Any]:
        """Same as search() but returns the rows themselves."""
        operation = f"search {self.name}"
        check_deadline(deadline, operation)

        scope_name = self.default_scope if scope is None else scope
        selected = self.scopes.get(scope_name)
        if selected is None:
            self._fail(KeyError(scope_name), scope_name)
            raise SearchError(f"Unknown scope {scope_name!r} for {self.name}")

        if term is not None and not isinstance(term, str):
            self._fail(TypeError(type(term).__name__), scope_name)
            raise SearchError(f"Search term must be a string, got {type(term).__name__}")
        term = term.strip() if term else None
        if term and not self.search_attrs:
            raise SearchError(f"{self.name} has no searchable attributes")

        try:
            rows = self.repository.query_candidates(
                self.model, selected.handler, term=term or None, search_attrs=self.search_attrs
            )
        except (SQLAlchemyError, RetryError) as e:
            self._fail(e, scope_name)
            raise SearchError(f"Search on {self.name} failed: {e}") from e
        except Exception as e:
            # Scope handlers are caller code and can fail outside SQLAlchemy
            self._fail(e, scope_name)
            raise SearchError(f"Scope {scope_name!r} on {self.name} failed: {e}") from e

        check_deadline(deadline, operation)

        self.logger.record_search(len(rows))
        self.logger.debug(
            "Searched selector",
            selector=self.name,
            scope=scope_name,
            term=term,
            rows=len(rows),
        )
        return rows

    def _fail(self, error: Exception, scope_name: str):
        self.logger.record_failure(type(error).__name__)
        self.logger.error(
            f"Selector search failed: {error}",
            selector=self.name,
            scope=scope_name,
            error_type=type(error).__name__,
        )
