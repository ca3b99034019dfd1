"""
Versioned relation resolution.

Responsibilities:
- Load the children linked to a parent through a named relation.
- Apply an explicit version-visibility mode to the result.

Non-Responsibilities:
- No token encoding.
- No retries (the repository owns retry policy).

Invariant:
A failure is always raised as RelationResolutionError; an empty list only
ever means the parent has no associations visible in the requested mode.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from .deadline import Deadline, check_deadline
from .errors import RelationResolutionError
from .logger import StructuredLogger, get_logger
from .retry import RetryError
from .versioning import DEFAULT_VERSION, current_version_name


@dataclass(frozen=True)
class Unfiltered:
    """Every linked version of every linked child."""


@dataclass(frozen=True)
class ContextualVersion:
    """Only the named version of each linked child, falling back to the default version."""

    name: str


VersionMode = Union[Unfiltered, ContextualVersion]

UNFILTERED = Unfiltered()


def select_version(rows: List[Any], version_name: str) -> List[Any]:
    """
    Pick one row per identity for a version context.

    rows must already be in association order. For each identity the row named
    version_name wins, otherwise the default-version row; identities with
    neither are dropped.
    """
    order: List[int] = []
    by_identity = {}
    for row in rows:
        if row.id not in by_identity:
            order.append(row.id)
            by_identity[row.id] = {}
        by_identity[row.id][current_version_name(row)] = row

    selected = []
    for identity in order:
        versions = by_identity[identity]
        row = versions.get(version_name, versions.get(DEFAULT_VERSION))
        if row is not None:
            selected.append(row)
    return selected


class VersionedRelationResolver:
    """Resolves a parent's related rows under an explicit version mode."""

    def __init__(self, repository, logger: Optional[StructuredLogger] = None):
        self.repository = repository
        self.logger = logger or get_logger()

    def resolve(
        self,
        parent: Any,
        relation_name: str,
        version_mode: VersionMode = UNFILTERED,
        deadline: Optional[Deadline] = None,
    ) -> List[Any]:
        """
        Load the children of parent through relation_name.

        Args:
            parent: Parent row
            relation_name: Name of a relation registered with the repository
            version_mode: UNFILTERED or ContextualVersion(name)
            deadline: Optional deadline; checked around the database call

        Returns:
            Child rows in association order

        Raises:
            RelationResolutionError: unknown relation, wrong parent type or
                persistence failure
            DeadlineExceededError: deadline passed
        """
        operation = f"resolve {relation_name}"
        check_deadline(deadline, operation)

        if isinstance(version_mode, Unfiltered):
            version_names = None
        elif isinstance(version_mode, ContextualVersion):
            version_names = [version_mode.name, DEFAULT_VERSION]
        else:
            raise RelationResolutionError(f"Unsupported version mode: {version_mode!r}")

        try:
            rows = self.repository.load_related(parent, relation_name, version_names=version_names)
        except (KeyError, TypeError) as e:
            self._fail(e, relation_name)
            raise RelationResolutionError(f"Cannot resolve {relation_name}: {e}") from e
        except (SQLAlchemyError, RetryError) as e:
            self._fail(e, relation_name)
            raise RelationResolutionError(f"Failed to load {relation_name}: {e}") from e

        check_deadline(deadline, operation)

        if isinstance(version_mode, ContextualVersion):
            rows = select_version(rows, version_mode.name)

        self.logger.record_resolution(len(rows))
        self.logger.debug(
            "Resolved relation",
            relation=relation_name,
            mode=type(version_mode).__name__,
            rows=len(rows),
        )
        return rows

    def _fail(self, error: Exception, relation_name: str):
        self.logger.record_failure(type(error).__name__)
        self.logger.error(
            f"Relation resolution failed: {error}",
            relation=relation_name,
            error_type=type(error).__name__,
        )
