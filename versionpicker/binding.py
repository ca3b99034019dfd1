"""
Association editor binding.

Glues a parent's many-to-many relation to a selector resource so that a picker
gets two lists built with the same codec: the parent's current selections and
the catalog of candidates.
"""

from typing import Any, List, Optional, Tuple

from .deadline import Deadline
from .errors import CodecError, RelationResolutionError
from .resolver import UNFILTERED, ContextualVersion, VersionedRelationResolver, VersionMode
from .selector import SelectorResource


class AssociationEditorBinding:
    """Many-to-many field of a parent resource, backed by a selector."""

    # Field the picker uses as each option's value
    primary_field = "composite_primary_key"

    def __init__(
        self,
        resolver: VersionedRelationResolver,
        selector: SelectorResource,
        relation_name: str,
    ):
        self.resolver = resolver
        self.selector = selector
        self.relation_name = relation_name

    def current_selections(
        self, parent: Any, deadline: Optional[Deadline] = None
    ) -> List[Tuple[str, str]]:
        """
        (token, label) for every linked child version, in association order.

        Editors always see every linked version, so resolution is unfiltered.

        Raises:
            RelationResolutionError: rows could not be loaded or encoded
        """
        return self._selections(parent, UNFILTERED, deadline)

    def contextual_selections(
        self, parent: Any, version_name: str, deadline: Optional[Deadline] = None
    ) -> List[Tuple[str, str]]:
        """(token, label) for the linked children visible in one version context."""
        return self._selections(parent, ContextualVersion(version_name), deadline)

    def _selections(
        self, parent: Any, version_mode: VersionMode, deadline: Optional[Deadline]
    ) -> List[Tuple[str, str]]:
        rows = self.resolver.resolve(parent, self.relation_name, version_mode, deadline=deadline)
        selections = []
        for row in rows:
            try:
                selections.append((self.selector.token(row), self.selector.label(row)))
            except CodecError as e:
                raise RelationResolutionError(
                    f"Cannot encode {self.relation_name} row {row!r}: {e}"
                ) from e
        return selections

    def candidate_list(
        self,
        term: Optional[str] = None,
        scope: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[Tuple[str, str]]:
        """(token, label) for every candidate matching term within scope."""
        return [
            (candidate.token, candidate.label)
            for candidate in self.selector.search(term, scope, deadline=deadline)
        ]
