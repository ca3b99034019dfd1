"""
Version store glue.

Rows of a versionable model share a numeric identity across versions; the
version name tells which version an in-memory instance represents. Version
assignment itself belongs to whoever writes the rows; this module only reads it
and refuses names that would break token encoding.
"""

from typing import Any

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import validates

from .codec import SEPARATOR, CompositeKey, encode, is_valid_version_name
from .errors import InvalidVersionNameError

DEFAULT_VERSION = ""


class VersionMixin:
    """
    Declarative mixin for versionable models.

    Primary key is (id, version_name); rows sharing id form a version family.
    """

    id = Column(Integer, primary_key=True, autoincrement=False)
    version_name = Column(String, primary_key=True, default=DEFAULT_VERSION, nullable=False)

    @validates("version_name")
    def _validate_version_name(self, key, value):
        if value is None:
            return DEFAULT_VERSION
        if not is_valid_version_name(value):
            raise InvalidVersionNameError(
                f"Version name {value!r} must not contain {SEPARATOR!r}"
            )
        return value


def current_version_name(entity: Any) -> str:
    """Return the version name of entity, or "" if it was never assigned one."""
    name = getattr(entity, "version_name", None)
    return name if name is not None else DEFAULT_VERSION


def composite_key(entity: Any) -> CompositeKey:
    return CompositeKey(entity.id, current_version_name(entity))


def entity_token(entity: Any) -> str:
    """Token for entity using its own identity and its own version name."""
    return encode(entity.id, current_version_name(entity))
