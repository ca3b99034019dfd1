"""
Composite key codec.

A versioned row is addressed by (identity, version name). The codec turns that
pair into a single opaque token, "<identity>::<version name>", and back.

The identity segment is always a canonical base-10 number, so the first
separator in a token marks the split. Encoding stays injective as long as no
version name contains the separator, which encode() enforces and the model
layer also enforces at write time.
"""

from typing import Any, NamedTuple, Optional

from .errors import InvalidIdentityError, InvalidVersionNameError, MalformedTokenError

SEPARATOR = "::"


class CompositeKey(NamedTuple):
    """(identity, version name) pair that names one row of a version family."""

    identity: int
    version_name: str


def is_valid_version_name(name: Optional[str]) -> bool:
    """Return True if name can be embedded in a token."""
    if name is None:
        return True
    return isinstance(name, str) and SEPARATOR not in name


def _check_identity(identity: Any) -> int:
    # bool is an int subclass; True would silently encode as "1"
    if isinstance(identity, bool) or not isinstance(identity, int):
        raise InvalidIdentityError(f"Identity must be an integer, got {identity!r}")
    if identity < 0:
        raise InvalidIdentityError(f"Identity must be non-negative, got {identity}")
    return identity


def encode(identity: int, version_name: Optional[str]) -> str:
    """
    Encode an (identity, version name) pair as a token.

    Args:
        identity: Non-negative numeric identity of the version family
        version_name: Version name; None is treated as the default version ""

    Returns:
        Token string, e.g. "42::v1"

    Raises:
        InvalidIdentityError: identity is not a non-negative int
        InvalidVersionNameError: version name contains the separator
    """
    identity = _check_identity(identity)
    if version_name is None:
        version_name = ""
    if not is_valid_version_name(version_name):
        raise InvalidVersionNameError(
            f"Version name {version_name!r} must be a string without {SEPARATOR!r}"
        )
    return f"{identity}{SEPARATOR}{version_name}"


def decode(token: str) -> CompositeKey:
    """
    Decode a token produced by encode().

    Raises:
        MalformedTokenError: token has no separator, an ambiguous version
            segment, or an identity segment that is not a canonical number
    """
    if not isinstance(token, str):
        raise MalformedTokenError(f"Token must be a string, got {type(token).__name__}")

    head, sep, version_name = token.partition(SEPARATOR)
    if not sep:
        raise MalformedTokenError(f"Token {token!r} has no {SEPARATOR!r} separator")
    if not (head.isascii() and head.isdigit()):
        raise MalformedTokenError(f"Token {token!r} has a non-numeric identity segment")
    if len(head) > 1 and head.startswith("0"):
        raise MalformedTokenError(f"Token {token!r} has a non-canonical identity segment")
    if SEPARATOR in version_name:
        raise MalformedTokenError(f"Token {token!r} contains more than one separator")

    return CompositeKey(int(head), version_name)
