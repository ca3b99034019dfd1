#!/usr/bin/env python3
"""
Validate that every stored versioned row has a round-trippable token.

Checks that no version name contains the token separator and that
decode(encode(id, version_name)) gives back the stored key.

Usage:
    python scripts/validate_tokens.py --db data/versionpicker.db
"""

import argparse
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from versionpicker.codec import CompositeKey, decode, encode
from versionpicker.database import Factory, Item, get_session
from versionpicker.errors import CodecError


def validate(db_path: Path) -> bool:
    """
    Check tokens for every factory and item row.

    Returns True if all rows round-trip, False otherwise.
    """
    print(f"Checking tokens in {db_path}...")
    session = get_session(db_path)
    failures = []

    try:
        for model in (Factory, Item):
            rows = session.query(model).order_by(model.id, model.version_name).all()
            print(f"  {model.__tablename__}: {len(rows)} rows")
            for row in rows:
                key = CompositeKey(row.id, row.version_name)
                try:
                    token = encode(*key)
                    if decode(token) != key:
                        failures.append((model.__tablename__, key, f"decodes to {decode(token)}"))
                except CodecError as e:
                    failures.append((model.__tablename__, key, str(e)))
    finally:
        session.close()

    if failures:
        print(f"\n❌ TOKEN FAILURES: {len(failures)} rows")
        for table, key, reason in failures[:5]:
            print(f"   - {table} {key.identity}/{key.version_name!r}: {reason}")
        if len(failures) > 5:
            print(f"   ... and {len(failures) - 5} more")
        return False

    print("✅ All tokens round-trip")
    return True


def main():
    parser = argparse.ArgumentParser(description="Validate composite key tokens for stored rows")
    parser.add_argument("--db", type=Path, default=Path("data/versionpicker.db"),
                        help="Path to SQLite database file")

    args = parser.parse_args()

    if not args.db.exists():
        print(f"❌ Database file not found: {args.db}")
        sys.exit(1)

    success = validate(args.db)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
