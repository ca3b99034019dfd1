import argparse
import json
from pathlib import Path

from . import __version__
from .binding import AssociationEditorBinding
from .codec import decode, encode
from .config import Settings, load_env, load_settings
from .database import (
    RELATIONS,
    Factory,
    Item,
    get_session,
    get_session_factory,
    init_database,
    link_items,
    next_identity,
)
from .errors import VersionPickerError
from .repository import SqlAlchemyRepository
from .resolver import VersionedRelationResolver
from .selector import SelectorResource


def build_binding(db_path: Path, settings: Settings) -> AssociationEditorBinding:
    """Wire repository, resolver and item selector for the factory items field."""
    repository = SqlAlchemyRepository(
        get_session_factory(db_path),
        relations=RELATIONS,
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay,
    )
    selector = SelectorResource(repository, Item, name="ItemSelector")
    return AssociationEditorBinding(VersionedRelationResolver(repository), selector, "items")


def _db_path(args: argparse.Namespace, settings: Settings) -> Path:
    return Path(args.db) if args.db else settings.db_path


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> None:
    db_path = _db_path(args, settings)
    init_database(db_path)
    print(f"Database ready: {db_path}")


def cmd_seed(args: argparse.Namespace, settings: Settings) -> None:
    db_path = _db_path(args, settings)
    init_database(db_path)
    session = get_session(db_path)
    try:
        if session.query(Factory).count():
            print("Demo data already present.")
            return
        factory = Factory(id=next_identity(session, Factory), version_name="", name="Demo Factory")
        session.add(factory)

        # Each family is flushed before the next identity is taken
        widget_id = next_identity(session, Item)
        session.add_all([
            Item(id=widget_id, version_name="draft", name="Widget A"),
            Item(id=widget_id, version_name="published", name="Widget A"),
        ])
        session.flush()
        gadget_id = next_identity(session, Item)
        session.add(Item(id=gadget_id, version_name="", name="Gadget B"))
        session.flush()
        session.add(Item(id=next_identity(session, Item), version_name="", name="Sprocket C"))

        link_items(session, factory, [widget_id, gadget_id])
        session.commit()
    finally:
        session.close()
    print(f"Seeded demo factory into {db_path}")


def cmd_selections(args: argparse.Namespace, settings: Settings) -> None:
    db_path = _db_path(args, settings)
    binding = build_binding(db_path, settings)

    session = get_session(db_path)
    try:
        factory = session.get(Factory, (args.factory, args.factory_version))
    finally:
        session.close()
    if factory is None:
        raise SystemExit(f"Factory not found: {encode(args.factory, args.factory_version)}")

    if args.context is None:
        rows = binding.current_selections(factory)
    else:
        rows = binding.contextual_selections(factory, args.context)

    if not rows:
        print("No associations.")
        return
    for token, label in rows:
        print(f"{token}\t{label}")


def cmd_candidates(args: argparse.Namespace, settings: Settings) -> None:
    binding = build_binding(_db_path(args, settings), settings)
    selector = binding.selector
    for entity in selector.search_entities(args.term, args.scope):
        print(json.dumps(selector.index_row(entity), ensure_ascii=False))


def cmd_encode(args: argparse.Namespace, settings: Settings) -> None:
    print(encode(args.identity, args.version_name))


def cmd_decode(args: argparse.Namespace, settings: Settings) -> None:
    key = decode(args.token)
    print(f"identity={key.identity} version={key.version_name!r}")


def main(argv=None):
    load_env()
    settings = load_settings()

    parser = argparse.ArgumentParser(prog="versionpicker", description="Versioned selection toolkit")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help=f"Path to SQLite database (default: {settings.db_path})")

    subparsers = parser.add_subparsers(dest="command")
    ini = subparsers.add_parser("init-db", help="Create database tables")
    ini.set_defaults(func=cmd_init_db)

    sd = subparsers.add_parser("seed", help="Insert a demo factory with versioned items")
    sd.set_defaults(func=cmd_seed)

    sel = subparsers.add_parser("selections", help="Show a factory's current item selections")
    sel.add_argument("--factory", type=int, required=True, help="Factory identity")
    sel.add_argument("--factory-version", default="", help="Factory version name (default: \"\")")
    sel.add_argument("--context", help="Resolve only this item version instead of every version")
    sel.set_defaults(func=cmd_selections)

    cnd = subparsers.add_parser("candidates", help="List selectable items")
    cnd.add_argument("--term", help="Case-insensitive name search")
    cnd.add_argument("--scope", help="Scope name (default scope if omitted)")
    cnd.set_defaults(func=cmd_candidates)

    enc = subparsers.add_parser("encode", help="Encode an identity and version name as a token")
    enc.add_argument("identity", type=int)
    enc.add_argument("version_name", nargs="?", default="")
    enc.set_defaults(func=cmd_encode)

    dec = subparsers.add_parser("decode", help="Decode a token")
    dec.add_argument("token")
    dec.set_defaults(func=cmd_decode)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        try:
            args.func(args, settings)
        except VersionPickerError as e:
            raise SystemExit(f"Error: {e}")
        return

    parser.print_help()


if __name__ == "__main__":
    main()
