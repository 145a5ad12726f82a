import argparse
import json
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .database import create_db_engine, drop_database, get_session_factory, init_database
from .env import get_database_url, load_env
from .logger import get_logger
from .repository import UserCreationError, UserRepository
from .schema import is_valid_email, validate_new_user

logger = get_logger()


def _engine(args: argparse.Namespace):
    return create_db_engine(args.db or get_database_url())


def _repository(args: argparse.Namespace) -> UserRepository:
    return UserRepository(get_session_factory(_engine(args)))


def _print_user(user) -> None:
    print(json.dumps(user.to_dict()))


def cmd_init_db(args: argparse.Namespace) -> None:
    engine = _engine(args)
    init_database(engine)
    logger.record_operation("init-db")
    print(f"Schema ready: {engine.url.render_as_string(hide_password=True)}")


def cmd_reset_db(args: argparse.Namespace) -> None:
    engine = _engine(args)
    drop_database(engine)
    init_database(engine)
    logger.record_operation("reset-db")
    print(f"Schema recreated: {engine.url.render_as_string(hide_password=True)}")


def cmd_add(args: argparse.Namespace) -> None:
    data = {"name": args.name, "age": args.age, "email": args.email}
    errors = validate_new_user(data)
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)

    logger.record_operation("create")
    user = _repository(args).create(data)
    logger.info("Created user", id=user.id, email=user.email)
    _print_user(user)


def cmd_import(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise SystemExit("Input must be a JSON array of users")

    invalid = 0
    for i, entry in enumerate(entries):
        errors = validate_new_user(entry)
        if errors:
            invalid += 1
            print(f"Entry {i}:")
            for e in errors:
                print(f" - {e}")
    if invalid:
        print(f"Refusing to import: {invalid} invalid entr{'y' if invalid == 1 else 'ies'}")
        raise SystemExit(2)

    logger.record_operation("create_many")
    users = _repository(args).create_many(entries)
    logger.info("Imported users", count=len(users), source=str(input_path))
    print(f"Imported {len(users)} users")


def cmd_list(args: argparse.Namespace) -> None:
    logger.record_operation("find_all")
    users = _repository(args).find_all()
    if not users:
        print("No users in store.")
        return
    print(f"Found {len(users)} users:\n")
    for user in users:
        print(f"ID: {user.id}")
        print(f"  Name: {user.name}")
        print(f"  Age: {user.age}")
        print(f"  Email: {user.email}")
        print()


def cmd_get(args: argparse.Namespace) -> None:
    repo = _repository(args)
    if args.id is not None:
        logger.record_operation("find_by_id")
        user = repo.find_by_id(args.id)
    else:
        logger.record_operation("find_by_email")
        user = repo.find_by_email(args.email)
    if user is None:
        print("User not found")
        raise SystemExit(1)
    _print_user(user)


def cmd_update(args: argparse.Namespace) -> None:
    data = {k: getattr(args, k) for k in ("name", "age", "email") if getattr(args, k) is not None}
    if "email" in data and not is_valid_email(data["email"]):
        print("Invalid:")
        print(" - Field 'email' must be a valid address (local@domain.tld)")
        raise SystemExit(2)

    logger.record_operation("update")
    user = _repository(args).update(args.id, data)
    if user is None:
        print("User not found")
        raise SystemExit(1)
    logger.info("Updated user", id=user.id, fields=sorted(data))
    _print_user(user)


def cmd_delete(args: argparse.Namespace) -> None:
    logger.record_operation("delete")
    _repository(args).delete(args.id)
    logger.info("Deleted user", id=args.id)
    print(f"Deleted {args.id}")


def cmd_exists(args: argparse.Namespace) -> None:
    logger.record_operation("exists")
    found = _repository(args).exists(args.id)
    print("true" if found else "false")
    if not found:
        raise SystemExit(1)


def cmd_validate_email(args: argparse.Namespace) -> None:
    # Syntax only, the store is never opened
    if is_valid_email(args.email):
        print("valid")
        return
    print("invalid")
    raise SystemExit(2)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="userstore", description="User records store CLI")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Database URL (default: $DATABASE_URL or sqlite:///data/users.db)")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Console log level (default: INFO)")
    parser.add_argument("--metrics", action="store_true", help="Log an operation summary before exiting")

    subparsers = parser.add_subparsers(dest="command")
    ini = subparsers.add_parser("init-db", help="Create the users table if missing")
    ini.set_defaults(func=cmd_init_db)

    rst = subparsers.add_parser("reset-db", help="Drop and recreate the users table")
    rst.set_defaults(func=cmd_reset_db)

    add = subparsers.add_parser("add", help="Create a single user")
    add.add_argument("--name", required=True, help="Display name")
    add.add_argument("--age", required=True, type=int, help="Age in years")
    add.add_argument("--email", required=True, help="Unique e-mail address")
    add.set_defaults(func=cmd_add)

    imp = subparsers.add_parser("import", help="Create users from a JSON array in one batch")
    imp.add_argument("--input", required=True, help="Path to JSON file: [{\"name\", \"age\", \"email\"}, ...]")
    imp.set_defaults(func=cmd_import)

    lst = subparsers.add_parser("list", help="List all stored users")
    lst.set_defaults(func=cmd_list)

    get = subparsers.add_parser("get", help="Show one user by id or e-mail")
    key = get.add_mutually_exclusive_group(required=True)
    key.add_argument("--id", type=int, help="User id")
    key.add_argument("--email", help="User e-mail")
    get.set_defaults(func=cmd_get)

    upd = subparsers.add_parser("update", help="Change name, age and/or e-mail of a user")
    upd.add_argument("--id", required=True, type=int, help="User id")
    upd.add_argument("--name", help="New name")
    upd.add_argument("--age", type=int, help="New age")
    upd.add_argument("--email", help="New e-mail")
    upd.set_defaults(func=cmd_update)

    dlt = subparsers.add_parser("delete", help="Delete a user (no error if missing)")
    dlt.add_argument("--id", required=True, type=int, help="User id")
    dlt.set_defaults(func=cmd_delete)

    ext = subparsers.add_parser("exists", help="Check whether a user id is present")
    ext.add_argument("--id", required=True, type=int, help="User id")
    ext.set_defaults(func=cmd_exists)

    val = subparsers.add_parser("validate-email", help="Check e-mail syntax without touching the store")
    val.add_argument("email", help="Address to check")
    val.set_defaults(func=cmd_validate_email)

    return parser


def main(argv=None):
    # Load .env if present (DATABASE_URL)
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)
    logger.set_level(args.log_level)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        args.func(args)
    except (SQLAlchemyError, UserCreationError) as e:
        logger.record_failure(args.command, type(e).__name__)
        logger.error(f"{args.command} failed: {e}", error=type(e).__name__)
        raise SystemExit(1)
    finally:
        if args.metrics:
            logger.log_metrics_summary()


if __name__ == "__main__":
    main()
