"""
LFS object store management
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from lfsmgmt.config import ENV_PREFIX, get_settings, validate_settings
from lfsmgmt.reconcile import refresh_objects
from lfsmgmt.store import StoreError, open_store


def run(args):
    settings = get_settings()
    port = int(args.port or settings.port)
    logging.info(f"Starting management server at port {port}, debug={not args.nodebug}")
    if warning := validate_settings(settings):
        logging.warning(warning)
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see lfsmgmt/config.py for more information.\n"
        f"{' ' * 26}You can run `python -m lfsmgmt config` to see the current settings\n"
    )
    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    uvicorn.run(
        "lfsmgmt.api:create_app",
        factory=True,
        host=settings.host,
        reload=not args.nodebug,
        port=port,
        log_config=log_config,
    )


def refresh(args):
    settings = get_settings()
    workers = args.workers or settings.refresh_workers
    with open_store(settings) as store:
        result = refresh_objects(store, settings.content_path, workers=workers)
    print(f"Registered {result.indexed} objects ({result.skipped} skipped, {result.errors} errors)")
    if result.errors:
        sys.exit(1)


def add_user(args):
    password = args.password or getpass.getpass(f"Password for {args.name}: ")
    with open_store(get_settings()) as store:
        store.add_user(args.name, password)
    print(f"Added user {args.name}")


def del_user(args):
    with open_store(get_settings()) as store:
        store.delete_user(args.name)
    print(f"Deleted user {args.name}")


def list_users(_args):
    with open_store(get_settings()) as store:
        users = store.users()
    for user in users:
        print(user.name)
    if not users:
        print("(No users defined yet, use add-user to add users)")


def list_objects(_args):
    with open_store(get_settings()) as store:
        for obj in store.objects():
            print(f"{obj.oid}\t{obj.size}")


def show_config(_args):
    settings = get_settings()
    print(f"# Reading settings from environment and {settings.env_file}")
    for fieldname, fieldinfo in type(settings).model_fields.items():
        if fieldname == "env_file":
            continue
        if doc := fieldinfo.description:
            print(f"# {doc}")
        value = getattr(settings, fieldname)
        if fieldname in {"admin_pass", "elastic_password"} and value:
            value = "********"
        if value is None:
            print(f"#{ENV_PREFIX}{fieldname}=\n")
        else:
            print(f"{ENV_PREFIX}{fieldname}={getattr(value, 'value', value)}\n")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m lfsmgmt")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the management server")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (no auto reload)",
    )
    p.add_argument("-p", "--port", help="Port (default: from settings)")
    p.set_defaults(func=run)

    p = subparsers.add_parser("refresh", help="Register all objects found in the content path")
    p.add_argument("-w", "--workers", type=int, help="Number of threads (default: from settings)")
    p.set_defaults(func=refresh)

    p = subparsers.add_parser("add-user", help="Add a user")
    p.add_argument("name", help="The name of the new user")
    p.add_argument("--password", help="The password (will be asked if not given)")
    p.set_defaults(func=add_user)

    p = subparsers.add_parser("del-user", help="Delete a user")
    p.add_argument("name", help="The name of the user to delete")
    p.set_defaults(func=del_user)

    p = subparsers.add_parser("list-users", help="List users")
    p.set_defaults(func=list_users)

    p = subparsers.add_parser("list-objects", help="List registered objects")
    p.set_defaults(func=list_objects)

    p = subparsers.add_parser("config", help="Show the current settings as .env lines")
    p.set_defaults(func=show_config)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    es_logger = logging.getLogger("elasticsearch")
    es_logger.setLevel(logging.WARNING)

    try:
        args.func(args)
    except (StoreError, ValueError) as e:
        logging.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
