"""
Management commands for the Job Dispatch Service.

    python -m app.cli init-db
    python -m app.cli create-user alice secret --authority ROLE_USER
    python -m app.cli disable-user alice
"""

import argparse
import sys
from typing import List, Optional

from app.core.authorization_server import get_authorization_server
from app.db.session import DBSessionManager, init_db
from app.services.user_service import UserService
from app.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="app.cli", description="Job Dispatch Service management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create all database tables")

    create_user = subparsers.add_parser("create-user", help="Create a user for the password grant")
    create_user.add_argument("username")
    create_user.add_argument("password")
    create_user.add_argument(
        "--authority",
        action="append",
        dest="authorities",
        default=[],
        help="Authority granted to the user; repeatable",
    )
    create_user.add_argument("--disabled", action="store_true", help="Create the user disabled")

    for name, help_text in (("enable-user", "Enable a user"), ("disable-user", "Disable a user")):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("username")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = _create_parser().parse_args(argv)

    if args.command == "init-db":
        init_db()
        return 0

    # Tables must exist before users can be managed
    init_db()
    password_encoder = get_authorization_server().password_encoder()

    with DBSessionManager() as db:
        user_service = UserService(db, password_encoder)

        if args.command == "create-user":
            try:
                user = user_service.create_user(
                    args.username,
                    args.password,
                    authorities=args.authorities,
                    enabled=not args.disabled,
                )
            except ValueError as e:
                logger.error(str(e))
                return 1
            print(f"Created user {user.username} (authorities: {user.authorities or '-'})")
            return 0

        user = user_service.set_enabled(args.username, args.command == "enable-user")
        if user is None:
            logger.error(f"No user named '{args.username}'")
            return 1
        print(f"User {user.username} is now {'enabled' if user.enabled else 'disabled'}")
        return 0


if __name__ == "__main__":
    sys.exit(main())
