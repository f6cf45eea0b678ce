import argparse
import getpass
import sys

from core.logging_setup import setup_console_logging
from lms_api.config import LOG_LEVEL
from lms_api.database import SessionLocal, init_db
from lms_api.services.auth_service import create_user, get_user_by_login
from lms_api.services.cleanup_service import run_cleanup

setup_console_logging(LOG_LEVEL)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="LMS tryout service management")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    user = sub.add_parser("create-user", help="Create a user account")
    user.add_argument("username")
    user.add_argument("email")
    user.add_argument("--password", help="Prompted for when omitted")
    user.add_argument("--name")
    user.add_argument("--admin", action="store_true", help="Grant administrator rights")

    sub.add_parser("sweep", help="Complete overdue attempts and drop expired sessions")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    init_db()

    if args.command == "init-db":
        print("Database initialized")
        return 0

    if args.command == "create-user":
        db = SessionLocal()
        try:
            if get_user_by_login(db, args.username) or get_user_by_login(db, args.email):
                print("User already exists", file=sys.stderr)
                return 1
            password = args.password or getpass.getpass("Password: ")
            user = create_user(
                db, args.username, args.email, password, name=args.name, is_admin=args.admin
            )
            print(f"Created user {user.id} ({user.username})")
        finally:
            db.close()
        return 0

    if args.command == "sweep":
        completed, removed = run_cleanup()
        print(f"Completed {completed} overdue attempts, removed {removed} expired sessions")
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
