"""
Command line entry point: run the API and do small admin chores.
"""

from __future__ import annotations

import argparse
import getpass
import json
import sys
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from paperrepo.application.container import ServiceContainer, build_container
from paperrepo.config import Settings
from paperrepo.domain.errors import RepositoryError
from paperrepo.domain.user import UserRole

# Load local .env so PAPERREPO_* settings apply to every command.
load_dotenv(find_dotenv(usecwd=True), override=False)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paperrepo",
        description="PaperRepo - research paper repository",
    )
    parser.add_argument("--db-url", help="override PAPERREPO_DB_URL")

    subparsers = parser.add_subparsers(dest="command", help="available commands")

    serve_parser = subparsers.add_parser("serve", help="run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true", help="auto reload on code changes")

    user_parser = subparsers.add_parser("create-user", help="create an approved account")
    user_parser.add_argument("email")
    user_parser.add_argument(
        "--role",
        choices=[r.value for r in UserRole],
        default=UserRole.ADMIN.value,
    )
    user_parser.add_argument("--password", help="prompted for when omitted")
    user_parser.add_argument("--first-name", default="")
    user_parser.add_argument("--last-name", default="")
    user_parser.add_argument("--department", default="")

    list_parser = subparsers.add_parser("list-requests", help="show paper access requests")
    list_parser.add_argument("--status", choices=["pending", "approved", "rejected"])
    list_parser.add_argument("--json", action="store_true", help="print JSON")

    return parser


def run_cli(args: Optional[list] = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    settings = Settings.from_env(load_env_file=False)
    if parsed.db_url:
        settings.db_url = parsed.db_url

    try:
        if parsed.command == "serve":
            return _run_serve(parsed, settings)
        container = build_container(settings)
        try:
            if parsed.command == "create-user":
                return _run_create_user(parsed, container)
            if parsed.command == "list-requests":
                return _run_list_requests(parsed, container)
        finally:
            container.close()
    except RepositoryError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


def _run_serve(parsed: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from paperrepo.api.main import create_app

    if parsed.reload:
        # Reload spawns a fresh interpreter, so the app must be importable by path.
        uvicorn.run(
            "paperrepo.api.main:create_app",
            factory=True,
            host=parsed.host,
            port=parsed.port,
            reload=True,
        )
    else:
        uvicorn.run(create_app(build_container(settings)), host=parsed.host, port=parsed.port)
    return 0


def _run_create_user(parsed: argparse.Namespace, container: ServiceContainer) -> int:
    password = parsed.password or getpass.getpass("Password: ")
    user = container.auth.create_account(
        email=parsed.email,
        password=password,
        role=parsed.role,
        profile={
            "first_name": parsed.first_name,
            "last_name": parsed.last_name,
            "department": parsed.department,
        },
    )
    print(f"created {user.role} {user.email} id={user.id}")
    return 0


def _run_list_requests(parsed: argparse.Namespace, container: ServiceContainer) -> int:
    workflow = container.workflow
    requests = workflow.list_pending() if parsed.status == "pending" else workflow.list_all()
    if parsed.status and parsed.status != "pending":
        requests = [r for r in requests if r.status == parsed.status]
    rows = workflow.with_requesters(requests)

    if parsed.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    if not rows:
        print("no requests")
        return 0
    for row in rows:
        who = (row.get("user") or {}).get("email") or row["userId"]
        print(f"{row['id']}  {row['status']:<8}  {who}  {row['paperTitle']}")
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
