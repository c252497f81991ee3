#!/usr/bin/env python3
"""
CLI tool to manage portal users.

Usage:
    python -m licensing.cli.manage_users create --email admin@example.com --password SecurePass123
    python -m licensing.cli.manage_users create --email admin@example.com --interactive --admin
    python -m licensing.cli.manage_users list
    python -m licensing.cli.manage_users grant-admin --email reviewer@example.com
    python -m licensing.cli.manage_users revoke-admin --email reviewer@example.com
    python -m licensing.cli.manage_users deactivate --email olduser@example.com
    python -m licensing.cli.manage_users activate --email user@example.com

Runs with the system principal, so it bypasses the per-user policy rules
(the same way the identity provisioning hook does).
"""
import argparse
import asyncio
import getpass
import secrets
import sys
from typing import List, Optional

from licensing.application.review_service import ReviewService
from licensing.db.connection import close_db, get_session_maker, init_db
from licensing.domain.entities import DomainError
from licensing.domain.unit_of_work import get_unit_of_work
from licensing.domain.value_objects import AppRole
from licensing.repositories.role_repository import RoleRepository
from licensing.services.identity_service import IdentityService, MIN_PASSWORD_LENGTH
from licensing.services.session_context import SessionContext


def _read_password(interactive: bool, password: Optional[str]) -> Optional[str]:
    if interactive:
        password = getpass.getpass("Enter password: ")
        if password != getpass.getpass("Confirm password: "):
            print("[ERROR] Passwords do not match")
            return None
        return password
    return password


async def create_user(
    email: str,
    password: Optional[str] = None,
    interactive: bool = False,
    admin: bool = False,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> int:
    """Create a user (optionally with the admin role)"""
    password = _read_password(interactive, password)
    if interactive and password is None:
        return 1

    generated = False
    if not password:
        password = secrets.token_urlsafe(16)
        generated = True
        print("ℹ️  No password provided, generating random password")

    session_maker = get_session_maker()
    async with session_maker() as session:
        user = await IdentityService.sign_up(
            session, email, password, first_name=first_name, last_name=last_name,
        )
        context = SessionContext.system()
        async with get_unit_of_work(session, context) as uow:
            if admin:
                await ReviewService().grant_role(uow, user.id, AppRole.ADMIN)
        roles = await RoleRepository(session, context).roles_for(user.id)

    print("\n" + "=" * 70)
    print("[SUCCESS] User created successfully!")
    print("=" * 70)
    print(f"Email:  {user.email}")
    if generated:
        print(f"Password: {password}")
        print("⚠️  SAVE THIS PASSWORD - It will not be shown again!")
    print(f"ID:     {user.id}")
    print(f"Roles:  {', '.join(sorted(r.value for r in roles))}")
    print("=" * 70)
    return 0


async def list_users() -> int:
    session_maker = get_session_maker()
    async with session_maker() as session:
        users = await IdentityService.list_users(session)
        if not users:
            print("No users found.")
            return 0

        roles_repo = RoleRepository(session, SessionContext.system())
        print(f"\n{'ID':<38} {'Email':<32} {'Active':<7} Roles")
        print("-" * 90)
        for user in users:
            roles = await roles_repo.roles_for(user.id)
            print(
                f"{user.id:<38} {user.email:<32} {'yes' if user.is_active else 'no':<7} "
                f"{', '.join(sorted(r.value for r in roles))}"
            )
        print(f"\nTotal: {len(users)} user(s)")
    return 0


async def set_admin(email: str, grant: bool) -> int:
    session_maker = get_session_maker()
    async with session_maker() as session:
        user = await IdentityService.get_user_by_email(session, email)
        if user is None:
            print(f"[ERROR] No user with email '{email}'")
            return 1

        service = ReviewService()
        async with get_unit_of_work(session, SessionContext.system()) as uow:
            if grant:
                await service.grant_role(uow, user.id, AppRole.ADMIN)
                print(f"[SUCCESS] Granted admin to {email}")
            elif await service.revoke_role(uow, user.id, AppRole.ADMIN):
                print(f"[SUCCESS] Revoked admin from {email}")
            else:
                print(f"ℹ️  {email} was not an admin")
    return 0


async def set_active(email: str, is_active: bool) -> int:
    session_maker = get_session_maker()
    async with session_maker() as session:
        user = await IdentityService.get_user_by_email(session, email)
        if user is None:
            print(f"[ERROR] No user with email '{email}'")
            return 1
        await IdentityService.set_active(session, user.id, is_active)
        await session.commit()
    print(f"[SUCCESS] {'Activated' if is_active else 'Deactivated'} {email}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage Business Licensing Portal users",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    create = subparsers.add_parser("create", help="Create a new user")
    create.add_argument("--email", required=True)
    create.add_argument("--password", help=f"Password (min {MIN_PASSWORD_LENGTH} chars; random if omitted)")
    create.add_argument("--interactive", "-i", action="store_true", help="Prompt for password")
    create.add_argument("--admin", action="store_true", help="Also grant the admin role")
    create.add_argument("--first-name")
    create.add_argument("--last-name")

    subparsers.add_parser("list", help="List all users")

    for name, help_text in (
        ("grant-admin", "Grant the admin role"),
        ("revoke-admin", "Revoke the admin role"),
        ("deactivate", "Deactivate a user (sign-in refused)"),
        ("activate", "Re-activate a user"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--email", required=True)

    return parser


async def run(args: argparse.Namespace) -> int:
    await init_db()
    try:
        if args.command == "create":
            return await create_user(
                args.email, args.password, args.interactive, args.admin,
                args.first_name, args.last_name,
            )
        if args.command == "list":
            return await list_users()
        if args.command in ("grant-admin", "revoke-admin"):
            return await set_admin(args.email, grant=args.command == "grant-admin")
        if args.command in ("deactivate", "activate"):
            return await set_active(args.email, is_active=args.command == "activate")
        return 1
    except DomainError as e:
        print(f"[ERROR] {e}")
        return 1
    finally:
        await close_db()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
