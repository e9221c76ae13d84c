#!/usr/bin/env python3
"""
CLI tool to manage users (staff accounts, lockouts, password resets).

Usage:
    python -m app.cli.manage_users create --email agent@example.com --first-name Jane --last-name Agent --role agent
    python -m app.cli.manage_users create --email admin@example.com --first-name Ada --last-name Admin --role admin --interactive
    python -m app.cli.manage_users list
    python -m app.cli.manage_users change-password --email admin@example.com
    python -m app.cli.manage_users deactivate --email olduser@example.com
    python -m app.cli.manage_users activate --email user@example.com

Self-service registration goes through POST /auth/register; this tool is for
operators who need to create agents/admins or act on an account directly.
"""
import argparse
import asyncio
import getpass
import secrets
import sys
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.connection import create_engine_for_url, create_session_maker, create_tables
from app.db.models import UserRole
from app.domain.exceptions import AppError
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService

MIN_PASSWORD_LENGTH = 8


@asynccontextmanager
async def session_scope(database_url: str = None):
    """Open a committed-on-success session against the configured database"""
    engine = create_engine_for_url(database_url or settings.database_url)
    async_session_maker = create_session_maker(engine)
    await create_tables(engine)

    try:
        async with async_session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            else:
                await session.commit()
    finally:
        await engine.dispose()


def prompt_password() -> str:
    """Prompt twice for a password; returns None if they differ or are too short"""
    password = getpass.getpass("Enter password: ")
    password_confirm = getpass.getpass("Confirm password: ")

    if password != password_confirm:
        print("[ERROR] Passwords do not match")
        return None

    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"[ERROR] Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return None

    return password


async def create_user(
    email: str,
    first_name: str,
    last_name: str,
    role: UserRole = UserRole.CUSTOMER,
    password: str = None,
    interactive: bool = False,
    database_url: str = None,
) -> bool:
    """Create a new user"""
    generated = False
    if interactive:
        print(f"Creating user '{email}'")
        password = prompt_password()
        if password is None:
            return False
    elif not password:
        password = secrets.token_urlsafe(16)
        generated = True
        print("ℹ️  No password provided, generating random password")
    elif len(password) < MIN_PASSWORD_LENGTH:
        print(f"[ERROR] Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return False

    try:
        async with session_scope(database_url) as session:
            result = await AuthService(UserRepository(session)).register(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                role=role,
            )
            user = result.user
    except AppError as e:
        print(f"[ERROR] {e.message}")
        return False

    print("\n" + "=" * 70)
    print("[SUCCESS] User created successfully!")
    print("=" * 70)
    print(f"  ID: {user.id}")
    print(f"  Email: {user.email}")
    print(f"  Name: {user.full_name}")
    print(f"  Role: {user.role.value}")
    if generated:
        print()
        print(f"  Password: {password}")
        print("⚠️  SAVE THIS PASSWORD - It will not be shown again!")
    print("=" * 70)
    return True


async def list_users(database_url: str = None) -> int:
    """List all users"""
    async with session_scope(database_url) as session:
        users = await UserRepository(session).list_all()

    if not users:
        print("No users found.")
        return 0

    print("\n" + "=" * 70)
    print("Users:")
    print("=" * 70)
    for user in users:
        status = "Active" if user.is_active else "Deactivated"
        print(f"  - {user.email} ({user.role.value})")
        print(f"    ID: {user.id}")
        print(f"    Name: {user.full_name}")
        print(f"    Status: {status}")
        print(f"    Created: {user.created_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        print()
    print(f"Total users: {len(users)}")
    print("=" * 70)
    return len(users)


async def _find_user_id(session: AsyncSession, email: str):
    user = await UserRepository(session).get_by_email(email)
    if not user:
        print(f"[ERROR] User '{email}' not found")
        return None
    return user.id


async def change_password(email: str, new_password: str = None, database_url: str = None) -> bool:
    """Change user password"""
    if new_password is None:
        print(f"Changing password for user '{email}'")
        new_password = prompt_password()
        if new_password is None:
            return False
    elif len(new_password) < MIN_PASSWORD_LENGTH:
        print(f"[ERROR] Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return False

    async with session_scope(database_url) as session:
        user_id = await _find_user_id(session, email)
        if user_id is None:
            return False
        await AuthService(UserRepository(session)).change_password(user_id, new_password)

    print(f"[SUCCESS] Password updated successfully for user '{email}'")
    return True


async def set_user_active(email: str, is_active: bool, database_url: str = None) -> bool:
    """Activate or deactivate a user"""
    async with session_scope(database_url) as session:
        user_id = await _find_user_id(session, email)
        if user_id is None:
            return False
        await AuthService(UserRepository(session)).set_active(user_id, is_active)

    print(f"[SUCCESS] User '{email}' {'activated' if is_active else 'deactivated'} successfully")
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Manage users of the insurance backend',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Create user command
    create_parser = subparsers.add_parser('create', help='Create a new user')
    create_parser.add_argument('--email', required=True, help='Email used to log in')
    create_parser.add_argument('--first-name', required=True, help='First name')
    create_parser.add_argument('--last-name', required=True, help='Last name')
    create_parser.add_argument(
        '--role',
        choices=[role.value for role in UserRole],
        default=UserRole.CUSTOMER.value,
        help='User role (default: customer)'
    )
    create_parser.add_argument('--password', help='Password (if not provided, will generate random)')
    create_parser.add_argument('--interactive', action='store_true', help='Prompt for password interactively')

    # List users command
    subparsers.add_parser('list', help='List all users')

    # Change password command
    change_password_parser = subparsers.add_parser('change-password', help='Change user password')
    change_password_parser.add_argument('--email', required=True, help='Email of the user')

    # Deactivate user command
    deactivate_parser = subparsers.add_parser('deactivate', help='Deactivate a user')
    deactivate_parser.add_argument('--email', required=True, help='Email of the user to deactivate')
    deactivate_parser.add_argument('--yes', action='store_true', help='Skip confirmation prompt')

    # Activate user command
    activate_parser = subparsers.add_parser('activate', help='Activate a user')
    activate_parser.add_argument('--email', required=True, help='Email of the user to activate')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Execute command
    if args.command == 'create':
        ok = asyncio.run(create_user(
            args.email, args.first_name, args.last_name,
            role=UserRole(args.role), password=args.password, interactive=args.interactive,
        ))
    elif args.command == 'list':
        asyncio.run(list_users())
        ok = True
    elif args.command == 'change-password':
        ok = asyncio.run(change_password(args.email))
    elif args.command == 'deactivate':
        if not args.yes:
            confirm = input(f"Deactivate user '{args.email}'? (yes/no): ")
            if confirm.lower() not in ['yes', 'y']:
                print("Cancelled")
                return
        ok = asyncio.run(set_user_active(args.email, False))
    elif args.command == 'activate':
        ok = asyncio.run(set_user_active(args.email, True))

    if not ok:
        sys.exit(1)


if __name__ == '__main__':
    main()
