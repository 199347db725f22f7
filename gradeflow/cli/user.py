"""CLI commands for managing users."""

from __future__ import annotations

import secrets

import pydantic as p
from sqlalchemy.orm import Session

import gradeflow.lib.cli as click
from gradeflow.core import di
from gradeflow.model import UserRole
from gradeflow.storage import examiner as examiner_storage
from gradeflow.storage import user as user_storage


@click.group("user")
def user():
    """Manage users."""
    ...


@user.command("create")
@click.argument("email")
@click.argument("name")
@click.option("--role", "-r", type=click.EnumType(UserRole), required=True, help="User role")
@click.option("--password", "-p", help="Password (if not provided, a random one is generated)")
@di.inject
def user_create(
    email: str,
    name: str,
    role: UserRole,
    password: str | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Create a new user.

    EMAIL is the user's email address (used for login).
    NAME is the user's display name.
    """
    generated_password = None
    if not password:
        generated_password = secrets.token_urlsafe(12)
        password = generated_password

    with session.begin():
        existing = user_storage.get(email=email, session=session)
        if existing:
            click.echo(f"Error: User with email '{email}' already exists.", err=True)
            raise SystemExit(1)

        new_user = user_storage.create(
            email=email,
            name=name,
            password=p.Secret(password),
            role=role,
            session=session,
        )

    click.echo(f"Created user: {new_user.name}")
    click.echo(f"  ID: {new_user.user_id}")
    click.echo(f"  Email: {new_user.email}")
    click.echo(f"  Role: {new_user.role.value}")
    if generated_password:
        click.echo(f"  Generated password: {generated_password}")


@user.command("show")
@click.argument("email")
@di.inject
def user_show(
    email: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Show details for a user."""
    with session.begin():
        found_user = user_storage.get(email=email, session=session)
        if not found_user:
            click.echo(f"Error: User '{email}' not found.", err=True)
            raise SystemExit(1)
        examiner = examiner_storage.get(user_id=found_user.user_id, session=session)

    click.echo(f"User: {found_user.name}")
    click.echo(f"  ID: {found_user.user_id}")
    click.echo(f"  Email: {found_user.email}")
    click.echo(f"  Role: {found_user.role.value}")
    click.echo(f"  Created: {found_user.create_time}")
    if examiner:
        click.echo(f"  Examiner: {examiner.examiner_code} ({examiner.examiner_id})")


@user.command("list")
@click.option("--role", "-r", type=click.EnumType(UserRole), help="Filter by role")
@di.inject
def user_list(
    role: UserRole | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """List users, optionally filtered by role."""
    with session.begin():
        users = user_storage.find(role=role, session=session)

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<30} {'Name':<25} {'Email':<30} {'Role':<10}")
    click.echo("-" * 95)
    for u in users:
        click.echo(f"{str(u.user_id):<30} {u.name:<25} {u.email:<30} {u.role.value:<10}")


@user.command("reset-password")
@click.argument("email")
@click.option("--password", "-p", help="New password (if not provided, a random one is generated)")
@di.inject
def user_reset_password(
    email: str,
    password: str | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Reset a user's password."""
    generated_password = None
    if not password:
        generated_password = secrets.token_urlsafe(12)
        password = generated_password

    with session.begin():
        found_user = user_storage.get(email=email, session=session)
        if not found_user:
            click.echo(f"Error: User '{email}' not found.", err=True)
            raise SystemExit(1)

        try:
            updated_user = user_storage.update(found_user.user_id, password=p.Secret(password), session=session)
        except KeyError as e:
            click.echo("Error: Failed to update password.", err=True)
            raise SystemExit(1) from e

    click.echo(f"Password reset for {updated_user.name} ({updated_user.email})")
    if generated_password:
        click.echo(f"  New password: {generated_password}")


command = user
