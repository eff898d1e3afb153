"""Administrative command line for ExpenseFlow."""

from __future__ import annotations

import functools

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .errors import ExpenseFlowError
from .logging_config import setup_logging
from .services import reports
from .services.identity import SEED_ADMIN_ID


def _admin_context() -> AppContext:
    """Load the stores with the seeded administrator as the active identity."""

    config = BaseConfig()
    setup_logging(config)
    app = create_app_context(config)
    admin = app.identity.get(SEED_ADMIN_ID)
    if admin is None:
        raise click.ClickException("The built-in administrator account is missing")
    app.session.sign_in(admin)
    return app


def _report_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ExpenseFlowError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper


@click.group()
def main() -> None:
    """Manage users, expenses and notifications in the local store."""


@main.command("init")
def init_store() -> None:
    """Create the database and seed the administrator account."""

    app = _admin_context()
    click.echo(f"Store ready at {app.config.DATABASE_URL}")
    click.echo(f"Administrator: {app.config.ADMIN_EMAIL}")


@main.command("users")
@click.option("--pending", is_flag=True, default=False, help="Only accounts awaiting approval")
def list_users(pending: bool) -> None:
    """List user accounts."""

    app = _admin_context()
    users = app.identity.pending_users() if pending else app.identity.users
    for user in users:
        click.echo(f"{user.id}\t{user.email}\t{user.full_name}\t{user.role}\t{user.status}")


@main.command("approve-user")
@click.argument("user_id")
@_report_errors
def approve_user(user_id: str) -> None:
    """Approve a pending account."""

    app = _admin_context()
    app.workflow.approve_user(user_id)
    click.echo(f"Approved {user_id}")


@main.command("reject-user")
@click.argument("user_id")
@_report_errors
def reject_user(user_id: str) -> None:
    """Reject (remove) a pending account."""

    app = _admin_context()
    app.workflow.reject_user(user_id)
    click.echo(f"Rejected {user_id}")


@main.command("reset-password")
@click.argument("email")
@_report_errors
def reset_password(email: str) -> None:
    """Replace an account's password with a temporary one and print it."""

    app = _admin_context()
    event = app.identity.reset_password(email)
    app.dispatcher.dispatch(event)
    click.echo(f"Temporary password for {email}: {event.temporary_password}")


@main.command("expenses")
@click.option("--pending", is_flag=True, default=False, help="Only expenses awaiting approval")
def list_expenses(pending: bool) -> None:
    """List approved (or pending) expenses across all users."""

    app = _admin_context()
    items = app.expenses.pending_for_admin() if pending else app.expenses.all_visible()
    for expense in items:
        click.echo(
            f"{expense.id}\t{expense.date}\t{expense.user_email}\t"
            f"{expense.item_name}\t{expense.amount:.2f}\t{expense.status}"
        )


@main.command("notifications")
@click.option("--unread", is_flag=True, default=False, help="Only unread notifications")
def list_notifications(unread: bool) -> None:
    """Show the notification inbox, newest first."""

    app = _admin_context()
    items = app.notifications.unread() if unread else app.notifications.notifications
    for item in items:
        marker = " " if item.read else "*"
        click.echo(f"{marker} {item.date}\t{item.type}\t{item.message}")
    click.echo(f"{app.notifications.unread_count} unread")


@main.command("report")
@click.option(
    "--range",
    "time_range",
    type=click.Choice(reports.TIME_RANGES),
    default="month",
    show_default=True,
)
def report(time_range: str) -> None:
    """Summarize approved expenses for a time range."""

    app = _admin_context()
    items = reports.filter_by_range(app.expenses.all_visible(), time_range)
    summary = reports.summarize(items)
    click.echo(f"Total: {summary.total:.2f} across {summary.count} expense(s)")
    click.echo(f"Average: {summary.average:.2f}")
    for entry in reports.totals_by_year_level(items):
        click.echo(f"  {entry['name']}: {entry['value']:.2f}")


if __name__ == "__main__":  # pragma: no cover
    main()
