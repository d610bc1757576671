import click
from flask import current_app
from flask.cli import with_appcontext
from portal.models.staff import create_staff, ensure_primary_admin
from portal.utils.validation import validate_staff_data


def seed_primary_admin(app):
    """Create the primary superadmin from BOOTSTRAP_ADMIN_* settings when the store has none."""
    username = app.config.get('BOOTSTRAP_ADMIN_USERNAME')
    password = app.config.get('BOOTSTRAP_ADMIN_PASSWORD')
    if not username or not password:
        return None
    with app.app_context():
        return ensure_primary_admin(username, password, app.config.get('BOOTSTRAP_ADMIN_NAME') or "Administrator")


@click.command("create-superadmin")
@click.option("--username", prompt=True)
@click.option("--name", default="Administrator", show_default=True)
@click.password_option()
@with_appcontext
def create_superadmin_command(username, name, password):
    """Add a superadmin account. The first one created becomes the primary admin."""
    errors, cleaned = validate_staff_data("superadmin", {"name": name, "username": username, "password": password})
    if errors:
        for field, message in errors.items():
            click.echo(f"{field}: {message}", err=True)
        raise click.exceptions.Exit(1)

    staff_id, error = create_staff("superadmin", cleaned["name"], cleaned["username"], cleaned["password"],
                                   canManageAdmins=True)
    if error:
        click.echo(error, err=True)
        raise click.exceptions.Exit(1)
    current_app.logger.info(f"Created superadmin {cleaned['username']} from the command line")
    click.echo(f"Created superadmin {cleaned['username']} ({staff_id})")


def register_commands(app):
    app.cli.add_command(create_superadmin_command)
