# Overview: Flask CLI command groups for session inspection and permission lookup.

# backend/tillflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to tillflow (PowerShell: $env:FLASK_APP="tillflow").
# - Use: python -m flask <group> <command> [options]
#
# Staff sessions:
# - python -m flask sessions list --shop-id 1
#   List clocked-in staff with device, role and idle state.
# - python -m flask sessions sweep-idle [--shop-id 1]
#   Release every session past its idle timeout.
# - python -m flask sessions release 1 7 --reason "manager override"
#   Clock a staff member out.
#
# Permission lookup:
# - python -m flask perms list [--category sales]
#   List the permission catalog.
# - python -m flask perms check waiter mark_served
#   Check whether a role holds an action by default.
# - python -m flask perms transitions chef
#   Show the order transition edges a role may drive.

import click
from flask.cli import with_appcontext

from .permissions import (
    PERMISSION_DEFINITIONS,
    allowed_transitions,
    get_permissions_by_category,
    has_full_access,
    has_permission,
    parse_role,
    validate_permission_code,
)
from .services.session_registry import get_registry


@click.group('sessions')
def sessions_group():
    """Staff session inspection and maintenance commands."""


@sessions_group.command('list')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@with_appcontext
def list_sessions_cli(shop_id):
    """List clocked-in staff for a shop."""
    registry = get_registry()
    sessions = registry.active_sessions(shop_id)
    policy = registry.policy_for(shop_id)

    click.echo(f"\n{'Staff':<8} {'Role':<15} {'Device':<25} {'Idle state'}")
    click.echo("-"*70)
    for session in sessions:
        role = session.role.value if session.role else "-"
        state = registry.idle_state(session, policy=policy)
        click.echo(f"{session.staff_id:<8} {role:<15} {session.device_id:<25} {state.value}")

    click.echo(f"\n Total: {len(sessions)} sessions\n")


@sessions_group.command('sweep-idle')
@click.option('--shop-id', type=int, default=None, help='Limit to one shop')
@with_appcontext
def sweep_idle_cli(shop_id):
    """Release sessions past their idle timeout."""
    released = get_registry().sweep_idle(shop_id)
    for session in released:
        click.echo(f"PASS Released staff {session.staff_id} at shop {session.shop_id} ({session.device_id})")
    click.echo(f"\n Released: {len(released)} sessions\n")


@sessions_group.command('release')
@click.argument('shop_id', type=int)
@click.argument('staff_id', type=int)
@click.option('--reason', default='manager override', help='Recorded release reason')
@with_appcontext
def release_session_cli(shop_id, staff_id, reason):
    """Clock a staff member out."""
    if get_registry().release(shop_id, staff_id, reason):
        click.echo(f"PASS Released staff {staff_id} at shop {shop_id}")
    else:
        click.echo(f"WARN  Staff {staff_id} has no active session at shop {shop_id}")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--category', help='Filter by category')
def list_permissions_cli(category):
    """List the permission catalog, optionally filtered by category."""
    if category:
        perms = get_permissions_by_category(category.upper())
        if not perms:
            click.echo(f"FAIL Category '{category}' not found")
            return
    else:
        perms = list(PERMISSION_DEFINITIONS)

    current_category = None
    for code, name, _description, perm_category in perms:
        if perm_category != current_category:
            if current_category:
                click.echo("")
            click.echo(f"CATEGORY {perm_category}")
            click.echo("-"*80)
            current_category = perm_category
        click.echo(f"  {code:<28} {name}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('check')
@click.argument('role_name')
@click.argument('permission_code')
def check_permission_cli(role_name, permission_code):
    """Check if a role holds a permission by default."""
    role = parse_role(role_name)
    if role is None:
        click.echo(f"FAIL Role '{role_name}' not found")
        return
    if not validate_permission_code(permission_code):
        click.echo(f"WARN  '{permission_code}' is not in the permission catalog")

    if has_permission(role, permission_code):
        suffix = " (full access)" if has_full_access(role) else ""
        click.echo(f"PASS Role '{role.value}' HAS permission '{permission_code}'{suffix}")
    else:
        click.echo(f"FAIL Role '{role.value}' DOES NOT HAVE permission '{permission_code}'")


@perms_group.command('transitions')
@click.argument('role_name')
def transitions_cli(role_name):
    """Show the order transition edges a role may drive."""
    role = parse_role(role_name)
    if role is None:
        click.echo(f"FAIL Role '{role_name}' not found")
        return

    table = allowed_transitions(role)
    for current, targets in table.items():
        click.echo(f"  {current.value:<20} -> {', '.join(sorted(t.value for t in targets))}")
    click.echo(f"\n Total: {sum(len(t) for t in table.values())} edges\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(sessions_group)
    app.cli.add_command(perms_group)
