import click
from click_default_group import DefaultGroup

from grantscope.error import GrantscopeError
from grantscope.snapshot_loader import load_snapshot
from grantscope.traversal import (
    resolve_object_users,
    resolve_user_object_access,
    resolve_user_roles,
)

from .cli import cli, exit_with_error


def format_chain(role_chain):
    return " -> ".join(role_chain)


@cli.group(cls=DefaultGroup, default="user-objects")
def query():
    """
    Answer access questions about a snapshot.
    """


@query.command("user-objects")
@click.argument("snapshot_file")
@click.argument("username")
@click.pass_context
def user_objects(ctx, snapshot_file, username):
    """List the objects a user can access and the roles that grant them."""
    settings = ctx.obj["settings"]
    try:
        snapshot = load_snapshot(snapshot_file)
        access = resolve_user_object_access(
            snapshot, username.lower(), max_depth=settings.max_role_depth
        )
    except GrantscopeError as exc:
        exit_with_error(exc)

    if not access.objects:
        click.secho(f"User {username} can not access any objects.")
    for obj in access.objects:
        click.secho(
            f"{obj.object_type} {obj.object_id} ({obj.privilege}) "
            f"via {format_chain(obj.role_chain)}"
        )


@query.command("user-roles")
@click.argument("snapshot_file")
@click.argument("username")
@click.pass_context
def user_roles(ctx, snapshot_file, username):
    """List the roles a user holds, directly or through inheritance."""
    settings = ctx.obj["settings"]
    try:
        snapshot = load_snapshot(snapshot_file)
        roles = resolve_user_roles(
            snapshot, username.lower(), max_depth=settings.max_role_depth
        )
    except GrantscopeError as exc:
        exit_with_error(exc)

    if not roles.roles:
        click.secho(f"User {username} has no roles.")
    for role in roles.roles:
        if role.parents:
            click.secho(f"{role.name} via {format_chain(role.parents)}")
        else:
            click.secho(f"{role.name} (granted directly)")


@query.command("object-users")
@click.argument("snapshot_file")
@click.argument("object_id")
@click.pass_context
def object_users(ctx, snapshot_file, object_id):
    """List the users that can access an object."""
    settings = ctx.obj["settings"]
    try:
        snapshot = load_snapshot(snapshot_file)
        result = resolve_object_users(
            snapshot, object_id.lower(), max_depth=settings.max_role_depth
        )
    except GrantscopeError as exc:
        exit_with_error(exc)

    if not result.users:
        click.secho(f"No user can access {object_id}.")
    for user in result.users:
        click.secho(
            f"{user.username} ({user.privilege}) via {format_chain(user.role_chain)}"
        )
