import click

from grantscope.error import GrantscopeError
from grantscope.issues import Issue, IssueStatus
from grantscope.snapshot_loader import dump_snapshot, load_snapshot

from .cli import cli, exit_with_error
from .snapshots import print_snapshot_diff, print_sql_commands

STATUS_COLORS = {
    IssueStatus.OPEN: "yellow",
    IssueStatus.EXEMPTED: "bright_black",
    IssueStatus.RESOLVED: "green",
}


def print_issue(issue: Issue):
    click.secho(f"{issue.rule_id}: {issue.name}", fg=STATUS_COLORS[issue.status])
    click.secho(f"  ID:       {issue.id}")
    click.secho(f"  Status:   {issue.status.value}")
    for key, value in sorted(issue.data.items()):
        click.secho(f"  {key}: {value}")
    click.secho()


@cli.command()
@click.argument("snapshot_file")
@click.option("--fix", "issue_id", help="Fix the issue with the given ID.")
@click.option("--yes", help="Apply the fix without asking for confirmation.", is_flag=True)
@click.pass_context
def verify(ctx, snapshot_file, issue_id, yes):
    """
    Scan a snapshot for governance issues, and optionally fix one of them.
    """
    registry = ctx.obj["registry"]
    try:
        snapshot = load_snapshot(snapshot_file)
        if not issue_id:
            issues = registry.find_all_issues(snapshot)
        else:
            detail = registry.get_issue_detail(snapshot, issue_id.lower())
    except GrantscopeError as exc:
        exit_with_error(exc)

    if not issue_id:
        if not issues:
            click.secho("No issues found.", fg="green")
        for issue in issues:
            print_issue(issue)
        return

    print_issue(detail.issue)
    click.secho("Recommended Changes", underline=True)
    print_snapshot_diff(detail.diff)
    click.secho()
    print_sql_commands(detail.sql_commands)
    click.secho()

    if not yes and not click.confirm("Update your local file with this change?"):
        click.secho("Exit: Cancelled by user.")
        return

    result = registry.fix_issue(snapshot, detail.issue.id)
    dump_snapshot(result.snapshot, snapshot_file)
    click.secho(f"Issue {result.issue.id} is {result.issue.status.value}.", fg="green")
