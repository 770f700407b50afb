"""CLI interface for the Basic CLI."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import BasicClient
from .auth import TokenStore
from .auth import login as oauth_login
from .auth import logout as oauth_logout
from .config import MESSAGES, config
from .config_templates import create_config_file, read_existing_project_id
from .exceptions import BasicCliError, BasicConfigError, format_error, handle_error
from .local_schema import LocalSchemaAccessor, find_config_file
from .models import Project, Team
from .output import OutputFormatter
from .sync import (
    PullOrchestrator,
    PushOrchestrator,
    SchemaStatus,
    StatusAnalyzer,
    StatusReport,
    StatusReporter,
    SyncOrchestrator,
    SyncPhase,
)
from .utils import (
    find_similar_commands,
    format_date,
    generate_random_team_name,
    generate_slug,
    get_version,
)

logger = logging.getLogger(__name__)

DIR_OPTION_HELP = "Directory containing the basic.config file (default: current)"


class BasicGroup(click.Group):
    """Command group that suggests similar commands for typos."""

    def resolve_command(self, ctx: click.Context, args: list[str]) -> Any:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            name = args[0] if args else ""
            similar = find_similar_commands(name)
            if not similar:
                raise
            hint = "\n".join(f"  basic {cmd}" for cmd in similar)
            raise click.UsageError(
                f"{e.message}\n\nDid you mean one of these?\n{hint}", ctx
            ) from e


@click.group(cls=BasicGroup)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=get_version(), prog_name="basic")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """Basic - manage your Basic projects and sync their schemas."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("basic_cli").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


# =============================================================================
# Session helpers
# =============================================================================


def _fail(ctx: Any, error: BaseException) -> None:
    """Print an error with its suggestions and exit with status 1."""
    out: OutputFormatter = ctx.obj["out"]
    out.error(format_error(handle_error(error)))
    ctx.exit(1)


def _token_store(ctx: Any) -> TokenStore:
    """Create a token store that is closed with the command context."""
    store = TokenStore()
    ctx.call_on_close(store.close)
    return store


def _connect(ctx: Any, require_login: bool = True) -> BasicClient:
    """Create an API client after the connectivity and login checks.

    The offline check runs before the login check.
    """
    out: OutputFormatter = ctx.obj["out"]
    store = _token_store(ctx)
    client = BasicClient(token_store=store)
    ctx.call_on_close(client.close)

    if not client.is_online():
        out.error(MESSAGES["offline"])
        ctx.exit(1)

    if require_login:
        try:
            token = store.get()
        except BasicCliError as e:
            _fail(ctx, e)
        if token is None:
            out.error(MESSAGES["logged_out"])
            ctx.exit(1)
    return client


# =============================================================================
# Account commands
# =============================================================================


@main.command()
@click.pass_context
def login(ctx: Any) -> None:
    """Log in to your Basic account in the browser."""
    out: OutputFormatter = ctx.obj["out"]
    _connect(ctx, require_login=False)
    store = _token_store(ctx)

    try:
        if store.load() is not None:
            out.info("Already logged in.")
            out.info("Run 'basic logout' first to switch accounts")
            return
        out.info("Opening browser for login...")
        oauth_login(store, echo=out.print)
    except BasicCliError as e:
        _fail(ctx, e)
    out.success("Login successful!")
    out.info(MESSAGES["welcome"])


@main.command()
@click.pass_context
def logout(ctx: Any) -> None:
    """Log out and delete the stored token."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        removed = oauth_logout(_token_store(ctx))
    except OSError as e:
        _fail(ctx, e)
    if removed:
        out.success("Logged out successfully")
    else:
        out.info("Already logged out")


@main.command()
@click.pass_context
def account(ctx: Any) -> None:
    """Show the logged-in account."""
    out: OutputFormatter = ctx.obj["out"]
    _connect(ctx)

    try:
        user = _token_store(ctx).get_user_info()
    except BasicCliError as e:
        _fail(ctx, e)

    if out.json_output:
        out.output_json(user.to_dict())
    else:
        out.print(f"Logged in user: {user.email}")


# =============================================================================
# Projects and teams
# =============================================================================


def _project_rows(projects: list[Project]) -> list[dict[str, Any]]:
    return [
        {
            "id": p.id,
            "name": p.name,
            "team": p.team_name or p.team_slug,
            "created": format_date(p.created_at),
        }
        for p in projects
    ]


@main.command()
@click.pass_context
def projects(ctx: Any) -> None:
    """List your projects."""
    out: OutputFormatter = ctx.obj["out"]
    client = _connect(ctx)

    try:
        project_list = client.get_projects()
    except BasicCliError as e:
        _fail(ctx, e)

    if not project_list and not out.json_output:
        out.info("No projects found")
        out.info("Run 'basic init' to create your first project")
        return

    out.output_table(
        _project_rows(project_list),
        ["id", "name", "team"],
        {"id": "ID", "name": "Name", "team": "Team"},
    )


@main.command()
@click.argument("action", required=False, type=click.Choice(["new"]))
@click.pass_context
def teams(ctx: Any, action: Optional[str]) -> None:
    """List your teams, or create one with 'basic teams new'."""
    out: OutputFormatter = ctx.obj["out"]
    client = _connect(ctx)

    if action == "new":
        _create_team(ctx, client)
        return

    try:
        team_list = client.get_teams()
    except BasicCliError as e:
        _fail(ctx, e)

    if not team_list and not out.json_output:
        out.info("No teams found")
        out.info("Run 'basic teams new' to create a team")
        return

    out.output_table(
        [
            {"id": t.id, "name": t.name, "role": t.display_role, "slug": t.slug}
            for t in team_list
        ],
        ["id", "name", "role"],
        {"id": "ID", "name": "Name", "role": "Role"},
    )


def _create_team(ctx: Any, client: BasicClient) -> Team:
    out: OutputFormatter = ctx.obj["out"]
    name = click.prompt("Team name", default=generate_random_team_name()).strip()
    slug = click.prompt("Team slug", default=generate_slug(name)).strip()
    slug = generate_slug(slug)
    if not name or not slug:
        _fail(ctx, BasicConfigError("Team name and slug cannot be empty"))

    try:
        if not client.check_team_slug_availability(slug):
            _fail(
                ctx,
                BasicConfigError(
                    f"Team slug '{slug}' is already taken",
                    ["Choose a different team name or slug"],
                ),
            )
        team = client.create_team(name, slug)
    except BasicCliError as e:
        _fail(ctx, e)

    if out.json_output:
        out.output_json(team.to_dict())
    else:
        out.success(f"Team created: {team.name} ({team.slug})")
    return team


# =============================================================================
# init
# =============================================================================


def _choose(label: str, options: list[str]) -> int:
    """Prompt for one of several numbered options; returns its index."""
    for i, option in enumerate(options, start=1):
        click.echo(f"  {i}. {option}")
    choice = click.prompt(label, type=click.IntRange(1, len(options)), default=1)
    return choice - 1


def _pick_team(client: BasicClient) -> Team:
    team_list = client.get_teams()
    if not team_list:
        raise BasicConfigError(
            "No teams found", ["Create a team first with 'basic teams new'"]
        )
    if len(team_list) == 1:
        return team_list[0]
    index = _choose("Select a team", [f"{t.name} ({t.slug})" for t in team_list])
    return team_list[index]


def _pick_project(client: BasicClient, project_id: Optional[str]) -> Project:
    if project_id:
        return client.get_project(project_id)
    project_list = client.get_projects()
    if not project_list:
        raise BasicConfigError(
            "No projects found", ["Run 'basic init --new' to create a project"]
        )
    index = _choose("Select a project", [f"{p.name} ({p.id})" for p in project_list])
    return project_list[index]


@main.command()
@click.option("--new", "mode", flag_value="new", help="Create a new project")
@click.option("--existing", "mode", flag_value="existing", help="Import an existing project")
@click.option("--name", help="Name of the new project")
@click.option("--project", "project_id", help="ID of an existing project to import")
@click.option("--ts", "template", flag_value="typescript", help="Create basic.config.ts")
@click.option("--js", "template", flag_value="javascript", help="Create basic.config.js")
@click.option(
    "--no-config", "template", flag_value="none", help="Do not create a config file"
)
@click.option(
    "--dir",
    "target_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help=DIR_OPTION_HELP,
)
@click.pass_context
def init(
    ctx: Any,
    mode: Optional[str],
    name: Optional[str],
    project_id: Optional[str],
    template: Optional[str],
    target_dir: Optional[Path],
) -> None:
    """Create a new project or import an existing one.

    Writes a basic.config.ts (or .js with --js) holding the project schema.
    """
    out: OutputFormatter = ctx.obj["out"]
    client = _connect(ctx)
    template = template or "typescript"
    if mode is None:
        if project_id:
            mode = "existing"
        elif name:
            mode = "new"
        else:
            mode = click.prompt(
                "Create a new project or import an existing one?",
                type=click.Choice(["new", "existing"]),
                default="new",
            )

    try:
        existing_config = find_config_file(target_dir)
        if template != "none" and existing_config is not None:
            existing_id = read_existing_project_id(existing_config)
            if existing_id:
                raise BasicConfigError(
                    f"{existing_config.name} already exists for project {existing_id}",
                    ["Run 'basic status' to check the schema of this project"],
                )

        schema = None
        if mode == "new":
            project_name = name or click.prompt("Project name")
            team = _pick_team(client)
            project = client.create_project(
                project_name, generate_slug(project_name), team.id
            )
            out.success(f"Project created: {project.name}")
        else:
            project = _pick_project(client, project_id)
            remote = client.get_project_schema(project.id)
            schema = remote.to_dict() if remote is not None else None

        config_path = create_config_file(template, project.id, target_dir, schema=schema)
    except BasicCliError as e:
        _fail(ctx, e)

    out.print_summary(
        "Project Initialized",
        [
            ("Project", project.name),
            ("Project ID", project.id),
            ("Config file", str(config_path) if config_path else "none"),
        ],
    )
    if config_path:
        out.info("Run 'basic status' to check your schema")


# =============================================================================
# Schema sync
# =============================================================================


def _print_validation_errors(out: OutputFormatter, errors: list) -> None:
    for error in errors:
        location = f" at {error.instance_path}" if error.instance_path else ""
        out.warning(f"  - {error.message}{location}")


def _render_status(out: OutputFormatter, report: StatusReport) -> None:
    if out.json_output:
        out.output_json(report.to_dict())
        return

    result = report.result
    if result is not None and result.status != SchemaStatus.NO_SCHEMA:
        out.print_summary(
            "Schema Status",
            [
                ("Project ID", result.project_id),
                ("Local version", str(result.local_version)),
                ("Remote version", str(result.remote_version)),
                ("Status", result.status.value),
            ],
        )
        out.print()

    if report.error is not None:
        out.error(f"Error: {report.error}")
    elif result is not None:
        for line in result.message:
            out.print(line)
        _print_validation_errors(out, result.validation_errors)

    if report.suggestions:
        out.info("\nNext steps:")
        for suggestion in report.suggestions:
            out.info(f"  - {suggestion}")


@main.command()
@click.option(
    "--dir",
    "target_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help=DIR_OPTION_HELP,
)
@click.pass_context
def status(ctx: Any, target_dir: Optional[Path]) -> None:
    """Show how the local schema relates to the remote one."""
    out: OutputFormatter = ctx.obj["out"]
    client = _connect(ctx)

    analyzer = StatusAnalyzer(client, LocalSchemaAccessor(target_dir))
    report = StatusReporter(analyzer).run()
    _render_status(out, report)
    ctx.exit(report.exit_code)


def _run_sync(ctx: Any, orchestrator: SyncOrchestrator, yes: bool, verb: str) -> None:
    """Drive a push or pull orchestrator from the terminal."""
    out: OutputFormatter = ctx.obj["out"]
    declined = False
    needs_yes = False

    def ask(orch: SyncOrchestrator) -> Optional[bool]:
        nonlocal declined, needs_yes
        for line in orch.message:
            out.info(line)
        if yes:
            return True
        if out.json_output:
            # a prompt would break the JSON document on stdout
            needs_yes = True
            return None
        out.warning(f"{orch.confirmation_title}: {orch.confirmation_message}")
        try:
            answer = click.confirm("Continue?", default=False)
        except click.Abort:
            declined = True
            return None
        declined = not answer
        return answer

    phase = orchestrator.run(ask)
    result = orchestrator.status_result

    if out.json_output:
        out.output_json(
            {
                "phase": phase.value,
                "status": result.status.value if result else None,
                "message": orchestrator.message,
                "validation_errors": [
                    e.to_dict() for e in (result.validation_errors if result else [])
                ],
                "result": (
                    {
                        "project_id": orchestrator.result.project_id,
                        "old_version": orchestrator.result.old_version,
                        "new_version": orchestrator.result.new_version,
                        "file_path": str(orchestrator.result.file_path),
                    }
                    if orchestrator.result
                    else None
                ),
                "error": (
                    f"Confirmation required: rerun with --json {verb} --yes"
                    if needs_yes
                    else orchestrator.error
                ),
            }
        )
        ctx.exit(1 if needs_yes else orchestrator.exit_code)
    elif phase == SyncPhase.SUCCESS and orchestrator.result is not None:
        sync = orchestrator.result
        out.success(
            f"Schema {verb}ed successfully! "
            f"Version {sync.old_version} -> {sync.new_version}"
        )
        out.info(f"Config file: {sync.file_path}")
    elif phase == SyncPhase.ERROR:
        out.error(f"Error: {orchestrator.error}")
    elif declined:
        out.info(f"{verb.capitalize()} cancelled")
    else:
        for line in orchestrator.message:
            out.print(line)
        if result is not None:
            _print_validation_errors(out, result.validation_errors)

    ctx.exit(orchestrator.exit_code)


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Push without asking for confirmation")
@click.option(
    "--dir",
    "target_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help=DIR_OPTION_HELP,
)
@click.pass_context
def push(ctx: Any, yes: bool, target_dir: Optional[Path]) -> None:
    """Publish local schema changes to the remote project."""
    client = _connect(ctx)
    analyzer = StatusAnalyzer(client, LocalSchemaAccessor(target_dir))
    _run_sync(ctx, PushOrchestrator(analyzer), yes, "push")


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Pull without asking for confirmation")
@click.option(
    "--dir",
    "target_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help=DIR_OPTION_HELP,
)
@click.pass_context
def pull(ctx: Any, yes: bool, target_dir: Optional[Path]) -> None:
    """Overwrite the local schema with the remote one."""
    client = _connect(ctx)
    analyzer = StatusAnalyzer(client, LocalSchemaAccessor(target_dir))
    _run_sync(ctx, PullOrchestrator(analyzer), yes, "pull")


# =============================================================================
# Misc
# =============================================================================


@main.command()
@click.pass_context
def version(ctx: Any) -> None:
    """Show the installed version and check for updates."""
    out: OutputFormatter = ctx.obj["out"]
    current = get_version()
    latest: Optional[str] = None

    client = BasicClient(token_store=_token_store(ctx))
    ctx.call_on_close(client.close)
    try:
        latest = client.check_latest_release()
    except BasicCliError as e:
        logger.debug(f"Update check failed: {e}")
        out.warning("Could not check for updates")

    if out.json_output:
        out.output_json({"version": current, "latest": latest})
        return

    out.print(f"basic-cli version {current}")
    if latest and latest != current:
        out.info(f"A new version is available: {latest}")
        out.info("Run 'pip install --upgrade basic-cli' to update")


@main.command()
@click.pass_context
def debug(ctx: Any) -> None:
    """Show where the CLI keeps its files."""
    out: OutputFormatter = ctx.obj["out"]
    config_dir = config.get_config_dir()
    if out.json_output:
        out.output_json(
            {
                "config_dir": str(config_dir),
                "token_file": str(config.get_token_path()),
                "api_url": config.api_url,
                "logged_in": config.is_logged_in(),
            }
        )
        return
    out.print(f"Basic CLI config directory: {config_dir}")
    out.print(f"API URL: {config.api_url}")
    out.print(f"Token file present: {'yes' if config.is_logged_in() else 'no'}")


@main.command("help")
@click.pass_context
def help_command(ctx: Any) -> None:
    """Show this message."""
    click.echo(main.get_help(ctx.parent))


if __name__ == "__main__":
    main()
