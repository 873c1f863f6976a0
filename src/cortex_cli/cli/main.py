"""Command-line interface for cortex."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Sequence

from cortex_cli.cli.config import (
    CONFIG_DIR_ENV_VAR,
    DEFAULT_PROFILE_NAME,
    LegacyConfigError,
    default_config,
    get_config_dir,
    load_personal_access_config,
    parse_personal_access_config,
    read_config,
)
from cortex_cli.cli.output import (
    load_definition,
    parse_object,
    print_error,
    print_json,
    print_rows,
)
from cortex_cli.cli.profiles import TOKEN_ENV_VAR, URL_ENV_VAR, ResolvedProfile, load_profile
from cortex_cli.client import CortexClient, load_http_settings
from cortex_cli.compatibility import SKIP_COMPAT_ENV_VAR, compat_check_disabled, get_compatibility
from cortex_cli.crypto.jwk import public_jwk
from cortex_cli.duration import DEFAULT_TTL
from cortex_cli.errors import (
    AuthenticationError,
    ConfigNotFoundError,
    ConfigurationError,
    CortexRequestError,
    CortexUnavailableError,
    CredentialError,
    IncompatibleVersionError,
    ProfileNotFoundError,
    ValidationError,
)
from cortex_cli.resources import Connections, Content, ListOptions, Projects, Secrets
from cortex_cli.uploads import (
    DEFAULT_UPLOAD_CONCURRENCY,
    UploadFile,
    UploadOutcome,
    collect_upload_files,
    human_readable_file_size,
    run_bounded,
)
from cortex_cli.useragent import cli_version

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

_Handler = Callable[..., int]

_LOG_HANDLER_NAME = "cortex_cli"


def _add_profile_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--profile", default=None, help="The profile to use")


def _add_project_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--project",
        default=None,
        help="The project to use (default: the profile's project)",
    )


def _add_json_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        nargs="?",
        const="",
        default=None,
        metavar="QUERY",
        help="Output results as JSON, optionally filtered by a JMESPath query",
    )


def _add_list_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--filter", default=None, help="A JSON filter applied server side")
    parser.add_argument("--limit", type=int, default=20, help="Limit number of records")
    parser.add_argument("--skip", type=int, default=0, help="Skip number of records")
    parser.add_argument(
        "--sort",
        default=None,
        help='A JSON sort specification, e.g. \'{"updatedAt": -1}\'',
    )


def _add_remote_args(parser: argparse.ArgumentParser, *, project: bool = True) -> None:
    _add_profile_arg(parser)
    if project:
        _add_project_arg(parser)
    parser.add_argument(
        "--no-compat",
        action="store_true",
        help=f"Skip the server compatibility check (or set ${SKIP_COMPAT_ENV_VAR})",
    )


def _add_definition_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("definition_file", help="JSON or YAML definition file")
    parser.add_argument(
        "-y",
        "--yaml",
        action="store_true",
        help="Parse the definition file as YAML",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cortex", description="Cortex CLI")
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"cortex-cli {cli_version()}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log HTTP requests and responses to stderr",
    )

    sub = parser.add_subparsers(dest="command")

    configure = sub.add_parser("configure", help="Configure the Cortex CLI")
    configure.add_argument(
        "--file",
        dest="pat_file",
        default=None,
        help="Personal Access Config JSON file downloaded from the Cortex Console",
    )
    configure.add_argument(
        "--profile",
        dest="configure_profile",
        default=None,
        help="The profile to configure (default: current profile or 'default')",
    )
    configure.add_argument(
        "--project",
        dest="configure_project",
        default=None,
        help="Default project for the profile",
    )
    configure_sub = configure.add_subparsers(dest="configure_command")
    configure_sub.add_parser("list", help="List configured profiles")
    configure_describe = configure_sub.add_parser("describe", help="Describe a configured profile")
    configure_describe.add_argument("profile_name", nargs="?", default=None)
    _add_json_arg(configure_describe)
    configure_set_profile = configure_sub.add_parser("set-profile", help="Set the current profile")
    configure_set_profile.add_argument("profile_name")
    configure_set_project = configure_sub.add_parser(
        "set-project", help="Set the default project of a profile"
    )
    configure_set_project.add_argument("project_name")
    _add_profile_arg(configure_set_project)
    configure_token = configure_sub.add_parser("token", help="Print a freshly signed bearer token")
    configure_token.add_argument(
        "--ttl",
        default=DEFAULT_TTL,
        help="Token lifetime such as 30m, 12h or 7d (default: 1d)",
    )
    _add_profile_arg(configure_token)
    configure_env = configure_sub.add_parser(
        "env", help="Show environment settings used by the CLI"
    )
    _add_json_arg(configure_env)

    projects = sub.add_parser("projects", help="Work with Cortex projects")
    projects_sub = projects.add_subparsers(dest="projects_command")
    projects_list = projects_sub.add_parser("list", help="List projects")
    _add_remote_args(projects_list, project=False)
    _add_list_args(projects_list)
    _add_json_arg(projects_list)
    projects_describe = projects_sub.add_parser("describe", help="Describe a project")
    projects_describe.add_argument("name")
    _add_remote_args(projects_describe, project=False)
    _add_json_arg(projects_describe)
    projects_save = projects_sub.add_parser("save", help="Save a project definition")
    _add_definition_args(projects_save)
    _add_remote_args(projects_save, project=False)
    projects_delete = projects_sub.add_parser("delete", help="Delete a project")
    projects_delete.add_argument("name")
    _add_remote_args(projects_delete, project=False)

    connections = sub.add_parser("connections", help="Work with Cortex connections")
    connections_sub = connections.add_subparsers(dest="connections_command")
    connections_list = connections_sub.add_parser("list", help="List connections")
    _add_remote_args(connections_list)
    _add_list_args(connections_list)
    _add_json_arg(connections_list)
    connections_describe = connections_sub.add_parser("describe", help="Describe a connection")
    connections_describe.add_argument("name")
    _add_remote_args(connections_describe)
    _add_json_arg(connections_describe)
    connections_save = connections_sub.add_parser("save", help="Save a connection definition")
    _add_definition_args(connections_save)
    _add_remote_args(connections_save)
    connections_delete = connections_sub.add_parser("delete", help="Delete a connection")
    connections_delete.add_argument("name")
    _add_remote_args(connections_delete)

    secrets = sub.add_parser("secrets", help="Work with Cortex secrets")
    secrets_sub = secrets.add_subparsers(dest="secrets_command")
    secrets_list = secrets_sub.add_parser("list", help="List secret names")
    _add_remote_args(secrets_list)
    _add_json_arg(secrets_list)
    secrets_describe = secrets_sub.add_parser("describe", help="Describe a secret")
    secrets_describe.add_argument("name")
    _add_remote_args(secrets_describe)
    _add_json_arg(secrets_describe)
    secrets_save = secrets_sub.add_parser("save", help="Save a secret value")
    secrets_save.add_argument("name")
    secrets_save.add_argument("value", nargs="?", default=None)
    secrets_save.add_argument(
        "--data-file",
        default=None,
        help="JSON or YAML file holding the secret value",
    )
    secrets_save.add_argument("-y", "--yaml", action="store_true", help="Parse --data-file as YAML")
    _add_remote_args(secrets_save)
    secrets_delete = secrets_sub.add_parser("delete", help="Delete a secret")
    secrets_delete.add_argument("name")
    _add_remote_args(secrets_delete)

    content = sub.add_parser("content", help="Work with Cortex managed content")
    content_sub = content.add_subparsers(dest="content_command")
    content_list = content_sub.add_parser("list", help="List content keys")
    _add_remote_args(content_list)
    _add_json_arg(content_list)
    content_upload = content_sub.add_parser("upload", help="Upload a file or directory")
    content_upload.add_argument("content_key")
    content_upload.add_argument("file_path")
    content_upload.add_argument(
        "--recursive",
        action="store_true",
        help="Upload every file under a directory, keyed by relative path",
    )
    content_upload.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_UPLOAD_CONCURRENCY,
        help=f"Maximum uploads in flight with --recursive (default: {DEFAULT_UPLOAD_CONCURRENCY})",
    )
    content_upload.add_argument(
        "--content-type",
        default="application/octet-stream",
        help="Content type sent with the upload",
    )
    _add_remote_args(content_upload)
    content_download = content_sub.add_parser("download", help="Download content")
    content_download.add_argument("content_key")
    content_download.add_argument(
        "--output",
        default=None,
        help="Destination file (default: key basename in the current directory)",
    )
    _add_remote_args(content_download)
    content_delete = content_sub.add_parser("delete", help="Delete content")
    content_delete.add_argument("content_key")
    _add_remote_args(content_delete)

    return parser


def _configure_logging(debug: bool, stderr) -> None:
    if not debug:
        return
    logger = logging.getLogger("cortex_cli")
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        if handler.get_name() == _LOG_HANDLER_NAME:
            handler.setStream(stderr)
            return
    handler = logging.StreamHandler(stderr)
    handler.set_name(_LOG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(name)s %(levelname)s %(message)s"))
    logger.addHandler(handler)


def _read_pasted_json(stdin) -> str:
    """Read a pasted JSON document, which may span several lines."""
    buffer = ""
    for line in iter(stdin.readline, ""):
        if not line.strip():
            break
        buffer += line
        try:
            json.loads(buffer)
        except ValueError:
            continue
        break
    return buffer


# configure


def _run_configure(*, args, stdout, stderr, stdin) -> int:
    try:
        config = read_config()
    except LegacyConfigError as exc:
        print(str(exc), file=stderr)
        config = None

    profile_name = args.configure_profile or (config.current_profile if config else None)
    profile_name = profile_name or DEFAULT_PROFILE_NAME
    print(f"Configuring profile {profile_name}:", file=stdout)

    if args.pat_file:
        credential = load_personal_access_config(args.pat_file)
    else:
        print("Cortex Personal Access Config: ", end="", file=stdout, flush=True)
        raw = _read_pasted_json(stdin)
        if not raw.strip():
            raise CredentialError("a Personal Access Config is required")
        credential = parse_personal_access_config(raw)

    if config is None:
        config = default_config()
    existing = config.profiles.get(profile_name)
    project = args.configure_project or (existing.project if existing else None)
    config.set_profile(profile_name, credential, project)
    config.set_current_profile(profile_name)
    config.save()
    print(f"Configuration for profile {profile_name} saved.", file=stdout)
    return EXIT_SUCCESS


def _require_config():
    config = read_config()
    if config is None:
        raise ConfigNotFoundError('Configuration not found. Please run "cortex configure".')
    return config


def _run_configure_list(*, args, stdout, stderr, stdin) -> int:
    config = _require_config()
    for name in config.profiles:
        if name == config.current_profile:
            print(f"{name} [active]", file=stdout)
        else:
            print(name, file=stdout)
    return EXIT_SUCCESS


def _run_configure_describe(*, args, stdout, stderr, stdin) -> int:
    config = _require_config()
    name = args.profile_name or config.current_profile
    if not name:
        raise ProfileNotFoundError(
            'No current profile is set. Run "cortex configure set-profile <name>".'
        )
    profile = config.get_profile(name)
    if profile is None:
        raise ProfileNotFoundError(
            f'No profile named "{name}". Run "cortex configure --profile {name}" to create it.',
            profile_name=name,
        )
    if args.json is not None:
        payload = {"name": profile.name, **profile.to_dict()}
        payload["jwk"] = public_jwk(profile.jwk)
        print_json(payload, stdout, query=args.json)
        return EXIT_SUCCESS
    print(f"Profile: {profile.name}", file=stdout)
    print(f"Cortex URL: {profile.url}", file=stdout)
    print(f"Username: {profile.username}", file=stdout)
    print(f"Issuer: {profile.issuer}", file=stdout)
    print(f"Project: {profile.project or '-'}", file=stdout)
    return EXIT_SUCCESS


def _run_configure_set_profile(*, args, stdout, stderr, stdin) -> int:
    config = _require_config()
    config.set_current_profile(args.profile_name)
    config.save()
    print(f"Current profile set to {args.profile_name}", file=stdout)
    return EXIT_SUCCESS


def _run_configure_set_project(*, args, stdout, stderr, stdin) -> int:
    config = _require_config()
    name = args.profile or config.current_profile
    if not name:
        raise ProfileNotFoundError(
            'No current profile is set. Pass --profile or run "cortex configure set-profile <name>".'
        )
    profile = config.get_profile(name)
    if profile is None:
        raise ProfileNotFoundError(
            f'No profile named "{name}". Run "cortex configure --profile {name}" to create it.',
            profile_name=name,
        )
    profile.project = args.project_name
    config.save()
    print(f"Project {args.project_name} set for profile {profile.name}", file=stdout)
    return EXIT_SUCCESS


def _run_configure_token(*, args, stdout, stderr, stdin) -> int:
    profile = load_profile(args.profile, ttl=args.ttl, stderr=stderr)
    print(profile.token, file=stdout)
    return EXIT_SUCCESS


def _env_rows() -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = [
        {
            "name": CONFIG_DIR_ENV_VAR,
            "value": str(get_config_dir()),
            "source": "env" if os.getenv(CONFIG_DIR_ENV_VAR) else "default",
        },
        {
            "name": TOKEN_ENV_VAR,
            "value": "[set]" if os.getenv(TOKEN_ENV_VAR) else None,
            "source": "env" if os.getenv(TOKEN_ENV_VAR) else "unset",
        },
        {
            "name": URL_ENV_VAR,
            "value": os.getenv(URL_ENV_VAR),
            "source": "env" if os.getenv(URL_ENV_VAR) else "unset",
        },
        {
            "name": SKIP_COMPAT_ENV_VAR,
            "value": os.getenv(SKIP_COMPAT_ENV_VAR),
            "source": "env" if compat_check_disabled() else "unset",
        },
    ]
    for setting in load_http_settings().describe():
        rows.append({"name": setting.env_var, "value": setting.value, "source": setting.source})
    return rows


def _run_configure_env(*, args, stdout, stderr, stdin) -> int:
    rows = _env_rows()
    if args.json is not None:
        print_json(rows, stdout, query=args.json)
        return EXIT_SUCCESS
    for row in rows:
        value = "-" if row["value"] is None else row["value"]
        print(f"{row['name']}={value} ({row['source']})", file=stdout)
    return EXIT_SUCCESS


# remote commands


def _check_compatibility(client: CortexClient, stderr) -> None:
    try:
        compatibility = get_compatibility(client)
    except AuthenticationError:
        raise
    except (CortexUnavailableError, CortexRequestError) as exc:
        print(f"compatibility warning: unable to check CLI compatibility: {exc}", file=stderr)
        return
    if not compatibility.satisfied:
        raise IncompatibleVersionError(
            f"Update required: cortex-cli {compatibility.current} does not satisfy "
            f'"{compatibility.required}". Run "pip install --upgrade cortex-cli".'
        )


def _connect(args, stderr) -> tuple[ResolvedProfile, CortexClient]:
    profile = load_profile(args.profile, stderr=stderr)
    client = CortexClient(base_url=profile.url, token=profile.token)
    if not args.no_compat and not compat_check_disabled():
        _check_compatibility(client, stderr)
    return profile, client


def _project(args, profile: ResolvedProfile) -> str | None:
    return getattr(args, "project", None) or profile.project


def _list_options(args) -> ListOptions:
    return ListOptions(filter=args.filter, sort=args.sort, limit=args.limit, skip=args.skip)


def _print_list(items: list[Any], args, stdout, fields: tuple[str, ...]) -> None:
    if args.json is not None:
        print_json(items, stdout, query=args.json)
        return
    rows = [item if isinstance(item, dict) else {fields[0]: item} for item in items]
    print_rows(rows, fields, stdout)


def _run_projects_list(*, args, stdout, stderr, stdin) -> int:
    _, client = _connect(args, stderr)
    items = Projects(client).list_projects(_list_options(args))
    _print_list(items, args, stdout, ("name", "title", "description"))
    return EXIT_SUCCESS


def _run_projects_describe(*, args, stdout, stderr, stdin) -> int:
    _, client = _connect(args, stderr)
    print_json(Projects(client).describe_project(args.name), stdout, query=args.json)
    return EXIT_SUCCESS


def _run_projects_save(*, args, stdout, stderr, stdin) -> int:
    definition = load_definition(args.definition_file, as_yaml=args.yaml)
    _, client = _connect(args, stderr)
    Projects(client).save_project(definition)
    print(f"Project {definition.get('name', '')} saved.", file=stdout)
    return EXIT_SUCCESS


def _run_projects_delete(*, args, stdout, stderr, stdin) -> int:
    _, client = _connect(args, stderr)
    Projects(client).delete_project(args.name)
    print(f"Project {args.name} deleted.", file=stdout)
    return EXIT_SUCCESS


def _run_connections_list(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    items = Connections(client).list_connections(_project(args, profile), _list_options(args))
    _print_list(items, args, stdout, ("name", "title", "connectionType"))
    return EXIT_SUCCESS


def _run_connections_describe(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    result = Connections(client).describe_connection(_project(args, profile), args.name)
    print_json(result, stdout, query=args.json)
    return EXIT_SUCCESS


def _run_connections_save(*, args, stdout, stderr, stdin) -> int:
    definition = load_definition(args.definition_file, as_yaml=args.yaml)
    profile, client = _connect(args, stderr)
    Connections(client).save_connection(_project(args, profile), definition)
    print(f"Connection {definition.get('name', '')} saved.", file=stdout)
    return EXIT_SUCCESS


def _run_connections_delete(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    Connections(client).delete_connection(_project(args, profile), args.name)
    print(f"Connection {args.name} deleted.", file=stdout)
    return EXIT_SUCCESS


def _run_secrets_list(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    items = Secrets(client).list_secrets(_project(args, profile))
    _print_list(items, args, stdout, ("name",))
    return EXIT_SUCCESS


def _run_secrets_describe(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    result = Secrets(client).describe_secret(_project(args, profile), args.name)
    print_json(result, stdout, query=args.json)
    return EXIT_SUCCESS


def _run_secrets_save(*, args, stdout, stderr, stdin) -> int:
    if args.data_file and args.value is not None:
        raise ValidationError("pass either a secret value or --data-file, not both")
    if args.data_file:
        try:
            raw = Path(args.data_file).read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationError(f"unable to read data file {args.data_file}: {exc}") from exc
        value = parse_object(raw, as_yaml=args.yaml)
    elif args.value is not None:
        value = args.value
    else:
        raise ValidationError("a secret value or --data-file is required")
    profile, client = _connect(args, stderr)
    Secrets(client).save_secret(_project(args, profile), args.name, value)
    print(f"Secret {args.name} saved.", file=stdout)
    return EXIT_SUCCESS


def _run_secrets_delete(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    Secrets(client).delete_secret(_project(args, profile), args.name)
    print(f"Secret {args.name} deleted.", file=stdout)
    return EXIT_SUCCESS


def _run_content_list(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    items = Content(client).list_content(_project(args, profile))
    _print_list(items, args, stdout, ("key", "size", "lastModified"))
    return EXIT_SUCCESS


def _content_key(prefix: str, relative: str) -> str:
    prefix = prefix.strip("/")
    return f"{prefix}/{relative}" if prefix else relative


def _run_content_upload(*, args, stdout, stderr, stdin) -> int:
    source = Path(args.file_path)
    if not source.exists():
        raise ValidationError(f"{source} does not exist")
    if source.is_dir() and not args.recursive:
        raise ValidationError(f"{source} is a directory; pass --recursive to upload its files")
    if not args.recursive and not source.is_file():
        raise ValidationError(f"{source} is not a regular file")
    if args.concurrency < 1:
        raise ValidationError("--concurrency must be >= 1")

    profile, client = _connect(args, stderr)
    project = _project(args, profile)
    content = Content(client)

    if not args.recursive:
        content.upload_content(
            project, args.content_key, source, content_type=args.content_type
        )
        print(f"Content {args.content_key} uploaded.", file=stdout)
        return EXIT_SUCCESS

    files = collect_upload_files(source)
    if not files:
        print(f"No files found under {source}", file=stdout)
        return EXIT_SUCCESS

    def _upload(item: UploadFile) -> dict:
        key = _content_key(args.content_key, item.relative)
        return content.upload_content(project, key, item.canonical, content_type=args.content_type)

    def _report(outcome: UploadOutcome) -> None:
        key = _content_key(args.content_key, outcome.item.relative)
        size = human_readable_file_size(outcome.item.size)
        if outcome.ok:
            print(f"uploaded {key} ({size})", file=stdout)
        else:
            print_error(stderr, "upload error", f"{key}: {outcome.error}", code=EXIT_FAILURE)

    report = run_bounded(files, _upload, concurrency=args.concurrency, on_outcome=_report)
    if report.failed:
        return print_error(
            stderr,
            "upload error",
            (
                f"{len(report.failed)} upload(s) failed; {len(report.succeeded)} succeeded, "
                f"{len(report.not_attempted)} not attempted"
            ),
            code=EXIT_FAILURE,
        )
    print(f"Uploaded {len(report.succeeded)} file(s) to {args.content_key}.", file=stdout)
    return EXIT_SUCCESS


def _run_content_download(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    destination = args.output or Path(args.content_key.rstrip("/")).name
    if not destination:
        raise ValidationError("--output is required when the key has no file name")
    path = Content(client).download_content(_project(args, profile), args.content_key, destination)
    print(f"Content {args.content_key} downloaded to {path}.", file=stdout)
    return EXIT_SUCCESS


def _run_content_delete(*, args, stdout, stderr, stdin) -> int:
    profile, client = _connect(args, stderr)
    Content(client).delete_content(_project(args, profile), args.content_key)
    print(f"Content {args.content_key} deleted.", file=stdout)
    return EXIT_SUCCESS


_HANDLERS: dict[tuple[str, str | None], _Handler] = {
    ("configure", None): _run_configure,
    ("configure", "list"): _run_configure_list,
    ("configure", "describe"): _run_configure_describe,
    ("configure", "set-profile"): _run_configure_set_profile,
    ("configure", "set-project"): _run_configure_set_project,
    ("configure", "token"): _run_configure_token,
    ("configure", "env"): _run_configure_env,
    ("projects", "list"): _run_projects_list,
    ("projects", "describe"): _run_projects_describe,
    ("projects", "save"): _run_projects_save,
    ("projects", "delete"): _run_projects_delete,
    ("connections", "list"): _run_connections_list,
    ("connections", "describe"): _run_connections_describe,
    ("connections", "save"): _run_connections_save,
    ("connections", "delete"): _run_connections_delete,
    ("secrets", "list"): _run_secrets_list,
    ("secrets", "describe"): _run_secrets_describe,
    ("secrets", "save"): _run_secrets_save,
    ("secrets", "delete"): _run_secrets_delete,
    ("content", "list"): _run_content_list,
    ("content", "upload"): _run_content_upload,
    ("content", "download"): _run_content_download,
    ("content", "delete"): _run_content_delete,
}


def _resolve_handler(args: argparse.Namespace) -> _Handler | None:
    """Return the handler for the parsed command, or ``None`` when nothing matched."""
    command = getattr(args, "command", None)
    if command is None:
        return None
    subcommand = getattr(args, f"{command}_command", None)
    return _HANDLERS.get((command, subcommand))


def _run_handler(handler: _Handler, *, args, stdout, stderr, stdin) -> int:
    try:
        return handler(args=args, stdout=stdout, stderr=stderr, stdin=stdin)
    except ConfigurationError as exc:
        return print_error(stderr, "config error", str(exc), code=EXIT_FAILURE)
    except CredentialError as exc:
        return print_error(stderr, "credential error", str(exc), code=EXIT_FAILURE)
    except ValidationError as exc:
        return print_error(stderr, "validation error", str(exc), code=EXIT_FAILURE)
    except IncompatibleVersionError as exc:
        return print_error(stderr, "compatibility error", str(exc), code=EXIT_FAILURE)
    except AuthenticationError as exc:
        return print_error(
            stderr,
            "authentication error",
            f'{exc}. Run "cortex configure" to refresh your credentials.',
            code=EXIT_FAILURE,
        )
    except CortexRequestError as exc:
        return print_error(stderr, "request error", str(exc), code=EXIT_FAILURE)
    except CortexUnavailableError as exc:
        return print_error(stderr, "network error", str(exc), code=EXIT_FAILURE)
    except OSError as exc:
        return print_error(stderr, "file error", str(exc), code=EXIT_FAILURE)


def main(
    argv: Sequence[str] | None = None,
    *,
    stdout=sys.stdout,
    stderr=sys.stderr,
    stdin=sys.stdin,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.debug, stderr)

    handler = _resolve_handler(args)
    if handler is None:
        parser.print_help(file=stderr)
        return EXIT_FAILURE

    return _run_handler(handler, args=args, stdout=stdout, stderr=stderr, stdin=stdin)


if __name__ == "__main__":
    raise SystemExit(main())
