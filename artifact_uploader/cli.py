"""Command line interface for artifact_uploader."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from rich.logging import RichHandler

from .cli_progress import UploadProgressDisplay, render_configuration_summary
from .errors import UploaderError
from .models import DedupSpec, PermissionSpec, UploadOptions
from .orchestrator import UploadOrchestrator
from .services.checksums import compute_checksums
from .services.transport import TransportConfig
from .use_cases.complete import DEFAULT_INDEX_WAIT


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Silent unless --debug, --log-level or LOG_LEVEL asks for output.
    Returns the effective mode for the configuration summary.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level and not os.getenv("LOG_LEVEL")):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    name = "DEBUG" if debug else (log_level or os.getenv("LOG_LEVEL", "INFO"))
    level = getattr(logging, name.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path) -> None:
    """Export NAME=VALUE lines from an env file. Variables already set win."""
    if not path.is_file():
        raise CLIError(f"env file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip().removeprefix("export ").strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        if key:
            os.environ.setdefault(key, _strip_optional_quotes(value))


def _parse_pairs(values: Optional[Sequence[str]], option: str) -> Dict[str, str]:
    """Parse repeated NAME=VALUE options."""
    pairs: Dict[str, str] = {}
    for raw in values or []:
        if "=" not in raw:
            raise CLIError(f"{option} expects NAME=VALUE, got '{raw}'")
        key, value = raw.split("=", 1)
        key = key.strip()
        if not key:
            raise CLIError(f"{option} expects NAME=VALUE, got '{raw}'")
        pairs[key] = _strip_optional_quotes(value.strip())
    return pairs


def _split_dedup(
    checksums: Dict[str, str],
    md5_paths: Sequence[str],
    link_paths: Dict[str, str],
) -> Tuple[Dict[str, str], DedupSpec]:
    """
    Move files selected for deduplication out of the fresh upload set.

    Linked paths need not exist locally.
    """
    fresh = dict(checksums)
    dedup_md5: Dict[str, str] = {}
    for path in md5_paths:
        if path not in fresh:
            raise CLIError(f"--dedup-md5 path not found in source: {path}")
        dedup_md5[path] = fresh.pop(path)
    for path in link_paths:
        fresh.pop(path, None)
    return fresh, DedupSpec(md5_paths=dedup_md5, link_paths=dict(link_paths))


async def _run_upload(
    source: Path,
    base_url: str,
    project: str,
    version: str,
    options: UploadOptions,
    permissions: PermissionSpec,
    transport_config: TransportConfig,
    index_wait: float,
    md5_paths: Sequence[str],
    link_paths: Dict[str, str],
) -> int:
    checksums = await compute_checksums(source)
    if not checksums and not link_paths:
        raise CLIError(f"no files found in {source}")

    fresh, dedup = _split_dedup(checksums, md5_paths, link_paths)
    # MD5-checked files get a presigned URL when they changed since the previous version
    contents = {path: source / path for path in (*fresh, *dedup.md5_paths)}

    display = UploadProgressDisplay()
    async with UploadOrchestrator(base_url, transport_config=transport_config) as orchestrator:
        display.attach(orchestrator.events)
        try:
            result = await orchestrator.upload_version(
                project,
                version,
                fresh,
                contents,
                dedup=dedup,
                options=options,
                permissions=permissions,
                index_wait=index_wait,
                abort_on_error=True,
            )
        except UploaderError as exc:
            display.on_error(exc)
            return 1

    if not result.indexed:
        print(
            f"WARNING: indexing job {result.job_id} has not finished yet",
            file=sys.stderr,
        )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artifact-up",
        description="Upload a directory as a new version of an artifact store project.",
    )
    parser.add_argument("source", nargs="?", type=Path, help="Directory containing the version's files")
    parser.add_argument("-p", "--project", default=None, help="Project name")
    parser.add_argument("-V", "--version-name", dest="version_name", default=None, help="Version to upload")
    parser.add_argument(
        "--base-url",
        default=None,
        help="REST API base URL (default from ARTIFACTDB_API_URL)",
    )
    parser.add_argument(
        "--no-auto-dedup",
        action="store_true",
        help="Always upload fresh files instead of letting the server skip unchanged ones",
    )
    parser.add_argument("--md5-field", default="md5sum", help="Metadata field holding the MD5 checksum")
    parser.add_argument(
        "--dedup-md5",
        action="append",
        default=[],
        metavar="PATH",
        help="Deduplicate this file by MD5 against the previous version (repeatable)",
    )
    parser.add_argument(
        "--dedup-link",
        action="append",
        default=[],
        metavar="PATH=ID",
        help="Link this path to an existing artifact instead of uploading it (repeatable)",
    )
    parser.add_argument("--expires", type=int, default=None, help="Days until the version expires")
    parser.add_argument("--api-version", type=int, default=2, choices=(1, 2), help="Upload API version")
    parser.add_argument("--private", action="store_true", help="Restrict read access to viewers")
    parser.add_argument("--owner", action="append", default=None, help="Project owner (repeatable)")
    parser.add_argument("--viewer", action="append", default=None, help="Project viewer (repeatable)")
    parser.add_argument(
        "--index-wait",
        type=float,
        default=DEFAULT_INDEX_WAIT,
        help=f"Seconds to wait for indexing (default {DEFAULT_INDEX_WAIT})",
    )
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Extra header sent with every API request (repeatable)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file
    if used_env_file is None and Path(".env").is_file():
        used_env_file = Path(".env")
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.source is None:
        parser.print_help()
        return 0

    source = Path(args.source).expanduser()
    if not source.is_dir():
        print(f"ERROR: source is not a directory: {source}", file=sys.stderr)
        return 1

    base_url = args.base_url or os.getenv("ARTIFACTDB_API_URL")
    if not base_url:
        print("ERROR: --base-url or ARTIFACTDB_API_URL is required", file=sys.stderr)
        return 1
    if not args.project or not args.version_name:
        print("ERROR: --project and --version-name are required", file=sys.stderr)
        return 1

    try:
        headers = _parse_pairs(args.header, "--header")
        link_paths = _parse_pairs(args.dedup_link, "--dedup-link")
        timeout = float(os.getenv("ARTIFACTDB_TIMEOUT", "60"))
    except (CLIError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    options = UploadOptions(
        auto_dedup_md5=not args.no_auto_dedup,
        md5_field=args.md5_field,
        expires=args.expires,
        api_version=args.api_version,
    )
    permissions = PermissionSpec.from_flags(
        is_public=not args.private,
        owners=args.owner,
        viewers=args.viewer,
    )

    render_configuration_summary(
        {
            "Source": str(source),
            "API": base_url,
            "Project": args.project,
            "Version": args.version_name,
            "Auto Dedup": "yes" if options.auto_dedup_md5 else "no",
            "Dedup MD5": len(args.dedup_md5),
            "Dedup Links": len(link_paths),
            "Expires": f"{options.expires} days" if options.expires is not None else "never",
            "Read Access": permissions.visibility.value,
            "Index Wait": f"{args.index_wait:g}s",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_upload(
                source=source,
                base_url=base_url,
                project=args.project,
                version=args.version_name,
                options=options,
                permissions=permissions,
                transport_config=TransportConfig(default_headers=headers, timeout=timeout),
                index_wait=args.index_wait,
                md5_paths=args.dedup_md5,
                link_paths=link_paths,
            )
        )
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
