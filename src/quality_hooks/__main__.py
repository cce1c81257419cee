"""Entry point for running quality-hooks.

This module provides the command line interface. It handles:
- Configuration loading
- Logging setup (always to stderr)
- Engine creation
- The ``check``, ``hook`` and ``version`` commands

Hook mode reads the editor's post-write JSON payload from stdin, prints a
JSON result to stdout and always exits 0 so it never blocks the editor.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import structlog

from quality_hooks._version import __version__
from quality_hooks.config.schema import HookConfig
from quality_hooks.models.issue import Issue, Severity
from quality_hooks.models.result import FinalResult

log = structlog.get_logger()

HOOK_TOOLS = ("Write", "Edit", "MultiEdit")


def setup_logging(
    debug: bool = False,
    log_format: str = "console",
    level: str = "INFO",
    file_path: Path | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structured logging.

    Args:
        debug: Force debug logging if True
        log_format: Output format ("json" or "console")
        level: Log level when not in debug mode
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to enable file logging
    """
    from quality_hooks.utils.logging import LogFormat, LogLevel, configure_logging

    configure_logging(
        level=LogLevel.DEBUG if debug else LogLevel(level.upper()),
        log_format=LogFormat(log_format.lower()),
        file_path=file_path,
        file_enabled=file_enabled,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="quality-hooks",
        description="quality-hooks - Validate and auto-fix files after they are written",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: quality-hooks.yaml in the current directory)",
    )
    common.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", parents=[common], help="Validate and fix one file")
    check.add_argument("file", help="File to validate")
    check.add_argument(
        "--no-fix",
        action="store_true",
        help="Report issues without applying fixes",
    )
    check.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="Result output format (default: text)",
    )

    commands.add_parser(
        "hook", parents=[common], help="Run as an editor post-write hook (reads JSON from stdin)"
    )
    commands.add_parser("version", parents=[common], help="Show package and Biome versions")

    return parser.parse_args(argv)


def load_settings(config_path: Path | None, project_root: Path) -> HookConfig:
    """Load configuration from an explicit path or the project root.

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValueError: If the config is invalid
    """
    from quality_hooks.config.loader import find_config, load_config

    path = config_path or find_config(project_root)
    config = load_config(path)
    log.debug("configuration_loaded", path=str(path) if path else None)
    return config


def format_issue(issue: Issue) -> str:
    rule = f" ({issue.rule})" if issue.rule else ""
    return (
        f"{issue.file}:{issue.line}:{issue.column} {issue.severity} "
        f"[{issue.analyzer}] {issue.message}{rule}"
    )


def final_issues(result: FinalResult) -> tuple[Issue, ...]:
    """Issues describing the file as it is on disk after the run."""
    verification = result.verification
    if verification is not None and verification.report is not None and not result.rolled_back:
        return verification.report.issues
    return result.report.issues


def format_text(result: FinalResult) -> str:
    lines = [format_issue(issue) for issue in final_issues(result)]
    for failed in result.report.results:
        if failed.failed:
            lines.append(f"{failed.analyzer}: analyzer failed: {failed.error}")
    if result.fix is not None:
        lines.append(
            f"fixes: {result.fix.fixed_count} applied"
            + (f", error: {result.fix.error}" if result.fix.error else "")
        )
    if result.verification is not None:
        v = result.verification
        lines.append(
            f"verification: {v.status} ({v.resolved_count} resolved, "
            f"{v.persisted_count} persisted, {v.regressed_count} regressed)"
        )
    if result.rolled_back:
        lines.append("fixes rolled back after regression")
    lines.extend(f"error: {error}" for error in result.errors)
    lines.append(f"{result.file}: {'ok' if result.success else 'issues found'}")
    return "\n".join(lines)


def hook_output(result: FinalResult) -> dict[str, Any]:
    """Render a result as the hook's JSON payload."""
    issues = final_issues(result)
    fixes = []
    if result.fix is not None and not result.rolled_back:
        fixes = [
            f"Fixed {o.fixed_count} {o.group} issue(s)"
            for o in result.fix.outcomes
            if o.success and o.fixed_count
        ]
    errors = [format_issue(i) for i in issues if i.severity is Severity.ERROR]
    errors.extend(
        f"{r.analyzer}: analyzer failed: {r.error}" for r in result.report.results if r.failed
    )
    errors.extend(result.errors)
    return {
        "success": result.success,
        "message": f"Validated {result.file}",
        "errors": errors,
        "warnings": [format_issue(i) for i in issues if i.severity is not Severity.ERROR],
        "fixes_applied": fixes,
        "result": result.to_dict(),
    }


async def run_check(args: argparse.Namespace) -> int:
    """Run the ``check`` command.

    Returns:
        Exit code (0 when the file ends up clean, 1 otherwise)
    """
    from quality_hooks.core.engine import create_engine
    from quality_hooks.models.file import FileInfo

    root = Path.cwd()
    config = load_settings(args.config, root)
    configure_from(config, args.debug)

    if not config.enabled:
        print("quality-hooks disabled in configuration")
        return 0
    if args.no_fix:
        config = config.model_copy(
            update={"autofix": config.autofix.model_copy(update={"enabled": False})}
        )

    engine = create_engine(config, root)
    result = await engine.validate_and_fix(FileInfo(args.file))

    if args.format == "json":
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_text(result))
    return 0 if result.success else 1


async def run_hook(args: argparse.Namespace, stdin_text: str) -> dict[str, Any]:
    """Process one hook payload. Never raises."""
    from quality_hooks.core.engine import create_engine
    from quality_hooks.models.file import FileInfo
    from quality_hooks.utils.patterns import PatternMatcher

    try:
        payload = json.loads(stdin_text)
    except ValueError:
        return {"success": False, "message": "Failed to read JSON input from stdin"}
    if not isinstance(payload, dict):
        return {"success": False, "message": "Hook input must be a JSON object"}

    tool_name = payload.get("tool_name")
    if tool_name is not None and tool_name not in HOOK_TOOLS:
        return {"success": True, "message": f"Tool {tool_name} not configured for hooks"}

    tool_input = payload.get("tool_input") or {}
    file_path = tool_input.get("file_path") if isinstance(tool_input, dict) else None
    if not file_path:
        return {"success": False, "message": "No file path provided in tool input"}

    root = Path.cwd()
    try:
        config = load_settings(args.config, root)
    except (FileNotFoundError, ValueError) as e:
        return {"success": False, "message": f"Invalid configuration: {e}"}
    configure_from(config, args.debug)

    if not config.enabled:
        return {"success": True, "message": "Hooks disabled in configuration"}
    if not PatternMatcher(config.include, config.exclude, root).should_validate(file_path):
        return {"success": True, "message": f"File {file_path} excluded by patterns"}

    engine = create_engine(config, root)
    result = await engine.validate_and_fix(FileInfo(file_path))
    return hook_output(result)


async def run_version(args: argparse.Namespace) -> int:
    """Print the package version and the resolved Biome version."""
    from quality_hooks.core.engine import create_engine

    root = Path.cwd()
    config = load_settings(args.config, root)
    configure_from(config, args.debug)

    print(f"quality-hooks {__version__}")
    resolved = await create_engine(config, root).tool_version()
    if resolved is not None:
        print(f"biome {resolved.info.version} ({resolved.info.tag}, from {resolved.source})")
    return 0


def configure_from(config: HookConfig, debug: bool) -> None:
    """Reconfigure logging from config file settings."""
    setup_logging(
        debug=debug,
        log_format=config.logging.format,
        level=config.logging.level,
        file_path=config.logging.file.path if config.logging.file.enabled else None,
        file_enabled=config.logging.file.enabled,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Logging until the config file is read
    setup_logging(debug=args.debug)

    if args.command == "hook":
        try:
            output = asyncio.run(run_hook(args, sys.stdin.read()))
        except Exception as e:
            log.exception("hook_failed", error=str(e))
            output = {"success": False, "message": f"Hook processing failed: {e}"}
        print(json.dumps(output, indent=2))
        return 0

    try:
        if args.command == "check":
            return asyncio.run(run_check(args))
        return asyncio.run(run_version(args))
    except FileNotFoundError as e:
        log.error("configuration_file_not_found", error=str(e))
        return 2
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 2
    except KeyboardInterrupt:
        log.info("interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
