"""Entry point: brain-resolve <command> (or python -m brain_resolve)

- resolve        Full hierarchy (explicit > active project > env > cwd)
- match          CWD matching only, with worktree fallback
- detect         Linked worktree detection for a directory
- paths          Configured project code paths
- memories       Resolved memories path per project
- sync           Write the translated basic-memory config
- validate-path  Check a write-target path

Exit status: 0 ok, 1 unresolved / rejected, 2 configuration error.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from brain_resolve.config import ResolverSettings, load_settings
from brain_resolve.errors import ConfigError, TranslationError

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _emit(data: dict, as_json: bool, text: str) -> None:
    print(json.dumps(data) if as_json else text)


def _cmd_resolve(args: argparse.Namespace, settings: ResolverSettings) -> int:
    from brain_resolve.hook import describe_context
    from brain_resolve.project.resolver import resolve_project_with_context

    context = resolve_project_with_context(args.project, args.cwd, settings=settings)
    result = describe_context(
        context, args.cwd, settings=settings, register_worktree=args.register_worktree
    )
    if context is None:
        _emit(result, args.json, "No project resolved. Pass --project or set BRAIN_PROJECT.")
        return 1
    text = context.project_name
    if context.is_worktree_resolved:
        text += f" (worktree of {context.effective_cwd})"
    if "memories_path" in result:
        text += f"\nmemories: {result['memories_path']}"
    _emit(result, args.json, text)
    return 0


def _cmd_match(args: argparse.Namespace, settings: ResolverSettings) -> int:
    from brain_resolve.project.resolver import resolve_project_from_cwd
    from brain_resolve.project.worktree import detect_worktree_main_path

    def detect(directory: str):
        return detect_worktree_main_path(directory, timeout=settings.git_timeout)

    name = resolve_project_from_cwd(args.cwd, detect=detect)
    if name is None:
        print("No project matches this directory.", file=sys.stderr)
        return 1
    print(name)
    return 0


def _cmd_detect(args: argparse.Namespace, settings: ResolverSettings) -> int:
    from brain_resolve.project.worktree import detect_worktree_main_path

    directory = os.path.abspath(args.cwd or os.getcwd())
    result = detect_worktree_main_path(directory, timeout=settings.git_timeout)
    if result is None:
        _emit({"main_worktree_path": None}, args.json, "Not a linked worktree.")
        return 1
    _emit(
        {"main_worktree_path": result.main_worktree_path, "is_linked_worktree": True},
        args.json,
        result.main_worktree_path,
    )
    return 0


def _cmd_paths(args: argparse.Namespace, settings: ResolverSettings) -> int:
    from brain_resolve.project.store import get_project_code_paths, load_brain_config

    paths = get_project_code_paths(load_brain_config())
    if args.json:
        print(json.dumps(paths, indent=2))
    else:
        for name, code_path in sorted(paths.items()):
            print(f"{name}\t{code_path}")
    return 0


def _cmd_memories(args: argparse.Namespace, settings: ResolverSettings) -> int:
    from brain_resolve.memory.translation import preview_translation
    from brain_resolve.project.store import load_brain_config

    preview = preview_translation(load_brain_config())
    if args.json:
        print(json.dumps(preview, indent=2))
    else:
        for name, path in sorted(preview["config"]["projects"].items()):
            print(f"{name}\t{path}")
        for error in preview["errors"]:
            print(f"error: {error}", file=sys.stderr)
    return 1 if preview["errors"] else 0


def _cmd_sync(args: argparse.Namespace, settings: ResolverSettings) -> int:
    from brain_resolve.memory.translation import sync_basic_memory_config
    from brain_resolve.project.store import load_brain_config

    try:
        sync_basic_memory_config(
            load_brain_config(), settings.basic_memory_config, raise_on_error=True
        )
    except TranslationError as e:
        print(f"Sync failed ({e.code}): {e}", file=sys.stderr)
        return 1
    print(f"Wrote {settings.basic_memory_config}")
    return 0


def _cmd_validate_path(args: argparse.Namespace, settings: ResolverSettings) -> int:
    from brain_resolve.project.pathguard import explain_path_validation, validate_path

    result = validate_path(args.path)
    if result.valid:
        print(result.normalized_path)
        return 0
    print(f"{result.error}: {explain_path_validation(args.path)}", file=sys.stderr)
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="brain-resolve", description="Brain project resolution")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("resolve", help="Resolve the project for a directory")
    p.add_argument("--project", "-p", help="Explicit project name")
    p.add_argument("--cwd", help="Directory to resolve (default: current)")
    p.add_argument("--json", action="store_true")
    p.add_argument(
        "--register-worktree",
        action="store_true",
        help="Register a worktree CODE-mode docs/ with basic-memory",
    )
    p.set_defaults(func=_cmd_resolve)

    p = sub.add_parser("match", help="Match a directory against code paths only")
    p.add_argument("--cwd")
    p.set_defaults(func=_cmd_match)

    p = sub.add_parser("detect", help="Detect a linked git worktree")
    p.add_argument("--cwd")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=_cmd_detect)

    p = sub.add_parser("paths", help="List configured code paths")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=_cmd_paths)

    p = sub.add_parser("memories", help="Show resolved memories paths")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=_cmd_memories)

    p = sub.add_parser("sync", help="Write basic-memory config from Brain config")
    p.set_defaults(func=_cmd_sync)

    p = sub.add_parser("validate-path", help="Check a write-target path")
    p.add_argument("path")
    p.set_defaults(func=_cmd_validate_path)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    _setup_logging(settings.log_level)

    try:
        return args.func(args, settings)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
