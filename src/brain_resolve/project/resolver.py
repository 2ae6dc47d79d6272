"""Project resolution with the 6-level hierarchy.

Resolution priority (first hit wins, each level tried once):
1. Explicit parameter
2. Brain CLI active project (``brain config get active-project``)
3. BRAIN_PROJECT env var
4. BM_PROJECT env var
5. CWD matching against configured code paths
   5a. Direct path match (deepest code path wins)
   5b. Linked-worktree fallback, re-matched against the main checkout
6. None: the caller asks the user for a project

Process state (env vars, the active-project subprocess, os.getcwd) is read
once by `gather_inputs`; `resolve` itself only sees `ResolveInputs`.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from brain_resolve.config import ResolverSettings, load_settings
from brain_resolve.project.matcher import clean_path, direct_path_match
from brain_resolve.project.pathguard import validate_effective_cwd
from brain_resolve.project.store import BrainConfig, ProjectConfig, load_brain_config
from brain_resolve.project.worktree import WorktreeDetectionResult, detect_worktree_main_path

logger = logging.getLogger(__name__)

ENV_PROJECT_VARS = ("BRAIN_PROJECT", "BM_PROJECT")
ENV_DISABLE_WORKTREE = "BRAIN_DISABLE_WORKTREE_DETECTION"

Detector = Callable[[str], "WorktreeDetectionResult | None"]


@dataclass(frozen=True)
class ResolutionContext:
    """How a project was resolved.

    ``effective_cwd`` is the directory that matched a code path: the input
    directory for a direct match, the main checkout for a worktree match.
    It is ``None`` when no working directory was available (explicit,
    active-project or env resolution with an unreadable process cwd).
    Callers deriving write paths from it must re-validate when
    ``is_worktree_resolved`` is set.
    """

    project_name: str
    effective_cwd: str | None
    is_worktree_resolved: bool = False

    def as_dict(self) -> dict:
        return {
            "project": self.project_name,
            "effective_cwd": self.effective_cwd,
            "is_worktree_resolved": self.is_worktree_resolved,
        }


@dataclass(frozen=True)
class ResolveInputs:
    """Everything the hierarchy reads from the process environment."""

    explicit: str | None = None
    active_project: str | None = None
    env_projects: tuple[str | None, ...] = ()
    cwd: str = ""
    disable_worktree_detection: bool = False


@dataclass(frozen=True)
class DetectionPolicy:
    """Global toggle and per-project opt-outs for the worktree fallback.

    Detection runs whenever the global toggle is off; per-project opt-outs
    only filter the re-match against the detected main checkout.
    """

    globally_disabled: bool = False
    opted_out: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls, projects: Mapping[str, ProjectConfig], *, globally_disabled: bool = False
    ) -> DetectionPolicy:
        opted_out = frozenset(n for n, p in projects.items() if p.disable_worktree_detection)
        return cls(globally_disabled=globally_disabled, opted_out=opted_out)

    @property
    def allows_detection(self) -> bool:
        return not self.globally_disabled

    def allows(self, project_name: str) -> bool:
        return project_name not in self.opted_out


def is_truthy_toggle(value: str | None) -> bool:
    """``"1"`` or case-insensitive ``"true"``."""
    if not value:
        return False
    return value == "1" or value.lower() == "true"


def get_active_project(command: list[str], timeout: float = 5.0) -> str | None:
    """Ask the Brain CLI for its active project. Any failure means no value."""
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
    except subprocess.TimeoutExpired:
        logger.debug("Active project command timed out after %.1fs", timeout)
        return None
    except OSError as e:
        logger.debug("Active project command unavailable: %s", e)
        return None

    if result.returncode != 0:
        return None
    value = result.stdout.strip()
    # brain CLI prints "null" or nothing when no project is active
    if not value or value == "null":
        return None
    return value


def _current_directory() -> str:
    try:
        return os.getcwd()
    except OSError:
        return ""


def gather_inputs(
    explicit: str | None = None,
    cwd: str | None = None,
    *,
    settings: ResolverSettings | None = None,
    environ: Mapping[str, str] | None = None,
) -> ResolveInputs:
    """Collect env vars, the active project and the cwd once.

    The active-project subprocess is skipped when an explicit project is given,
    since level 1 would win anyway.
    """
    settings = settings or load_settings()
    env = os.environ if environ is None else environ

    active = None
    if not explicit:
        active = get_active_project(
            settings.active_project_command, settings.active_project_timeout
        )

    directory = cwd or _current_directory()
    return ResolveInputs(
        explicit=explicit or None,
        active_project=active,
        env_projects=tuple(env.get(name) or None for name in ENV_PROJECT_VARS),
        cwd=clean_path(os.path.abspath(directory)) if directory else "",
        disable_worktree_detection=is_truthy_toggle(env.get(ENV_DISABLE_WORKTREE)),
    )


def match_cwd_with_context(
    cwd: str,
    projects: Mapping[str, ProjectConfig],
    *,
    policy: DetectionPolicy | None = None,
    detect: Detector = detect_worktree_main_path,
) -> ResolutionContext | None:
    """Match a directory against code paths, falling back to worktree detection."""
    if not cwd or not projects:
        return None
    cwd = clean_path(cwd)

    match = direct_path_match(cwd, projects)
    if match is not None:
        return ResolutionContext(project_name=match.name, effective_cwd=cwd)

    policy = policy or DetectionPolicy.build(projects)
    if not policy.allows_detection:
        logger.debug("Worktree detection disabled, no match for %s", cwd)
        return None

    detection = detect(cwd)
    if detection is None or not detection.is_linked_worktree:
        return None

    effective_cwd = validate_effective_cwd(detection.main_worktree_path)
    if effective_cwd is None:
        return None

    match = direct_path_match(effective_cwd, projects, allow=policy.allows)
    if match is None:
        logger.debug("Main checkout %s matches no eligible project", effective_cwd)
        return None

    logger.info("Resolved %s via worktree of %s -> %s", cwd, effective_cwd, match.name)
    return ResolutionContext(
        project_name=match.name,
        effective_cwd=effective_cwd,
        is_worktree_resolved=True,
    )


def resolve(
    inputs: ResolveInputs,
    load_config: Callable[[], BrainConfig] = load_brain_config,
    *,
    detect: Detector = detect_worktree_main_path,
) -> ResolutionContext | None:
    """Walk the hierarchy over pre-gathered inputs.

    The config is only loaded when the hierarchy reaches CWD matching.
    """
    named_levels = [
        ("explicit", inputs.explicit),
        ("active project", inputs.active_project),
        *zip(ENV_PROJECT_VARS, inputs.env_projects),
    ]
    for source, value in named_levels:
        if value:
            logger.debug("Project %s from %s", value, source)
            return ResolutionContext(project_name=value, effective_cwd=inputs.cwd or None)

    if not inputs.cwd:
        return None

    config = load_config()
    policy = DetectionPolicy.build(
        config.projects, globally_disabled=inputs.disable_worktree_detection
    )
    result = match_cwd_with_context(inputs.cwd, config.projects, policy=policy, detect=detect)
    if result is None:
        logger.debug("No project resolved for %s", inputs.cwd)
    return result


def _detector_for(settings: ResolverSettings) -> Detector:
    def detect(directory: str) -> WorktreeDetectionResult | None:
        return detect_worktree_main_path(directory, timeout=settings.git_timeout)

    return detect


def resolve_project_with_context(
    explicit: str | None = None,
    cwd: str | None = None,
    *,
    settings: ResolverSettings | None = None,
    environ: Mapping[str, str] | None = None,
    config: BrainConfig | None = None,
) -> ResolutionContext | None:
    """Full resolution with worktree metadata.

    Raises ConfigError if the config file is malformed and CWD matching is
    reached. Returns None when nothing resolves.
    """
    settings = settings or load_settings()
    inputs = gather_inputs(explicit, cwd, settings=settings, environ=environ)
    loader = (lambda: config) if config is not None else load_brain_config
    return resolve(inputs, loader, detect=_detector_for(settings))


def resolve_project(
    explicit: str | None = None,
    cwd: str | None = None,
    **kwargs,
) -> str | None:
    """Name-only form of `resolve_project_with_context`."""
    context = resolve_project_with_context(explicit, cwd, **kwargs)
    return context.project_name if context else None


def resolve_project_from_cwd(
    cwd: str | None = None,
    *,
    config: BrainConfig | None = None,
    environ: Mapping[str, str] | None = None,
    detect: Detector = detect_worktree_main_path,
) -> str | None:
    """Match the cwd only, skipping the explicit/CLI/env levels."""
    directory = cwd or _current_directory()
    if not directory:
        return None
    config = config if config is not None else load_brain_config()
    env = os.environ if environ is None else environ
    policy = DetectionPolicy.build(
        config.projects, globally_disabled=is_truthy_toggle(env.get(ENV_DISABLE_WORKTREE))
    )
    context = match_cwd_with_context(
        os.path.abspath(directory), config.projects, policy=policy, detect=detect
    )
    return context.project_name if context else None
