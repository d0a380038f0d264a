from pathlib import Path

from dulwich.errors import NotGitRepository
from dulwich.repo import Repo

KIRO_DIR_NAME = ".kiro"
CONFIG_FILE_NAME = "archival-config.json"
HOOK_FILE_NAME = "spec-archival.kiro.hook"
LOG_FILE_NAME = "archivist.log"


def get_worktree_root() -> Path:
    """Get the root directory of the current Git worktree."""
    repo = Repo.discover()
    # repo.path is bytes on some dulwich versions
    path_str = repo.path.decode() if isinstance(repo.path, bytes) else repo.path
    return Path(path_str)


def find_project_root(explicit: Path | None = None) -> Path:
    """Resolve the project root directory.

    Args:
        explicit: A root passed on the command line, used as-is when given.

    Returns:
        The explicit root, else the Git worktree root, else the current
        working directory.
    """
    if explicit is not None:
        return explicit.resolve()
    try:
        return get_worktree_root()
    except NotGitRepository:
        return Path.cwd()


def get_kiro_dir(project_root: Path) -> Path:
    """Get the path to the .kiro/ directory of a project."""
    return project_root / KIRO_DIR_NAME


def get_specs_dir(project_root: Path) -> Path:
    """Get the default specs root (.kiro/specs/)."""
    return get_kiro_dir(project_root) / "specs"


def get_config_file(project_root: Path) -> Path:
    """Get the path to the archival configuration file."""
    return get_kiro_dir(project_root) / CONFIG_FILE_NAME


def get_hooks_dir(project_root: Path) -> Path:
    """Get the path to the editor hooks directory (.kiro/hooks/)."""
    return get_kiro_dir(project_root) / "hooks"


def get_hook_file(project_root: Path) -> Path:
    return get_hooks_dir(project_root) / HOOK_FILE_NAME


def get_log_file(project_root: Path) -> Path:
    """Get the path to the CLI log file (.kiro/logs/archivist.log)."""
    return get_kiro_dir(project_root) / "logs" / LOG_FILE_NAME
