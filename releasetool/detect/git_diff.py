"""
Reads changed paths from git.
"""
import subprocess
import logging
from pathlib import Path
from typing import List, Optional, Union

from ..core.models import ChangeSet
from ..core.exceptions import GitDiffError


logger = logging.getLogger(__name__)


def _run_git(args: List[str], repo_root: Union[str, Path]) -> str:
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=str(repo_root),
            check=False,
            capture_output=True,
            text=True,
            encoding="utf-8",
        )
    except FileNotFoundError as e:
        raise GitDiffError(f"git executable not found: {e}") from e
    if completed.returncode != 0:
        raise GitDiffError(completed.stderr.strip() or f"git {' '.join(args)} failed")
    return completed.stdout


def changed_paths(
    base: str,
    head: str = "HEAD",
    repo_root: Union[str, Path] = "."
) -> ChangeSet:
    """
    List files changed between two revisions.

    Args:
        base: Base revision (e.g. the previous commit)
        head: Head revision
        repo_root: Working tree to run git in

    Returns:
        ChangeSet in the order git reports the paths; a renamed file
        contributes both its old and its new path

    Raises:
        GitDiffError: If git is missing or the command fails
    """
    # NUL-separated and unquoted so non-ASCII paths come through verbatim
    output = _run_git(
        ["-c", "core.quotePath=false", "diff", "--name-only", "--no-renames", "-z", base, head],
        repo_root
    )
    paths = [path for path in output.split("\0") if path]
    logger.info(f"git diff {base}..{head}: {len(paths)} changed paths")
    return ChangeSet.from_paths(paths)


def resolve_commit(rev: str = "HEAD", repo_root: Union[str, Path] = ".") -> str:
    """Resolve a revision to its full commit SHA"""
    return _run_git(["rev-parse", rev], repo_root).strip()


def tag_from_commit(sha: str, length: Optional[int] = 7) -> str:
    """
    Derive an image tag from a commit SHA.

    Args:
        sha: Full or abbreviated commit SHA
        length: Number of leading characters to keep, None keeps all

    Returns:
        Image tag
    """
    sha = sha.strip()
    if not sha:
        raise ValueError("commit SHA is empty")
    if length is None or length <= 0:
        return sha
    return sha[:length]
