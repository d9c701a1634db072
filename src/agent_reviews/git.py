"""Repository identity from the local git checkout."""
from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path

_REMOTE_PATTERNS = (
    re.compile(r"git@github\.com:([^/]+)/(.+?)(?:\.git)?$"),
    re.compile(r"github\.com/([^/]+)/(.+?)(?:\.git)?$"),
    # Remotes rewritten by git proxies, e.g. http://proxy/git/owner/repo
    re.compile(r"/git/([^/]+)/([^/]+)$"),
)


@dataclass(frozen=True)
class RepoInfo:
    owner: str
    repo: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}"


def _git(*args: str, cwd: Path | None = None) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            cwd=cwd,
        )
    except FileNotFoundError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def parse_remote_url(remote_url: str) -> RepoInfo | None:
    for pattern in _REMOTE_PATTERNS:
        if match := pattern.search(remote_url):
            owner, repo = match.groups()
            return RepoInfo(owner=owner, repo=repo.removesuffix(".git"))
    return None


def get_repo_root(cwd: Path | None = None) -> Path | None:
    root = _git("rev-parse", "--show-toplevel", cwd=cwd)
    return Path(root) if root else None


def get_repo_info(cwd: Path | None = None) -> RepoInfo | None:
    remote_url = _git("remote", "get-url", "origin", cwd=cwd)
    return parse_remote_url(remote_url) if remote_url else None


def get_current_branch(cwd: Path | None = None) -> str | None:
    return _git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd)
