"""GitHub token lookup.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable
  2. GITHUB_TOKEN in ``.env.local`` at the repository root
  3. ``gh auth token`` (GitHub CLI session)
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

_ENV_FILE = ".env.local"


def _token_from_env_file(repo_root: Path) -> str | None:
    env_file = repo_root / _ENV_FILE
    if not env_file.is_file():
        return None
    token = dotenv_values(env_file).get("GITHUB_TOKEN")
    if token:
        logger.debug("Resolved GitHub token from %s.", env_file)
    return token or None


def _token_from_gh_cli() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    token = result.stdout.strip()
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token or None


def resolve_github_token(repo_root: Path | None = None) -> str | None:
    """Return a GitHub token, or None if no source provides one."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    if repo_root is not None:
        token = _token_from_env_file(repo_root)
        if token:
            return token

    return _token_from_gh_cli()
