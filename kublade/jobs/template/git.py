"""
Git working copies of template repositories.

Each template with a git source is checked out to
``<template_storage_path>/<template_id>``. The working copy only lives for
the duration of an import.
"""

from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from kublade.core.database.entities.templates import TemplateGitCredential
from kublade.core.exceptions import TemplateError
from kublade.core.logging_config import get_logger

logger = get_logger(__name__)

HTTP_SCHEME = re.compile(r"^(https?://)")


def repository_url(credential: TemplateGitCredential) -> str:
    """Clone URL with the stored credentials injected into http(s) URLs."""
    url = credential.url
    if HTTP_SCHEME.match(url) and "@" not in url:
        url = HTTP_SCHEME.sub(lambda m: f"{m.group(1)}{credential.credentials}@", url, count=1)
    if not url.endswith(".git"):
        url += ".git"
    return url


class GitWorkingCopy:
    """Checkout of a template's git repository driven through the ``git`` executable."""

    def __init__(self, root: Path | str, credential: TemplateGitCredential, git_bin: str = "git") -> None:
        self.path = Path(root)
        self.credential = credential
        self.git_bin = git_bin

    @property
    def import_path(self) -> Path:
        """Directory inside the repository the template tree is imported from."""
        base = (self.credential.base_path or "/").strip("/")
        return self.path / base if base else self.path

    @property
    def kublade_path(self) -> Path:
        return self.path / ".kublade"

    def run(self, *args: str, cwd: Optional[Path] = None) -> str:
        command = [self.git_bin, *args]
        completed = subprocess.run(
            command,
            cwd=str(cwd or self.path),
            capture_output=True,
            text=True,
            check=False,
        )
        if completed.returncode != 0:
            # Not every git failure is reported on stderr
            output = f"{completed.stderr}\n{completed.stdout}".strip()
            raise TemplateError(f"git {args[0]} failed: {output}", completed.returncode)
        return completed.stdout

    def clear(self) -> None:
        shutil.rmtree(self.path, ignore_errors=True)

    def open(self) -> None:
        """Clone the repository, or reuse an existing checkout, then pull the configured branch."""
        if not (self.path / ".git").exists():
            self.clear()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Cloning template repository into {self.path}")
            self.run("clone", repository_url(self.credential), str(self.path), cwd=self.path.parent)

        self.run("config", "user.email", self.credential.email)
        self.run("config", "user.name", self.credential.username)
        self.run("pull", "origin", self.credential.branch)

    def close(self) -> None:
        self.clear()

    def __enter__(self) -> "GitWorkingCopy":
        self.clear()
        try:
            self.open()
        except BaseException:
            # The checkout holds the credential injected remote URL
            self.clear()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
