"""
Repository acquisition: producing a local working tree for a job.
"""
import logging
import os
import shutil
import tempfile
from typing import Optional, Protocol

from git import Repo
from git.exc import GitError
from pydantic import BaseModel

from repokg.core.errors import AcquisitionError

logger = logging.getLogger(__name__)


class AcquiredRepository(BaseModel):
    """A working tree on local disk."""

    path: str
    repository_url: str
    branch: str
    # Temporary trees are deleted on release.
    temporary: bool = False


class RepositoryAcquirer(Protocol):
    def acquire(self, repository_url: str, branch: str) -> AcquiredRepository:
        """
        Produce a working tree for a repository at a branch.

        Raises:
            AcquisitionError: If the tree cannot be produced
        """
        ...

    def release(self, repository: AcquiredRepository) -> None:
        """Free whatever ``acquire`` allocated."""
        ...


class GitRepositoryAcquirer:
    """Shallow-clones a remote repository into a temporary directory."""

    def __init__(self, work_dir: Optional[str] = None):
        self.work_dir = work_dir

    def acquire(self, repository_url: str, branch: str) -> AcquiredRepository:
        temp_dir = tempfile.mkdtemp(prefix="repokg_", dir=self.work_dir)
        logger.info(f"Cloning {repository_url} ({branch}) into {temp_dir}")
        try:
            Repo.clone_from(repository_url, temp_dir, branch=branch, depth=1, single_branch=True)
        except GitError as e:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise AcquisitionError(f"Failed to clone {repository_url} at {branch}: {e}") from e
        return AcquiredRepository(path=temp_dir, repository_url=repository_url, branch=branch,
                                  temporary=True)

    def release(self, repository: AcquiredRepository) -> None:
        if repository.temporary and os.path.isdir(repository.path):
            shutil.rmtree(repository.path)
            logger.debug(f"Removed working tree {repository.path}")


class LocalRepositoryAcquirer:
    """Uses an existing directory as-is; nothing is deleted on release."""

    def acquire(self, repository_url: str, branch: str) -> AcquiredRepository:
        path = os.path.abspath(os.path.expanduser(repository_url))
        if not os.path.isdir(path):
            raise AcquisitionError(f"Not a directory: {repository_url}")
        return AcquiredRepository(path=path, repository_url=repository_url, branch=branch,
                                  temporary=False)

    def release(self, repository: AcquiredRepository) -> None:
        pass


class AutoRepositoryAcquirer:
    """Local directories are used in place; anything else is cloned."""

    def __init__(self, work_dir: Optional[str] = None):
        self.local = LocalRepositoryAcquirer()
        self.git = GitRepositoryAcquirer(work_dir)

    def acquire(self, repository_url: str, branch: str) -> AcquiredRepository:
        if os.path.isdir(os.path.expanduser(repository_url)):
            return self.local.acquire(repository_url, branch)
        return self.git.acquire(repository_url, branch)

    def release(self, repository: AcquiredRepository) -> None:
        if repository.temporary:
            self.git.release(repository)
        else:
            self.local.release(repository)
