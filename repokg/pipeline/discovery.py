"""
File discovery inside an acquired working tree.
"""
import fnmatch
import logging
import os
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class DiscoveredFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    size: int


class FileDiscoverer:
    """
    Lists analyzable files under a root directory.

    Files are included when their extension is wanted and no exclude pattern
    matches. Excluded directories are not descended into. Files above the size
    limit, and files that cannot be read, are left out silently.
    """

    def __init__(self, extensions: Iterable[str], exclude_dirs: Iterable[str] = (),
                 exclude_patterns: Iterable[str] = (), max_file_size: int = 10 * 1024 * 1024):
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.exclude_dirs = set(exclude_dirs)
        self.exclude_patterns = list(exclude_patterns)
        self.max_file_size = max_file_size

    def discover(self, root: str) -> List[DiscoveredFile]:
        """
        Walk ``root`` and return matching files.

        Args:
            root: Directory to search

        Returns:
            Absolute paths with their byte size, sorted by path
        """
        root = os.path.abspath(root)
        found: List[DiscoveredFile] = []

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in self.exclude_dirs)
            for filename in filenames:
                path = os.path.join(dirpath, filename)
                relative = os.path.relpath(path, root).replace(os.sep, "/")
                if not filename.lower().endswith(self.extensions):
                    continue
                if self._is_excluded(filename, relative):
                    continue
                try:
                    size = os.stat(path).st_size
                except OSError as e:
                    logger.debug(f"Skipping unreadable file {relative}: {e}")
                    continue
                if size > self.max_file_size:
                    logger.debug(f"Skipping {relative} ({size} bytes exceeds {self.max_file_size})")
                    continue
                if not os.access(path, os.R_OK):
                    logger.debug(f"Skipping unreadable file {relative}")
                    continue
                found.append(DiscoveredFile(path=path, size=size))

        found.sort(key=lambda f: f.path)
        logger.info(f"Discovered {len(found)} files under {root}")
        return found

    def _is_excluded(self, filename: str, relative: str) -> bool:
        return any(
            fnmatch.fnmatch(filename, pattern) or fnmatch.fnmatch(relative, pattern)
            for pattern in self.exclude_patterns
        )
