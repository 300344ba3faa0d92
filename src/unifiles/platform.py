"""
Platform path policies.

All local-path behavior that differs between POSIX and Windows hosts lives
here, so resolution code stays platform-agnostic and each policy can be
exercised on any host:

- rooted-path detection (classification)
- full path computation against a base or the working directory
- drive letter inheritance for rooted Windows paths without a drive
- parent directory computation

Usage:
    from unifiles.platform import current_path_policy, WindowsPathPolicy

    policy = current_path_policy()
    policy.full_path("docs/readme.md", "/srv/data")   # '/srv/data/docs/readme.md'

    windows = WindowsPathPolicy(cwd="C:\\work")
    windows.resolve_rooted("/test", "E:\\base")       # 'E:\\test'
"""

import ntpath
import os
import posixpath
import sys
from typing import Callable, Optional, Union


class PathPolicy:
    """
    Base path policy, parameterized by a path module (posixpath or ntpath).

    Args:
        cwd: Working directory used for paths without a base.
            Either a fixed string or a callable (default: os.getcwd)
    """

    name = "generic"
    pathmod = posixpath
    separators = "/"

    def __init__(self, cwd: Union[str, Callable[[], str], None] = None):
        self._cwd = cwd if cwd is not None else os.getcwd

    def cwd(self) -> str:
        """Current working directory as seen by this policy."""
        return self._cwd() if callable(self._cwd) else self._cwd

    def is_path_rooted(self, path: str) -> bool:
        raise NotImplementedError

    def is_path_fully_qualified(self, path: str) -> bool:
        raise NotImplementedError

    def full_path(self, path: str, base_path: Optional[str] = None) -> str:
        """
        Compute the canonical absolute form of ``path``.

        Relative paths are joined to ``base_path`` (or the working directory),
        dot segments are collapsed, and a trailing separator is preserved.
        Symlinks are not resolved.
        """
        base = base_path if base_path is not None else self.cwd()
        result = self.pathmod.normpath(self.pathmod.join(base, path))

        sep = self.pathmod.sep
        if path and path[-1] in self.separators and not result.endswith(sep):
            result += sep
        return result

    def resolve_rooted(self, path: str, base_directory: Optional[str]) -> str:
        """Full path of a rooted (local absolute) path."""
        return self.full_path(path)

    def parent_directory(self, path: str) -> Optional[str]:
        """Parent of an absolute path, or None if ``path`` is a root."""
        parent = self.pathmod.dirname(path)
        if not parent or parent == path:
            return None
        return parent


class PosixPathPolicy(PathPolicy):
    """POSIX hosts: only ``/`` is a separator, a path is rooted when it starts with it."""

    name = "posix"
    pathmod = posixpath
    separators = "/"

    def is_path_rooted(self, path: str) -> bool:
        return path.startswith("/")

    def is_path_fully_qualified(self, path: str) -> bool:
        return self.is_path_rooted(path)

    def full_path(self, path: str, base_path: Optional[str] = None) -> str:
        result = super().full_path(path, base_path)
        # normpath keeps a leading '//' (implementation-defined in POSIX)
        if result.startswith("//"):
            result = "/" + result.lstrip("/")
        return result


class WindowsPathPolicy(PathPolicy):
    """
    Windows hosts: ``/`` and ``\\`` are separators.

    A path is rooted if it starts with a separator or a drive letter, and
    fully qualified only with a drive and a separator (``C:\\``) or as UNC.
    """

    name = "windows"
    pathmod = ntpath
    separators = "/\\"

    @staticmethod
    def _has_drive(path: str) -> bool:
        return len(path) >= 2 and path[1] == ":" and path[0].isalpha()

    def is_path_rooted(self, path: str) -> bool:
        return path[:1] in ("/", "\\") or self._has_drive(path)

    def is_path_fully_qualified(self, path: str) -> bool:
        if path[:2] in ("\\\\", "//", "\\/", "/\\"):
            return True
        return self._has_drive(path) and path[2:3] in ("/", "\\")

    def resolve_rooted(self, path: str, base_directory: Optional[str]) -> str:
        # "/test" has no drive: take it from a fully qualified base directory
        if (not self.is_path_fully_qualified(path)
                and base_directory is not None
                and self.is_path_fully_qualified(base_directory)):
            return self.full_path(path, base_directory)
        return self.full_path(path)


def current_path_policy() -> PathPolicy:
    """Path policy matching the running interpreter's platform."""
    if sys.platform.startswith("win"):
        return WindowsPathPolicy()
    return PosixPathPolicy()
