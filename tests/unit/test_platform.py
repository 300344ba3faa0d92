"""Unit tests for platform path policies."""

import pytest

from unifiles.platform import PosixPathPolicy, WindowsPathPolicy


class TestPosixPathPolicy:
    """Tests for POSIX path policy."""

    @pytest.fixture
    def policy(self):
        return PosixPathPolicy(cwd="/work")

    def test_rooted(self, policy):
        """Test only '/' roots a path."""
        assert policy.is_path_rooted("/test.txt")
        assert not policy.is_path_rooted("test.txt")
        assert not policy.is_path_rooted("\\test.txt")
        assert not policy.is_path_rooted("C:\\dir\\")

    def test_full_path_uses_cwd(self, policy):
        """Test relative paths are joined to the working directory."""
        assert policy.full_path("docs/readme.md") == "/work/docs/readme.md"

    def test_full_path_with_base(self, policy):
        """Test relative paths are joined to an explicit base."""
        assert policy.full_path("test", "/absolute/local") == "/absolute/local/test"

    def test_full_path_collapses_dot_segments(self, policy):
        """Test '.' and '..' segments are collapsed."""
        assert policy.full_path("../other/./file.txt", "/srv/data") == "/srv/other/file.txt"

    def test_full_path_keeps_trailing_separator(self, policy):
        """Test a trailing separator is preserved."""
        assert policy.full_path("/dir/") == "/dir/"
        assert policy.full_path("sub/", "/base") == "/base/sub/"

    def test_full_path_collapses_double_leading_slash(self, policy):
        """Test '//x' becomes '/x'."""
        assert policy.full_path("//tmp/file") == "/tmp/file"

    def test_callable_cwd(self):
        """Test the working directory can be computed lazily."""
        policy = PosixPathPolicy(cwd=lambda: "/lazy")
        assert policy.cwd() == "/lazy"
        assert policy.full_path("a") == "/lazy/a"

    def test_parent_directory(self, policy):
        """Test parent computation and root detection."""
        assert policy.parent_directory("/a/b/c.txt") == "/a/b"
        assert policy.parent_directory("/a/b/") == "/a/b"
        assert policy.parent_directory("/a") == "/"
        assert policy.parent_directory("/") is None


class TestWindowsPathPolicy:
    """Tests for Windows path policy, exercised on any host."""

    @pytest.fixture
    def policy(self):
        return WindowsPathPolicy(cwd="C:\\work")

    def test_rooted(self, policy):
        """Test separators and drive letters root a path."""
        assert policy.is_path_rooted("\\test.txt")
        assert policy.is_path_rooted("/test.txt")
        assert policy.is_path_rooted("C:/dir/")
        assert policy.is_path_rooted("C:\\dir/file.txt")
        assert not policy.is_path_rooted("dir\\test.txt")

    def test_fully_qualified(self, policy):
        """Test only drive + separator or UNC paths are fully qualified."""
        assert policy.is_path_fully_qualified("C:\\dir")
        assert policy.is_path_fully_qualified("\\\\server\\share")
        assert not policy.is_path_fully_qualified("\\dir")
        assert not policy.is_path_fully_qualified("C:dir")

    def test_full_path(self, policy):
        """Test relative paths and mixed separators."""
        assert policy.full_path("dir\\test.txt") == "C:\\work\\dir\\test.txt"
        assert policy.full_path("C:/dir/file.txt") == "C:\\dir\\file.txt"
        assert policy.full_path("C:/dir/") == "C:\\dir\\"

    def test_resolve_rooted_takes_drive_from_base(self, policy):
        """Test a drive-less rooted path inherits the base directory drive."""
        assert policy.resolve_rooted("\\test", "E:\\absolute\\local") == "E:\\test"

    def test_resolve_rooted_without_base(self, policy):
        """Test a drive-less rooted path uses the working directory drive."""
        assert policy.resolve_rooted("\\test", None) == "C:\\test"

    def test_resolve_rooted_keeps_own_drive(self, policy):
        """Test a fully qualified path ignores the base directory."""
        assert policy.resolve_rooted("D:\\test", "E:\\absolute\\local") == "D:\\test"

    def test_parent_directory(self, policy):
        """Test parent computation and drive roots."""
        assert policy.parent_directory("C:\\dir\\file.txt") == "C:\\dir"
        assert policy.parent_directory("C:\\dir") == "C:\\"
        assert policy.parent_directory("C:\\") is None
