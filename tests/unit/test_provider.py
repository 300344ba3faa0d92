"""Unit tests for UniversalFileProvider."""

import asyncio
import os

import httpx
import pytest

from unifiles.config import Config, HttpConfig, LocalConfig, ResolutionConfig, SwarmConfig
from unifiles.errors import (
    HandlerNotRegisteredError,
    HandlerValidationError,
    InvalidUriError,
    OnlineResourceError,
)
from unifiles.files import UniversalFile
from unifiles.handlers.basic import BasicHandler
from unifiles.handlers.swarm import SwarmHandler
from unifiles.kinds import UriKind
from unifiles.provider import UniversalFileProvider, _safe_file_name
from unifiles.uri import UniversalUri

HASH = "b" * 64


class IncompleteHandler:
    """Handler missing most methods."""

    name = 'incomplete'

    def get_uri_kind(self, uri):
        return UriKind.ONLINE_ABSOLUTE


@pytest.fixture
def provider():
    return UniversalFileProvider()


class TestRegistry:
    """Tests for handler registration and lookup."""

    def test_builtin_handlers(self, provider):
        assert provider.list_handlers() == ['basic', 'swarm']
        assert isinstance(provider.get_handler('basic'), BasicHandler)
        assert isinstance(provider.get_handler('swarm'), SwarmHandler)

    def test_handler_singleton(self, provider):
        assert provider.get_handler('basic') is provider.get_handler('basic')

    def test_unknown_handler(self, provider):
        with pytest.raises(HandlerNotRegisteredError, match="Available"):
            provider.get_handler('ipfs')

    def test_unknown_handler_is_key_error(self, provider):
        with pytest.raises(KeyError):
            provider.get_handler('ipfs')

    def test_register_class(self, provider):
        provider.register_handler('local', BasicHandler)
        assert 'local' in provider.list_handlers()
        assert isinstance(provider.get_handler('local'), BasicHandler)

    def test_register_invalid_class(self, provider):
        with pytest.raises(HandlerValidationError, match="missing required methods"):
            provider.register_handler('incomplete', IncompleteHandler)
        assert 'incomplete' not in provider.list_handlers()

    def test_register_invalid_factory(self, provider):
        """Test factories are validated on first instantiation."""
        provider.register_handler('incomplete', lambda: IncompleteHandler())
        with pytest.raises(HandlerValidationError):
            provider.get_handler('incomplete')

    def test_register_without_validation(self, provider):
        provider.register_handler('incomplete', IncompleteHandler, validate=False)
        assert isinstance(provider.get_handler('incomplete'), IncompleteHandler)

    def test_replace_handler_resets_instance(self, provider):
        first = provider.get_handler('basic')
        provider.register_handler('basic', BasicHandler)
        assert provider.get_handler('basic') is not first


class TestConfiguredHandlers:
    """Tests for handlers built from a Config."""

    def test_basic_handler_settings(self):
        config = Config(
            http=HttpConfig(timeout_seconds=5.0, follow_redirects=False, user_agent="agent/2"),
            local=LocalConfig(retry_attempts=7, retry_backoff_ms=1)
        )
        handler = UniversalFileProvider(config).get_handler('basic')

        assert handler.timeout_seconds == 5.0
        assert handler.follow_redirects is False
        assert handler.user_agent == "agent/2"
        assert handler.retry_attempts == 7

    def test_swarm_handler_settings(self):
        config = Config(swarm=SwarmConfig(gateway_url="https://gateway.example.org/"))
        handler = UniversalFileProvider(config).get_handler('swarm')
        assert handler.gateway_url == "https://gateway.example.org"

    def test_resolution_defaults(self):
        config = Config(resolution=ResolutionConfig(
            default_base_directory="https://example.com/base/",
            default_handler='basic'
        ))
        uri = UniversalFileProvider(config).get_new_uri("page.html")
        assert uri.to_absolute_uri() == ("https://example.com/base/page.html", UriKind.ONLINE_ABSOLUTE)

    def test_default_handler_tag(self):
        config = Config(resolution=ResolutionConfig(default_handler='swarm'))
        uri = UniversalFileProvider(config).get_new_uri(HASH)
        assert isinstance(uri.handler, SwarmHandler)


class TestBuilders:
    """Tests for uri and file builders."""

    def test_get_new_uri(self, provider):
        uri = provider.get_new_uri("docs/readme.md", UriKind.LOCAL, "/srv")
        assert uri.uri_kind == UriKind.LOCAL_RELATIVE
        assert uri.default_base_directory == "/srv"
        assert uri.handler is provider.get_handler('basic')

    def test_get_new_swarm_uri(self, provider):
        uri = provider.get_new_uri(f"{HASH}/index.html", handler='swarm')
        assert uri.uri_kind == UriKind.ONLINE_ABSOLUTE
        assert uri.handler is provider.get_handler('swarm')

    def test_build_new_file_from_string(self, provider):
        file = provider.build_new_file("https://example.com/a.txt")
        assert isinstance(file, UniversalFile)
        assert file.file_uri.uri_kind == UriKind.ONLINE_ABSOLUTE

    def test_build_new_file_from_uri(self, provider):
        uri = provider.get_new_uri("/tmp/a.txt", UriKind.LOCAL)
        assert provider.build_new_file(uri).file_uri is uri


class TestToLocalFile:
    """Tests for local materialization."""

    @staticmethod
    def online_provider(content=b"downloaded"):
        provider = UniversalFileProvider()
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=content))
        provider.register_handler(
            'basic',
            lambda: BasicHandler(client_factory=lambda: httpx.AsyncClient(transport=transport))
        )
        return provider

    def test_local_file_returned_as_is(self, provider, tmp_path):
        file = provider.build_new_file(str(tmp_path / "a.txt"), UriKind.LOCAL)
        assert asyncio.run(provider.to_local_file(file)) is file

    def test_download_to_output_path(self, tmp_path):
        provider = self.online_provider()
        file = provider.build_new_file("https://example.com/a.txt")
        output = tmp_path / "copy.txt"

        local = asyncio.run(provider.to_local_file(file, output_path=str(output)))

        assert output.read_bytes() == b"downloaded"
        assert local.file_uri.to_absolute_uri() == (str(output), UriKind.LOCAL_ABSOLUTE)

    def test_download_to_temp_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr("tempfile.tempdir", str(tmp_path))
        provider = self.online_provider()
        file = provider.build_new_file("https://example.com/dir/report.csv")

        local = asyncio.run(provider.to_local_file(file))

        assert (tmp_path / "report.csv").read_bytes() == b"downloaded"
        assert asyncio.run(local.read_to_bytes()).data == b"downloaded"

    def test_download_without_file_name(self, tmp_path, monkeypatch):
        monkeypatch.setattr("tempfile.tempdir", str(tmp_path))
        provider = self.online_provider()
        file = provider.build_new_file("https://example.com/dir/")

        local = asyncio.run(provider.to_local_file(file))
        path = local.file_uri.to_absolute_uri().uri

        assert os.path.dirname(path) == str(tmp_path)
        with open(path, 'rb') as f:
            assert f.read() == b"downloaded"

    def test_local_disallowed_is_copied(self, tmp_path):
        """Test a basic file restricted to online kinds is downloaded."""
        provider = self.online_provider()
        file = provider.build_new_file("/remote/a.txt")
        output = tmp_path / "a.txt"

        asyncio.run(provider.to_local_file(
            file,
            allowed_uri_kinds=UriKind.ONLINE,
            base_directory="https://example.com/",
            output_path=str(output)
        ))
        assert output.read_bytes() == b"downloaded"

    def test_relative_output_path_refused(self, tmp_path):
        provider = self.online_provider()
        file = provider.build_new_file("https://example.com/a.txt")

        with pytest.raises(InvalidUriError):
            asyncio.run(provider.to_local_file(file, output_path="relative/out.txt"))

    def test_online_output_path_refused(self):
        provider = self.online_provider()
        file = provider.build_new_file("https://example.com/a.txt")

        with pytest.raises(InvalidUriError):
            asyncio.run(provider.to_local_file(file, output_path="https://example.com/out.txt"))

    @staticmethod
    def swarm_provider(file_name):
        provider = UniversalFileProvider()
        transport = httpx.MockTransport(lambda request: httpx.Response(
            200,
            content=b"from gateway",
            headers={"Content-Disposition": f'attachment; filename="{file_name}"'}
        ))
        provider.register_handler(
            'swarm',
            lambda: SwarmHandler(client_factory=lambda: httpx.AsyncClient(transport=transport))
        )
        return provider

    @pytest.mark.parametrize("served_name", ["{outside}/evil.txt", "../outside/evil.txt"])
    def test_served_file_name_stays_in_temp_dir(self, tmp_path, monkeypatch, served_name):
        """Test a gateway file name can't place the copy outside the temp directory."""
        temp_dir = tmp_path / "temp"
        outside = tmp_path / "outside"
        temp_dir.mkdir()
        outside.mkdir()
        monkeypatch.setattr("tempfile.tempdir", str(temp_dir))
        provider = self.swarm_provider(served_name.format(outside=outside))
        file = provider.build_new_file(f"{HASH}/page", handler='swarm')

        local = asyncio.run(provider.to_local_file(file))

        assert not (outside / "evil.txt").exists()
        assert (temp_dir / "evil.txt").read_bytes() == b"from gateway"
        assert local.file_uri.to_absolute_uri().uri == str(temp_dir / "evil.txt")

    def test_dot_dot_file_name_uses_new_temp_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr("tempfile.tempdir", str(tmp_path))
        provider = self.online_provider()
        file = provider.build_new_file("https://example.com/dir/..")

        local = asyncio.run(provider.to_local_file(file))
        path = local.file_uri.to_absolute_uri().uri

        assert os.path.dirname(path) == str(tmp_path)
        with open(path, 'rb') as f:
            assert f.read() == b"downloaded"

    def test_failed_read_leaves_no_temp_file(self, tmp_path, monkeypatch):
        """Test nothing is created when the input can't be read."""
        monkeypatch.setattr("tempfile.tempdir", str(tmp_path))
        provider = UniversalFileProvider()
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        provider.register_handler(
            'basic',
            lambda: BasicHandler(client_factory=lambda: httpx.AsyncClient(transport=transport))
        )
        file = provider.build_new_file("https://example.com/dir/")

        with pytest.raises(OnlineResourceError):
            asyncio.run(provider.to_local_file(file))
        assert list(tmp_path.iterdir()) == []


class TestSafeFileName:
    """Tests for file names used in the temp directory."""

    @pytest.mark.parametrize("name, expected", [
        ("report.csv", "report.csv"),
        ("/etc/passwd", "passwd"),
        ("../../evil.txt", "evil.txt"),
        ("C:\\Windows\\evil.dll", "evil.dll"),
        ("..\\evil.txt", "evil.txt"),
    ])
    def test_keeps_last_component(self, name, expected):
        assert _safe_file_name(name) == expected

    @pytest.mark.parametrize("name", [None, "", ".", "..", "dir/", "dir/.."])
    def test_unusable_names(self, name):
        assert _safe_file_name(name) is None
