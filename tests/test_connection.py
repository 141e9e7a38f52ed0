"""Tests for endpoint classification and the connection descriptor."""

import dataclasses

import pytest

from dockhand import ConnectionDescriptor, InvalidInputError, is_http_url, is_unix_socket
from dockhand.connection import DEFAULT_API_VERSION, DEFAULT_UNIX_SOCKET


class TestClassification:
    """http(s) URLs are TCP/TLS, everything else is a unix socket."""

    @pytest.mark.parametrize("target", [
        "http://localhost:2375",
        "https://docker.example.com:2376",
        "http://10.0.0.5",
        "https://[::1]:2376/",
    ])
    def test_http_urls(self, target):
        assert is_http_url(target)
        assert not is_unix_socket(target)

    @pytest.mark.parametrize("target", [
        "/var/run/docker.sock",
        "docker.sock",
        "./run/docker.sock",
        "~/.docker/run/docker.sock",
        "/tmp/http:/odd.sock",
    ])
    def test_paths(self, target):
        assert is_unix_socket(target)
        assert not is_http_url(target)

    def test_scheme_without_host_is_not_url(self):
        assert not is_http_url("http://")

    def test_other_schemes_are_not_urls(self):
        assert not is_http_url("ftp://example.com")

    def test_empty(self):
        assert not is_http_url("")
        assert not is_unix_socket("")
        assert not is_unix_socket(None)


class TestFromTarget:
    """Building descriptors from a single target string."""

    def test_url(self):
        d = ConnectionDescriptor.from_target("http://localhost:2375/")
        assert d.url == "http://localhost:2375"
        assert d.socket_path is None
        assert not d.is_unix
        assert d.api_version == DEFAULT_API_VERSION

    def test_socket(self):
        d = ConnectionDescriptor.from_target("/var/run/docker.sock", "1.41")
        assert d.socket_path == "/var/run/docker.sock"
        assert d.url is None
        assert d.is_unix
        assert d.api_version == "1.41"
        assert d.base_url == "unix:///var/run/docker.sock"

    def test_unix_scheme_stripped(self):
        d = ConnectionDescriptor.from_target("unix:///run/user/1000/docker.sock")
        assert d.socket_path == "/run/user/1000/docker.sock"

    def test_tcp_scheme_treated_as_http(self):
        d = ConnectionDescriptor.from_target("tcp://192.168.1.10:2375")
        assert d.url == "http://192.168.1.10:2375"

    def test_version_prefix_removed(self):
        assert ConnectionDescriptor.from_target("/x.sock", "v1.43").api_version == "1.43"

    @pytest.mark.parametrize("target", [None, "", "   ", "unix://"])
    def test_missing_target_is_invalid_input(self, target):
        with pytest.raises(InvalidInputError):
            ConnectionDescriptor.from_target(target)


class TestDescriptorInvariants:
    """Exactly one transport selector; immutable after creation."""

    def test_neither_set(self):
        with pytest.raises(InvalidInputError):
            ConnectionDescriptor()

    def test_both_set(self):
        with pytest.raises(InvalidInputError):
            ConnectionDescriptor(socket_path="/var/run/docker.sock", url="http://localhost:2375")

    def test_url_must_be_http(self):
        with pytest.raises(InvalidInputError):
            ConnectionDescriptor(url="/var/run/docker.sock")

    def test_frozen(self):
        d = ConnectionDescriptor(socket_path="/var/run/docker.sock")
        with pytest.raises(dataclasses.FrozenInstanceError):
            d.socket_path = "/other.sock"

    def test_open_unix_connection_on_url_rejected(self):
        d = ConnectionDescriptor(url="http://localhost:2375")
        with pytest.raises(InvalidInputError):
            d.open_unix_connection()


class TestFromEnv:
    """DOCKER_HOST / DOCKER_API_VERSION / DOCKER_TIMEOUT configuration."""

    def test_defaults(self):
        d = ConnectionDescriptor.from_env({})
        assert d.socket_path == DEFAULT_UNIX_SOCKET
        assert d.api_version == DEFAULT_API_VERSION

    def test_docker_host_tcp(self):
        d = ConnectionDescriptor.from_env({
            "DOCKER_HOST": "tcp://docker:2375",
            "DOCKER_API_VERSION": "1.41",
            "DOCKER_TIMEOUT": "5",
        })
        assert d.url == "http://docker:2375"
        assert d.api_version == "1.41"
        assert d.timeout == 5.0

    def test_docker_host_from_process_environment(self, monkeypatch):
        monkeypatch.setenv("DOCKER_HOST", "unix:///tmp/custom.sock")
        monkeypatch.delenv("DOCKER_API_VERSION", raising=False)
        assert ConnectionDescriptor.from_env().socket_path == "/tmp/custom.sock"

    def test_bad_timeout(self):
        with pytest.raises(InvalidInputError):
            ConnectionDescriptor.from_env({"DOCKER_TIMEOUT": "soon"})
