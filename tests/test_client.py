"""Tests for client construction."""

from dockhand import ConnectionDescriptor, DockerClient


class TestDockerClient:
    """Endpoint selection and the operation groups."""

    def test_base_url(self):
        client = DockerClient(base_url="https://docker.example.com:2376", api_version="1.43")
        assert client.descriptor.url == "https://docker.example.com:2376"
        assert client.descriptor.api_version == "1.43"
        assert client.transport.descriptor is client.descriptor

    def test_descriptor_wins(self):
        descriptor = ConnectionDescriptor(socket_path="/run/docker.sock")
        client = DockerClient(descriptor, base_url="http://ignored:2375")
        assert client.descriptor is descriptor

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("DOCKER_HOST", "tcp://build-host:2375")
        monkeypatch.setenv("DOCKER_API_VERSION", "1.41")
        client = DockerClient()
        assert client.descriptor.url == "http://build-host:2375"
        assert client.descriptor.api_version == "1.41"

    def test_from_env_mapping(self):
        client = DockerClient.from_env({"DOCKER_HOST": "unix:///tmp/d.sock"})
        assert client.descriptor.socket_path == "/tmp/d.sock"

    def test_groups_share_client(self):
        client = DockerClient(base_url="/var/run/docker.sock")
        for group in (client.system, client.containers, client.images, client.volumes):
            assert group.client is client

    def test_context_manager_and_repr(self):
        with DockerClient(base_url="/var/run/docker.sock") as client:
            assert repr(client) == "<DockerClient unix:///var/run/docker.sock v1.39>"

    def test_close_ends_open_streams(self, fake_daemon):
        fake_daemon.route("GET", "/events", chunks=[b'{"Type":"container","Action":"start"}\n'])
        with DockerClient(ConnectionDescriptor(socket_path=fake_daemon.socket_path)) as client:
            stream = client.system.events_stream()
            assert stream.result.http_status == 200
            assert not stream.closed
        assert stream.closed

    def test_close_keeps_finished_results(self, fake_daemon):
        fake_daemon.route("GET", "/events", chunks=[b'{"Type":"container","Action":"start"}\n'])
        client = DockerClient(ConnectionDescriptor(socket_path=fake_daemon.socket_path))
        stream = client.system.events_stream()
        documents = stream.drain()
        client.close()
        client.close()
        assert documents == [{"Type": "container", "Action": "start"}]
        assert stream.result.succeeded
