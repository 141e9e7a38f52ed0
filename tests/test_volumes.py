"""Tests for the volume endpoints."""

import json

from dockhand import ErrorKind


class TestVolumes:
    """Collection and single-volume operations."""

    def test_list(self, fake_daemon, client):
        fake_daemon.route("GET", "/volumes", body={"Volumes": [{"Name": "data"}], "Warnings": None})
        result = client.volumes.list(filters={"dangling": ["true"]})
        assert result.data["Volumes"] == [{"Name": "data"}]
        assert fake_daemon.last_request.path == "/v1.39/volumes"
        assert json.loads(fake_daemon.last_request.query["filters"]) == {"dangling": ["true"]}

    def test_create(self, fake_daemon, client):
        fake_daemon.route("POST", "/volumes/create", status=201, body={"Name": "data", "Driver": "local"})
        result = client.volumes.create("data", driver="local", labels={"team": "infra"})
        assert result.data["Name"] == "data"
        assert json.loads(fake_daemon.last_request.body) == {
            "Name": "data", "Driver": "local", "Labels": {"team": "infra"},
        }

    def test_create_anonymous(self, fake_daemon, client):
        fake_daemon.route("POST", "/volumes/create", status=201, body={"Name": "f00d"})
        client.volumes.create()
        assert json.loads(fake_daemon.last_request.body) == {}

    def test_inspect_and_remove(self, fake_daemon, client):
        fake_daemon.route("GET", "/volumes/data", body={"Name": "data"})
        fake_daemon.route("DELETE", "/volumes/data", status=204)
        assert client.volumes.inspect("data").data == {"Name": "data"}
        assert client.volumes.remove("data", force=True).succeeded
        assert fake_daemon.last_request.query == {"force": "true"}

    def test_remove_in_use(self, fake_daemon, client):
        fake_daemon.route("DELETE", "/volumes/data", status=409, body={"message": "volume is in use"})
        result = client.volumes.remove("data")
        assert result.is_ok()
        assert result.error_message() == "volume is in use"

    def test_prune(self, fake_daemon, client):
        fake_daemon.route("POST", "/volumes/prune", body={"VolumesDeleted": ["old"], "SpaceReclaimed": 10})
        assert client.volumes.prune().data["VolumesDeleted"] == ["old"]

    def test_name_required(self, fake_daemon, client):
        assert client.volumes.inspect(" ").error is ErrorKind.INVALID_INPUT
        assert fake_daemon.requests == []
