"""Container endpoints."""

from typing import Any, Dict, Mapping, Optional

from .call import HTTP_DELETE, HTTP_POST, Call, require
from .errors import InvalidInputError
from .result import Result, invalid_input_as_result
from .stream import Framing
from .transport import ResponseStream, invalid_input_as_stream
from .url import Category, QueryParams, to_int


class ContainerAPI:
    def __init__(self, client):
        self.client = client

    def _run(self, method: str, container_id: Optional[str],
             params: Optional[QueryParams] = None, **kwargs) -> Result:
        """Run *method* on one container, or on the collection when *container_id* is None."""
        call = Call(Category.CONTAINERS, method, resource_id=container_id,
                    params=params if params is not None else QueryParams(), **kwargs)
        return self.client.execute(call)

    def _run_on(self, method: str, container_id: str,
                params: Optional[QueryParams] = None, **kwargs) -> Result:
        return self._run(method, require(container_id, "Container id"), params, **kwargs)

    @invalid_input_as_result
    def list(self, all: bool = False, limit: Optional[int] = None, size: bool = False,
             filters: Optional[Mapping[str, Any]] = None) -> Result:
        """List containers; only running ones unless *all* is set."""
        if limit is not None:
            limit = to_int(limit, "limit")
            if limit <= 0:
                limit = None
        params = (QueryParams().add("all", all).add("limit", limit)
                  .add("size", size).add_filters(filters))
        return self._run("json", None, params)

    @invalid_input_as_result
    def create(self, config: Dict[str, Any], name: Optional[str] = None) -> Result:
        """Create a container from a full create config (``Image`` required).

        ``result.data["Id"]`` holds the new container id.
        """
        if not isinstance(config, Mapping) or not config.get("Image"):
            raise InvalidInputError("Container config needs an Image")
        return self._run("create", None, QueryParams().add("name", name),
                         http_method=HTTP_POST, body=dict(config))

    @invalid_input_as_result
    def inspect(self, container_id: str, size: bool = False) -> Result:
        return self._run_on("json", container_id, QueryParams().add("size", size))

    @invalid_input_as_result
    def top(self, container_id: str, ps_args: Optional[str] = None) -> Result:
        """Processes running inside the container."""
        return self._run_on("top", container_id, QueryParams().add("ps_args", ps_args))

    @staticmethod
    def _log_params(stdout, stderr, since, until, timestamps, tail, follow=False) -> QueryParams:
        if not (stdout or stderr):
            raise InvalidInputError("At least one of stdout and stderr must be requested")
        if tail is not None and tail != "all":
            tail = to_int(tail, "tail")
            # tail of 0 means every line
            if tail <= 0:
                tail = None
        return (QueryParams().add("follow", follow).add("stdout", stdout).add("stderr", stderr)
                .add("since", since).add("until", until).add("timestamps", timestamps)
                .add("tail", tail))

    @invalid_input_as_result
    def logs(self, container_id: str, stdout: bool = True, stderr: bool = True,
             since: Any = None, until: Any = None, timestamps: bool = False,
             tail: Any = None) -> Result:
        """Fetch logs; ``result.data`` is a list of LogFrame(stream, data)."""
        params = self._log_params(stdout, stderr, since, until, timestamps, tail)
        return self._run_on("logs", container_id, params, framing=Framing.LOG_FRAMES)

    @invalid_input_as_stream
    def logs_stream(self, container_id: str, follow: bool = True, stdout: bool = True,
                    stderr: bool = True, since: Any = None, until: Any = None,
                    timestamps: bool = False, tail: Any = None) -> ResponseStream:
        """Iterate LogFrames as they are written; with *follow* it only ends on close."""
        params = self._log_params(stdout, stderr, since, until, timestamps, tail, follow)
        call = Call(Category.CONTAINERS, "logs", resource_id=require(container_id, "Container id"),
                    params=params, framing=Framing.LOG_FRAMES)
        return self.client.stream(call)

    @invalid_input_as_result
    def changes(self, container_id: str) -> Result:
        """Filesystem changes: list of {"Path", "Kind"} (0 modified, 1 added, 2 deleted)."""
        return self._run_on("changes", container_id)

    @invalid_input_as_result
    def stats(self, container_id: str) -> Result:
        """One stats sample."""
        return self._run_on("stats", container_id, QueryParams().add_flag("stream", False))

    @invalid_input_as_stream
    def stats_stream(self, container_id: str) -> ResponseStream:
        """Iterate stats samples, one per second, until closed."""
        call = Call(Category.CONTAINERS, "stats", resource_id=require(container_id, "Container id"),
                    params=QueryParams().add_flag("stream", True), framing=Framing.LINES)
        return self.client.stream(call)

    @invalid_input_as_result
    def start(self, container_id: str, detach_keys: Optional[str] = None) -> Result:
        return self._run_on("start", container_id, QueryParams().add("detachKeys", detach_keys),
                         http_method=HTTP_POST)

    @invalid_input_as_result
    def stop(self, container_id: str, t: Optional[int] = None) -> Result:
        """Stop; the daemon answers 304 when the container is already stopped."""
        return self._run_on("stop", container_id, QueryParams().add("t", t), http_method=HTTP_POST)

    @invalid_input_as_result
    def restart(self, container_id: str, t: Optional[int] = None) -> Result:
        return self._run_on("restart", container_id, QueryParams().add("t", t), http_method=HTTP_POST)

    @invalid_input_as_result
    def kill(self, container_id: str, signal: Optional[str] = None) -> Result:
        return self._run_on("kill", container_id, QueryParams().add("signal", signal),
                         http_method=HTTP_POST)

    @invalid_input_as_result
    def rename(self, container_id: str, name: str) -> Result:
        params = QueryParams().add("name", require(name, "New container name"))
        return self._run_on("rename", container_id, params, http_method=HTTP_POST)

    @invalid_input_as_result
    def pause(self, container_id: str) -> Result:
        return self._run_on("pause", container_id, http_method=HTTP_POST)

    @invalid_input_as_result
    def unpause(self, container_id: str) -> Result:
        return self._run_on("unpause", container_id, http_method=HTTP_POST)

    @invalid_input_as_result
    def wait(self, container_id: str, condition: Optional[str] = None) -> Result:
        """Block until the container stops; condition is not-running, next-exit or removed."""
        return self._run_on("wait", container_id, QueryParams().add("condition", condition),
                         http_method=HTTP_POST)

    @invalid_input_as_result
    def remove(self, container_id: str, v: bool = False, force: bool = False,
               link: bool = False) -> Result:
        params = QueryParams().add("v", v).add("force", force).add("link", link)
        return self._run_on("", container_id, params, http_method=HTTP_DELETE)
