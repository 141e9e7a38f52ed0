"""Image endpoints, including streamed pull and build progress."""

import logging
import os
from typing import Any, BinaryIO, Dict, Mapping, Optional, Union

from .call import HTTP_DELETE, HTTP_POST, Call, require
from .errors import ErrorKind, InvalidInputError
from .result import Result, invalid_input_as_result
from .stream import DocumentCallback, Framing
from .transport import RejectedStream, ResponseStream, invalid_input_as_stream
from .url import Category, QueryParams

logger = logging.getLogger(__name__)

DEFAULT_DOCKERFILE = "Dockerfile"

BuildContext = Union[bytes, bytearray, BinaryIO, str, os.PathLike]


def progress_error(document: Any) -> Optional[str]:
    """Error message carried by a pull/build progress document, if any."""
    if not isinstance(document, dict) or "error" not in document:
        return None
    detail = document.get("errorDetail") or {}
    return detail.get("message") or document["error"]


class _ErrorWatcher:
    """Pass progress documents on while remembering the first error."""

    def __init__(self, callback: Optional[DocumentCallback]):
        self.callback = callback
        self.error: Optional[str] = None
        self.documents = []

    def __call__(self, document: Any, callback_args: Any) -> None:
        message = progress_error(document)
        if message and self.error is None:
            self.error = message
        if self.callback is not None:
            self.callback(document, callback_args)
        else:
            self.documents.append(document)


def _read_context(context: BuildContext) -> bytes:
    """Tar archive bytes from bytes, a readable file object or a path."""
    if isinstance(context, (bytes, bytearray)):
        return bytes(context)
    if hasattr(context, "read"):
        return context.read()
    with open(context, "rb") as f:
        return f.read()


def _context_missing(e: FileNotFoundError) -> Result:
    logger.error(f"Build context not found: {e.filename}")
    return Result.not_attempted(ErrorKind.FILE_NOT_FOUND, f"Build context not found: {e.filename}")


class ImageAPI:
    def __init__(self, client):
        self.client = client

    @invalid_input_as_result
    def list(self, all: bool = False, digests: bool = False,
             filters: Optional[Mapping[str, Any]] = None) -> Result:
        params = QueryParams().add("all", all).add("digests", digests).add_filters(filters)
        return self.client.execute(Call(Category.IMAGES, "json", params=params))

    @invalid_input_as_result
    def inspect(self, name: str) -> Result:
        return self.client.execute(
            Call(Category.IMAGES, "json", resource_id=require(name, "Image name"))
        )

    @invalid_input_as_result
    def remove(self, name: str, force: bool = False, noprune: bool = False) -> Result:
        params = QueryParams().add("force", force).add("noprune", noprune)
        return self.client.execute(
            Call(Category.IMAGES, "", resource_id=require(name, "Image name"),
                 params=params, http_method=HTTP_DELETE)
        )

    @staticmethod
    def _pull_call(from_image, tag, platform, callback=None, callback_args=None) -> Call:
        params = (QueryParams().add("fromImage", require(from_image, "Image to pull"))
                  .add("tag", tag).add("platform", platform))
        return Call(Category.IMAGES, "create", params=params, http_method=HTTP_POST,
                    framing=Framing.CONCATENATED, callback=callback, callback_args=callback_args)

    def _run_progress(self, call: Call, what: str) -> Result:
        watcher = _ErrorWatcher(call.callback)
        call.callback = watcher
        result = self.client.execute(call)
        if watcher.callback is None and result.succeeded:
            result.data = watcher.documents
        if not result.is_ok():
            return result
        if not result.succeeded:
            # a rejected pull or build has no progress to report
            message = result.error_message()
        elif watcher.error:
            # the daemon reports pull and build failures inside a 200 stream
            message = watcher.error
        else:
            return result
        logger.error(f"{what} failed: {message}")
        result.error = ErrorKind.UNKNOWN_ERROR
        result.message = message
        return result

    @invalid_input_as_result
    def pull(self, from_image: str, tag: Optional[str] = None, platform: Optional[str] = None,
             callback: Optional[DocumentCallback] = None, callback_args: Any = None) -> Result:
        """Pull an image, reporting each progress document to *callback*.

        Progress documents look like ``{"status", "id", "progress",
        "progressDetail": {"current", "total"}}``. An error document in the
        stream, or a non-2xx answer, marks the result UNKNOWN_ERROR with the
        daemon's message.
        """
        call = self._pull_call(from_image, tag, platform, callback, callback_args)
        return self._run_progress(call, f"Pull of {from_image}")

    @invalid_input_as_stream
    def pull_stream(self, from_image: str, tag: Optional[str] = None,
                    platform: Optional[str] = None) -> ResponseStream:
        return self.client.stream(self._pull_call(from_image, tag, platform))

    @staticmethod
    def _build_call(context: bytes, dockerfile, tag, quiet, nocache, rm, pull,
                    buildargs, labels, platform, callback=None, callback_args=None) -> Call:
        if not context:
            raise InvalidInputError("Build context archive is empty")
        params = (QueryParams().add("dockerfile", dockerfile or DEFAULT_DOCKERFILE)
                  .add("t", tag).add("q", quiet).add("nocache", nocache)
                  .add("pull", pull).add("platform", platform)
                  .add_json("buildargs", buildargs).add_json("labels", labels))
        # rm defaults to true on the daemon side, so false must be explicit
        params.add_flag("rm", rm)
        return Call(Category.SYSTEM, "build", params=params, http_method=HTTP_POST,
                    body=context, content_type="application/x-tar",
                    framing=Framing.CONCATENATED, callback=callback, callback_args=callback_args)

    @invalid_input_as_result
    def build(self, context: BuildContext, dockerfile: str = DEFAULT_DOCKERFILE,
              tag: Optional[str] = None, quiet: bool = False, nocache: bool = False,
              rm: bool = True, pull: bool = False,
              buildargs: Optional[Dict[str, str]] = None,
              labels: Optional[Dict[str, str]] = None, platform: Optional[str] = None,
              callback: Optional[DocumentCallback] = None, callback_args: Any = None) -> Result:
        """Build from a prepared tar archive of the build context.

        *context* may be the archive bytes, a binary file object or the path
        of a ``.tar`` file. A missing path gives a FILE_NOT_FOUND result.
        Build output arrives as ``{"stream": ...}`` documents; the final
        image id as ``{"aux": {"ID": ...}}``.
        """
        try:
            archive = _read_context(context)
        except FileNotFoundError as e:
            return _context_missing(e)
        call = self._build_call(archive, dockerfile, tag, quiet, nocache, rm, pull,
                                buildargs, labels, platform, callback, callback_args)
        return self._run_progress(call, f"Build of {tag or 'image'}")

    @invalid_input_as_stream
    def build_stream(self, context: BuildContext, dockerfile: str = DEFAULT_DOCKERFILE,
                     tag: Optional[str] = None, quiet: bool = False, nocache: bool = False,
                     rm: bool = True, pull: bool = False,
                     buildargs: Optional[Dict[str, str]] = None,
                     labels: Optional[Dict[str, str]] = None,
                     platform: Optional[str] = None) -> ResponseStream:
        """Iterate build output; a missing context path gives a closed stream."""
        try:
            archive = _read_context(context)
        except FileNotFoundError as e:
            return RejectedStream(_context_missing(e))
        call = self._build_call(archive, dockerfile, tag, quiet, nocache,
                                rm, pull, buildargs, labels, platform)
        return self.client.stream(call)
