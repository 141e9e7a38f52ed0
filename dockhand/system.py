"""Daemon-level endpoints: ping, version, info, disk usage and events."""

import logging
from typing import Any, Mapping, Optional

from .call import HTTP_GET, Call
from .errors import ErrorKind, InvalidInputError
from .result import Result, invalid_input_as_result
from .stream import DocumentCallback, Framing
from .transport import ResponseStream, invalid_input_as_stream
from .url import Category, QueryParams, to_timestamp

logger = logging.getLogger(__name__)


class SystemAPI:
    def __init__(self, client):
        self.client = client

    def ping(self) -> Result:
        """Liveness check. Anything but an ``OK`` answer is PING_FAILED."""
        result = self.client.execute(Call(Category.SYSTEM, "_ping"))
        if result.succeeded and isinstance(result.data, str) and result.data.strip() == "OK":
            return result
        reason = result.message if not result.is_ok() else f"daemon answered {result.http_status}"
        logger.warning(f"Ping of {self.client.descriptor.base_url} failed: {reason}")
        result.error = ErrorKind.PING_FAILED
        result.message = reason
        return result

    def version(self) -> Result:
        return self.client.execute(Call(Category.SYSTEM, "version"))

    def info(self) -> Result:
        return self.client.execute(Call(Category.SYSTEM, "info"))

    def df(self) -> Result:
        """Disk usage of images, containers, volumes and build cache."""
        return self.client.execute(Call(Category.SYSTEM, "system/df"))

    @staticmethod
    def _events_call(since, until, filters, callback=None, callback_args=None) -> Call:
        params = QueryParams().add("since", since).add("until", until).add_filters(filters)
        return Call(Category.SYSTEM, "events", params=params, http_method=HTTP_GET,
                    framing=Framing.LINES, callback=callback, callback_args=callback_args)

    @invalid_input_as_result
    def events(self, since: Any = None, until: Any = None,
               filters: Optional[Mapping[str, Any]] = None,
               callback: Optional[DocumentCallback] = None, callback_args: Any = None) -> Result:
        """Collect events between *since* and *until* (unix time or datetime).

        The daemon keeps the connection open until *until*, so it is
        mandatory here; use ``events_stream`` for an open-ended subscription.
        Events go to ``callback(event, callback_args)`` as they arrive, or
        into ``result.data`` when no callback is given.
        """
        end = to_timestamp(until)
        if end is None or end <= 0:
            raise InvalidInputError(
                "events() needs an end time; use events_stream() for an open-ended subscription"
            )
        return self.client.execute(self._events_call(since, until, filters, callback, callback_args))

    @invalid_input_as_stream
    def events_stream(self, since: Any = None, until: Any = None,
                      filters: Optional[Mapping[str, Any]] = None) -> ResponseStream:
        """Subscribe to daemon events; close the returned stream to stop."""
        return self.client.stream(self._events_call(since, until, filters))
