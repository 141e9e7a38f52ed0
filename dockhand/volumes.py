"""Volume endpoints."""

from typing import Any, Dict, Mapping, Optional

from .call import HTTP_DELETE, HTTP_POST, Call, require
from .result import Result, invalid_input_as_result
from .url import Category, QueryParams


class VolumeAPI:
    def __init__(self, client):
        self.client = client

    @invalid_input_as_result
    def list(self, filters: Optional[Mapping[str, Any]] = None) -> Result:
        """``result.data`` is ``{"Volumes": [...], "Warnings": [...]}``."""
        params = QueryParams().add_filters(filters)
        return self.client.execute(Call(Category.VOLUMES, "", params=params))

    @invalid_input_as_result
    def create(self, name: Optional[str] = None, driver: Optional[str] = None,
               driver_opts: Optional[Dict[str, str]] = None,
               labels: Optional[Dict[str, str]] = None) -> Result:
        """Create a volume; the daemon picks a name when none is given."""
        body = {}
        if name:
            body["Name"] = name
        if driver:
            body["Driver"] = driver
        if driver_opts:
            body["DriverOpts"] = dict(driver_opts)
        if labels:
            body["Labels"] = dict(labels)
        return self.client.execute(
            Call(Category.VOLUMES, "create", http_method=HTTP_POST, body=body)
        )

    @invalid_input_as_result
    def inspect(self, name: str) -> Result:
        return self.client.execute(
            Call(Category.VOLUMES, "", resource_id=require(name, "Volume name"))
        )

    @invalid_input_as_result
    def remove(self, name: str, force: bool = False) -> Result:
        return self.client.execute(
            Call(Category.VOLUMES, "", resource_id=require(name, "Volume name"),
                 params=QueryParams().add("force", force), http_method=HTTP_DELETE)
        )

    @invalid_input_as_result
    def prune(self, filters: Optional[Mapping[str, Any]] = None) -> Result:
        """Delete unused volumes; ``result.data["VolumesDeleted"]`` lists them."""
        return self.client.execute(
            Call(Category.VOLUMES, "prune", params=QueryParams().add_filters(filters),
                 http_method=HTTP_POST)
        )
