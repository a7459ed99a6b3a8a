from typing import Final

from ..domain.exceptions import RecordNotFoundError
from .base import ModelResource


class ResourceRegistry:
    """Maps resource URIs to the resources served by the panel."""

    def __init__(self) -> None:
        self._resources: dict[str, ModelResource] = {}

    def register(self, resource: ModelResource) -> ModelResource:
        self._resources[resource.uri] = resource
        return resource

    def get(self, uri: str) -> ModelResource:
        try:
            return self._resources[uri]
        except KeyError:
            raise RecordNotFoundError(f"Resource '{uri}' not found") from None

    def all(self) -> list[ModelResource]:
        return list(self._resources.values())

    def __contains__(self, uri: object) -> bool:
        return uri in self._resources


resources: Final = ResourceRegistry()
