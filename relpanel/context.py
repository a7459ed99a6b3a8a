"""Per-request rendering context passed to resources and relation fields."""

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlmodel import Session

if TYPE_CHECKING:
    from .resources.base import ModelResource


class PageType(StrEnum):
    INDEX = "index"
    DETAIL = "detail"
    FORM = "form"


@dataclass
class RenderContext:
    """Everything a render needs that is not on the record itself."""

    session: Session | None = None
    resource: "ModelResource | None" = None
    page_type: PageType = PageType.INDEX
    user: str | None = None
    search: str | None = None
    page: int = 1

    @property
    def resource_uri(self) -> str:
        return self.resource.uri if self.resource is not None else ""

    @property
    def is_on_form(self) -> bool:
        return self.page_type == PageType.FORM
