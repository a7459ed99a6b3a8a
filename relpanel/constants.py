"""Infrastructure and technical constants."""

from typing import Final

# Technical configuration constants
DEFAULT_PORT: Final = 8000
HTMX_SRC: Final = "https://unpkg.com/htmx.org@1.9.12"

# Query parameters shared by rendered markup and route handlers
PARENT_ID_PARAM: Final = "_parentId"
KEY_PARAM: Final = "_key"
INDEX_PARAM: Final = "_index"
COMPONENT_NAME_PARAM: Final = "_component_name"
REDIRECT_PARAM: Final = "_redirect"
RELATION_PARAM: Final = "_relation"
PARENT_RESOURCE_PARAM: Final = "_parent_resource"
BULK_IDS_PARAM: Final = "ids[]"
