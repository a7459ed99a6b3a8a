"""Shared Jinja2 environment for pages, components and fields."""

from pathlib import Path
from typing import Any, Final

from fastapi.templating import Jinja2Templates
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .config import settings
from .constants import HTMX_SRC
from .routing import admin_router

TEMPLATES_DIR: Final = Path(__file__).resolve().parent / "templates"
STATIC_DIR: Final = Path(__file__).resolve().parent / "static"

jinja_env: Final = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
jinja_env.globals.update(settings=settings, router=admin_router, htmx_src=HTMX_SRC)

templates: Final = Jinja2Templates(env=jinja_env)


def render_template(name: str, **context: Any) -> Markup:
    """Render a template to safe markup for embedding in other templates."""
    return Markup(jinja_env.get_template(name).render(**context))
