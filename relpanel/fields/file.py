import shutil
import uuid
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from markupsafe import Markup, escape

from ..config import settings
from ..logging_config import get_logger
from .base import Field

logger = get_logger(__name__)


class File(Field):
    """File upload. The column stores a path relative to ``settings.storage_dir``."""

    input_type = "file"

    def __init__(
        self,
        label: str,
        column: str | None = None,
        formatted: Callable[[Any], Any] | None = None,
        directory: str = "",
    ):
        super().__init__(label, column, formatted)
        self.directory = directory

    def storage_root(self) -> Path:
        return Path(settings.storage_dir)

    def path_for(self, stored: str) -> Path:
        return self.storage_root() / stored

    def render_preview(self, value: Any) -> Markup:
        if not value:
            return Markup("")
        return Markup('<span class="file-name">{}</span>').format(
            escape(Path(str(value)).name)
        )

    def store(self, upload: Any) -> str:
        """Copy an uploaded file into storage and return its relative path."""
        filename = Path(upload.filename).name
        relative = Path(self.directory) / f"{uuid.uuid4().hex}-{filename}"
        target = self.path_for(str(relative))
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("wb") as destination:
            shutil.copyfileobj(upload.file, destination)
        logger.info("Stored uploaded file", field=self.column, path=str(relative))
        return relative.as_posix()

    def apply(self, data: dict[str, Any], form: Mapping[str, Any]) -> dict[str, Any]:
        upload = form.get(self.column)
        if upload is None or not getattr(upload, "filename", None):
            # Nothing uploaded: keep whatever is stored
            self.validate(self.to_value())
            return data
        data[self.column] = self.store(upload)
        return data

    def after_destroy(self, record: Any) -> Any:
        stored = self.to_value()
        if not stored:
            return record
        path = self.path_for(str(stored))
        path.unlink(missing_ok=True)
        logger.info("Removed stored file", field=self.column, path=str(stored))
        return record
