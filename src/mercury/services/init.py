"""InitService: project bootstrap: config file, database, migration stamp.

Static entry point (no store exists before init has run).
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path

from pydantic import ValidationError

from mercury.config.discovery import CONFIG_FILENAME, load_config
from mercury.config.settings import MercurySettings
from mercury.services.maintenance import MaintenanceService
from mercury.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)

_CONFIG_TEMPLATE = """\
# mercury configuration. Only overrides are needed; see the defaults in
# mercury.config.models.

[database]
# url = "sqlite:///.mercury/mercury.db"

[search]
{vectors_line}
index_name = "user-names"

[paging]
default_page_size = 100
max_page_size = 1000
"""


def render_config(vectors_path: Path | None) -> str:
    """Render a starter ``mercury.toml``."""
    if vectors_path is None:
        vectors_line = '# vectors_path = "vectors.txt"'
    else:
        # JSON string escapes are valid TOML basic-string escapes.
        vectors_line = f"vectors_path = {json.dumps(str(vectors_path))}"
    return _CONFIG_TEMPLATE.format(vectors_line=vectors_line)


class InitService:
    """Creates a mercury project directory."""

    @staticmethod
    def init_project(root: Path, *, vectors_path: Path | None = None) -> ServiceResult:
        """Write ``mercury.toml`` (unless present), create and stamp the database."""
        op = "init"
        warnings: list[str] = []
        root.mkdir(parents=True, exist_ok=True)
        config_path = root / CONFIG_FILENAME

        if config_path.exists():
            warnings.append(f"Kept existing {CONFIG_FILENAME}")
        else:
            config_path.write_text(render_config(vectors_path), encoding="utf-8")
            logger.info("Wrote %s", config_path)

        try:
            config = load_config(config_path)
        except (tomllib.TOMLDecodeError, ValidationError) as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="INVALID_CONFIG",
                    message=f"Invalid {config_path}: {exc}",
                    detail={"config_path": str(config_path)},
                ),
            )

        settings = MercurySettings.from_cli(config_path=str(config_path), root=root)

        from mercury.infrastructure.store import GraphStore

        store = GraphStore(settings)
        try:
            stamped = MaintenanceService(store).stamp_current()
        finally:
            store.close()
        if not stamped.ok:
            return stamped.model_copy(update={"op": op})

        vectors = settings.vectors_path
        if vectors is None or not vectors.is_file():
            warnings.append("No word-vector file found; set [search] vectors_path")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "root": str(root),
                "config_path": str(config_path),
                "database_url": settings.database_url,
                "vectors_path": str(config.search.vectors_path or ""),
                "revision": stamped.data["current"],
            },
            warnings=warnings,
        )
