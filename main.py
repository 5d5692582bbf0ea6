from __future__ import annotations

import os
from pathlib import Path
import sys

from loguru import logger

from core.services.folder_detection import build_folder_mappings, generate_dry_run_summary
from core.services.project_service import ProjectService
from infrastructure.handle_store import JsonHandleStore
from infrastructure.json_state_store import JsonStateStore
from infrastructure.local_media_source import LocalMediaSource
from infrastructure.logging import init_logging
from infrastructure.settings import JsonSettings, project_settings_from
from infrastructure.utils import read_image_metadata

BASE_DIR = Path(__file__).parent
DEFAULT_STORAGE_DIR = "~/.photo-organizer/projects"


def build_project_service(settings: JsonSettings) -> ProjectService:
    """Wire the project lifecycle to local folders and JSON storage."""
    storage_dir = Path(os.path.expandvars(str(settings.get("storage_dir", DEFAULT_STORAGE_DIR)))).expanduser()
    return ProjectService(
        handle_store=JsonHandleStore(storage_dir / "handles.json"),
        state_store=JsonStateStore(storage_dir),
        source_factory=LocalMediaSource,
        default_settings=project_settings_from(settings),
        metadata_reader=read_image_metadata,
    )


def main(argv: list[str] | None = None) -> int:
    settings = JsonSettings(BASE_DIR / "settings.json")
    init_logging(settings.get("log_dir"))

    args = sys.argv[1:] if argv is None else argv
    if not args:
        logger.error("No project folder given")
        return 2

    folder = Path(args[0]).expanduser().resolve()
    source = LocalMediaSource(folder)
    files = source.list_media_files()
    mappings = build_folder_mappings(files, project_name=source.name)
    logger.info("Folder detection for {}:\n{}", folder, generate_dry_run_summary(mappings))

    service = build_project_service(settings)
    result = service.init_project(str(folder))
    logger.info(
        "Project {} ready: {} photos, {} suggested days",
        result.project_id,
        len(result.state.photos),
        len(result.suggested_days),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
