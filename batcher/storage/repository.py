"""
Directory-backed store for completed job exports.
One JSON document per job, named after the job.
"""

import logging
from pathlib import Path

from batcher.constants import EXPORT_FILE_SUFFIX
from batcher.types.job import JobExport

logger = logging.getLogger(__name__)


class ExportRepository:
    """
    Reads and writes job exports under a single directory.

    All methods block on file I/O; async callers run them through
    ``asyncio.to_thread``.
    """

    def __init__(self, directory: str | Path):
        """
        Initialize the repository, creating the directory if needed.

        Args:
            directory: Where ``<job name>.json`` documents live.
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        """
        Path of the document for a job.

        Raises:
            ValueError: If the name would escape the directory.
        """
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"Job name cannot be used as a file name: {name!r}")
        return self.directory / f"{name}{EXPORT_FILE_SUFFIX}"

    def save(self, export: JobExport) -> Path:
        """
        Write a job export, replacing any previous document.

        Operation data and results are serialized by pydantic, which covers
        JSON types plus datetimes, enums, UUIDs, bytes, sets and tuples.

        Returns:
            The path written.

        Raises:
            ValueError: If the name is unusable or a value cannot be serialized.
        """
        path = self.path_for(export.name)
        document = export.model_dump_json(by_alias=True, indent=2)
        path.write_text(document, encoding="utf-8")
        logger.info(
            "Saved job export",
            extra={"job_name": export.name, "path": str(path)}
        )
        return path

    def exists(self, name: str) -> bool:
        try:
            return self.path_for(name).is_file()
        except ValueError:
            return False

    def load(self, name: str) -> JobExport | None:
        """
        Read a job export.

        Returns:
            The export, or None if no document exists for the name.
        """
        path = self.path_for(name)
        if not path.is_file():
            return None
        return JobExport.model_validate_json(path.read_text(encoding="utf-8"))

    def list_names(self) -> list[str]:
        """Names of all stored jobs, sorted."""
        return sorted(
            path.stem for path in self.directory.glob(f"*{EXPORT_FILE_SUFFIX}") if path.is_file()
        )

    def load_all(self) -> list[JobExport]:
        """
        Read every stored export.

        Documents that cannot be parsed are skipped with a warning.
        """
        exports = []
        for name in self.list_names():
            try:
                export = self.load(name)
            except ValueError as e:
                logger.warning(
                    f"Skipping unreadable job export: {e}",
                    extra={"job_name": name}
                )
                continue
            if export is not None:
                exports.append(export)
        return exports
