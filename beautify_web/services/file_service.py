"""Result file storage service."""

import io
import zipfile
from pathlib import Path

import aiofiles

from ..config import settings

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


class FileService:
    """Service for job result files."""

    @staticmethod
    def get_results_path(job_id: int) -> Path:
        """Get the results directory path for a job."""
        return settings.results_dir / str(job_id)

    @staticmethod
    async def save_result(job_id: int, filename: str, data: bytes) -> Path:
        """
        Save a result artifact for a job.

        Args:
            job_id: Job ID
            filename: Name of the artifact inside the job's results directory
            data: File contents

        Returns:
            Path of the written file
        """
        results_dir = FileService.get_results_path(job_id)
        results_dir.mkdir(parents=True, exist_ok=True)
        file_path = results_dir / filename
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(data)
        return file_path

    @staticmethod
    def list_result_files(job_id: int) -> list[str]:
        """List result files for a job."""
        results_dir = FileService.get_results_path(job_id)
        if not results_dir.exists():
            return []
        return sorted(f.name for f in results_dir.iterdir() if f.is_file())

    @staticmethod
    def output_filename(label: str, ordinal: int, mime_type: str) -> str:
        """Name for a generated image, e.g. ``photo.jpg`` -> ``photo-beautified.png``."""
        stem = Path(label).stem if label else f"image-{ordinal}"
        ext = EXTENSIONS.get(mime_type, "png")
        return f"{stem}-beautified.{ext}"

    @staticmethod
    def build_zip(files: list[tuple[str, bytes]]) -> bytes:
        """Pack (name, data) pairs into a ZIP archive."""
        buffer = io.BytesIO()
        seen: dict[str, int] = {}
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=5) as archive:
            for name, data in files:
                count = seen.get(name, 0)
                seen[name] = count + 1
                if count:
                    path = Path(name)
                    name = f"{path.stem}-{count}{path.suffix}"
                archive.writestr(name, data)
        return buffer.getvalue()
