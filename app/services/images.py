"""Profile image storage on the local filesystem."""

import logging
import os
from pathlib import Path

from app.config import get_settings
from app.services.security import generate_token

logger = logging.getLogger("roster")

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


class ImageStore:
    """Stores profile images under <upload_dir>/<profile_dir> with random file names."""

    def __init__(self, upload_dir: str | Path, profile_dir: str = "profile", max_size_mb: int = 2) -> None:
        self.upload_dir = Path(upload_dir)
        self.profile_folder = self.upload_dir / profile_dir
        self.max_size_mb = max_size_mb

    def create_folders(self) -> None:
        self.profile_folder.mkdir(parents=True, exist_ok=True)

    def is_too_large(self, data: bytes) -> bool:
        return len(data) > self.max_size_mb * 1024 * 1024

    def is_supported_type(self, data: bytes) -> bool:
        """Only PNG and JPEG, judged by content rather than any client-supplied name."""
        return data.startswith(PNG_SIGNATURE) or data.startswith(JPEG_SIGNATURE)

    def path_for(self, handle: str) -> Path:
        return self.profile_folder / Path(handle).name

    def save(self, data: bytes) -> str:
        """Write the image and return its handle (the stored file name)."""
        self.create_folders()
        handle = generate_token(32)
        self.path_for(handle).write_bytes(data)
        return handle

    def delete(self, handle: str) -> None:
        """Remove a stored image. A missing file is not an error."""
        file_path = self.path_for(handle)
        if file_path.exists():
            os.remove(file_path)
        else:
            logger.warning("Profile image %s already gone", handle)


_image_store: ImageStore | None = None


def get_image_store() -> ImageStore:
    """Get singleton image store configured from settings."""
    global _image_store
    if _image_store is None:
        settings = get_settings()
        _image_store = ImageStore(settings.UPLOAD_DIR, settings.PROFILE_DIR, settings.MAX_IMAGE_SIZE_MB)
    return _image_store
