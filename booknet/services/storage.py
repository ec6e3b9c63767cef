"""
Cover Storage Service

Writes uploaded book covers to local disk:

    <upload_dir>/users/<owner_id>/<millis>.<ext>

The returned path is saved on the book by the registry. Storage is a
sink: it is never consulted by lending decisions.
"""

import logging
import time
from pathlib import Path

from booknet.errors import InvalidRequestError, LendingErrorCode

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})


def get_file_extension(filename: str | None) -> str:
    """
    Lower-cased extension of a file name, without the dot.

    Example:
        >>> get_file_extension("Cover.JPG")
        'jpg'
        >>> get_file_extension("README")
        ''
    """
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


class CoverStorage:
    """
    Local-disk storage for cover images.

    Args:
        base_path: Root directory for uploads
        max_size_bytes: Largest accepted file
    """

    def __init__(self, base_path: str | Path, max_size_bytes: int) -> None:
        self.base_path = Path(base_path)
        self.max_size_bytes = max_size_bytes

    def save_cover(self, content: bytes, filename: str | None, owner_id: int) -> str:
        """
        Store a cover image for one of the owner's books.

        Args:
            content: Raw file bytes
            filename: Original file name (used for the extension only)
            owner_id: Owner of the book, used as the sub-directory

        Returns:
            Path of the stored file

        Raises:
            InvalidRequestError: Empty, oversized or non-image file
            OSError: If the file cannot be written
        """
        extension = get_file_extension(filename)
        if extension not in ALLOWED_EXTENSIONS:
            raise InvalidRequestError(
                LendingErrorCode.INVALID_FILE,
                f"Cover must be one of: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
            )
        if not content:
            raise InvalidRequestError(LendingErrorCode.INVALID_FILE, "Cover file is empty")
        if len(content) > self.max_size_bytes:
            raise InvalidRequestError(
                LendingErrorCode.INVALID_FILE,
                f"Cover exceeds {self.max_size_bytes} bytes",
            )

        target_folder = self.base_path / "users" / str(owner_id)
        target_folder.mkdir(parents=True, exist_ok=True)

        target = target_folder / f"{int(time.time() * 1000)}.{extension}"
        target.write_bytes(content)

        logger.info(f"Cover saved to: {target}")
        return str(target)
