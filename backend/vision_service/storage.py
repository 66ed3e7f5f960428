"""
Temporary image storage.

Uploads are written to a publicly served directory so OpenAI can fetch them by
URL. Files are removed only after a successful analysis; a failed call leaves
the file in place for inspection.
"""

import logging
import os
import uuid
from typing import Optional
from urllib.parse import urlparse

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from backend.vision_service.errors import StorageError

# Used when the client filename carries no extension
MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


class TempImageStore:
    """
    Writes uploads to `upload_dir` and maps them to URLs under `public_base_url`.

    Args:
        upload_dir (str): Directory served publicly at `public_base_url`.
        public_base_url (str): URL prefix for stored files, without trailing slash.
    """

    def __init__(self, upload_dir: str, public_base_url: str):
        self.upload_dir = upload_dir
        self.public_base_url = public_base_url.rstrip("/")

    def _ensure_dir(self) -> None:
        logging.info(f"Upload directory: {self.upload_dir}")

        if not os.path.isdir(self.upload_dir):
            try:
                os.makedirs(self.upload_dir, mode=0o755, exist_ok=True)
            except OSError as e:
                logging.error(f"Failed to create directory {self.upload_dir}: {e}")
                raise StorageError("Failed to create temp_uploads directory. Check permissions.")
            logging.info(f"Created directory: {self.upload_dir}")

        if not os.access(self.upload_dir, os.W_OK):
            logging.error(f"Directory not writable: {self.upload_dir}")
            raise StorageError("temp_uploads directory is not writable. Check permissions.")

    @staticmethod
    def make_filename(upload: FileStorage) -> str:
        """Collision-resistant name: img_<uuid4 hex>.<original extension>."""
        _, ext = os.path.splitext(secure_filename(upload.filename or ""))
        ext = ext.lstrip(".").lower() or MIME_EXTENSIONS.get(upload.mimetype, "bin")
        return f"img_{uuid.uuid4().hex}.{ext}"

    def store(self, upload: FileStorage) -> str:
        """
        Save an upload and return its public URL.

        Raises:
            StorageError: The directory is unusable or the write failed.
        """
        self._ensure_dir()

        filename = self.make_filename(upload)
        file_path = os.path.join(self.upload_dir, filename)

        try:
            upload.save(file_path)
        except OSError as e:
            logging.error(f"Failed to save uploaded file to {file_path}: {e}")
            raise StorageError(f"Failed to move uploaded file. Error: {e}")

        logging.info(f"Stored upload at: {file_path}")

        url = f"{self.public_base_url}/{filename}"
        logging.info(f"Generated URL: {url}")
        return url

    def path_for(self, url: str) -> Optional[str]:
        """
        Local path of a URL returned by store().

        Only the last path segment is used, so a URL can never reach outside
        the upload directory.
        """
        filename = os.path.basename(urlparse(url).path)
        if not filename:
            return None
        return os.path.join(self.upload_dir, filename)

    def delete(self, url: str) -> None:
        """Remove a stored file. Does nothing if it is already gone."""
        path = self.path_for(url)
        if path is None:
            return
        try:
            os.remove(path)
            logging.info(f"Deleted temp file: {path}")
        except FileNotFoundError:
            pass
