import base64
import binascii
import logging
import re
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional

from .errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_CHUNK_SIZE = 64 * 1024


def encode_image(data: bytes) -> str:
    """Raw image bytes -> base64 text as stored in the prod_img column."""
    return base64.b64encode(data).decode("ascii")


def decode_image(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise StorageError("Stored image is not valid base64") from exc


def _safe_name(filename: Optional[str]) -> str:
    name = _UNSAFE_CHARS.sub("_", Path(filename or "upload").name).strip("._")
    return name or "upload"


class ImageStore:
    """
    Captures uploaded images.

    An upload is spooled to a transient file in `upload_dir` (served read-only
    under /uploads), read back as bytes for the repository and removed as soon
    as the caller's block exits, whether it succeeded or not.
    """

    def __init__(self, upload_dir: Path, max_bytes: int, allowed_types: Iterable[str], clock=time.time):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes
        self.allowed_types = frozenset(allowed_types)
        self._clock = clock
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def _check_type(self, content_type: Optional[str]) -> None:
        if content_type not in self.allowed_types:
            allowed = ", ".join(sorted(self.allowed_types))
            raise ValidationError(f"Unsupported image type {content_type!r}; expected one of: {allowed}")

    def _spool(self, stream: BinaryIO, target: Path) -> None:
        written = 0
        with target.open("wb") as out:
            while True:
                chunk = stream.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > self.max_bytes:
                    raise ValidationError(f"Image exceeds the {self.max_bytes} byte limit")
                out.write(chunk)

    @contextmanager
    def capture(self, upload) -> Iterator[Optional[bytes]]:
        """
        Yield the bytes of `upload` (a FastAPI/Starlette UploadFile), or None
        when no file was sent.
        """
        if upload is None or not getattr(upload, "filename", None):
            yield None
            return

        self._check_type(upload.content_type)
        target = self.upload_dir / f"{int(self._clock() * 1000)}-{uuid.uuid4().hex}-{_safe_name(upload.filename)}"
        try:
            self._spool(upload.file, target)
            data = target.read_bytes()
            logger.debug("Captured upload %s (%d bytes)", target.name, len(data))
            yield data
        finally:
            target.unlink(missing_ok=True)

