# finzoo/services/media_staging.py
"""
Staging list for a pet's images or videos.

Each item is either already uploaded (it has a public URL) or pending
(it holds an open upload handle plus an ephemeral preview token). The
order is meaningful: item 0 is the cover.
"""
import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Iterable

from finzoo.core.storage_utils import IMAGE_FOLDER, VIDEO_FOLDER

logger = logging.getLogger(__name__)

ALLOWED_VIDEO_CONTENT_TYPES = frozenset(
    {
        "video/mp4",
        "video/webm",
        "video/ogg",
        "video/quicktime",  # .mov
        "video/x-msvideo",  # .avi
    }
)


class MediaUploadError(Exception):
    """A pending file could not be uploaded; nothing was saved."""


@dataclass(frozen=True)
class MediaRules:
    kind: str
    max_bytes: int
    folder: str
    default_ext: str

    def rejection(self, content_type: str | None, size: int) -> str | None:
        """Why a file is refused, or None if it is acceptable."""
        content_type = (content_type or "").lower()
        if self.kind == "image":
            if not content_type.startswith("image/"):
                return "Please upload image files only (JPG, PNG, GIF, WebP)"
        elif content_type not in ALLOWED_VIDEO_CONTENT_TYPES:
            return "Please upload video files only (MP4, WebM, OGG, MOV, AVI)"
        if size > self.max_bytes:
            limit_mb = self.max_bytes // (1024 * 1024)
            return f"Each {self.kind} must be less than {limit_mb}MB"
        return None


def image_rules(max_bytes: int = 5 * 1024 * 1024) -> MediaRules:
    return MediaRules(kind="image", max_bytes=max_bytes, folder=IMAGE_FOLDER, default_ext="jpg")


def video_rules(max_bytes: int = 50 * 1024 * 1024) -> MediaRules:
    return MediaRules(kind="video", max_bytes=max_bytes, folder=VIDEO_FOLDER, default_ext="mp4")


@dataclass
class PendingFile:
    """A local file waiting to be uploaded."""

    filename: str | None
    content_type: str | None
    file: BinaryIO

    @property
    def size(self) -> int:
        pos = self.file.tell()
        self.file.seek(0, 2)
        size = self.file.tell()
        self.file.seek(pos)
        return size

    def read(self) -> bytes:
        self.file.seek(0)
        return self.file.read()

    def release(self) -> None:
        self.file.close()


@dataclass
class StagedItem:
    url: str | None = None
    pending: PendingFile | None = None
    preview: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.pending is not None


@dataclass
class Rejection:
    filename: str | None
    reason: str


@dataclass
class MediaSnapshot:
    """What the staging list tells its owner after each change."""

    existing: list[str]
    pending: list[PendingFile]
    revision: int
    key: str


def url_set_key(urls: Iterable[str]) -> str:
    """Order-independent content hash of a set of uploaded URLs."""
    joined = "\n".join(sorted(urls))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


# Upload callable: (pending file, bytes, rules) -> public URL
Uploader = Callable[[PendingFile, bytes, MediaRules], str]


class MediaStaging:
    """
    Reconciles already-uploaded URLs with pending local files.

    Echo handling: `snapshot()` remembers the key of the URL set it
    emitted. When the owner hands URLs back through `sync()`, they are
    ignored if they match that key (an echo) and applied otherwise
    (genuinely new data, e.g. a different pet). Pending files survive
    a sync either way.
    """

    def __init__(self, rules: MediaRules, existing: Iterable[str] = ()):
        self.rules = rules
        self.items: list[StagedItem] = [StagedItem(url=url) for url in existing]
        self.revision = 0
        self._previews: dict[str, PendingFile] = {}
        self._emitted_key = url_set_key(self.existing_urls)

    # ----- Views -----

    @property
    def existing_urls(self) -> list[str]:
        return [item.url for item in self.items if item.url is not None]

    @property
    def pending_files(self) -> list[PendingFile]:
        return [item.pending for item in self.items if item.pending is not None]

    @property
    def cover(self) -> StagedItem | None:
        return self.items[0] if self.items else None

    def preview(self, token: str) -> PendingFile | None:
        """Resolve a preview token while its item is still staged."""
        return self._previews.get(token)

    def snapshot(self) -> MediaSnapshot:
        urls = self.existing_urls
        self._emitted_key = url_set_key(urls)
        return MediaSnapshot(
            existing=urls,
            pending=self.pending_files,
            revision=self.revision,
            key=self._emitted_key,
        )

    # ----- Mutations -----

    def add_files(self, files: Iterable[PendingFile]) -> list[Rejection]:
        """
        Validate and stage files one by one.

        Invalid files are rejected individually (and closed); the valid
        ones in the same batch are still accepted.
        """
        rejected: list[Rejection] = []
        accepted = 0
        for pending in files:
            reason = self.rules.rejection(pending.content_type, pending.size)
            if reason is not None:
                rejected.append(Rejection(filename=pending.filename, reason=reason))
                pending.release()
                continue
            token = secrets.token_urlsafe(12)
            self._previews[token] = pending
            self.items.append(StagedItem(pending=pending, preview=token))
            accepted += 1

        if accepted:
            self.revision += 1
        return rejected

    def remove(self, index: int) -> StagedItem:
        """Drop an item; a pending file is closed right away."""
        item = self.items.pop(index)
        self._release(item)
        self.revision += 1
        return item

    def set_cover(self, index: int) -> None:
        """Move the item at `index` to the front."""
        if index == 0:
            return
        item = self.items.pop(index)
        self.items.insert(0, item)
        self.revision += 1

    def is_echo(self, urls: Iterable[str]) -> bool:
        return url_set_key(urls) == self._emitted_key

    def sync(self, urls: list[str]) -> bool:
        """
        Take a fresh list of uploaded URLs from the owner.

        Returns:
            False if `urls` merely echoes the last snapshot (nothing
            changes), True if the uploaded items were replaced.
        """
        if self.is_echo(urls):
            return False
        pending = [item for item in self.items if item.is_pending]
        self.items = [StagedItem(url=url) for url in urls] + pending
        self._emitted_key = url_set_key(urls)
        self.revision += 1
        return True

    def commit(self, uploader: Uploader) -> list[str]:
        """
        Upload every pending file and return the final ordered URL list.

        All uploads must succeed before the caller writes the pet row.
        On the first failure nothing in the list changes, so the same
        staging can be committed again; files uploaded before the failure
        are left in the bucket.

        Raises:
            MediaUploadError
        """
        uploaded: dict[int, str] = {}
        for idx, item in enumerate(self.items):
            if item.pending is None:
                continue
            try:
                uploaded[idx] = uploader(item.pending, item.pending.read(), self.rules)
            except Exception as e:
                logger.exception("Upload failed for %s", item.pending.filename)
                raise MediaUploadError(
                    f"Failed to upload {item.pending.filename or self.rules.kind}"
                ) from e

        for idx, url in uploaded.items():
            item = self.items[idx]
            self._release(item)
            self.items[idx] = StagedItem(url=url)
        if uploaded:
            self.revision += 1
        return self.existing_urls

    def close(self) -> None:
        """Release every pending file (owner is done with the staging)."""
        for item in self.items:
            self._release(item)

    def _release(self, item: StagedItem) -> None:
        if item.preview is not None:
            self._previews.pop(item.preview, None)
        if item.pending is not None:
            item.pending.release()
