"""Google Cloud Storage access for source PDFs and text exports."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Any

from .errors import IOFailure
from .utils import TEXT_EXTENSION

log = logging.getLogger(__name__)


def source_path(bucket_url: str, bucket: str) -> str:
    """Object path inside *bucket* for a stored ``bucketUrl``.

    The path is whatever follows the last occurrence of the bucket name, so
    ``gs://theses/2023/a.pdf`` and
    ``https://storage.googleapis.com/theses/2023/a.pdf`` both resolve to
    ``2023/a.pdf``.
    """
    index = bucket_url.rfind(bucket)
    if index < 0:
        raise IOFailure(f"{bucket_url!r} does not point into bucket {bucket!r}")
    path = bucket_url[index + len(bucket) :].lstrip("/")
    if not path:
        raise IOFailure(f"{bucket_url!r} has no object path")
    return path


def text_export_path(object_path: str) -> str:
    """Name of the plain-text export for a source object: ``<stem>.txt``."""
    return PurePosixPath(object_path).stem + TEXT_EXTENSION


class ObjectStorage:
    """Thin wrapper over ``google.cloud.storage.Client``."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def connect(cls, project_id: str | None = None) -> "ObjectStorage":
        from google.cloud import storage

        return cls(storage.Client(project=project_id))

    def download(self, bucket: str, path: str, destination: Path) -> Path:
        """Copy ``gs://<bucket>/<path>`` to *destination*, creating parents."""
        from google.api_core.exceptions import GoogleAPIError

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            blob = self._client.bucket(bucket).blob(path)
            blob.download_to_filename(str(destination))
        except (GoogleAPIError, OSError) as exc:
            raise IOFailure(f"Download of gs://{bucket}/{path} failed: {exc}") from exc
        log.debug("Downloaded gs://%s/%s -> %s", bucket, path, destination)
        return destination

    def upload_text(self, bucket: str, path: str, text: str) -> None:
        """Write *text* to ``gs://<bucket>/<path>`` as UTF-8."""
        from google.api_core.exceptions import GoogleAPIError

        try:
            blob = self._client.bucket(bucket).blob(path)
            blob.upload_from_string(
                text.encode("utf-8"),
                content_type="text/plain; charset=utf-8",
            )
        except GoogleAPIError as exc:
            raise IOFailure(f"Upload to gs://{bucket}/{path} failed: {exc}") from exc
        log.debug("Uploaded %s chars to gs://%s/%s", len(text), bucket, path)
