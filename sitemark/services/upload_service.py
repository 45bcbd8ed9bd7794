"""
Photo upload service for SiteMark.

This module packages a photo, its metadata and its annotations into the
multipart form the project-photo API expects, and sends it:

- build_upload_form(): photo file + caption, tags, trade category,
  annotationsData, takenAt, and the optional roomArea/notes/GPS fields
- PhotoUploader: one blocking POST with bearer auth (requests)
- UploadService: runs one upload at a time on a worker thread and reports
  back through Qt signals

Every failure, HTTP or network, surfaces as UploadError carrying a message
fit to show the user. Nothing is retried automatically.
"""

import json
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import requests
from PySide6.QtCore import QObject, Signal

from sitemark.editor.annotations import Annotation
from sitemark.services.logging_service import get_logger


GENERIC_FAILURE = "Upload failed"
NETWORK_FAILURE = "Could not save photo. Please try again."
PHOTO_CONTENT_TYPE = "image/jpeg"

FileField = Tuple[str, bytes, str]


class UploadError(Exception):
    """An upload did not succeed. `message` is safe to show the user."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class GpsCoordinates:
    """Where a photo was taken. Accuracy is in meters when known."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    def to_dict(self) -> Dict[str, float]:
        data = {"latitude": self.latitude, "longitude": self.longitude}
        if self.accuracy is not None:
            data["accuracy"] = self.accuracy
        return data


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    # Naive datetimes are taken as local time
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def photo_filename(now: Optional[float] = None) -> str:
    """Upload filename derived from the current time, e.g. photo_1700000000000.jpg."""
    if now is None:
        now = time.time()
    return f"photo_{int(now * 1000)}.jpg"


@dataclass
class PhotoMetadata:
    """
    Descriptive fields sent with a photo.

    Attributes:
        caption: Free text caption, may be empty.
        notes: Longer notes, sent only when non-empty.
        trade_category: Trade label such as "Electrical", may be empty.
        room_area: Room or area name, sent only when non-empty.
        gps: Capture location, sent only when known.
        taken_at: Capture time.
    """
    caption: str = ""
    notes: str = ""
    trade_category: str = ""
    room_area: str = ""
    gps: Optional[GpsCoordinates] = None
    taken_at: datetime = field(default_factory=_utc_now)


@dataclass
class UploadForm:
    """Multipart body split the way requests wants it."""
    data: Dict[str, str]
    files: Dict[str, FileField]


def build_upload_form(
    photo_path: Union[str, Path],
    annotations: Iterable[Annotation],
    tags: Iterable[str],
    metadata: PhotoMetadata,
    filename: Optional[str] = None,
) -> UploadForm:
    """
    Build the multipart form for one photo.

    Args:
        photo_path: Local photo file.
        annotations: Committed annotations, in drawing order.
        tags: Tag labels (colors are not uploaded).
        metadata: Caption, notes, trade category, room, GPS, capture time.
        filename: Override for the uploaded file name.

    Returns:
        The form, ready for PhotoUploader.upload().

    Raises:
        OSError: If the photo cannot be read.
        ValueError: If an annotation is incomplete.
    """
    annotation_list = list(annotations)
    for annotation in annotation_list:
        if not annotation.is_complete():
            raise ValueError(f"Annotation {annotation.id} is incomplete")

    photo_bytes = Path(photo_path).read_bytes()

    data: Dict[str, str] = {
        "caption": metadata.caption or "",
        "tags": json.dumps(list(tags)),
        "tradeCategory": metadata.trade_category or "",
        "annotationsData": json.dumps([a.to_dict() for a in annotation_list]),
        "takenAt": format_timestamp(metadata.taken_at),
    }
    if metadata.room_area:
        data["roomArea"] = metadata.room_area
    if metadata.notes:
        data["notes"] = metadata.notes
    if metadata.gps is not None:
        data["gpsCoordinates"] = json.dumps(metadata.gps.to_dict())

    files: Dict[str, FileField] = {
        "file": (filename or photo_filename(), photo_bytes, PHOTO_CONTENT_TYPE),
    }
    return UploadForm(data=data, files=files)


@dataclass(frozen=True)
class UploadTarget:
    """
    Endpoint a photo is posted to.

    Attributes:
        path: URL path below the server base URL.
        extra_fields: Form fields the endpoint expects besides the photo form.
    """
    path: str
    extra_fields: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def mobile(cls, project_id: str) -> "UploadTarget":
        """Project photo endpoint used by the capture app."""
        if not project_id:
            raise ValueError("project_id is required")
        return cls(path=f"/api/mobile/projects/{project_id}/photos")

    @classmethod
    def survey(cls, project_id: str, update_id: str) -> "UploadTarget":
        """Site-survey endpoint attached to a project update."""
        if not project_id or not update_id:
            raise ValueError("project_id and update_id are required")
        return cls(
            path=f"/api/projects/{project_id}/updates/{update_id}/survey-photos",
            extra_fields=(("projectId", project_id), ("updateId", update_id)),
        )


@dataclass
class UploadResult:
    """Parsed success response."""
    payload: Dict[str, Any]
    status_code: int = 200

    @property
    def dropbox_path(self) -> Optional[str]:
        return self.payload.get("dropboxPath") or None

    @property
    def confirmation_message(self) -> str:
        if self.dropbox_path:
            return "Photo uploaded to Dropbox and saved to database."
        return "Photo saved to database."


class PhotoUploader:
    """
    Blocking HTTP client for the photo endpoints.

    The token and server URL belong to the signed-in session; this class
    only reads them.
    """

    def __init__(
        self,
        server_url: str,
        token: str,
        timeout: float = 60,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self._server_url = server_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "PhotoUploader":
        """Create an uploader from a ConfigService."""
        return cls(config.server_url, config.auth_token, timeout=config.upload_timeout)

    @property
    def server_url(self) -> str:
        return self._server_url

    def url_for(self, target: UploadTarget) -> str:
        return f"{self._server_url}{target.path}"

    def upload(self, target: UploadTarget, form: UploadForm) -> UploadResult:
        """
        POST one photo form.

        Raises:
            UploadError: On a non-success status or a transport failure.
        """
        url = self.url_for(target)
        data = dict(form.data)
        data.update(dict(target.extra_fields))
        headers = {"Authorization": f"Bearer {self._token}"}

        self._logger.info(f"Uploading photo to {url}")
        try:
            resp = self._session.post(
                url,
                data=data,
                files=form.files,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            self._logger.error(f"Upload to {url} failed: {exc}")
            raise UploadError(NETWORK_FAILURE) from exc

        if not resp.ok:
            message = self._error_message(resp)
            self._logger.error(f"Upload rejected ({resp.status_code}): {message}")
            raise UploadError(message, status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"data": payload}

        self._logger.info(f"Upload succeeded ({resp.status_code})")
        return UploadResult(payload=payload, status_code=resp.status_code)

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        """Server-provided `error` field, or the generic message."""
        try:
            body = resp.json()
        except ValueError:
            return GENERIC_FAILURE
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, str) and error.strip():
                return error
        return GENERIC_FAILURE


class UploadService(QObject):
    """
    Single-flight background uploads.

    Only one upload may run at a time; start() refuses a second one until
    the first has finished. In-flight uploads cannot be cancelled.

    Signals:
        upload_started: Emitted when an upload begins.
        upload_succeeded: Emitted with the UploadResult.
        upload_failed: Emitted with the user-facing error message.
        busy_changed: Emitted with True when an upload starts, False when it ends.
    """

    upload_started = Signal()
    upload_succeeded = Signal(object)
    upload_failed = Signal(str)
    busy_changed = Signal(bool)

    def __init__(self, uploader: PhotoUploader, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._uploader = uploader
        self._lock = threading.Lock()
        self._busy = False
        self._thread: Optional[threading.Thread] = None

    @property
    def uploader(self) -> PhotoUploader:
        return self._uploader

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._busy

    def start(self, target: UploadTarget, form: UploadForm) -> bool:
        """
        Start an upload in the background.

        Returns:
            False if another upload is still running (nothing is started).
        """
        with self._lock:
            if self._busy:
                self._logger.warning("Upload already in progress; ignoring save request")
                return False
            self._busy = True

        self.busy_changed.emit(True)
        self.upload_started.emit()

        self._thread = threading.Thread(
            target=self._run, args=(target, form), name="sitemark-upload", daemon=True
        )
        self._thread.start()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current upload finishes. Returns False on timeout."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _run(self, target: UploadTarget, form: UploadForm) -> None:
        """Worker thread body."""
        try:
            result = self._uploader.upload(target, form)
        except UploadError as e:
            self._finish()
            self.upload_failed.emit(e.message)
        except Exception as e:
            self._logger.exception(f"Unexpected upload error: {e}")
            self._finish()
            self.upload_failed.emit(NETWORK_FAILURE)
        else:
            self._finish()
            self.upload_succeeded.emit(result)

    def _finish(self) -> None:
        with self._lock:
            self._busy = False
        self.busy_changed.emit(False)
