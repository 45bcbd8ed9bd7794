"""
Captured photos for SiteMark.

Photos enter the app from the file picker, are held in a PhotoQueue until
they are uploaded or discarded, and leave the queue once the server has
them. GPS position and capture time are read from EXIF when the file
carries them.

The queue is in-memory only; closing the app drops photos that were not
uploaded.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union
from uuid import uuid4

from PIL import Image, UnidentifiedImageError

from sitemark.services.logging_service import get_logger
from sitemark.services.upload_service import (
    GpsCoordinates,
    PhotoMetadata,
    PhotoUploader,
    UploadError,
    UploadTarget,
    build_upload_form,
)

logger = get_logger(__name__)

# EXIF tag ids
GPS_IFD = 0x8825
EXIF_IFD = 0x8769
DATETIME_ORIGINAL = 0x9003
DATETIME_DIGITIZED = 0x9004
DATETIME = 0x0132
GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4
GPS_DOP = 11

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

PHOTO_EXTENSIONS = (".jpg", ".jpeg", ".png", ".heic", ".webp")


class UploadStatus(Enum):
    """Where a captured photo is in the upload lifecycle."""
    PENDING = auto()
    UPLOADING = auto()
    UPLOADED = auto()
    FAILED = auto()


@dataclass
class CapturedPhoto:
    """
    A photo picked on this machine and not yet owned by the server.

    Attributes:
        path: Local file.
        project_id: Project the photo belongs to.
        caption: Optional caption.
        notes: Optional notes.
        gps: Capture location, if known.
        taken_at: Capture time (EXIF, or when the photo was added).
        status: Upload status.
        error: Last upload error message.
        id: Local identifier.
    """
    path: Path
    project_id: str
    caption: str = ""
    notes: str = ""
    gps: Optional[GpsCoordinates] = None
    taken_at: datetime = field(default_factory=datetime.now)
    status: UploadStatus = UploadStatus.PENDING
    error: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def uploaded(self) -> bool:
        return self.status == UploadStatus.UPLOADED

    @property
    def uploading(self) -> bool:
        return self.status == UploadStatus.UPLOADING

    def to_metadata(self) -> PhotoMetadata:
        """Metadata for uploading this photo without the editor."""
        return PhotoMetadata(
            caption=self.caption,
            notes=self.notes,
            gps=self.gps,
            taken_at=self.taken_at,
        )


def _ratio_to_float(value) -> float:
    """EXIF rationals arrive as IFDRational or (num, den) pairs."""
    if isinstance(value, tuple):
        num, den = value
        return num / den if den else 0.0
    return float(value)


def _dms_to_degrees(dms, ref: Optional[str]) -> Optional[float]:
    if not dms or len(dms) != 3:
        return None
    degrees = (
        _ratio_to_float(dms[0])
        + _ratio_to_float(dms[1]) / 60
        + _ratio_to_float(dms[2]) / 3600
    )
    if ref in ("S", "W"):
        degrees = -degrees
    return degrees


def read_photo_exif(
    path: Union[str, Path]
) -> Tuple[Optional[GpsCoordinates], Optional[datetime]]:
    """
    Read capture location and time from a photo's EXIF.

    Args:
        path: The photo file.

    Returns:
        (gps, taken_at); either is None when the file does not carry it or
        cannot be parsed.
    """
    try:
        with Image.open(path) as img:
            exif = img.getexif()
            gps_info = exif.get_ifd(GPS_IFD)
            exif_info = exif.get_ifd(EXIF_IFD)
    except (OSError, UnidentifiedImageError) as e:
        logger.warning(f"Could not read EXIF from {path}: {e}")
        return None, None

    gps: Optional[GpsCoordinates] = None
    if gps_info:
        try:
            lat = _dms_to_degrees(gps_info.get(GPS_LATITUDE), gps_info.get(GPS_LATITUDE_REF))
            lon = _dms_to_degrees(gps_info.get(GPS_LONGITUDE), gps_info.get(GPS_LONGITUDE_REF))
            accuracy = gps_info.get(GPS_DOP)
            if lat is not None and lon is not None:
                gps = GpsCoordinates(
                    latitude=lat,
                    longitude=lon,
                    accuracy=_ratio_to_float(accuracy) if accuracy is not None else None,
                )
        except (TypeError, ValueError, ZeroDivisionError) as e:
            logger.warning(f"Malformed GPS EXIF in {path}: {e}")

    taken_at: Optional[datetime] = None
    for value in (
        exif_info.get(DATETIME_ORIGINAL),
        exif_info.get(DATETIME_DIGITIZED),
        exif.get(DATETIME),
    ):
        if not value:
            continue
        try:
            taken_at = datetime.strptime(str(value).strip("\x00 "), EXIF_DATETIME_FORMAT)
            break
        except ValueError:
            continue

    return gps, taken_at


class PhotoQueue:
    """Photos waiting to be annotated and uploaded, in the order they were added."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._photos: List[CapturedPhoto] = []

    def add_files(
        self,
        paths: Iterable[Union[str, Path]],
        project_id: str,
        caption: str = "",
        notes: str = "",
    ) -> List[CapturedPhoto]:
        """
        Add picked photo files to the queue.

        Args:
            paths: Photo files.
            project_id: Owning project.
            caption: Caption applied to every added photo.
            notes: Notes applied to every added photo.

        Returns:
            The new captured photos.
        """
        added: List[CapturedPhoto] = []
        for raw_path in paths:
            path = Path(raw_path)
            if not path.is_file():
                self._logger.warning(f"Skipping missing photo: {path}")
                continue

            gps, taken_at = read_photo_exif(path)
            photo = CapturedPhoto(
                path=path,
                project_id=project_id,
                caption=caption,
                notes=notes,
                gps=gps,
                taken_at=taken_at or datetime.now(),
            )
            self._photos.append(photo)
            added.append(photo)
            self._logger.info(f"Photo added: {path.name} (gps={'yes' if gps else 'no'})")
        return added

    def remove(self, photo_id: str) -> bool:
        """Discard a photo. Returns True if found and removed."""
        for i, photo in enumerate(self._photos):
            if photo.id == photo_id:
                self._photos.pop(i)
                return True
        return False

    def get(self, photo_id: str) -> Optional[CapturedPhoto]:
        for photo in self._photos:
            if photo.id == photo_id:
                return photo
        return None

    def pending(self) -> List[CapturedPhoto]:
        """Photos not uploaded and not currently uploading."""
        return [
            p for p in self._photos
            if p.status in (UploadStatus.PENDING, UploadStatus.FAILED)
        ]

    def mark_uploading(self, photo_id: str) -> None:
        self._set_status(photo_id, UploadStatus.UPLOADING, None)

    def mark_uploaded(self, photo_id: str) -> None:
        """Record success; the server's copy replaces the local one."""
        self._set_status(photo_id, UploadStatus.UPLOADED, None)
        self.remove(photo_id)

    def mark_failed(self, photo_id: str, error: str) -> None:
        self._set_status(photo_id, UploadStatus.FAILED, error)

    def _set_status(self, photo_id: str, status: UploadStatus, error: Optional[str]) -> None:
        photo = self.get(photo_id)
        if photo is None:
            raise KeyError(photo_id)
        photo.status = status
        photo.error = error

    def __iter__(self) -> Iterator[CapturedPhoto]:
        return iter(list(self._photos))

    def __len__(self) -> int:
        return len(self._photos)


@dataclass
class BatchResult:
    """Outcome of uploading a queue."""
    succeeded: int = 0
    failed: int = 0

    @property
    def title(self) -> str:
        return "Upload Complete" if self.failed == 0 else "Upload Partial"

    @property
    def summary(self) -> str:
        if self.failed == 0:
            return f"{self.succeeded} photo(s) uploaded successfully!"
        return (
            f"{self.succeeded} uploaded, {self.failed} failed. "
            "Check your connection and try again."
        )


def upload_batch(
    queue: PhotoQueue,
    uploader: PhotoUploader,
    target_for: Callable[[CapturedPhoto], UploadTarget],
    progress: Optional[Callable[[int, int], None]] = None,
) -> BatchResult:
    """
    Upload every pending photo in the queue, one after another.

    A failed photo stays in the queue marked FAILED; the batch carries on.

    Args:
        queue: The photos.
        uploader: HTTP client.
        target_for: Endpoint for a given photo.
        progress: Called with (done, total) after each photo.

    Returns:
        Success and failure counts.
    """
    photos = queue.pending()
    total = len(photos)
    result = BatchResult()

    for index, photo in enumerate(photos, start=1):
        queue.mark_uploading(photo.id)
        try:
            form = build_upload_form(photo.path, [], [], photo.to_metadata())
            uploader.upload(target_for(photo), form)
        except UploadError as e:
            queue.mark_failed(photo.id, e.message)
            result.failed += 1
        except OSError as e:
            logger.error(f"Could not read {photo.path}: {e}")
            queue.mark_failed(photo.id, f"Could not read photo: {e}")
            result.failed += 1
        else:
            queue.mark_uploaded(photo.id)
            result.succeeded += 1

        if progress is not None:
            progress(index, total)

    logger.info(f"Batch upload finished: {result.succeeded} ok, {result.failed} failed")
    return result
