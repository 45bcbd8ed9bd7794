"""
Tests for captured photos, EXIF reading and batch upload
"""
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from PIL import Image

from sitemark.core.photo_service import (
    BatchResult,
    PhotoQueue,
    UploadStatus,
    read_photo_exif,
    upload_batch,
)
from sitemark.services.upload_service import (
    PhotoUploader,
    UploadError,
    UploadResult,
    UploadTarget,
)


@pytest.fixture
def gps_photo(tmp_path):
    """JPEG carrying GPS position and capture time in EXIF"""
    path = tmp_path / "gps.jpg"
    img = Image.new("RGB", (32, 32), color=(10, 20, 30))
    exif = Image.Exif()
    exif[0x8825] = {
        1: "N",
        2: (40.0, 30.0, 0.0),
        3: "W",
        4: (73.0, 15.0, 0.0),
        11: 5.0,
    }
    exif[0x8769] = {0x9003: "2023:06:01 10:20:30"}
    img.save(path, "JPEG", exif=exif)
    return path


def _make_photos(tmp_path, count):
    paths = []
    for i in range(count):
        path = tmp_path / f"p{i}.jpg"
        Image.new("RGB", (8, 8)).save(path, "JPEG")
        paths.append(path)
    return paths


class TestReadPhotoExif:
    """Tests for read_photo_exif"""

    def test_gps_and_time(self, gps_photo):
        gps, taken_at = read_photo_exif(gps_photo)

        assert gps is not None
        assert gps.latitude == pytest.approx(40.5)
        assert gps.longitude == pytest.approx(-73.25)
        assert gps.accuracy == pytest.approx(5.0)
        assert taken_at == datetime(2023, 6, 1, 10, 20, 30)

    def test_no_exif(self, photo_file):
        assert read_photo_exif(photo_file) == (None, None)

    def test_not_an_image(self, tmp_path):
        path = tmp_path / "notes.jpg"
        path.write_text("not a photo")
        assert read_photo_exif(path) == (None, None)


class TestPhotoQueue:
    """Tests for PhotoQueue"""

    def test_add_files(self, gps_photo, photo_file):
        queue = PhotoQueue()

        added = queue.add_files([gps_photo, photo_file], "p1", caption="Roof")

        assert len(queue) == 2
        assert [p.path for p in queue] == [gps_photo, photo_file]
        assert all(p.project_id == "p1" and p.caption == "Roof" for p in added)
        assert added[0].gps is not None
        assert added[0].taken_at == datetime(2023, 6, 1, 10, 20, 30)
        assert added[1].gps is None
        assert added[1].status == UploadStatus.PENDING

    def test_missing_files_skipped(self, tmp_path):
        queue = PhotoQueue()
        assert queue.add_files([tmp_path / "nope.jpg"], "p1") == []
        assert len(queue) == 0

    def test_remove_and_get(self, photo_file):
        queue = PhotoQueue()
        photo = queue.add_files([photo_file], "p1")[0]

        assert queue.get(photo.id) is photo
        assert queue.remove(photo.id) is True
        assert queue.get(photo.id) is None
        assert queue.remove(photo.id) is False

    def test_status_transitions(self, tmp_path):
        queue = PhotoQueue()
        first, second = queue.add_files(_make_photos(tmp_path, 2), "p1")

        queue.mark_uploading(first.id)
        assert first.uploading
        assert queue.pending() == [second]

        queue.mark_failed(first.id, "Upload failed")
        assert first.error == "Upload failed"
        assert queue.pending() == [first, second]

        queue.mark_uploaded(first.id)
        assert queue.get(first.id) is None
        assert len(queue) == 1

    def test_unknown_id(self):
        with pytest.raises(KeyError):
            PhotoQueue().mark_uploading("missing")

    def test_metadata(self, gps_photo):
        photo = PhotoQueue().add_files([gps_photo], "p1", caption="c", notes="n")[0]
        metadata = photo.to_metadata()

        assert metadata.caption == "c"
        assert metadata.notes == "n"
        assert metadata.gps == photo.gps
        assert metadata.taken_at == photo.taken_at


class TestUploadBatch:
    """Tests for upload_batch"""

    def test_partial_failure(self, tmp_path):
        queue = PhotoQueue()
        photos = queue.add_files(_make_photos(tmp_path, 3), "p1")
        failing = photos[1]
        uploader = MagicMock(spec=PhotoUploader)
        calls = []

        def upload(target, form):
            calls.append(form)
            if len(calls) == 2:
                raise UploadError("Upload failed", 500)
            return UploadResult(payload={})

        uploader.upload.side_effect = upload
        progress = []

        result = upload_batch(
            queue,
            uploader,
            lambda photo: UploadTarget.mobile(photo.project_id),
            progress=lambda done, total: progress.append((done, total)),
        )

        assert result.succeeded == 2
        assert result.failed == 1
        assert progress == [(1, 3), (2, 3), (3, 3)]
        assert [p.id for p in queue] == [failing.id]
        assert failing.status == UploadStatus.FAILED
        assert failing.error == "Upload failed"

    def test_unreadable_photo_fails(self, tmp_path):
        queue = PhotoQueue()
        photo = queue.add_files(_make_photos(tmp_path, 1), "p1")[0]
        photo.path.unlink()
        uploader = MagicMock(spec=PhotoUploader)

        result = upload_batch(queue, uploader, lambda p: UploadTarget.mobile("p1"))

        assert result.failed == 1
        uploader.upload.assert_not_called()
        assert photo.status == UploadStatus.FAILED

    def test_uses_target_for_each_photo(self, tmp_path):
        queue = PhotoQueue()
        queue.add_files(_make_photos(tmp_path, 1), "p9")
        uploader = MagicMock(spec=PhotoUploader)
        uploader.upload.return_value = UploadResult(payload={})

        upload_batch(queue, uploader, lambda p: UploadTarget.survey(p.project_id, "u1"))

        target = uploader.upload.call_args.args[0]
        assert target.path == "/api/projects/p9/updates/u1/survey-photos"


class TestBatchResult:
    """Tests for BatchResult wording"""

    def test_complete(self):
        result = BatchResult(succeeded=3)
        assert result.title == "Upload Complete"
        assert result.summary == "3 photo(s) uploaded successfully!"

    def test_partial(self):
        result = BatchResult(succeeded=1, failed=2)
        assert result.title == "Upload Partial"
        assert result.summary.startswith("1 uploaded, 2 failed.")
