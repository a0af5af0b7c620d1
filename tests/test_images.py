"""Tests de l'étape image: validation, aperçu, progression et envoi."""

import base64
from unittest.mock import Mock

import pytest

from kyzmat.domain.errors import UploadError
from kyzmat.domain.images import ImageUpload, PendingImage, check_image_reference, validate_image
from kyzmat.infra.object_storage import FileSystemObjectStorage
from tests.helpers import PNG_BYTES


@pytest.fixture
def storage(tmp_path):
    return FileSystemObjectStorage(str(tmp_path), "/storage/v1/object/public")


def test_validate_image():
    validate_image("image/png", 10)
    with pytest.raises(UploadError) as exc:
        validate_image("image/png", 5 * 1024 * 1024 + 1)
    assert exc.value.cause == "too_large"
    with pytest.raises(UploadError) as exc:
        validate_image("application/pdf", 10)
    assert exc.value.cause == "not_image"


def test_rejected_file_keeps_previous_state(storage, notifier):
    upload = ImageUpload(storage, notifier, image_url="/existing.png")
    assert upload.select("doc.pdf", "application/pdf", b"%PDF") is False
    assert upload.image_url == "/existing.png"
    assert notifier.last.key == "forms.imageUpload.notImage"


def test_select_gives_immediate_preview(storage, notifier):
    upload = ImageUpload(storage, notifier)
    assert upload.select("pic.png", "image/png", PNG_BYTES) is True
    assert upload.image_url.startswith("data:image/png;base64,")


def test_simulated_progress_caps_at_ninety(storage, notifier):
    upload = ImageUpload(storage, notifier)
    assert list(upload.simulate_progress()) == [10, 20, 30, 40, 50, 60, 70, 80, 90]


def test_upload_replaces_preview_with_public_url(storage, notifier, tmp_path):
    upload = ImageUpload(storage, notifier)
    upload.select("pic.png", "image/png", PNG_BYTES)
    url = upload.upload("owner-1")
    assert url.startswith("/storage/v1/object/public/service-images/owner-1/")
    assert url.endswith(".png")
    assert upload.image_url == url
    assert upload.progress == 100
    path = storage.path_from_url("service-images", url)
    assert (tmp_path / "service-images" / path).read_bytes() == PNG_BYTES


def test_upload_without_pending_returns_current(storage, notifier):
    upload = ImageUpload(storage, notifier, image_url="/existing.png")
    assert upload.upload("owner") == "/existing.png"


def test_upload_failure_notifies(notifier):
    storage = Mock()
    storage.upload.side_effect = UploadError("storage_failed", "disk full")
    upload = ImageUpload(storage, notifier)
    upload.select("pic.png", "image/png", PNG_BYTES)
    assert upload.upload("owner") is None
    assert notifier.last.key == "forms.imageUpload.error"
    assert upload.image_url.startswith("data:")


OWN_URL = "/storage/v1/object/public/service-images/o/x.png"


def test_restore_from_data_url(storage, notifier):
    preview = PendingImage("pic.png", "image/png", PNG_BYTES).data_url()
    upload = ImageUpload(storage, notifier, owner_id="o")
    assert upload.restore(preview) is True
    assert upload.pending.data == PNG_BYTES
    assert upload.pending.extension == "png"
    assert upload.restore(OWN_URL) is True
    assert upload.pending is None
    assert upload.image_url == OWN_URL


def test_restore_rejects_non_image_preview(storage, notifier):
    html = "data:text/html;base64," + base64.b64encode(b"<script>alert(1)</script>").decode()
    upload = ImageUpload(storage, notifier, owner_id="o", image_url=OWN_URL)
    assert upload.restore(html) is False
    assert upload.pending is None
    assert upload.image_url == OWN_URL
    assert notifier.last.key == "forms.imageUpload.notImage"


def test_restore_rejects_oversized_preview(storage, notifier):
    big = PendingImage("big.png", "image/png", b"0" * 64).data_url()
    upload = ImageUpload(storage, notifier, max_bytes=32, owner_id="o")
    assert upload.restore(big) is False
    assert upload.pending is None and upload.image_url is None
    assert notifier.last.key == "forms.imageUpload.tooLarge"


@pytest.mark.parametrize(
    "url",
    [
        "/storage/v1/object/public/service-images/someone-else/x.png",
        "/storage/v1/object/public/service-images/o/../someone-else/x.png",
        "https://example.com/o/x.png",
        "data:image/png;base64,not-base64!",
    ],
)
def test_restore_rejects_foreign_or_broken_references(storage, notifier, url):
    upload = ImageUpload(storage, notifier, owner_id="o")
    assert upload.restore(url) is False
    assert upload.image_url is None
    assert notifier.last.key == "forms.imageUpload.error"


def test_check_image_reference_causes(storage):
    with pytest.raises(UploadError) as exc:
        check_image_reference("data:application/pdf;base64,JVBE", storage, "service-images", "o")
    assert exc.value.cause == "not_image"
    with pytest.raises(UploadError) as exc:
        check_image_reference(OWN_URL, storage, "service-images", "someone-else")
    assert exc.value.cause == "foreign_reference"
    assert check_image_reference(OWN_URL, storage, "service-images", "o") is None


def test_stored_extension_follows_content_type():
    assert PendingImage("evil.html", "image/png", PNG_BYTES).extension == "png"
    assert PendingImage("vector", "image/svg+xml", b"<svg/>").extension == "svgxml"
