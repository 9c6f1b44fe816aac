"""
Tests for Upload Staging and Image Normalization

These are unit tests for the services behind cover handling; the HTTP
flows are exercised in test_books.py.
"""

import io
from pathlib import Path

import pytest
from fastapi import status
from PIL import Image
from starlette.datastructures import Headers, UploadFile

from app.config import get_settings
from app.exceptions import InvalidImageError, InvalidUploadError
from app.services.images import (
    discard_file,
    image_path_from_url,
    normalize_upload,
    remove_image,
)
from app.services.uploads import (
    build_filename,
    sanitize_basename,
    stage_upload,
    unique_suffix,
)
from tests.conftest import stored_files


def make_upload(content: bytes, filename: str = "cover.jpg", content_type: str = "image/jpeg") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        size=len(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestFilenames:
    """Tests for the stored filename policy."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("My Cover.JPG", "my-cover"),
            ("Le Petit Prince (1943).png", "le-petit-prince-1943"),
            ("../../etc/passwd.jpg", "passwd"),
            ("C:\\Users\\me\\photo final.webp", "photo-final"),
            ("été_2020.jpeg", "t_2020"),
            ("!!!.jpg", "image"),
            ("", "image"),
            (None, "image"),
        ],
    )
    def test_sanitize_basename(self, filename, expected):
        assert sanitize_basename(filename) == expected

    def test_extension_follows_mime_type(self):
        assert build_filename("cover.png", "image/jpeg").endswith(".jpg")
        assert build_filename("cover.jpg", "image/png").endswith(".png")
        assert build_filename("cover.jpg", "image/webp").endswith(".webp")

    def test_names_are_unique(self):
        names = {build_filename("cover.jpg", "image/jpeg") for _ in range(200)}

        assert len(names) == 200

    def test_suffix_strictly_increasing(self):
        first = unique_suffix()
        second = unique_suffix()

        assert second > first


class TestStageUpload:
    """Tests for writing uploads to the staging directory."""

    def test_stage_writes_bytes_outside_served_directory(self, images_dir, staging_dir, make_image):
        content = make_image()

        staged = stage_upload(make_upload(content, "Holiday Pic.jpg"))

        assert staged.path.parent == staging_dir.resolve()
        assert staged.path.name.startswith("holiday-pic-")
        assert staged.path.suffix == ".jpg"
        assert staged.path.read_bytes() == content
        assert staged.content_type == "image/jpeg"
        assert stored_files(images_dir) == []

    def test_staged_file_is_not_served(self, client, make_image):
        staged = stage_upload(make_upload(make_image(), "raw.jpg"))

        response = client.get(f"/images/{staged.path.name}")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_default_staging_is_sibling_of_images(self, monkeypatch):
        settings = get_settings()
        monkeypatch.setattr(settings, "upload_staging_dir", "")

        staging = settings.upload_staging_path

        assert staging.parent == settings.images_path.parent
        assert staging != settings.images_path
        assert settings.images_path not in staging.parents

    def test_stage_into_explicit_directory(self, tmp_path, make_image):
        staged = stage_upload(make_upload(make_image()), staging_dir=tmp_path)

        assert staged.path.parent == tmp_path
        assert staged.path.exists()

    @pytest.mark.parametrize("content_type", ["image/gif", "text/plain", "application/pdf", ""])
    def test_stage_rejects_mime_type(self, staging_dir, content_type):
        with pytest.raises(InvalidUploadError):
            stage_upload(make_upload(b"data", "file.gif", content_type))

        assert stored_files(staging_dir) == []

    def test_stage_rejects_declared_oversize(self, staging_dir, monkeypatch):
        monkeypatch.setattr(get_settings(), "max_upload_bytes", 10)

        with pytest.raises(InvalidUploadError):
            stage_upload(make_upload(b"x" * 11))

        assert stored_files(staging_dir) == []

    def test_stage_rejects_oversize_while_copying(self, staging_dir, monkeypatch):
        """The declared size is not trusted; bytes are counted as written."""
        monkeypatch.setattr(get_settings(), "max_upload_bytes", 10)
        upload = UploadFile(
            file=io.BytesIO(b"x" * 50),
            size=None,
            filename="big.jpg",
            headers=Headers({"content-type": "image/jpeg"}),
        )

        with pytest.raises(InvalidUploadError):
            stage_upload(upload)

        assert stored_files(staging_dir) == []


class TestNormalizeUpload:
    """Tests for the WebP conversion of staged uploads."""

    def write(self, directory: Path, name: str, content: bytes) -> Path:
        path = directory / name
        path.write_bytes(content)
        return path

    def test_large_jpeg_is_downscaled(self, images_dir, staging_dir, make_image):
        source = self.write(staging_dir, "poster-1.jpg", make_image(3000, 2000))

        result = normalize_upload(source)

        assert result.resolve() == images_dir.resolve() / "poster-1.webp"
        assert stored_files(staging_dir) == []
        with Image.open(result) as image:
            assert image.format == "WEBP"
            assert image.size == (1200, 800)

    def test_portrait_fits_box(self, staging_dir, make_image):
        source = self.write(staging_dir, "tall-1.png", make_image(1000, 4000, fmt="PNG"))

        with Image.open(normalize_upload(source)) as image:
            assert image.size == (300, 1200)

    def test_small_image_not_enlarged(self, staging_dir, make_image):
        source = self.write(staging_dir, "small-1.png", make_image(200, 100, fmt="PNG"))

        with Image.open(normalize_upload(source)) as image:
            assert image.size == (200, 100)

    def test_webp_moved_unchanged(self, images_dir, staging_dir, make_image):
        content = make_image(2000, 2000, fmt="WEBP")
        source = self.write(staging_dir, "already-1.webp", content)

        result = normalize_upload(source)

        assert result.resolve() == images_dir.resolve() / "already-1.webp"
        assert result.read_bytes() == content
        assert stored_files(staging_dir) == []

    def test_webp_already_in_place(self, images_dir, make_image):
        source = self.write(images_dir, "in-place-1.webp", make_image(fmt="WEBP"))

        assert normalize_upload(source) == source

    def test_exif_orientation_applied(self, staging_dir):
        """An orientation-6 JPEG is stored upright (width and height swapped)."""
        exif = Image.Exif()
        exif[0x0112] = 6
        buffer = io.BytesIO()
        Image.new("RGB", (300, 100), "white").save(buffer, "JPEG", exif=exif.tobytes())
        source = self.write(staging_dir, "rotated-1.jpg", buffer.getvalue())

        with Image.open(normalize_upload(source)) as image:
            assert image.size == (100, 300)

    def test_transparency_is_kept(self, staging_dir):
        buffer = io.BytesIO()
        Image.new("RGBA", (50, 50), (255, 0, 0, 0)).save(buffer, "PNG")
        source = self.write(staging_dir, "alpha-1.png", buffer.getvalue())

        with Image.open(normalize_upload(source)) as image:
            assert image.mode == "RGBA"

    def test_undecodable_bytes(self, images_dir, staging_dir):
        source = self.write(staging_dir, "broken-1.jpg", b"\xff\xd8 this is not a jpeg")

        with pytest.raises(InvalidImageError):
            normalize_upload(source)

        assert stored_files(images_dir) == []
        assert stored_files(staging_dir) == []


class TestImageFiles:
    """Tests for mapping image URLs to files and reclaiming them."""

    def test_path_from_url(self, images_dir):
        path = image_path_from_url("http://localhost:4000/images/dune-123.webp")

        assert path == images_dir.resolve() / "dune-123.webp"

    @pytest.mark.parametrize(
        "url",
        [
            None,
            "",
            "http://localhost:4000/covers/dune.webp",
            "http://localhost:4000/images/",
        ],
    )
    def test_path_from_unrelated_url(self, url):
        assert image_path_from_url(url) is None

    def test_path_cannot_escape_directory(self, tmp_path):
        path = image_path_from_url("http://host/images/../../etc/passwd", images_dir=tmp_path)

        assert path == tmp_path / "passwd"

    def test_encoded_traversal_is_contained(self, tmp_path):
        path = image_path_from_url("http://host/images/..%2F..%2Fsecret.webp", images_dir=tmp_path)

        assert path == tmp_path / "secret.webp"

    def test_remove_image(self, images_dir):
        (images_dir / "gone-1.webp").write_bytes(b"x")

        assert remove_image("http://testserver/images/gone-1.webp") is True
        assert stored_files(images_dir) == []

    def test_remove_missing_image(self, images_dir):
        assert remove_image("http://testserver/images/never-existed.webp") is False

    def test_discard_failure_is_not_raised(self, tmp_path):
        directory = tmp_path / "not-a-file"
        directory.mkdir()

        assert discard_file(directory) is False
        assert directory.exists()

    def test_discard_none(self):
        assert discard_file(None) is False
