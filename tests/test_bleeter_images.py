import io
import os

import pytest_asyncio
from PIL import Image
from sqlalchemy.exc import SQLAlchemyError

from conftest import auth_headers
from dispatch_api.models import BleeterPost
from dispatch_api.repositories import PostRepository
from dispatch_api.routes import bleeter


def png_bytes(size=(64, 32), color=(200, 30, 30)) -> bytes:
    output = io.BytesIO()
    Image.new("RGB", size, color).save(output, format="PNG")
    return output.getvalue()


@pytest_asyncio.fixture
async def post(session, user):
    post = BleeterPost(user_id=user.id, title="With image", body="body")
    session.add(post)
    await session.commit()
    return post


def written_files(upload_dir):
    if not upload_dir.exists():
        return []
    return [os.path.join(root, f) for root, _, files in os.walk(upload_dir) for f in files]


async def test_upload_image(client, session, post, headers, upload_dir):
    response = await client.post(
        f"/bleeter/{post.id}",
        files={"image": ("header.png", png_bytes(), "image/png")},
        headers=headers,
    )

    assert response.status_code == 200
    image_id = response.json()["image_id"]
    assert image_id == f"{post.id}-header.webp"

    path = upload_dir / "bleeter" / image_id
    assert path.exists()
    with Image.open(path) as stored:
        assert stored.format == "WEBP"
        assert stored.size == (64, 32)

    stored_post = await session.get(BleeterPost, post.id, populate_existing=True)
    assert stored_post.image_id == image_id
    assert stored_post.image_blur_data.startswith("data:image/png;base64,")


async def test_disallowed_mime_type_rejected_before_write(client, session, post, headers, upload_dir):
    response = await client.post(
        f"/bleeter/{post.id}",
        files={"image": ("notes.txt", b"not an image", "text/plain")},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "errorUploadingImage", "reason": "invalidImageType"}
    assert written_files(upload_dir) == []

    stored_post = await session.get(BleeterPost, post.id, populate_existing=True)
    assert stored_post.image_id is None


async def test_upload_without_file(client, post, headers):
    response = await client.post(f"/bleeter/{post.id}", headers=headers)

    assert response.status_code == 400
    assert response.json() == {"detail": "errorUploadingImage", "reason": "noFile"}


async def test_upload_to_other_users_post(client, post, make_user, upload_dir):
    intruder = await make_user(username="intruder")

    response = await client.post(
        f"/bleeter/{post.id}",
        files={"image": ("header.png", png_bytes(), "image/png")},
        headers=auth_headers(intruder),
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "errorUploadingImage", "reason": "notFound"}
    assert written_files(upload_dir) == []


async def test_corrupt_image_reports_encoding_failure(client, post, headers, upload_dir):
    response = await client.post(
        f"/bleeter/{post.id}",
        files={"image": ("broken.png", b"\x89PNG garbage", "image/png")},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "errorUploadingImage", "reason": "encodingFailed"}
    assert written_files(upload_dir) == []


async def test_filename_is_sanitized(client, post, headers, upload_dir):
    response = await client.post(
        f"/bleeter/{post.id}",
        files={"image": ("../../etc/pass wd.png", png_bytes(), "image/png")},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["image_id"] == f"{post.id}-passwd.webp"
    assert (upload_dir / "bleeter" / f"{post.id}-passwd.webp").exists()


async def test_oversized_image_reports_encoding_failure(client, post, headers, upload_dir, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    response = await client.post(
        f"/bleeter/{post.id}",
        files={"image": ("huge.png", png_bytes(), "image/png")},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "errorUploadingImage", "reason": "encodingFailed"}
    assert written_files(upload_dir) == []


async def test_write_failure_reports_storage_failure(client, session, post, headers, upload_dir, monkeypatch):
    def fail_write(image):
        raise OSError("disk full")

    monkeypatch.setattr(bleeter, "write_image", fail_write)

    response = await client.post(
        f"/bleeter/{post.id}",
        files={"image": ("header.png", png_bytes(), "image/png")},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "errorUploadingImage", "reason": "storageFailed"}
    assert written_files(upload_dir) == []

    stored_post = await session.get(BleeterPost, post.id, populate_existing=True)
    assert stored_post.image_id is None


async def test_failed_post_update_removes_written_file(client, session, post, headers, upload_dir, monkeypatch):
    post_id = post.id

    async def fail_set_image(self, post, image_id, image_blur_data):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(PostRepository, "set_image", fail_set_image)

    response = await client.post(
        f"/bleeter/{post_id}",
        files={"image": ("header.png", png_bytes(), "image/png")},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "errorUploadingImage", "reason": "storageFailed"}
    assert written_files(upload_dir) == []

    stored_post = await session.get(BleeterPost, post_id, populate_existing=True)
    assert stored_post.image_id is None
