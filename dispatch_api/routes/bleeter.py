"""
Bleeter Routes - Posts and Author Profiles

This module handles the in-game social feed:
- GET    /bleeter: All posts, newest first, with the caller's profile
- GET    /bleeter/{id}: Single post
- POST   /bleeter: Create a post
- PUT    /bleeter/{id}: Edit own post
- POST   /bleeter/{id}: Upload a header image to own post
- DELETE /bleeter/{id}: Delete own post
- POST   /bleeter/new-experience/profile: Create or update own profile

Posts owned by somebody else are reported as "notFound", the same as
missing posts, so the routes never reveal whether a post id exists.
"""

import asyncio
import logging
import os
import re

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from PIL import Image
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_api.database import get_db
from dispatch_api.dependencies import get_current_user, require_feature
from dispatch_api.errors import ImageUploadError
from dispatch_api.limiter import limiter
from dispatch_api.models import Feature, User
from dispatch_api.repositories import PostRepository, ProfileRepository
from dispatch_api.schemas import BleeterPostSchema, BleeterProfileSchema
from dispatch_api.serializers import serialize_post, serialize_profile
from dispatch_api.services.images import (
    encode_image_webp,
    generate_blur_placeholder,
    is_allowed_image_type,
    remove_image,
    write_image,
)


logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/bleeter",
    tags=["bleeter"],
    dependencies=[Depends(get_current_user), Depends(require_feature(Feature.BLEETER))],
)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="notFound")


def _image_stem(filename: str | None) -> str:
    """File name without directories or extension, reduced to safe characters."""
    stem = os.path.splitext(os.path.basename(filename or ""))[0]
    return re.sub(r"[^A-Za-z0-9_-]", "", stem) or "image"


def _is_handle_conflict(error: IntegrityError) -> bool:
    """True when the unique index on the handle rejected the write."""
    return "handle" in str(error.orig).lower()


async def _save_profile(db: AsyncSession, user_id: str, handle: str, data: BleeterProfileSchema):
    """Check the handle, upsert the profile, attribute old posts and commit."""
    profiles = ProfileRepository(db)

    existing_user_profile = await profiles.get_by_user(user_id)
    existing_with_handle = await profiles.get_by_handle(handle)

    if existing_with_handle and (
        existing_user_profile is None or existing_with_handle.id != existing_user_profile.id
    ):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="handleTaken")

    profile, created = await profiles.upsert(
        user_id=user_id, handle=handle, name=data.name, bio=data.bio
    )
    attached = await PostRepository(db).attach_creator(user_id, profile.id)
    await db.commit()

    if created:
        logger.info(f"Created Bleeter profile @{handle}, attributed {attached} existing posts")

    return profile


@router.get("")
async def get_bleeter_posts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All posts ordered by creation time (newest first), the total count and the caller's profile."""
    posts, total_count = await PostRepository(db).list_with_count()
    profile = await ProfileRepository(db).get_by_user(user.id)

    return {
        "posts": [serialize_post(post) for post in posts],
        "total_count": total_count,
        "user_bleeter_profile": serialize_profile(profile),
    }


@router.get("/{post_id}")
async def get_post_by_id(
    post_id: str,
    db: AsyncSession = Depends(get_db)
):
    post = await PostRepository(db).get(post_id)
    if not post:
        raise _not_found()

    return serialize_post(post)


@router.post("")
async def create_post(
    data: BleeterPostSchema,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a post.

    When the author has a Bleeter profile the post is attributed to it;
    otherwise creator_id stays empty until a profile is created.
    """
    profile = await ProfileRepository(db).get_by_user(user.id)

    posts = PostRepository(db)
    post = await posts.create(
        user_id=user.id,
        creator_id=profile.id if profile else None,
        title=data.title,
        body=data.body,
        body_data=data.body_data,
    )
    await db.commit()

    return serialize_post(await posts.get(post.id))


@router.put("/{post_id}")
async def update_post(
    post_id: str,
    data: BleeterPostSchema,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    posts = PostRepository(db)
    post = await posts.get_owned(post_id, user.id)
    if not post:
        raise _not_found()

    await posts.update_content(post, title=data.title, body=data.body, body_data=data.body_data)
    await db.commit()

    return serialize_post(await posts.get(post.id))


@router.post("/{post_id}")
@limiter.limit("10/minute")
async def upload_image_to_post(
    request: Request,
    post_id: str,
    image: UploadFile | None = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Attach a header image to an existing post.

    The image is re-encoded to WebP and a blur placeholder is stored with
    the post. The file is written before the post is updated; if the update
    fails the file is removed again.

    Every failure is reported as "errorUploadingImage" with a tag naming
    the failed step.
    """
    if image is None:
        raise ImageUploadError("noFile")

    posts = PostRepository(db)
    post = await posts.get_owned(post_id, user.id)
    if not post:
        raise ImageUploadError("notFound")

    if not is_allowed_image_type(image.content_type):
        raise ImageUploadError("invalidImageType")

    buffer = await image.read()
    try:
        encoded = await asyncio.to_thread(
            encode_image_webp, buffer, "bleeter", f"{post.id}-{_image_stem(image.filename)}"
        )
        blur_data = await asyncio.to_thread(generate_blur_placeholder, encoded)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        # PIL.UnidentifiedImageError is an OSError
        raise ImageUploadError("encodingFailed", e) from e

    try:
        await asyncio.to_thread(write_image, encoded)
    except OSError as e:
        raise ImageUploadError("storageFailed", e) from e

    try:
        await posts.set_image(post, image_id=encoded.file_name, image_blur_data=blur_data)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        await asyncio.to_thread(remove_image, encoded)
        raise ImageUploadError("storageFailed", e) from e

    return {"image_id": encoded.file_name}


@router.delete("/{post_id}")
async def delete_bleet_post(
    post_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    posts = PostRepository(db)
    post = await posts.get_owned(post_id, user.id)
    if not post:
        raise _not_found()

    await posts.delete(post)
    await db.commit()

    return True


@router.post("/new-experience/profile")
async def create_bleeter_profile(
    data: BleeterProfileSchema,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create or update the caller's Bleeter profile.

    Handles are stored lowercase and are unique across users. The handle
    check, the upsert and the attribution of the user's unattributed posts
    are committed together. The unique index on `handle` catches a
    concurrent writer that claims the handle between check and commit;
    a concurrent first save by the same user is retried as an update.
    """
    handle = data.handle.lower()
    user_id = user.id

    try:
        profile = await _save_profile(db, user_id, handle, data)
    except IntegrityError as e:
        await db.rollback()
        if _is_handle_conflict(e):
            logger.info(f"Handle {handle} was claimed concurrently")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="handleTaken")

        # A concurrent request created this user's profile first
        logger.info(f"Profile of user {user_id} was created concurrently, saving as update")
        profile = await _save_profile(db, user_id, handle, data)

    return serialize_profile(profile)
