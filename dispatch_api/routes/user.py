"""
User Routes - The Authenticated Account

- POST   /user: Current user with the CAD configuration
- PATCH  /user: Update username and preferences
- DELETE /user: Delete own account
- POST   /user/logout: End the session and take the user's units off duty
- POST   /user/password: Change or set the password
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_api.database import get_db
from dispatch_api.dependencies import get_cad, get_current_user
from dispatch_api.errors import ExtendedBadRequest
from dispatch_api.limiter import limiter
from dispatch_api.models import Cad, Rank, UnitType, User
from dispatch_api.repositories import AccountRepository, UnitRepository
from dispatch_api.schemas import ChangePasswordSchema, ChangeUserSchema
from dispatch_api.serializers import serialize_cad, serialize_user
from dispatch_api.services.audit import log_action
from dispatch_api.services.auth import hash_password, verify_password
from dispatch_api.services.cookies import clear_auth_cookies, set_user_preferences_cookies
from dispatch_api.services.socket import emit_update_deputy_status, emit_update_officer_status
from dispatch_api.services.unit_log import close_unit_log


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/user", tags=["user"])


@router.post("")
async def get_auth_user(
    user: User = Depends(get_current_user),
    cad: Cad | None = Depends(get_cad)
):
    return {**serialize_user(user), "cad": serialize_cad(cad)}


@router.patch("")
async def patch_auth_user(
    data: ChangeUserSchema,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the username and preferences of the current user.

    Sound settings are created on first use and updated afterwards; a body
    without them unlinks the user from their sound settings. The theme and
    locale are also written to cookies for the web client.
    """
    accounts = AccountRepository(db)

    existing = await accounts.get_by_username(data.username)
    if existing and existing.id != user.id:
        raise ExtendedBadRequest({"username": "userAlreadyExists"})

    if data.sound_settings:
        sound_settings = await accounts.upsert_sound_settings(
            user.sound_settings_id, data.sound_settings.model_dump()
        )
        user.sound_settings = sound_settings
        user.sound_settings_id = sound_settings.id
    else:
        user.sound_settings = None
        user.sound_settings_id = None

    user.username = data.username
    user.is_dark_theme = data.is_dark_theme
    user.status_view_mode = data.status_view_mode
    user.table_actions_alignment = data.table_actions_alignment
    user.locale = data.locale or None
    user.developer_mode = data.developer_mode if data.developer_mode is not None else False

    await db.commit()

    set_user_preferences_cookies(response, is_dark_theme=data.is_dark_theme, locale=user.locale)

    return serialize_user(user)


@router.delete("")
async def delete_auth_user(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete the current account. The CAD owner can never delete theirs."""
    if user.rank == Rank.OWNER:
        raise ExtendedBadRequest({"rank": "cannotDeleteOwner"})

    await log_action(db, "user_deleted", user.id, {"username": user.username})
    await AccountRepository(db).delete(user)
    await db.commit()

    logger.info(f"Deleted account {user.id}")
    return True


@router.post("/logout")
async def logout_user(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Log the user out.

    Clears both auth cookies and removes the user's sessions and active
    dispatcher rows. An on-duty officer and an on-duty EMS/FD deputy of the
    user are taken off duty: status and active call cleared, dispatch chat
    removed, shift log closed. All of that is one transaction; the status
    broadcasts go out after it is committed.
    """
    clear_auth_cookies(response)

    accounts = AccountRepository(db)
    await accounts.delete_active_dispatchers(user.id)
    await accounts.delete_sessions(user.id)

    units = UnitRepository(db)

    officer = await units.find_on_duty_officer(user.id)
    if officer:
        await units.clear_duty_state(officer)
        await close_unit_log(db, officer, UnitType.LEO)

    deputy = await units.find_on_duty_deputy(user.id)
    if deputy:
        await units.clear_duty_state(deputy)
        await close_unit_log(db, deputy, UnitType.EMS_FD)

    await log_action(db, "user_logout", user.id, {
        "officer_id": officer.id if officer else None,
        "deputy_id": deputy.id if deputy else None,
    })
    await db.commit()

    if officer:
        logger.info(f"Officer {officer.id} went off duty on logout of {user.id}")
        await emit_update_officer_status(db)

    if deputy:
        logger.info(f"EMS/FD deputy {deputy.id} went off duty on logout of {user.id}")
        await emit_update_deputy_status(db)

    return True


@router.post("/password")
@limiter.limit("5/minute")
async def update_password(
    request: Request,
    data: ChangePasswordSchema,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Change the password of the current user.

    Accounts created through Discord or Steam have an empty password; they
    can set one without giving a current password. Everyone else must give
    the current password, which is checked against the temporary password
    first (set by an administrator reset) and the regular one otherwise.
    """
    u = await AccountRepository(db).get(user.id)
    if not u:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="notFound")

    uses_oauth_provider = bool(u.discord_id or u.steam_id) and not (u.password or "").strip()

    if data.confirm_password != data.new_password:
        raise ExtendedBadRequest({"confirm_password": "passwordsDoNotMatch"})

    if not uses_oauth_provider:
        if not data.current_password:
            raise ExtendedBadRequest({"current_password": "Should be at least 8 characters"})

        stored = u.temp_password if u.temp_password is not None else u.password
        if not await asyncio.to_thread(verify_password, data.current_password, stored):
            raise ExtendedBadRequest({"current_password": "currentPasswordIncorrect"})

    u.password = await asyncio.to_thread(hash_password, data.new_password)
    u.temp_password = None

    await log_action(db, "password_changed", u.id, {"oauth_account": uses_oauth_provider})
    await db.commit()

    return True
