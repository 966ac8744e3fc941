"""
Repositories

Thin per-entity wrappers around the request's AsyncSession. They build the
queries; the route handlers own the transaction and decide when to commit,
so several repository calls can be grouped into one atomic unit.

Read methods eagerly load every relationship the serializers touch.
"""

from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from dispatch_api.models import (
    ActiveDispatcher,
    BleeterPost,
    BleeterProfile,
    Cad,
    DispatchChat,
    EmsFdDeputy,
    Officer,
    ShouldDoType,
    StatusValue,
    User,
    UserSession,
    UserSoundSettings,
)


def _post_query():
    return select(BleeterPost).options(
        selectinload(BleeterPost.user),
        selectinload(BleeterPost.creator),
    )


class PostRepository:
    """Bleeter posts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_with_count(self) -> tuple[list[BleeterPost], int]:
        result = await self.db.execute(_post_query().order_by(BleeterPost.created_at.desc()))
        posts = list(result.scalars().all())

        count = await self.db.execute(select(func.count()).select_from(BleeterPost))
        return posts, count.scalar_one()

    async def get(self, post_id: str) -> BleeterPost | None:
        result = await self.db.execute(
            _post_query()
            .filter(BleeterPost.id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_owned(self, post_id: str, user_id: str) -> BleeterPost | None:
        """The post, or None when it is missing or belongs to someone else."""
        post = await self.get(post_id)
        if not post or post.user_id != user_id:
            return None
        return post

    async def create(self, user_id: str, creator_id: str | None, title: str, body: str, body_data) -> BleeterPost:
        post = BleeterPost(
            user_id=user_id,
            creator_id=creator_id,
            title=title,
            body=body,
            body_data=body_data,
        )
        self.db.add(post)
        await self.db.flush()
        return post

    async def update_content(self, post: BleeterPost, title: str, body: str, body_data) -> None:
        post.title = title
        post.body = body
        post.body_data = body_data
        await self.db.flush()

    async def set_image(self, post: BleeterPost, image_id: str, image_blur_data: str) -> None:
        post.image_id = image_id
        post.image_blur_data = image_blur_data
        await self.db.flush()

    async def delete(self, post: BleeterPost) -> None:
        await self.db.delete(post)
        await self.db.flush()

    async def attach_creator(self, user_id: str, profile_id: str) -> int:
        """Point all of the user's creator-less posts at the given profile."""
        result = await self.db.execute(
            update(BleeterPost)
            .where(BleeterPost.user_id == user_id, BleeterPost.creator_id.is_(None))
            .values(creator_id=profile_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class ProfileRepository:
    """Bleeter profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_user(self, user_id: str) -> BleeterProfile | None:
        result = await self.db.execute(
            select(BleeterProfile).filter(BleeterProfile.user_id == user_id)
        )
        return result.scalars().first()

    async def get_by_handle(self, handle: str) -> BleeterProfile | None:
        result = await self.db.execute(
            select(BleeterProfile).filter(BleeterProfile.handle == handle)
        )
        return result.scalars().first()

    async def upsert(self, user_id: str, handle: str, name: str, bio: str | None) -> tuple[BleeterProfile, bool]:
        """
        Create or update the user's profile.

        Returns:
            (profile, created) where created is True for a new profile
        """
        profile = await self.get_by_user(user_id)
        created = profile is None

        if created:
            profile = BleeterProfile(user_id=user_id, handle=handle, name=name, bio=bio)
            self.db.add(profile)
        else:
            profile.handle = handle
            profile.name = name
            profile.bio = bio

        await self.db.flush()
        return profile, created


class AccountRepository:
    """User accounts and the records linked to them."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> User | None:
        result = await self.db.execute(
            select(User).filter(User.id == user_id).options(selectinload(User.sound_settings))
        )
        return result.scalars().first()

    async def get_by_username(self, username: str) -> User | None:
        result = await self.db.execute(select(User).filter(User.username == username))
        return result.scalars().first()

    async def upsert_sound_settings(self, sound_settings_id: str | None, values: dict) -> UserSoundSettings:
        sound_settings = None
        if sound_settings_id:
            sound_settings = await self.db.get(UserSoundSettings, sound_settings_id)

        if sound_settings is None:
            sound_settings = UserSoundSettings(**values)
            self.db.add(sound_settings)
        else:
            for key, value in values.items():
                setattr(sound_settings, key, value)

        await self.db.flush()
        return sound_settings

    async def delete_sessions(self, user_id: str) -> None:
        await self.db.execute(delete(UserSession).where(UserSession.user_id == user_id))

    async def delete_active_dispatchers(self, user_id: str) -> None:
        await self.db.execute(delete(ActiveDispatcher).where(ActiveDispatcher.user_id == user_id))

    async def delete(self, user: User) -> None:
        # AsyncSession.delete loads the cascaded relationships itself
        await self.db.delete(user)
        await self.db.flush()


class UnitRepository:
    """Officers and EMS/FD deputies."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find_on_duty(self, model, user_id: str):
        result = await self.db.execute(
            select(model)
            .join(StatusValue, model.status_id == StatusValue.id)
            .filter(model.user_id == user_id, StatusValue.should_do != ShouldDoType.SET_OFF_DUTY)
            .limit(1)
        )
        return result.scalars().first()

    async def _list_on_duty(self, model):
        result = await self.db.execute(
            select(model)
            .join(StatusValue, model.status_id == StatusValue.id)
            .filter(StatusValue.should_do != ShouldDoType.SET_OFF_DUTY)
            .order_by(model.created_at)
        )
        return list(result.scalars().all())

    async def find_on_duty_officer(self, user_id: str) -> Officer | None:
        return await self._find_on_duty(Officer, user_id)

    async def find_on_duty_deputy(self, user_id: str) -> EmsFdDeputy | None:
        return await self._find_on_duty(EmsFdDeputy, user_id)

    async def list_on_duty_officers(self) -> list[Officer]:
        return await self._list_on_duty(Officer)

    async def list_on_duty_deputies(self) -> list[EmsFdDeputy]:
        return await self._list_on_duty(EmsFdDeputy)

    async def clear_duty_state(self, unit) -> None:
        """Drop the unit's status and active call, and its dispatch chat."""
        unit.status = None
        unit.status_id = None
        unit.active_call_id = None
        await self.db.execute(delete(DispatchChat).where(DispatchChat.unit_id == unit.id))
        await self.db.flush()


class CadRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_current(self) -> Cad | None:
        """The installation has a single CAD record; the oldest one wins."""
        result = await self.db.execute(select(Cad).order_by(Cad.created_at).limit(1))
        return result.scalars().first()
