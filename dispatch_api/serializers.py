"""
Response Serializers

Turn ORM objects into the JSON dictionaries returned by the routes.
Relationships used here must be eagerly loaded by the caller: async
sessions cannot lazy-load while building a response.
"""

from dispatch_api.models import BleeterPost, BleeterProfile, Cad, User, UserSoundSettings


def _iso(value):
    return value.isoformat() if value else None


def _enum_value(value):
    return value.value if value is not None and hasattr(value, "value") else value


def serialize_sound_settings(sound_settings: UserSoundSettings | None) -> dict | None:
    if sound_settings is None:
        return None
    return {
        "id": sound_settings.id,
        "panic_button": sound_settings.panic_button,
        "signal100": sound_settings.signal100,
        "added_to_call": sound_settings.added_to_call,
        "stop_roleplay": sound_settings.stop_roleplay,
        "status_update": sound_settings.status_update,
        "incoming_call": sound_settings.incoming_call,
        "speech": sound_settings.speech,
        "speech_voice": sound_settings.speech_voice,
    }


def serialize_user(user: User) -> dict:
    """
    Public projection of an account.

    Password hashes never leave the server; `has_password` tells the client
    whether the password form should ask for the current password.
    """
    return {
        "id": user.id,
        "username": user.username,
        "rank": _enum_value(user.rank),
        "discord_id": user.discord_id,
        "steam_id": user.steam_id,
        "has_password": bool(user.password and user.password.strip()),
        "has_temp_password": user.temp_password is not None,
        "is_dark_theme": user.is_dark_theme,
        "locale": user.locale,
        "status_view_mode": _enum_value(user.status_view_mode),
        "table_actions_alignment": _enum_value(user.table_actions_alignment),
        "developer_mode": user.developer_mode,
        "sound_settings_id": user.sound_settings_id,
        "sound_settings": serialize_sound_settings(user.sound_settings),
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }


def serialize_cad(cad: Cad | None) -> dict | None:
    """Application configuration as sent to users. Discord role mapping is withheld."""
    if cad is None:
        return None
    return {
        "id": cad.id,
        "name": cad.name,
        "owner_id": cad.owner_id,
        "area_of_play": cad.area_of_play,
        "disabled_features": list(cad.disabled_features or []),
        "created_at": _iso(cad.created_at),
    }


def serialize_profile(profile: BleeterProfile | None) -> dict | None:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "handle": profile.handle,
        "name": profile.name,
        "bio": profile.bio,
        "created_at": _iso(profile.created_at),
    }


def serialize_post(post: BleeterPost) -> dict:
    """Post with its author's username and Bleeter profile (user + creator loaded)."""
    return {
        "id": post.id,
        "user_id": post.user_id,
        "creator_id": post.creator_id,
        "title": post.title,
        "body": post.body,
        "body_data": post.body_data,
        "image_id": post.image_id,
        "image_blur_data": post.image_blur_data,
        "created_at": _iso(post.created_at),
        "updated_at": _iso(post.updated_at),
        "user": {"username": post.user.username} if post.user else None,
        "creator": serialize_profile(post.creator),
    }


def serialize_unit(unit) -> dict:
    """Officer or EMS/FD deputy, as broadcast to dispatch screens."""
    return {
        "id": unit.id,
        "user_id": unit.user_id,
        "name": unit.name,
        "status_id": unit.status_id,
        "status": unit.status.value if unit.status else None,
        "active_call_id": unit.active_call_id,
    }
