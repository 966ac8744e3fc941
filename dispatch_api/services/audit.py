"""
Audit Logging Service

Records account-level actions: account deletion, password changes and
logouts.
"""

import json

from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_api.models import AuditLog


async def log_action(
    db: AsyncSession,
    action: str,
    user_id: str,
    details: dict | str | None = None
):
    """
    Record an action in the audit log.

    The entry is added to the session but not committed. The caller commits
    it together with the action itself, so a failed action leaves no log.

    Args:
        db: Database session (transaction will be committed by caller)
        action: Name of the action (e.g. "user_deleted", "password_changed")
        user_id: Id of the user performing the action
        details: Optional context; dicts are stored as JSON

    Example:
        await log_action(db, "password_changed", user.id, {"used_oauth": True})
        await db.commit()
    """
    details_str = None
    if details:
        if isinstance(details, dict):
            details_str = json.dumps(details)
        else:
            details_str = str(details)

    db.add(AuditLog(action=action, user_id=user_id, details=details_str))
