"""
Unit Shift Logs

A unit log records one shift of an officer or EMS/FD deputy. Logs are
opened by the status routes when a unit goes on duty; this module closes
them when the unit is taken off duty.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from dispatch_api.models import UnitLog, UnitType


logger = logging.getLogger(__name__)


async def close_unit_log(db: AsyncSession, unit, unit_type: UnitType) -> UnitLog | None:
    """
    Close the open shift log of a unit, if any. The caller commits.

    Returns:
        The closed log, or None when the unit had no open log
    """
    result = await db.execute(
        select(UnitLog)
        .filter(
            UnitLog.unit_id == unit.id,
            UnitLog.unit_type == unit_type,
            UnitLog.ended_at.is_(None),
        )
        .order_by(UnitLog.started_at.desc())
    )
    open_log = result.scalars().first()
    if not open_log:
        return None

    open_log.ended_at = datetime.utcnow()
    await db.flush()
    logger.info(f"Closed {unit_type.value} shift log for unit {unit.id}")
    return open_log
