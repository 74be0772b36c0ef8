"""
Run locks keeping a scheduled job from overlapping itself.

A lock is a ``run_locks`` row naming its holder and an expiry time. An
expired lock counts as free, so a worker that died mid-run blocks its
job for at most the TTL.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bidwatch.persistence.models import RunLock, utcnow


class LockManager:
    """Acquire and release named run locks; every call commits."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def acquire(self, lock_name: str, holder_id: str, ttl_minutes: int = 120) -> bool:
        """Take the lock, or refresh it if this holder already has it.

        Returns False when another holder has an unexpired lock.
        """
        now = utcnow()
        expires_at = now + timedelta(minutes=ttl_minutes)

        # Take over an expired lock (or our own) in one statement
        takeover = (
            update(RunLock)
            .where(RunLock.lock_name == lock_name)
            .where(or_(RunLock.expires_at <= now, RunLock.holder_id == holder_id))
            .values(holder_id=holder_id, acquired_at=now, expires_at=expires_at)
        )
        if self._session.execute(takeover).rowcount:
            self._session.commit()
            return True

        try:
            with self._session.begin_nested():
                self._session.add(
                    RunLock(lock_name=lock_name, holder_id=holder_id, acquired_at=now, expires_at=expires_at)
                )
        except IntegrityError:
            # Row exists and is held by someone else
            self._session.commit()
            return False

        self._session.commit()
        return True

    def release(self, lock_name: str, holder_id: str) -> bool:
        """Drop the lock if this holder has it."""
        stmt = delete(RunLock).where(RunLock.lock_name == lock_name, RunLock.holder_id == holder_id)
        released = bool(self._session.execute(stmt).rowcount)
        self._session.commit()
        return released

    def is_locked(self, lock_name: str) -> bool:
        stmt = select(RunLock.id).where(RunLock.lock_name == lock_name, RunLock.expires_at > utcnow())
        return self._session.execute(stmt).first() is not None

    def cleanup_expired(self) -> int:
        """Delete expired locks, returning how many went."""
        result = self._session.execute(delete(RunLock).where(RunLock.expires_at <= utcnow()))
        self._session.commit()
        return int(result.rowcount or 0)
