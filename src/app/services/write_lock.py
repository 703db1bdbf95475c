"""Ledger write serialization

Every mutation of the ledger (admission, projection, status transitions,
rebuilds) runs while holding the single LedgerWriteLock, so validation of
projected balances and the matching writes can never interleave.
"""

import asyncio


class LedgerWriteLock:
    """
    Single-writer lock over the whole transaction log

    Usage:
        async with write_lock:
            ... validate, append, project, commit ...
    """

    def __init__(self):
        self._lock = asyncio.Lock()

    async def __aenter__(self):
        await self._lock.acquire()
        return self

    async def __aexit__(self, *args):
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()
