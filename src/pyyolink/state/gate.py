"""Per-device serialization gate.

YoLink misbehaves when two requests for the same device are in flight, so
every read-modify-write of a device record runs while holding that
device's gate. Gates are per device; different devices proceed
concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class DeviceGate:
    """Binary lock with scope-bound release.

    ``hold(acquire=False)`` is the explicit nesting flag: a caller that
    already holds this gate can run a sub-operation that expects to be
    gated without acquiring it a second time.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self, *, acquire: bool = True) -> AsyncIterator[None]:
        if not acquire:
            yield
            return
        async with self._lock:
            yield

    def __repr__(self) -> str:
        state = "locked" if self.locked else "unlocked"
        return f"<DeviceGate {self.name} {state}>"
