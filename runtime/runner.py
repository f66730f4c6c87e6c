import asyncio
import logging
from typing import Any, Callable, Dict
from engine.engine import Engine
from engine.model import CommandResult, Phase

logger = logging.getLogger(__name__)


class BattleRunner:
    """Async driver around one engine.

    Commands from concurrent requests are serialised under a lock. The
    optional autoplay loop ends a round every tick until the battle is over.
    """

    def __init__(self, engine: Engine, tick_ms: int = 500, time_compression: float = 1.0):
        self.engine = engine
        self.tick_ms = tick_ms
        self.time_compression = time_compression
        self.sleep_s = (tick_ms / 1000.0) / max(1.0, time_compression)
        self.revision = 0
        self._unsubscribe = engine.subscribe(self._on_change)
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()

    def _on_change(self, engine: Engine) -> None:
        self.revision += 1

    @property
    def autoplaying(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, command: Callable[[Engine], CommandResult]) -> CommandResult:
        """Apply one engine command under the lock."""
        async with self._lock:
            return command(self.engine)

    async def start(self) -> bool:
        """Start the autoplay loop; only meaningful during battle."""
        if self.autoplaying:
            return False
        if self.engine.phase != Phase.BATTLE:
            return False
        self._task = asyncio.create_task(self._loop())
        return True

    async def stop(self):
        """Stop the autoplay loop gracefully."""
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def close(self):
        await self.stop()
        self._unsubscribe()

    async def _loop(self):
        """End one round per tick until the engine stops accepting rounds."""
        while True:
            async with self._lock:
                result = self.engine.end_round()
            if not result:
                logger.info("autoplay stopped: %s", result.message)
                break
            if self.engine.phase == Phase.GAME_OVER:
                logger.info("autoplay finished: winner %s", self.engine.state.winner)
                break
            await asyncio.sleep(self.sleep_s)

    async def snapshot(self) -> Dict[str, Any]:
        """Get current state (consistent with in-flight commands)."""
        async with self._lock:
            snap = self.engine.snapshot()
        snap["revision"] = self.revision
        snap["autoplay"] = self.autoplaying
        return snap

    def set_time_compression(self, time_compression: float):
        """Update time compression factor (1.0 = real-time, higher = faster)."""
        self.time_compression = max(0.1, min(1000.0, time_compression))
        self.sleep_s = (self.tick_ms / 1000.0) / max(1.0, self.time_compression)
        logger.info("time compression set to %sx (sleep: %.4fs)",
                    self.time_compression, self.sleep_s)
