"""
Chroma server lifecycle: health checks, ordered launch strategies and shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Sequence

import httpx

from docstore.config import Settings, settings as default_settings
from docstore.engine.strategies import (
    CommandRunner,
    ExternallyManaged,
    LaunchOutcome,
    LaunchStrategy,
    Spawned,
    default_strategies,
    run_command,
)
from docstore.errors import EngineUnavailableError, LaunchError

HEALTH_CHECK_TIMEOUT_SEC = 2.0
PROCESS_STOP_TIMEOUT_SEC = 10.0

logger = logging.getLogger(__name__)


class EngineStatus(str, Enum):
    NOT_RUNNING = "not_running"
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"


@dataclass(frozen=True)
class EngineState:
    status: EngineStatus
    reason: str | None = None


class EngineProcessManager:
    """
    Makes sure a Chroma server answers on the configured URL.

    `ensure_running()` always re-checks the heartbeat endpoint, so a cached
    Running state is never trusted. When the check fails, launch strategies are
    tried in order and each launch is confirmed by polling the heartbeat.
    Concurrent callers share a single in-flight start attempt.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        strategies: Sequence[LaunchStrategy] | None = None,
        http_client: httpx.AsyncClient | None = None,
        runner: CommandRunner = run_command,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or default_settings
        if strategies is None:
            strategies = default_strategies(self.settings) if self.settings.engine_autostart else []
        self.strategies: List[LaunchStrategy] = list(strategies)
        self._http = http_client or httpx.AsyncClient(timeout=HEALTH_CHECK_TIMEOUT_SEC)
        self._owns_http = http_client is None
        self._runner = runner
        self._sleep = sleep

        self._state = EngineState(EngineStatus.NOT_RUNNING)
        self._process: asyncio.subprocess.Process | None = None
        self._container: str | None = None
        self._start_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def url(self) -> str:
        return self.settings.engine_url

    @property
    def health_url(self) -> str:
        return f"{self.url}{self.settings.chroma_heartbeat_path}"

    def _set_state(self, status: EngineStatus, reason: str | None = None) -> None:
        if self._state.status != status:
            logger.info("Engine state changed", extra={"from": self._state.status.value, "to": status.value})
        self._state = EngineState(status, reason)

    async def is_healthy(self) -> bool:
        try:
            response = await self._http.get(self.health_url)
        except httpx.HTTPError:
            return False
        return response.is_success

    async def ensure_running(self) -> None:
        if await self.is_healthy():
            self._set_state(EngineStatus.RUNNING)
            return

        if self._start_task is None or self._start_task.done():
            self._start_task = asyncio.create_task(self._start())
            self._start_task.add_done_callback(_consume_result)
        # A cancelled caller must not cancel the attempt other callers are waiting on.
        await asyncio.shield(self._start_task)

    async def _start(self) -> None:
        # Another caller's attempt may have finished between our health check and this task.
        if await self.is_healthy():
            self._set_state(EngineStatus.RUNNING)
            return

        self._set_state(EngineStatus.STARTING)
        reasons: List[str] = []

        for strategy in self.strategies:
            outcome: LaunchOutcome | None = None
            try:
                outcome = await strategy.launch()
                failure = await self._wait_until_healthy(outcome)
            except LaunchError as exc:
                failure = exc.message
            except asyncio.CancelledError:
                if outcome is not None:
                    await self._discard(outcome)
                self._set_state(EngineStatus.NOT_RUNNING)
                raise
            except Exception as exc:
                logger.exception("Launch strategy raised", extra={"strategy": strategy.name})
                failure = f"unexpected error: {exc}"

            if failure is None and outcome is not None:
                self._adopt(outcome)
                self._set_state(EngineStatus.RUNNING)
                logger.info("Engine is running", extra={"strategy": strategy.name, "url": self.url})
                return

            logger.warning("Launch strategy failed", extra={"strategy": strategy.name, "reason": failure})
            reasons.append(f"{strategy.name}: {failure}")
            if outcome is not None:
                await self._discard(outcome)

        reason = "; ".join(reasons) if reasons else "no launch strategies configured"
        self._set_state(EngineStatus.FAILED, reason)
        logger.error("Unable to start vector engine", extra={"reason": reason})
        raise EngineUnavailableError(f"Vector engine is not reachable at {self.url}: {reason}", reasons)

    async def _wait_until_healthy(self, outcome: LaunchOutcome) -> str | None:
        """Poll the heartbeat; return None once healthy, else a failure reason."""
        retries = self.settings.engine_health_retries
        for _ in range(retries):
            await self._sleep(self.settings.engine_health_interval)
            if await self.is_healthy():
                return None
            if isinstance(outcome, Spawned) and outcome.process.returncode is not None:
                return f"process exited with code {outcome.process.returncode}"
        return f"no heartbeat after {retries} checks"

    def _adopt(self, outcome: LaunchOutcome) -> None:
        if isinstance(outcome, Spawned):
            self._process = outcome.process
            self._container = None
        elif isinstance(outcome, ExternallyManaged):
            self._process = None
            self._container = outcome.container

    def adopt_container(self, container: str) -> None:
        """Treat an already existing container as ours, so `stop()` can stop it."""
        self._adopt(ExternallyManaged(description="adopted container", container=container))

    async def _discard(self, outcome: LaunchOutcome) -> None:
        if isinstance(outcome, Spawned):
            await _terminate(outcome.process)

    async def stop(self) -> None:
        """Best-effort shutdown of whatever this manager started."""
        try:
            if self._process is not None:
                await _terminate(self._process)
                logger.info("Chroma server process stopped", extra={"pid": self._process.pid})
            elif self._container is not None:
                result = await self._runner("docker", "stop", self._container)
                if result.ok:
                    logger.info("Chroma container stopped", extra={"container": self._container})
                else:
                    logger.warning(
                        "docker stop failed",
                        extra={"container": self._container, "stderr": result.stderr.strip()},
                    )
        except Exception:
            logger.exception("Failed to stop vector engine")
        finally:
            self._process = None
            self._container = None
            self._set_state(EngineStatus.NOT_RUNNING)

    async def status(self) -> Dict[str, Any]:
        running = await self.is_healthy()
        if running:
            self._set_state(EngineStatus.RUNNING)
        elif self._state.status == EngineStatus.RUNNING:
            self._set_state(EngineStatus.NOT_RUNNING)
        return {
            "running": running,
            "url": self.url,
            "state": self._state.status.value,
            "reason": self._state.reason,
        }

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()


def _consume_result(task: asyncio.Task) -> None:
    # Callers may all have been cancelled; mark the outcome as retrieved.
    if not task.cancelled():
        task.exception()


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.terminate()
        await asyncio.wait_for(process.wait(), timeout=PROCESS_STOP_TIMEOUT_SEC)
    except ProcessLookupError:
        return
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()


__all__ = ["EngineProcessManager", "EngineState", "EngineStatus"]
