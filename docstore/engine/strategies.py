"""
Launch strategies for the Chroma server, tried in priority order by the process manager.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Protocol, Tuple, Union

from docstore.config import Settings
from docstore.errors import LaunchError

CHROMA_CLI_MODULE = "chromadb.cli.cli"
COMMAND_TIMEOUT_SEC = 60.0
PIPX_VENV = Path("~/.local/pipx/venvs/chromadb")
PROJECT_VENV_DIRS = ("venv", ".venv")
SYSTEM_INTERPRETERS = ("python3", "python")

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


CommandRunner = Callable[..., Awaitable[CommandResult]]
ProcessSpawner = Callable[..., Awaitable[asyncio.subprocess.Process]]


async def run_command(*args: str, timeout: float = COMMAND_TIMEOUT_SEC) -> CommandResult:
    """Run a short-lived command and capture its output."""
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise LaunchError(f"Cannot execute {args[0]}: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        process.kill()
        await process.wait()
        raise LaunchError(f"Command timed out after {timeout:.0f}s: {' '.join(args)}") from exc

    return CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


async def spawn_detached(*args: str) -> asyncio.subprocess.Process:
    """Start a long-running background process in its own session with output discarded."""
    try:
        return await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise LaunchError(f"Cannot spawn {args[0]}: {exc}") from exc


# --- Launch outcomes ---
@dataclass
class Spawned:
    """The strategy started a background process owned by the manager."""

    process: asyncio.subprocess.Process
    description: str


@dataclass
class ExternallyManaged:
    """The engine runs outside this process (e.g. in a container); no handle to keep."""

    description: str
    container: str | None = None


LaunchOutcome = Union[Spawned, ExternallyManaged]


class LaunchStrategy(Protocol):
    name: str

    async def launch(self) -> LaunchOutcome:
        ...


class ContainerStrategy:
    """Run Chroma in a named Docker container, reusing it when it already exists."""

    name = "docker"

    def __init__(self, settings: Settings, runner: CommandRunner = run_command) -> None:
        self.settings = settings
        self.runner = runner
        self.container = settings.chroma_container_name

    async def launch(self) -> LaunchOutcome:
        await self._require_docker()
        ensure_data_dir(self.settings.data_dir)

        if await self._container_names(all_states=True):
            if await self._container_names(all_states=False):
                logger.info("Chroma container already running", extra={"container": self.container})
                return ExternallyManaged(description="existing container", container=self.container)

            logger.info("Starting existing Chroma container", extra={"container": self.container})
            await self._docker("start", self.container)
            return ExternallyManaged(description="restarted container", container=self.container)

        logger.info(
            "Creating Chroma container",
            extra={"container": self.container, "image": self.settings.chroma_image},
        )
        await self._docker(
            "run",
            "-d",
            "-p",
            f"{self.settings.chroma_port}:8000",
            "-v",
            f"{self.settings.data_dir}:{self.settings.chroma_container_data_path}",
            "--name",
            self.container,
            self.settings.chroma_image,
        )
        return ExternallyManaged(description="new container", container=self.container)

    async def _require_docker(self) -> None:
        result = await self.runner("docker", "--version")
        if not result.ok:
            raise LaunchError("Docker is not installed or not usable")

    async def _container_names(self, all_states: bool) -> List[str]:
        args = ["ps", "--filter", f"name=^{self.container}$", "--format", "{{.Names}}"]
        if all_states:
            args.insert(1, "-a")
        result = await self._docker(*args)
        return [line.strip() for line in result.stdout.splitlines() if line.strip() == self.container]

    async def _docker(self, *args: str) -> CommandResult:
        result = await self.runner("docker", *args)
        if not result.ok:
            detail = result.stderr.strip() or result.stdout.strip() or f"exit code {result.returncode}"
            raise LaunchError(f"docker {args[0]} failed: {detail}")
        return result


class LocalInterpreterStrategy:
    """Run the Chroma CLI from the first Python interpreter that has chromadb installed."""

    name = "python"

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner = run_command,
        spawner: ProcessSpawner = spawn_detached,
        project_root: Path | None = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.spawner = spawner
        self.project_root = project_root or Path.cwd()

    def candidates(self) -> List[Tuple[str, str]]:
        """(label, executable) pairs in priority order: pipx venv, project venvs, system."""
        found: List[Tuple[str, str]] = []
        pipx_python = _venv_python(PIPX_VENV.expanduser())
        if pipx_python.exists():
            found.append(("pipx", str(pipx_python)))
        for venv_dir in PROJECT_VENV_DIRS:
            venv_python = _venv_python(self.project_root / venv_dir)
            if venv_python.exists():
                found.append((f"project {venv_dir}", str(venv_python)))
        for command in SYSTEM_INTERPRETERS:
            path = shutil.which(command)
            if path:
                found.append((f"system {command}", path))
        return found

    async def find_interpreter(self) -> str:
        tried: List[str] = []
        for label, executable in self.candidates():
            try:
                result = await self.runner(executable, "-m", CHROMA_CLI_MODULE, "--help")
            except LaunchError as exc:
                tried.append(f"{label} ({exc.message})")
                continue
            if result.ok:
                logger.info("Found chromadb interpreter", extra={"source": label, "python": executable})
                return executable
            tried.append(f"{label} (chromadb not importable)")

        detail = ", ".join(tried) if tried else "no Python interpreter found"
        raise LaunchError(f"chromadb is not installed for any interpreter: {detail}")

    async def launch(self) -> LaunchOutcome:
        python = await self.find_interpreter()
        data_dir = ensure_data_dir(self.settings.data_dir)

        process = await self.spawner(
            python,
            "-m",
            CHROMA_CLI_MODULE,
            "run",
            "--path",
            str(data_dir),
            "--port",
            str(self.settings.chroma_port),
        )
        logger.info("Spawned Chroma server", extra={"pid": process.pid, "python": python})
        return Spawned(process=process, description=f"{python} (pid {process.pid})")


def ensure_data_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise LaunchError(f"Cannot create data directory {path}: {exc}") from exc
    return path


def _venv_python(venv: Path) -> Path:
    if os.name == "nt":
        return venv / "Scripts" / "python.exe"
    return venv / "bin" / "python"


def default_strategies(settings: Settings) -> List[LaunchStrategy]:
    """Container first, then local interpreters."""
    return [ContainerStrategy(settings), LocalInterpreterStrategy(settings)]


__all__ = [
    "CommandResult",
    "run_command",
    "spawn_detached",
    "Spawned",
    "ExternallyManaged",
    "LaunchOutcome",
    "LaunchStrategy",
    "ContainerStrategy",
    "LocalInterpreterStrategy",
    "ensure_data_dir",
    "default_strategies",
]
