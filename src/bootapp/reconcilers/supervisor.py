"""Attach-mode log streaming."""

import asyncio
import logging
import signal
from typing import Awaitable, Callable, List, Optional

from rich.console import Console
from rich.markup import escape

from bootapp.context import ReconcileContext
from bootapp.docker.client import DockerClient
from bootapp.models.runtime import PROJECT_LABEL


logger = logging.getLogger(__name__)

PREFIX_WIDTH = 16

ProcessFactory = Callable[..., Awaitable[asyncio.subprocess.Process]]


class LogStreamSupervisor:
    """Streams the output of one child process per attached container.

    Each line is printed with the container name, padded to a fixed width,
    in a color taken from the context palette.
    """

    def __init__(
        self,
        docker: DockerClient,
        context: ReconcileContext,
        console: Optional[Console] = None,
        process_factory: Optional[ProcessFactory] = None,
    ):
        """Initialize supervisor."""
        self.docker = docker
        self.context = context
        self.console = console or Console(highlight=False)
        self._process_factory = process_factory or asyncio.create_subprocess_exec
        self.shutdown_event = asyncio.Event()
        self.interrupted = False
        self._tasks: List[asyncio.Task] = []
        self._processes: List[asyncio.subprocess.Process] = []
        self._signals: List[int] = []

    def format_line(self, name: str, line: str, color: str) -> str:
        prefix = escape(f"{name:<{PREFIX_WIDTH}} | ")
        return f"[{color}]{prefix}[/{color}]{escape(line)}"

    async def spawn(self, name: str, argv: List[str]) -> asyncio.Task:
        """Start a stream for ``name`` running ``argv``."""
        color = self.context.next_color()
        process = await self._process_factory(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        self._processes.append(process)
        task = asyncio.create_task(self._stream(name, process, color))
        self._tasks.append(task)
        logger.debug(f"Streaming {name} (pid {process.pid})")
        return task

    async def _stream(self, name: str, process: asyncio.subprocess.Process, color: str):
        async for raw in process.stdout:
            line = raw.decode(errors="replace").rstrip("\r\n")
            if line:
                self.console.print(self.format_line(name, line, color))
        returncode = await process.wait()
        logger.debug(f"{name} stream exited with {returncode}")

    def install_signal_handlers(self):
        """SIGINT removes the project's containers; SIGTERM and SIGHUP just stop."""
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, self.interrupt)
        self._signals.append(signal.SIGINT)
        for sig in (signal.SIGTERM, signal.SIGHUP):
            loop.add_signal_handler(sig, self.stop)
            self._signals.append(sig)

    def remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals.clear()

    def interrupt(self):
        logger.info("Interrupted, removing project containers")
        self.interrupted = True
        self.shutdown_event.set()

    def stop(self):
        logger.info("Shutdown requested")
        self.shutdown_event.set()

    async def wait(self):
        """Block until every stream has ended or a stop was requested."""
        if self._tasks and not self.shutdown_event.is_set():
            streams = asyncio.gather(*self._tasks, return_exceptions=True)
            stopper = asyncio.create_task(self.shutdown_event.wait())
            await asyncio.wait([streams, stopper], return_when=asyncio.FIRST_COMPLETED)
            if not stopper.done():
                stopper.cancel()
        await self.shutdown()

    async def shutdown(self):
        """Cancel streams, terminate children, clean up after an interrupt."""
        for task in self._tasks:
            if not task.done():
                task.cancel()
        for process in self._processes:
            if process.returncode is None:
                try:
                    process.terminate()
                except ProcessLookupError:
                    pass
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        if self.interrupted:
            await self.remove_project_containers()

        if self._signals:
            self.remove_signal_handlers()

    async def remove_project_containers(self):
        ids = await self.docker.container_ids(
            all_containers=True,
            labels=[f"{PROJECT_LABEL}={self.context.project_name}"],
        )
        if ids:
            await self.docker.remove_containers(ids)
            logger.info(f"Removed {len(ids)} containers of {self.context.project_name}")
