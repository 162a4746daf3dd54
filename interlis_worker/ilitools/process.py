"""Execution of ilitools commands on the Java runtime."""

import asyncio
import logging
import shlex

import psutil

logger = logging.getLogger(__name__)

# Reported when the real exit code is unknown (cancellation or launch failure).
SENTINEL_EXIT_CODE = -1

KILL_WAIT_SECONDS = 5


def kill_process_tree(pid: int) -> None:
    """Kill a process and all of its descendants.

    Args:
        pid: Process id of the root of the tree
    """
    try:
        parent = psutil.Process(pid)
        processes = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return

    processes.append(parent)
    for process in processes:
        try:
            process.kill()
        except psutil.NoSuchProcess:
            continue

    _, alive = psutil.wait_procs(processes, timeout=KILL_WAIT_SECONDS)
    for process in alive:
        logger.warning(f"Process {process.pid} still alive after kill")


class ProcessRunner:
    """Runs a built ilitools command and reports its exit code.

    Standard error is captured and logged at DEBUG level; standard output is
    left to the parent process. The tools' own log files and the exit code
    are the only results.
    """

    def __init__(self, executable: str = "java"):
        self.executable = executable

    async def run(self, command: str, cancel_event: asyncio.Event | None = None) -> int:
        """Execute the command and wait for the process to exit.

        Args:
            command: Argument string as produced by the command builders
            cancel_event: Cooperative cancellation signal. When set while the
                process runs, the whole process tree is killed.

        Returns:
            The process exit code, or SENTINEL_EXIT_CODE if the run was cancelled

        Raises:
            OSError: If the process cannot be started
            asyncio.CancelledError: If the awaiting task is cancelled (the process
                tree is killed first)
        """
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Cancellation requested before start, not executing command")
            return SENTINEL_EXIT_CODE

        logger.info(f"Executing command: {self.executable} {command}")

        process = await asyncio.create_subprocess_exec(
            self.executable,
            *shlex.split(command),
            stderr=asyncio.subprocess.PIPE,
        )

        completion = asyncio.ensure_future(self._read_and_wait(process))
        waiters = {completion}
        cancellation = None
        if cancel_event is not None:
            cancellation = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancellation)

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await self._terminate(process, completion)
            raise
        finally:
            if cancellation is not None:
                cancellation.cancel()

        if completion in done:
            return completion.result()

        logger.warning(f"Cancellation requested, killing process tree of pid {process.pid}")
        await self._terminate(process, completion)
        return SENTINEL_EXIT_CODE

    async def _read_and_wait(self, process: asyncio.subprocess.Process) -> int:
        # Drain stderr before waiting so a full pipe cannot block the child.
        stderr = await process.stderr.read()
        if stderr:
            logger.debug(stderr.decode(errors="replace"))
        return await process.wait()

    async def _terminate(
        self, process: asyncio.subprocess.Process, completion: asyncio.Future
    ) -> None:
        completion.cancel()
        await asyncio.to_thread(kill_process_tree, process.pid)
        await process.wait()
