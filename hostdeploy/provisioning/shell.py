"""Local command execution primitive. Every side effect of a run goes through here."""

import asyncio
import logging

from hostdeploy.redact import redact_secrets

logger = logging.getLogger(__name__)


async def _read_stream(pipe, lines, level):
    async for raw_line in pipe:
        line = raw_line.decode(errors="replace").rstrip("\n")
        logger.log(level, line)
        lines.append(line)


async def run_shell_cmd(command, timeout=None, log_output=False):
    """Run a command and return (returncode, stdout, stderr).

    Args:
        command: list of command arguments
        timeout: maximum seconds to wait, or None to wait indefinitely
        log_output: stream output lines into the log as they arrive
            (stdout at INFO, stderr at WARNING)

    Returns:
        (returncode, stdout, stderr) tuple. A missing executable yields 127,
        a timeout yields 124.
    """
    logger.debug(f"$ {redact_secrets(' '.join(command))}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        logger.error(f"Error: '{command[0]}' not found. Is it installed and on PATH?")
        return 127, "", f"'{command[0]}' not found"

    try:
        if log_output:
            stdout_lines, stderr_lines = [], []
            await asyncio.wait_for(
                asyncio.gather(
                    _read_stream(proc.stdout, stdout_lines, logging.INFO),
                    _read_stream(proc.stderr, stderr_lines, logging.WARNING),
                    proc.wait(),
                ),
                timeout=timeout,
            )
            return proc.returncode, "\n".join(stdout_lines), "\n".join(stderr_lines)

        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        stdout = stdout_bytes.decode(errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode(errors="replace") if stderr_bytes else ""
        return proc.returncode, stdout, stderr
    except asyncio.TimeoutError:
        logger.error(f"Command timed out after {timeout}s: {redact_secrets(' '.join(command))}")
        proc.kill()
        await proc.wait()
        return 124, "", "timeout"
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise
