"""
iperf3_statuspage/runners/iperf3.py
═══════════════════════════════════════════════════════════════════════════════
Runs the real `iperf3` binary as a client:

    iperf3 -c <host> -p <port> --json [extra args]

  • Could not start       → MeasurementError("Failed to run iperf3: …")
  • Non-zero exit         → MeasurementError("iperf3 failed: …")
                            stderr if any, else the `error` key iperf3 puts
                            into its JSON on stdout
  • Slower than timeout_s → process killed, MeasurementError
  • Task cancelled        → process killed, CancelledError re-raised
═══════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import json
import logging
from typing import Sequence

from iperf3_statuspage.core.errors import MeasurementError
from iperf3_statuspage.runners.base import Target

log = logging.getLogger("iperf3_runner")


def _json_error(stdout: str) -> str:
    try:
        doc = json.loads(stdout)
    except ValueError:
        return ""
    return str(doc.get("error", "")) if isinstance(doc, dict) else ""


class Iperf3Runner:
    def __init__(
        self,
        binary: str = "iperf3",
        timeout_s: float = 120.0,
        extra_args: Sequence[str] = (),
    ):
        self.binary = binary
        self.timeout_s = timeout_s
        self.extra_args = tuple(extra_args)

    def command(self, target: Target) -> list[str]:
        return [
            self.binary,
            "-c", target.host,
            "-p", str(target.port),
            "--json",
            *self.extra_args,
        ]

    async def run(self, target: Target) -> str:
        cmd = self.command(target)
        log.debug(f"Running {' '.join(cmd)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as ex:
            raise MeasurementError(f"Failed to run iperf3: {ex}") from ex

        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            await _kill(proc)
            raise MeasurementError(f"iperf3 timed out after {self.timeout_s:g}s against {target}")
        except asyncio.CancelledError:
            await _kill(proc)
            raise

        stdout = out.decode("utf-8", errors="replace")
        stderr = err.decode("utf-8", errors="replace").strip()

        if proc.returncode != 0:
            detail = stderr or _json_error(stdout) or f"exit code {proc.returncode}"
            raise MeasurementError(f"iperf3 failed: {detail}")
        return stdout


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
