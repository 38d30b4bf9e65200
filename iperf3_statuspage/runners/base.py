"""
iperf3_statuspage/runners/base.py
What the refresher needs from a measurement tool, and nothing more.
Production uses runners/iperf3.py; tests pass any object with `run`.
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Target:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class MeasurementRunner(Protocol):
    async def run(self, target: Target) -> str:
        """
        Run one measurement against `target` and return its raw stdout.
        Raises MeasurementError on any invocation failure.
        Must not touch the result store.
        """
        ...
