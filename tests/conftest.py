import json
import os
from pathlib import Path

import pytest

# Keep a developer's local .env out of the test process; set before main is imported
os.environ["ENV_FILE"] = str(Path(__file__).parent / "missing.env")

from iperf3_statuspage.core.cache import ResultStore
from iperf3_statuspage.core.models import parse_report
from iperf3_statuspage.runners.base import Target


def iperf3_json(timesecs: int = 1000, bps: float = 941_000_000.0, **extra) -> str:
    """A trimmed but realistic `iperf3 --json` client document."""
    doc = {
        "start": {
            "connected": [{
                "socket": 5, "local_host": "10.0.0.2", "local_port": 50412,
                "remote_host": "10.0.0.1", "remote_port": 5201,
            }],
            "version": "iperf 3.16",
            "system_info": "Linux probe 6.8.0 x86_64",
            "timestamp": {"time": "Thu, 01 Jan 1970 00:16:40 GMT", "timesecs": timesecs},
            "connecting_to": {"host": "10.0.0.1", "port": 5201},
            "cookie": "abcdefghijklmnopqrstuvwxyz234567",
            "tcp_mss_default": 1448,
            "test_start": {"protocol": "TCP", "num_streams": 1, "duration": 10},
        },
        "intervals": [{
            "streams": [{"socket": 5, "start": 0, "end": 1.0, "seconds": 1.0,
                         "bytes": 117_000_000, "bits_per_second": bps, "sender": True}],
            "sum": {"start": 0, "end": 1.0, "seconds": 1.0, "bytes": 117_000_000,
                    "bits_per_second": bps, "sender": True},
        }],
        "end": {
            "sum_sent": {"seconds": 10.0, "bytes": 1_170_000_000, "bits_per_second": bps,
                         "retransmits": 3, "sender": True},
            "sum_received": {"seconds": 10.0, "bytes": 1_169_000_000, "bits_per_second": bps - 1e6},
            "cpu_utilization_percent": {"host_total": 4.5, "remote_total": 1.25},
            "sender_tcp_congestion": "cubic",
            "receiver_tcp_congestion": "cubic",
        },
    }
    doc.update(extra)
    return json.dumps(doc)


def make_report(timesecs: int = 1000):
    return parse_report(iperf3_json(timesecs))


class FakeRunner:
    """
    Scripted MeasurementRunner. Each call consumes the next outcome; the last
    one repeats. An outcome is raw stdout (str) or an exception to raise.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[Target] = []

    async def run(self, target: Target) -> str:
        self.calls.append(target)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return ResultStore(clock=clock)


@pytest.fixture
def target():
    return Target("10.0.0.1", 5201)
