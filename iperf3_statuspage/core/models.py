"""
iperf3_statuspage/core/models.py
═══════════════════════════════════════════════════════════════════════════════
Typed view of the `iperf3 --json` document.

  • Every field has a zero default → partial documents still parse
  • Unknown keys are kept (extra="allow") → /iperf3 serves what iperf3 wrote
  • Models are frozen → a cached report can be shared between readers as-is

Only `start` is mandatory. Nothing in the service reads deeper than
`start.timestamp`; the rest exists so the API schema is documented.
═══════════════════════════════════════════════════════════════════════════════
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from iperf3_statuspage.core.errors import ReportParseError


class _Model(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


# ── start ─────────────────────────────────────────────────────────────────────

class Connected(_Model):
    socket:      int = 0
    local_host:  str = ""
    local_port:  int = 0
    remote_host: str = ""
    remote_port: int = 0


class Timestamp(_Model):
    time:     str = ""
    timesecs: int = 0


class ConnectingTo(_Model):
    host: str = ""
    port: int = 0


class TestStart(_Model):
    protocol:       str = ""
    num_streams:    int = 0
    blksize:        int = 0
    omit:           int = 0
    duration:       int = 0
    bytes:          int = 0
    blocks:         int = 0
    reverse:        int = 0
    tos:            int = 0
    target_bitrate: int = 0
    bidir:          int = 0
    fqrate:         int = 0


class Start(_Model):
    connected:       list[Connected] = Field(default_factory=list)
    version:         str = ""
    system_info:     str = ""
    timestamp:       Timestamp = Field(default_factory=Timestamp)
    connecting_to:   ConnectingTo = Field(default_factory=ConnectingTo)
    cookie:          str = ""
    tcp_mss_default: int = 0
    target_bitrate:  int = 0
    fq_rate:         int = 0
    sock_bufsize:    int = 0
    sndbuf_actual:   int = 0
    rcvbuf_actual:   int = 0
    test_start:      TestStart = Field(default_factory=TestStart)


# ── intervals ─────────────────────────────────────────────────────────────────

class Stream(_Model):
    socket:          int = 0
    start:           float = 0.0
    end:             float = 0.0
    seconds:         float = 0.0
    bytes:           int = 0
    bits_per_second: float = 0.0
    retransmits:     int = 0
    snd_cwnd:        int = 0
    snd_wnd:         int = 0
    rtt:             int = 0
    rttvar:          int = 0
    pmtu:            int = 0
    omitted:         bool = False
    sender:          bool = False


class Sum(_Model):
    start:           float = 0.0
    end:             float = 0.0
    seconds:         float = 0.0
    bytes:           int = 0
    bits_per_second: float = 0.0
    retransmits:     int = 0
    omitted:         bool = False
    sender:          bool = False


class Interval(_Model):
    streams: list[Stream] = Field(default_factory=list)
    sum:     Sum = Field(default_factory=Sum)


# ── end ───────────────────────────────────────────────────────────────────────

class Sender(_Model):
    socket:          int = 0
    start:           float = 0.0
    end:             float = 0.0
    seconds:         float = 0.0
    bytes:           int = 0
    bits_per_second: float = 0.0
    retransmits:     int = 0
    max_snd_cwnd:    int = 0
    max_snd_wnd:     int = 0
    max_rtt:         int = 0
    min_rtt:         int = 0
    mean_rtt:        int = 0
    sender:          bool = False


class Receiver(_Model):
    socket:          int = 0
    start:           float = 0.0
    end:             float = 0.0
    seconds:         float = 0.0
    bytes:           int = 0
    bits_per_second: float = 0.0
    sender:          bool = False


class EndStream(_Model):
    sender:   Sender = Field(default_factory=Sender)
    receiver: Receiver = Field(default_factory=Receiver)


class SumSent(_Model):
    start:           float = 0.0
    end:             float = 0.0
    seconds:         float = 0.0
    bytes:           int = 0
    bits_per_second: float = 0.0
    retransmits:     int = 0
    sender:          bool = False


class SumReceived(_Model):
    start:           float = 0.0
    end:             float = 0.0
    seconds:         float = 0.0
    bytes:           int = 0
    bits_per_second: float = 0.0
    sender:          bool = False


class CpuUtilizationPercent(_Model):
    host_total:    float = 0.0
    host_user:     float = 0.0
    host_system:   float = 0.0
    remote_total:  float = 0.0
    remote_user:   float = 0.0
    remote_system: float = 0.0


class End(_Model):
    streams:                 list[EndStream] = Field(default_factory=list)
    sum_sent:                SumSent = Field(default_factory=SumSent)
    sum_received:            SumReceived = Field(default_factory=SumReceived)
    cpu_utilization_percent: CpuUtilizationPercent = Field(default_factory=CpuUtilizationPercent)
    sender_tcp_congestion:   str = ""
    receiver_tcp_congestion: str = ""


# ── report ────────────────────────────────────────────────────────────────────

class Iperf3Report(_Model):
    start:     Start
    intervals: list[Interval] = Field(default_factory=list)
    end:       End = Field(default_factory=End)

    @property
    def display_time(self) -> str:
        """Human timestamp of the run, for log lines."""
        ts = self.start.timestamp
        if ts.time:
            return ts.time
        return datetime.fromtimestamp(ts.timesecs, tz=timezone.utc).isoformat()


def parse_report(raw: str) -> Iperf3Report:
    """
    Deserialize iperf3 stdout. Raises ReportParseError with the validation
    detail on malformed JSON, wrong types, or an iperf3 `error` document.
    """
    try:
        report = Iperf3Report.model_validate_json(raw)
    except ValidationError as ex:
        raise ReportParseError(f"Failed to parse iperf3 JSON: {ex}") from ex

    error = (report.model_extra or {}).get("error")
    if error:
        raise ReportParseError(f"iperf3 reported an error: {error}")
    return report
