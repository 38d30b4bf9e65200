"""
iperf3_statuspage/core/errors.py
Failure taxonomy.
  • MeasurementError → iperf3 could not start, timed out or exited non-zero
  • ReportParseError → output arrived but is not a usable report
  • ConfigError      → required setting missing / invalid at startup

"No result yet" is not an error. See core/query.py.
"""


class StatusPageError(Exception):
    """Base class for everything this service raises on purpose."""


class MeasurementError(StatusPageError):
    pass


class ReportParseError(StatusPageError):
    pass


class ConfigError(StatusPageError):
    pass
