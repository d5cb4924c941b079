"""Testing support – doubles for exercising resilient clients without a network."""

from resilient_http.testing.fakes import (
    AsyncRecordingSleep,
    AsyncScriptedTransport,
    ManualClock,
    RecordingSleep,
    ScriptedTransport,
    SequenceBackoff,
)

__all__ = [
    "AsyncRecordingSleep",
    "AsyncScriptedTransport",
    "ManualClock",
    "RecordingSleep",
    "ScriptedTransport",
    "SequenceBackoff",
]
