from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Classification domain model for the panel retest gate.

A Classification is the only externally observable value the gate produces;
panel_gate/services/result_line.py renders it into the station's text contract.
"""

__all__ = [
    "Verdict",
    "GateState",
    "Classification",
]


class Verdict(Enum):
    GOLDEN_SAMPLE = "GS"
    ADMITTED = "OK"
    REJECTED = "NK"
    ERROR = "ER"


class GateState(Enum):
    """States visited by the decision engine.

    State transitions:
        start → checking_exemption → (done | querying_total)
        querying_total → (admitted | rejected | querying_panel)
        querying_panel → (admitted | rejected)
        admitted | rejected → done
    plus errored, reachable from any non-terminal state.
    """
    START = "start"
    CHECKING_EXEMPTION = "checking_exemption"
    QUERYING_TOTAL = "querying_total"
    QUERYING_PANEL = "querying_panel"
    ADMITTED = "admitted"
    REJECTED = "rejected"
    DONE = "done"
    ERRORED = "errored"


@dataclass(frozen=True)
class Classification:
    """Tagged outcome of one gate invocation.

    ``failures`` is None when the decision was taken from the total test count
    alone (the panel-failure query was never issued).
    """
    verdict: Verdict
    tested: int | None = None
    failures: int | None = None
    message: str | None = None

    @classmethod
    def golden_sample(cls) -> Classification:
        return cls(Verdict.GOLDEN_SAMPLE)

    @classmethod
    def admitted(cls, tested: int, failures: int | None = None) -> Classification:
        return cls(Verdict.ADMITTED, tested=tested, failures=failures)

    @classmethod
    def rejected(cls, tested: int, failures: int | None = None) -> Classification:
        return cls(Verdict.REJECTED, tested=tested, failures=failures)

    @classmethod
    def error(cls, message: str) -> Classification:
        return cls(Verdict.ERROR, message=message)

    @property
    def is_error(self) -> bool:
        return self.verdict is Verdict.ERROR
