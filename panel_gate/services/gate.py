from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Sequence
from contextlib import AbstractContextManager
from typing import Protocol

from ..db.result_store import StoreError
from ..identifier.codec import IdentifierError, derive_siblings
from ..models.classification import Classification, GateState
from ..models.config_models import GatePolicy
from .golden_samples import is_golden_sample

"""Decision engine for the panel retest gate.

Flow for one scanned identifier:
1. Golden sample -> GS, the store is never contacted
2. Q#1 total tests for the scanned identifier
   - tested < low  -> admitted
   - tested >= high -> rejected
3. Otherwise Q#2 max failures across the panel siblings
   - failures >= low -> rejected, else admitted

Any IdentifierError / StoreError turns into an error classification; no
partial result is ever reported.
"""

__all__ = [
    "CountSource",
    "DecisionEngine",
]

logger = logging.getLogger(__name__)


class CountSource(Protocol):
    """What the engine needs from an open store session."""

    def count_total_tests(self, serial: str) -> int: ...

    def count_max_panel_failures(self, siblings: Sequence[str]) -> int: ...


SessionFactory = Callable[[], AbstractContextManager[CountSource]]


class DecisionEngine:
    """Two-stage threshold gate.

    ``session_factory`` is called at most once per classify() call and only
    after the exemption check, so exempt units never touch the network.
    """

    def __init__(
        self,
        policy: GatePolicy,
        golden_samples: Collection[str],
        session_factory: SessionFactory,
    ) -> None:
        self.policy = policy
        self.golden_samples = golden_samples
        self.session_factory = session_factory
        self.trace: list[GateState] = []

    def _enter(self, state: GateState) -> None:
        self.trace.append(state)
        logger.debug(f"gate state -> {state.value}")

    def classify(self, serial: str, panel_size: int = 1) -> Classification:
        self.trace = []
        self._enter(GateState.START)
        try:
            result = self._run(serial, panel_size)
        except (IdentifierError, StoreError) as e:
            self._enter(GateState.ERRORED)
            if e.__cause__ is not None:
                logger.warning(f"{e} (cause: {e.__cause__})")
            else:
                logger.warning(str(e))
            return Classification.error(str(e))
        self._enter(GateState.DONE)
        return result

    def _run(self, serial: str, panel_size: int) -> Classification:
        self._enter(GateState.CHECKING_EXEMPTION)
        if is_golden_sample(serial, self.golden_samples):
            logger.info(f"{serial} is a golden sample")
            return Classification.golden_sample()

        low = self.policy.low_threshold
        high = self.policy.high_threshold

        with self.session_factory() as store:
            self._enter(GateState.QUERYING_TOTAL)
            tested = store.count_total_tests(serial)
            logger.info(f"{serial} tested_total={tested}")

            if tested < low:
                self._enter(GateState.ADMITTED)
                return Classification.admitted(tested=tested)
            if tested >= high:
                self._enter(GateState.REJECTED)
                return Classification.rejected(tested=tested)

            # low <= tested < high: パネル内のどの基板も low 回以上 fail していないこと
            self._enter(GateState.QUERYING_PANEL)
            siblings = derive_siblings(serial, panel_size)
            failures = store.count_max_panel_failures(siblings)
            logger.info(f"{serial} panel_size={panel_size} max_failures={failures}")

        if failures >= low:
            self._enter(GateState.REJECTED)
            return Classification.rejected(tested=tested, failures=failures)
        self._enter(GateState.ADMITTED)
        return Classification.admitted(tested=tested, failures=failures)
