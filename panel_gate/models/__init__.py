"""Domain models for the panel retest gate.

Configuration objects, the classification outcome, and the fault journal record.
"""

from .classification import Classification, GateState, Verdict
from .config_models import (
    ArgMode,
    AuthMode,
    GateConfig,
    GatePolicy,
    StoreConnectionParams,
    StoreSchema,
)
from .error_record import FaultRecord

__all__ = [
    # Configuration models
    "ArgMode",
    "AuthMode",
    "GateConfig",
    "GatePolicy",
    "StoreConnectionParams",
    "StoreSchema",
    # Outcome models
    "Classification",
    "GateState",
    "Verdict",
    "FaultRecord",
]
