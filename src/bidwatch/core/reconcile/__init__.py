"""Reconciliation - create, update or ignore collected notices."""

from .outcome import OutcomeTag, PerRecordOutcome
from .reconciler import DEFAULT_STATUS, Reconciler, bootstrap_defaults

__all__ = [
    "OutcomeTag",
    "PerRecordOutcome",
    "DEFAULT_STATUS",
    "Reconciler",
    "bootstrap_defaults",
]
