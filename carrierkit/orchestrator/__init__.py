"""Flow orchestration over carrier adapters.

Sequences adapter operations in capability-gated order and reports the
first failure with the partial results attached.
"""

from carrierkit.orchestrator.create_label_flow import (
    CreateLabelFlowResult,
    FlowAbortedError,
    execute_create_label_flow,
)
from carrierkit.orchestrator.store import (
    DomainEvent,
    FlowEventType,
    Store,
)

__all__ = [
    "CreateLabelFlowResult",
    "FlowAbortedError",
    "execute_create_label_flow",
    "DomainEvent",
    "FlowEventType",
    "Store",
]
