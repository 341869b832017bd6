"""Node type registry.

Node types pair a property schema with a compute function
`(inputs, properties) -> NodeResult`. Built-in operators register
themselves on the default registry when `penpal._ops` is imported.
"""

from ._node_type import (
    DEFAULT_HANDLE,
    ComputeFn,
    FeedbackRunner,
    InputHandle,
    NodeInputs,
    NodeResult,
    NodeType,
)
from ._property_spec import PropertyError, PropertySpec
from ._registry import NodeRegistry, default_registry, get_default_registry

__all__ = [
    "DEFAULT_HANDLE",
    "ComputeFn",
    "FeedbackRunner",
    "InputHandle",
    "NodeInputs",
    "NodeRegistry",
    "NodeResult",
    "NodeType",
    "PropertyError",
    "PropertySpec",
    "default_registry",
    "get_default_registry",
]
