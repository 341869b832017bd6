"""Node type records and the values exchanged with compute functions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from penpal._canvas import Canvas

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

    from ._property_spec import PropertySpec

DEFAULT_HANDLE = "default"


@dataclass(frozen=True, slots=True)
class NodeResult:
    """The outcome of computing one node.

    A non-null `error` is the only failure signal. `outputs` carries extra
    named outputs for multi-output nodes (the Loop's `loopOut`); edges whose
    source handle names one of them read that canvas instead of `result`.

    Attributes:
        result: The node's canvas, or None.
        error: Error message, or None.
        outputs: Additional canvases by output handle.

    """

    result: Canvas | None = None
    error: str | None = None
    outputs: Mapping[str, Canvas] = field(default_factory=dict)

    @classmethod
    def ok(cls, canvas: Canvas | None, outputs: Mapping[str, Canvas] | None = None) -> NodeResult:
        return cls(result=canvas, error=None, outputs=dict(outputs or {}))

    @classmethod
    def fail(cls, message: str) -> NodeResult:
        return cls(result=None, error=message)

    @property
    def success(self) -> bool:
        return self.error is None

    def output(self, handle: str | None) -> NodeResult:
        """The result seen through an edge leaving `handle`."""
        if handle is not None and handle in self.outputs:
            return NodeResult(result=self.outputs[handle])
        return self


type FeedbackRunner = Callable[[Canvas, int], Awaitable[NodeResult]]


@dataclass(frozen=True, slots=True)
class NodeInputs(Mapping[str, NodeResult]):
    """Upstream results keyed by target handle.

    Edges without a target handle land on `"default"`. A handle fed by
    several edges keeps all results in edge order; indexing returns the
    first one, `all()` returns every one.

    Attributes:
        entries: (handle, result) pairs in edge order.
        feedback: For nodes with a feedback handle, a coroutine function
            that runs the feedback sub-graph on a canvas and returns the
            result arriving back on the handle.

    """

    entries: tuple[tuple[str, NodeResult], ...] = ()
    feedback: FeedbackRunner | None = None

    @classmethod
    def of(cls, **results: NodeResult) -> NodeInputs:
        """Build inputs from keyword handles, mainly for calling operators directly."""
        return cls(entries=tuple(results.items()))

    def __getitem__(self, handle: str) -> NodeResult:
        for name, result in self.entries:
            if name == handle:
                return result
        raise KeyError(handle)

    def __iter__(self) -> Iterator[str]:
        seen: list[str] = []
        for name, _ in self.entries:
            if name not in seen:
                seen.append(name)
        return iter(seen)

    def __len__(self) -> int:
        return len(set(name for name, _ in self.entries))

    def all(self, handle: str | None = None) -> list[NodeResult]:
        """Every result on `handle`, or on all handles when `handle` is None."""
        return [result for name, result in self.entries if handle is None or name == handle]

    def canvas(self, handle: str = "input") -> Canvas | None:
        """The canvas on `handle` (falling back to the default handle), if any."""
        for name in (handle, DEFAULT_HANDLE):
            if name in self:
                value = self[name].result
                return value if isinstance(value, Canvas) else None
        return None


@dataclass(frozen=True, slots=True)
class InputHandle:
    name: str
    label: str = ""
    multi: bool = False


type ComputeFn = Callable[[NodeInputs, Mapping[str, Any]], NodeResult | Awaitable[NodeResult]]
type PropertyChangeHook = Callable[[str, Any, Mapping[str, Any]], dict[str, Any] | None]


@dataclass(frozen=True, slots=True)
class NodeType:
    """A registered kind of node: its schema and its compute function.

    Attributes:
        tag: Type tag stored in `Node.type`.
        label: Display name.
        compute: `(inputs, properties) -> NodeResult`, sync or async.
        category: Menu category.
        description: One-line description.
        inputs: Declared input handles.
        outputs: Declared output handles.
        properties: Property schema by name.
        feedback_handle: Input handle fed back from downstream nodes
            (never resolved as a normal dependency).
        body_output: Output handle that starts the sub-graph feeding
            `feedback_handle`; None means any output.
        on_property_change: Hook returning property values to update
            when the editor changes one property.

    """

    tag: str
    label: str
    compute: ComputeFn
    category: str = "Utility"
    description: str = ""
    inputs: tuple[InputHandle, ...] = ()
    outputs: tuple[str, ...] = ("output",)
    properties: Mapping[str, PropertySpec] = field(default_factory=dict)
    feedback_handle: str | None = None
    body_output: str | None = None
    on_property_change: PropertyChangeHook | None = None

    def input_names(self) -> tuple[str, ...]:
        return tuple(handle.name for handle in self.inputs)
