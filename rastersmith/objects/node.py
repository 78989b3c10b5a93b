"""Immutable operation nodes of the lazy evaluation graph.

A node names an operation, its input nodes and its static parameters. Nodes
never hold results; two nodes built from the same operation, parameters and
inputs share a fingerprint, which is what the evaluator memoises on.
"""

import dataclasses
import hashlib
import json
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterator, Mapping

import numpy as np
import pandas as pd


def canonicalize(value: Any) -> Any:
    """Convert a parameter value into a JSON-serialisable canonical form.

    Raises:
        TypeError: If the value type has no canonical form.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        value = float(value)
        if math.isnan(value):
            return {"__float__": "nan"}
        if math.isinf(value):
            return {"__float__": "inf" if value > 0 else "-inf"}
        return value
    if isinstance(value, Enum):
        return canonicalize(value.value)
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return {"__date__": value.isoformat()}
    if isinstance(value, np.ndarray):
        digest = hashlib.sha256(np.ascontiguousarray(value).tobytes()).hexdigest()
        return {"__array__": digest, "shape": list(value.shape), "dtype": str(value.dtype)}
    if isinstance(value, Node):
        return {"__node__": value.fingerprint}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            "__type__": type(value).__name__,
            **{
                f.name: canonicalize(getattr(value, f.name))
                for f in dataclasses.fields(value)
                if f.compare
            },
        }
    if isinstance(value, Mapping):
        return {"__map__": [[str(k), canonicalize(v)] for k, v in sorted(value.items())]}
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    raise TypeError(f"Cannot fingerprint parameter of type {type(value).__name__}")


class Node:
    """Operation node with a structural fingerprint.

    Attributes:
        op: Registered operation name, e.g. ``'collection.reduce'``.
        inputs: Upstream nodes, in argument order.
        params: Static parameters (sorted by name).
        fingerprint: SHA-256 over op, canonical params and input fingerprints.
    """

    __slots__ = ("op", "inputs", "params", "fingerprint")

    def __init__(self, op: str, inputs: tuple["Node", ...] = (), params: Mapping[str, Any] = None):
        params = dict(params or {})
        for node in inputs:
            if not isinstance(node, Node):
                raise TypeError(f"Node inputs must be Node instances, got {type(node).__name__}")
        payload = json.dumps(
            {
                "op": op,
                "params": canonicalize(params),
                "inputs": [n.fingerprint for n in inputs],
            },
            sort_keys=True,
        )
        object.__setattr__(self, "op", op)
        object.__setattr__(self, "inputs", tuple(inputs))
        object.__setattr__(self, "params", tuple(sorted(params.items())))
        object.__setattr__(self, "fingerprint", hashlib.sha256(payload.encode("utf-8")).hexdigest())

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Node is immutable")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Node) and other.fingerprint == self.fingerprint

    def __hash__(self) -> int:
        return hash(self.fingerprint)

    def param(self, name: str, default: Any = None) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        return default

    @property
    def kwargs(self) -> dict[str, Any]:
        return dict(self.params)

    def walk(self) -> Iterator["Node"]:
        """Yield every distinct node of the sub-graph, inputs before consumers."""
        seen: set[str] = set()

        def _visit(node: "Node") -> Iterator["Node"]:
            if node.fingerprint in seen:
                return
            seen.add(node.fingerprint)
            for child in node.inputs:
                yield from _visit(child)
            yield node

        yield from _visit(self)

    def __repr__(self) -> str:
        """String representation."""
        return f"Node({self.op}, inputs={len(self.inputs)}, id={self.fingerprint[:10]})"
