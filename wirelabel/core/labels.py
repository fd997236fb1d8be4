"""
Texture labels, group cut types and the per-vertex label state.

A texture label selects which UV component (x, y, z, w) marks an edge as a
wireframe edge. Every vertex accumulates the set of labels applied to it as
regions are solved; that set is stored as a 4-bit mask.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Iterable

import numpy as np

if TYPE_CHECKING:
    from .topology import MeshTopologyGraph

MAX_TEXTURE_LABELS = 4


class TextureLabel(IntEnum):
    NONE = 0
    FIRST = 1
    SECOND = 2
    THIRD = 3
    FOURTH = 4


class GroupCutType(Enum):
    """Why two neighbouring boundary edges belong to different edge groups."""

    SAME_TRIANGLE = "same_triangle"
    EDGE_ANGLE = "edge_angle"
    VIRTUAL = "virtual"


def label_bit(label: int) -> int:
    """Bit for `label` in a label mask (0 for TextureLabel.NONE)."""
    value = int(label)
    if value <= 0:
        return 0
    if value > MAX_TEXTURE_LABELS:
        raise ValueError(f"Texture label out of range: {value}")
    return 1 << (value - 1)


@dataclass(frozen=True)
class VertexLabelState:
    """
    Labels committed to each vertex during one full-mesh pass.

    The state is a value: `with_edge_groups` returns a new state and leaves
    this one untouched. Bits are only ever added.
    """

    bits: np.ndarray

    def __post_init__(self):
        arr = np.array(self.bits, dtype=np.uint8, copy=True)
        if arr.ndim != 1:
            raise ValueError("VertexLabelState expects a 1D array of label masks")
        arr.setflags(write=False)
        object.__setattr__(self, "bits", arr)

    @classmethod
    def empty(cls, n_vertices: int) -> "VertexLabelState":
        return cls(np.zeros((max(0, int(n_vertices)),), dtype=np.uint8))

    @property
    def n_vertices(self) -> int:
        return int(self.bits.shape[0])

    def labels_of(self, vertex: int) -> int:
        return int(self.bits[int(vertex)])

    def has_labels(self, vertex: int) -> bool:
        return self.labels_of(vertex) != 0

    def labeled_vertex_count(self, vertices: Iterable[int]) -> int:
        return sum(1 for v in vertices if self.has_labels(v))

    def max_label(self) -> TextureLabel:
        combined = int(np.bitwise_or.reduce(self.bits)) if self.bits.size else 0
        if combined == 0:
            return TextureLabel.NONE
        return TextureLabel(combined.bit_length())

    def with_vertex_labels(self, assignments: Iterable[tuple[int, int]]) -> "VertexLabelState":
        """Return a new state with `(vertex, label)` pairs folded in."""
        bits = self.bits.copy()
        for vertex, label in assignments:
            bits[int(vertex)] |= np.uint8(label_bit(label))
        return VertexLabelState(bits)

    def with_edge_groups(self, edge_groups: Iterable, graph: "MeshTopologyGraph") -> "VertexLabelState":
        """Return a new state with the labels of `edge_groups` applied to both ends of each edge."""
        assignments: list[tuple[int, int]] = []
        for group in edge_groups:
            label = int(group.label)
            if label == TextureLabel.NONE:
                continue
            for edge_id in group.edges:
                first, second = graph.edge_vertices(edge_id)
                assignments.append((first, label))
                assignments.append((second, label))
        if not assignments:
            return self
        return self.with_vertex_labels(assignments)
