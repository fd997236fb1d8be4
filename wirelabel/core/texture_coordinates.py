"""
Wireframe Texture Coordinates Module
Labels every region of a mesh and writes one-hot wireframe UVs.

Regions are processed per shared-vertex super-region. Inside one, the
shared-edge regions touching the most already-labeled vertices go first,
then those with the fewest boundary edges, so that constrained regions
are solved while labels are still free.

UV encoding per vertex (one component per label):
    First  -> x = 1
    Second -> y = 1
    Third  -> z = 1
    Fourth -> w = 0 (w is stored inverted; an unset w reads as 1)
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Any, Iterable, Optional, Sequence, Union

import numpy as np

from .boundary_cycle import get_boundary_edge_cycle
from .edge_groups import CyclicEdgeGroup, get_boundary_cycle_edge_groups
from .fallback_groups import FallbackEdgeGroup, get_fallback_edge_groups
from .label_solver import Clock
from .labels import TextureLabel, VertexLabelState
from .logging_utils import WarningCollector, WarningSink, region_label, warning_sink
from .regions import AdjacencyType, DecoupledGrouping, get_boundary_grouping, get_decoupled_groupings
from .runtime_defaults import DEFAULTS, MAX_UV_CHANNEL, MIN_UV_CHANNEL
from .topology import MeshTopologyGraph

_LOGGER = logging.getLogger(__name__)

EdgeGroup = Union[CyclicEdgeGroup, FallbackEdgeGroup]

REGION_CLOSED = "closed"
REGION_CYCLE = "cycle"
REGION_FALLBACK = "fallback"
REGION_TIMEOUT = "timeout"


@dataclass
class RegionSummary:
    """Outcome for one shared-edge region."""
    super_region: int
    first_triangle: int
    n_triangles: int
    n_boundary_edges: int
    kind: str
    n_groups: int = 0
    labels: tuple[TextureLabel, ...] = ()
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "super_region": int(self.super_region),
            "first_triangle": int(self.first_triangle),
            "n_triangles": int(self.n_triangles),
            "n_boundary_edges": int(self.n_boundary_edges),
            "kind": str(self.kind),
            "n_groups": int(self.n_groups),
            "labels": [int(label) for label in self.labels],
            "elapsed_seconds": float(self.elapsed_seconds),
        }


@dataclass
class WireframeLabelingResult:
    """
    Attributes:
        channel: UV channel written
        components: UV components written (2, 3 or 4)
        uvs: (N, components) coordinates written to the channel
        state: labels committed per vertex
        regions: one summary per shared-edge region, in processing order
        edge_groups: labeled groups, in processing order
        warnings: non-fatal diagnostics raised during the pass
    """
    channel: int
    components: int
    uvs: np.ndarray
    state: VertexLabelState
    regions: list[RegionSummary] = field(default_factory=list)
    edge_groups: list[EdgeGroup] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def max_label(self) -> TextureLabel:
        return max((g.label for g in self.edge_groups), default=TextureLabel.NONE)

    def summary(self) -> dict[str, Any]:
        kinds: dict[str, int] = {}
        for r in self.regions:
            kinds[r.kind] = kinds.get(r.kind, 0) + 1
        return {
            "channel": int(self.channel),
            "components": int(self.components),
            "max_label": int(self.max_label),
            "n_regions": len(self.regions),
            "n_edge_groups": len(self.edge_groups),
            "region_kinds": kinds,
            "n_warnings": len(self.warnings),
        }


def components_for_label(max_label: int) -> int:
    """UV component count needed to encode labels up to `max_label`."""
    if int(max_label) >= TextureLabel.FOURTH:
        return 4
    if int(max_label) >= TextureLabel.THIRD:
        return 3
    return 2


def encode_edge_group_uvs(
    edge_groups: Iterable[EdgeGroup],
    graph: MeshTopologyGraph,
    n_vertices: int,
    components: int,
    existing: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    One-hot wireframe coordinates for both endpoints of every grouped edge.

    `existing` coordinates are kept where they fit; missing rows and
    components are zero, except w which defaults to 1.
    """
    components = int(components)
    if components not in (2, 3, 4):
        raise ValueError(f"components must be 2, 3 or 4, got {components}")

    uvs = np.zeros((int(n_vertices), components), dtype=np.float64)
    if components == 4:
        uvs[:, 3] = 1.0

    if existing is not None:
        old = np.asarray(existing, dtype=np.float64)
        if old.ndim == 1:
            old = old.reshape(-1, 1)
        rows = min(old.shape[0], uvs.shape[0])
        cols = min(old.shape[1], components)
        uvs[:rows, :cols] = old[:rows, :cols]

    for group in edge_groups:
        label = TextureLabel(int(group.label))
        if label == TextureLabel.NONE:
            continue
        if int(label) > components:
            raise ValueError(f"Label {label.name} does not fit in {components} UV components")
        for e in group.edges:
            for v in graph.edge_vertices(e):
                if label == TextureLabel.FOURTH:
                    uvs[v, 3] = 0.0
                else:
                    uvs[v, int(label) - 1] = 1.0
    return uvs


def _validate_arguments(channel: int, angle_cutoff_degrees: float) -> tuple[int, float]:
    try:
        ch = int(channel)
    except (TypeError, ValueError):
        raise ValueError(f"UV channel must be an integer, got {channel!r}")
    if ch < MIN_UV_CHANNEL or ch > MAX_UV_CHANNEL:
        raise ValueError(f"UV channel must be in [{MIN_UV_CHANNEL}, {MAX_UV_CHANNEL}], got {ch}")

    cutoff = float(angle_cutoff_degrees)
    if not np.isfinite(cutoff) or cutoff < 0.0 or cutoff > 90.0:
        raise ValueError(f"Angle cutoff must be in [0, 90] degrees, got {angle_cutoff_degrees}")
    return ch, cutoff


class WireframeTextureCoordinateGenerator:
    """
    Wireframe texture coordinate generator.

    Args:
        timeout_seconds: label search budget per region (default from runtime defaults)
        clock: monotonic clock used for the search budget
    """

    def __init__(self, *, timeout_seconds: Optional[float] = None, clock: Clock = time.monotonic):
        self.timeout_seconds = float(DEFAULTS.solver_timeout_seconds if timeout_seconds is None else timeout_seconds)
        self.clock = clock

    def generate(
        self,
        mesh: Any,
        channel: Optional[int] = None,
        angle_cutoff_degrees: Optional[float] = None,
        raise_warning: Optional[WarningSink] = None,
    ) -> WireframeLabelingResult:
        """
        Label `mesh` and write its wireframe UVs into `mesh.uv_channels[channel]`.

        Args:
            mesh: MeshData (or anything with `vertices`, `submeshes`, `uv_channels`)
            channel: UV channel, 0..7
            angle_cutoff_degrees: angle above which neighbouring boundary edges get different labels
            raise_warning: sink for non-fatal diagnostics (default: this module's logger)

        Returns:
            WireframeLabelingResult

        Raises:
            ValueError: channel or cutoff out of range, or malformed triangle buffers
            TopologyError: two boundary edges share more than one triangle
            LabelingError: a boundary cycle has no labeling under any relaxation
        """
        channel = DEFAULTS.uv_channel if channel is None else channel
        angle_cutoff_degrees = DEFAULTS.angle_cutoff_degrees if angle_cutoff_degrees is None else angle_cutoff_degrees
        channel, cutoff = _validate_arguments(channel, angle_cutoff_degrees)

        collector = WarningCollector(raise_warning, logger=_LOGGER)
        graph = MeshTopologyGraph.from_mesh(mesh, raise_warning=collector)
        state, edge_groups, regions = self.label_graph(graph, cutoff, collector)

        max_label = state.max_label()
        components = components_for_label(max_label)
        uv_channels = getattr(mesh, "uv_channels", None)
        existing = uv_channels.get(channel) if uv_channels is not None else None
        uvs = encode_edge_group_uvs(edge_groups, graph, graph.n_vertices, components, existing)
        if uv_channels is not None:
            uv_channels[channel] = uvs
        else:
            mesh.uv_channels = {channel: uvs}

        _LOGGER.info(
            "Wireframe labels: %d regions, %d edge groups, max label %d, %d UV components in channel %d",
            len(regions),
            len(edge_groups),
            int(max_label),
            components,
            channel,
        )
        return WireframeLabelingResult(
            channel=channel,
            components=components,
            uvs=uvs,
            state=state,
            regions=regions,
            edge_groups=list(edge_groups),
            warnings=list(collector.messages),
        )

    def label_graph(
        self,
        graph: MeshTopologyGraph,
        angle_cutoff_degrees: float,
        raise_warning: Optional[WarningSink] = None,
    ) -> tuple[VertexLabelState, list[EdgeGroup], list[RegionSummary]]:
        """Solve every region of `graph`; returns the final state, groups and summaries."""
        warn = raise_warning or warning_sink(_LOGGER)
        state = VertexLabelState.empty(graph.n_vertices)
        all_groups: list[EdgeGroup] = []
        summaries: list[RegionSummary] = []

        super_regions = get_decoupled_groupings(graph, AdjacencyType.SHARED_VERTICES)
        for super_index, super_region in enumerate(super_regions):
            regions = get_decoupled_groupings(graph, AdjacencyType.SHARED_EDGES, super_region.triangles)
            pending = [(i, r, len(r.boundary_edges(graph))) for i, r in enumerate(regions)]
            while pending:
                pick = min(
                    range(len(pending)),
                    key=lambda k: (
                        -state.labeled_vertex_count(pending[k][1].vertices),
                        pending[k][2],
                        pending[k][0],
                    ),
                )
                _, region, n_boundary = pending.pop(pick)
                groups, summary = self.get_edge_groups(region, graph, state, angle_cutoff_degrees, warn)
                summary.super_region = super_index
                summary.n_boundary_edges = n_boundary
                summaries.append(summary)
                if groups:
                    state = state.with_edge_groups(groups, graph)
                    all_groups.extend(groups)

        return state, all_groups, summaries

    def get_edge_groups(
        self,
        grouping: DecoupledGrouping,
        graph: MeshTopologyGraph,
        state: VertexLabelState,
        angle_cutoff_degrees: float,
        raise_warning: Optional[WarningSink] = None,
    ) -> tuple[list[EdgeGroup], RegionSummary]:
        """Labeled edge groups of one shared-edge region."""
        summary = RegionSummary(
            super_region=-1,
            first_triangle=grouping.triangles[0] if grouping.triangles else -1,
            n_triangles=grouping.n_triangles,
            n_boundary_edges=0,
            kind=REGION_CLOSED,
        )
        warn = raise_warning or warning_sink(_LOGGER)

        cycle = get_boundary_edge_cycle(grouping, graph, angle_cutoff_degrees, warn)
        if cycle is None:
            if not grouping.boundary_edges(graph):
                return [], summary
            groups: Sequence[EdgeGroup] = get_fallback_edge_groups(grouping, graph, warn)
            summary.kind = REGION_FALLBACK
        else:
            boundary_grouping = get_boundary_grouping(graph, grouping, cycle)
            results = get_boundary_cycle_edge_groups(
                cycle,
                boundary_grouping,
                graph,
                state,
                timeout_seconds=self.timeout_seconds,
                clock=self.clock,
            )
            if not results.has_value:
                summary.kind = REGION_TIMEOUT
                summary.elapsed_seconds = float(results.timeout_seconds)
                warn(
                    f"{region_label(summary.first_triangle, summary.n_triangles)}: from a boundary cycle containing "
                    f"{boundary_grouping.n_edges} edges, no texture labels were assignable within "
                    f"{results.timeout_seconds:.1f} seconds; region left unlabeled."
                )
                return [], summary
            groups = results.edge_groups
            summary.kind = REGION_CYCLE

        summary.n_groups = len(groups)
        summary.labels = tuple(sorted({g.label for g in groups}))
        return list(groups), summary


def generate_wireframe_texture_coordinates(
    mesh: Any,
    channel: Optional[int] = None,
    angle_cutoff_degrees: Optional[float] = None,
    raise_warning: Optional[WarningSink] = None,
    *,
    timeout_seconds: Optional[float] = None,
    clock: Clock = time.monotonic,
) -> WireframeLabelingResult:
    """Functional wrapper around `WireframeTextureCoordinateGenerator.generate`."""
    generator = WireframeTextureCoordinateGenerator(timeout_seconds=timeout_seconds, clock=clock)
    return generator.generate(mesh, channel, angle_cutoff_degrees, raise_warning)
