"""
Core processing modules for WireLabel
"""

from .mesh_loader import MeshLoader, MeshData, Submesh
from .topology import MeshTopologyGraph, WireLabelError, TopologyError
from .labels import TextureLabel, GroupCutType, VertexLabelState
from .regions import AdjacencyType, DecoupledGrouping, BoundaryGrouping, get_decoupled_groupings, get_boundary_grouping
from .boundary_cycle import BoundaryEdgeCycle, get_boundary_edge_cycle
from .label_solver import LabelProblem, SolverResult, group_sizes_at_least_two_labels, solve_labels
from .edge_groups import (
    CyclicEdgeGroup,
    EdgeGroupResults,
    GroupCutIndex,
    LabelingError,
    get_boundary_cycle_edge_groups,
)
from .fallback_groups import EdgeConnection, FallbackEdgeGroup, get_fallback_edge_groups
from .texture_coordinates import (
    WireframeLabelingResult,
    WireframeTextureCoordinateGenerator,
    generate_wireframe_texture_coordinates,
)
from .uv_file import UVFileFormatError, load_uv_file, save_uv_file

__all__ = [
    # Mesh loading
    'MeshLoader',
    'MeshData',
    'Submesh',
    # Topology
    'MeshTopologyGraph',
    'WireLabelError',
    'TopologyError',
    # Labels
    'TextureLabel',
    'GroupCutType',
    'VertexLabelState',
    # Regions
    'AdjacencyType',
    'DecoupledGrouping',
    'BoundaryGrouping',
    'get_decoupled_groupings',
    'get_boundary_grouping',
    # Boundary cycles
    'BoundaryEdgeCycle',
    'get_boundary_edge_cycle',
    # Label search
    'LabelProblem',
    'SolverResult',
    'group_sizes_at_least_two_labels',
    'solve_labels',
    # Edge groups
    'CyclicEdgeGroup',
    'EdgeGroupResults',
    'GroupCutIndex',
    'LabelingError',
    'get_boundary_cycle_edge_groups',
    'EdgeConnection',
    'FallbackEdgeGroup',
    'get_fallback_edge_groups',
    # Texture coordinates
    'WireframeLabelingResult',
    'WireframeTextureCoordinateGenerator',
    'generate_wireframe_texture_coordinates',
    # Result files
    'UVFileFormatError',
    'load_uv_file',
    'save_uv_file',
]
