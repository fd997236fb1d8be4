"""
Mesh Loader Module
Mesh container and file loading for wireframe label generation.

Supports: OBJ, PLY, STL, OFF, GLTF/GLB formats
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
import numpy as np

try:
    import trimesh
except ImportError:
    raise ImportError("trimesh is required. Install with: pip install trimesh")

from .logging_utils import log_once

_LOGGER = logging.getLogger(__name__)

TRIANGLES_TOPOLOGY = 'triangles'


@dataclass
class Submesh:
    """
    One index buffer of a mesh.

    Attributes:
        indices: flat vertex index buffer (3 entries per triangle for 'triangles')
        topology: primitive topology of the buffer ('triangles', 'lines', ...)
    """
    indices: np.ndarray
    topology: str = TRIANGLES_TOPOLOGY

    def __post_init__(self):
        self.indices = np.asarray(self.indices, dtype=np.int64).reshape(-1)
        self.topology = str(self.topology).strip().lower()

    @property
    def is_triangles(self) -> bool:
        return self.topology == TRIANGLES_TOPOLOGY

    @property
    def n_triangles(self) -> int:
        return int(self.indices.size // 3) if self.is_triangles else 0


@dataclass
class MeshData:
    """
    Mesh data container

    Attributes:
        vertices: (N, 3) vertex positions
        submeshes: index buffers, one per submesh
        uv_channels: channel -> (N, 2|3|4) texture coordinates
        name: display name
        filepath: source file path
    """
    vertices: np.ndarray
    submeshes: List[Submesh] = field(default_factory=list)
    uv_channels: Dict[int, np.ndarray] = field(default_factory=dict)
    name: str = ''
    filepath: Optional[Path] = None

    _bounds: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self):
        """Validate and normalize array types"""
        self.vertices = np.asarray(self.vertices, dtype=np.float64).reshape(-1, 3)
        self.submeshes = [s if isinstance(s, Submesh) else Submesh(s) for s in self.submeshes]
        self.uv_channels = {
            int(ch): np.asarray(uv, dtype=np.float64)
            for ch, uv in dict(self.uv_channels).items()
        }

    @classmethod
    def from_faces(cls, vertices, faces, **kwargs) -> 'MeshData':
        """Single-submesh mesh from an (M, 3) face array."""
        faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
        return cls(vertices=vertices, submeshes=[Submesh(faces.reshape(-1))], **kwargs)

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_faces(self) -> int:
        """Triangle count over all triangle submeshes"""
        return sum(s.n_triangles for s in self.submeshes)

    @property
    def faces(self) -> np.ndarray:
        """(M, 3) triangles of all triangle submeshes, in submesh order"""
        buffers = [s.indices[: s.n_triangles * 3].reshape(-1, 3) for s in self.submeshes if s.is_triangles]
        if not buffers:
            return np.zeros((0, 3), dtype=np.int64)
        return np.vstack(buffers)

    @property
    def bounds(self) -> np.ndarray:
        """Bounding box [[min_x, min_y, min_z], [max_x, max_y, max_z]]"""
        if self._bounds is None:
            if self.n_vertices == 0:
                self._bounds = np.zeros((2, 3), dtype=np.float64)
            else:
                self._bounds = np.array([
                    self.vertices.min(axis=0),
                    self.vertices.max(axis=0)
                ])
        return self._bounds

    @property
    def extents(self) -> np.ndarray:
        """Bounding box size [width, height, depth]"""
        return self.bounds[1] - self.bounds[0]

    def get_uvs(self, channel: int) -> Optional[np.ndarray]:
        """Texture coordinates in `channel` (None if the channel is unset)"""
        uv = self.uv_channels.get(int(channel))
        return None if uv is None else uv.copy()

    def set_uvs(self, channel: int, uvs: np.ndarray) -> None:
        uvs = np.asarray(uvs, dtype=np.float64)
        if uvs.ndim != 2 or uvs.shape[1] not in (2, 3, 4):
            raise ValueError(f"UVs must be (N, 2|3|4), got {uvs.shape}")
        if uvs.shape[0] != self.n_vertices:
            raise ValueError(f"UVs must have one row per vertex ({self.n_vertices}), got {uvs.shape[0]}")
        self.uv_channels[int(channel)] = uvs

    @classmethod
    def from_trimesh(cls, mesh: 'trimesh.Trimesh',
                     filepath: Optional[Path] = None,
                     name: str = '') -> 'MeshData':
        """Create from a trimesh object"""
        uv_channels = {}
        visual = getattr(mesh, "visual", None)
        uv = getattr(visual, "uv", None) if visual is not None else None
        if uv is not None and len(uv) == len(mesh.vertices):
            uv_channels[0] = np.asarray(uv, dtype=np.float64)

        return cls(
            vertices=mesh.vertices,
            submeshes=[Submesh(np.asarray(mesh.faces).reshape(-1))],
            uv_channels=uv_channels,
            name=name,
            filepath=filepath,
        )

    @classmethod
    def from_trimesh_parts(cls, parts: Sequence['trimesh.Trimesh'],
                           filepath: Optional[Path] = None,
                           name: str = '') -> 'MeshData':
        """
        Create from several trimesh objects, one submesh per part.

        Vertex arrays are concatenated; part k's indices are offset by the
        number of vertices of the parts before it.
        """
        vertices = []
        submeshes = []
        offset = 0
        for part in parts:
            verts = np.asarray(part.vertices, dtype=np.float64)
            faces = np.asarray(part.faces, dtype=np.int64)
            vertices.append(verts)
            submeshes.append(Submesh((faces + offset).reshape(-1)))
            offset += len(verts)

        all_vertices = np.vstack(vertices) if vertices else np.zeros((0, 3), dtype=np.float64)
        return cls(vertices=all_vertices, submeshes=submeshes, name=name, filepath=filepath)


class MeshLoader:
    """
    Mesh file loader for common 3D formats

    Supported formats:
        - OBJ (Wavefront)
        - PLY (Polygon File Format)
        - STL (Stereolithography)
        - OFF (Object File Format)
        - GLTF/GLB (GL Transmission Format)
    """

    SUPPORTED_FORMATS = {
        '.obj': 'Wavefront OBJ',
        '.ply': 'Polygon File Format',
        '.stl': 'Stereolithography',
        '.off': 'Object File Format',
        '.gltf': 'GL Transmission Format',
        '.glb': 'GL Transmission Format (Binary)',
    }

    @classmethod
    def get_supported_formats(cls) -> dict:
        """Supported format table"""
        return cls.SUPPORTED_FORMATS.copy()

    def _check_path(self, filepath: Union[str, Path]) -> Path:
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        ext = filepath.suffix.lower()
        if ext not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {ext}\n"
                f"Supported formats: {list(self.SUPPORTED_FORMATS.keys())}"
            )
        return filepath

    @staticmethod
    def _load_raw(filepath: Path):
        try:
            # Keep vertex order and split vertices: seams are what produce boundary edges.
            return trimesh.load(str(filepath), process=False, maintain_order=True)
        except TypeError:
            log_once(
                _LOGGER,
                "mesh_loader:load_kwargs",
                logging.DEBUG,
                "trimesh.load rejected process/maintain_order for %s; loading with defaults",
                filepath.suffix,
            )
            return trimesh.load(str(filepath))

    def load(self, filepath: Union[str, Path]) -> MeshData:
        """
        Load a mesh file

        Args:
            filepath: mesh file path

        Returns:
            MeshData: loaded mesh; scene geometries become separate submeshes

        Raises:
            FileNotFoundError: file does not exist
            ValueError: unsupported format or no triangle geometry
        """
        filepath = self._check_path(filepath)
        mesh = self._load_raw(filepath)

        if isinstance(mesh, trimesh.Scene):
            parts = [g for g in mesh.geometry.values() if isinstance(g, trimesh.Trimesh)]
            if len(parts) == 0:
                raise ValueError(f"No valid mesh found in: {filepath}")
            if len(parts) == 1:
                return MeshData.from_trimesh(parts[0], filepath=filepath, name=filepath.stem)
            return MeshData.from_trimesh_parts(parts, filepath=filepath, name=filepath.stem)

        if not isinstance(mesh, trimesh.Trimesh):
            raise TypeError(f"Expected trimesh.Trimesh, got {type(mesh).__name__}")

        return MeshData.from_trimesh(mesh, filepath=filepath, name=filepath.stem)

    def get_file_info(self, filepath: Union[str, Path]) -> dict:
        """
        File information preview

        Args:
            filepath: mesh file path

        Returns:
            dict: file information
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        ext = filepath.suffix.lower()
        file_size = filepath.stat().st_size

        info = {
            'filename': filepath.name,
            'format': self.SUPPORTED_FORMATS.get(ext, 'Unknown'),
            'extension': ext,
            'file_size_mb': round(file_size / (1024 * 1024), 2),
        }

        try:
            mesh = self._load_raw(filepath)
            if isinstance(mesh, trimesh.Scene):
                meshes = [g for g in mesh.geometry.values() if isinstance(g, trimesh.Trimesh)]
                info['n_submeshes'] = len(meshes)
                info['n_vertices'] = sum(m.vertices.shape[0] for m in meshes)
                info['n_faces'] = sum(m.faces.shape[0] for m in meshes)
            elif isinstance(mesh, trimesh.Trimesh):
                info['n_submeshes'] = 1
                info['n_vertices'] = mesh.vertices.shape[0]
                info['n_faces'] = mesh.faces.shape[0]
            else:
                info['n_submeshes'] = 0
                info['n_vertices'] = 0
                info['n_faces'] = 0
        except Exception as e:
            info['error'] = str(e)

        return info
