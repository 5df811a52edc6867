"""Triangle meshes produced by the road geometry builder.

Geometry is accumulated as a triangle soup: every triangle owns its
three vertices (position and UV).  Once all quads are in, vertex normals
are generated by welding coincident positions and averaging the
area-weighted normals of the faces that share them, so that the road
shades smoothly across lanes and loops.  A collision mesh is simply the
face positions of the same triangles.

Meshes can be exported to Parquet (one row per vertex) for inspection
or for loading into other tools.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

UP = np.array([0.0, 1.0, 0.0])


def _normalize_rows(vectors: np.ndarray, fallback: np.ndarray = UP) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    out = vectors / np.where(norms == 0, 1, norms)
    out[norms[:, 0] == 0] = fallback
    return out


def smooth_normals(positions: np.ndarray, weld_tolerance: float = 1e-5) -> np.ndarray:
    """Generate smooth per-vertex normals for a triangle soup.

    Parameters
    ----------
    positions : numpy.ndarray
        Array of shape (3 * T, 3); rows 3k, 3k+1 and 3k+2 form triangle k.
    weld_tolerance : float
        Positions closer than this (per axis) share a normal.

    Returns
    -------
    numpy.ndarray
        Array of shape (3 * T, 3) with unit normals.
    """
    if len(positions) == 0:
        return np.zeros((0, 3))
    tris = positions.reshape(-1, 3, 3)
    # Not normalised: larger faces weigh more.
    face_normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    keys = np.round(positions / weld_tolerance).astype(np.int64)
    _, inverse = np.unique(keys, axis=0, return_inverse=True)
    inverse = inverse.reshape(-1)
    accumulated = np.zeros((inverse.max() + 1, 3))
    np.add.at(accumulated, inverse, np.repeat(face_normals, 3, axis=0))
    return _normalize_rows(accumulated[inverse])


@dataclass
class CollisionMesh:
    """Concave collision shape: face positions, three rows per triangle."""
    faces: np.ndarray

    @property
    def triangle_count(self) -> int:
        """Number of collision triangles."""
        return len(self.faces) // 3


@dataclass
class TriangleMesh:
    """Triangle soup with UVs, normals and a material reference."""

    positions: np.ndarray
    """Vertex positions local to the segment origin, shape (3 * T, 3)."""

    uvs: np.ndarray
    """Texture coordinates, shape (3 * T, 2)."""

    normals: np.ndarray
    """Unit vertex normals, shape (3 * T, 3)."""

    material: Optional[str] = None

    @classmethod
    def empty(cls, material: Optional[str] = None) -> "TriangleMesh":
        return cls(np.zeros((0, 3)), np.zeros((0, 2)), np.zeros((0, 3)), material)

    @property
    def triangle_count(self) -> int:
        return len(self.positions) // 3

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def is_empty(self) -> bool:
        return self.triangle_count == 0

    def face_normals(self) -> np.ndarray:
        """Unit normal of every triangle, following the winding order."""
        tris = self.positions.reshape(-1, 3, 3)
        return _normalize_rows(np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0]))

    def create_collision_mesh(self) -> CollisionMesh:
        return CollisionMesh(faces=self.positions.copy())

    def to_dataframe(self) -> pd.DataFrame:
        """One row per vertex with its triangle index, position, UV and normal."""
        return pd.DataFrame({
            "triangle": np.repeat(np.arange(self.triangle_count), 3),
            "x": self.positions[:, 0],
            "y": self.positions[:, 1],
            "z": self.positions[:, 2],
            "u": self.uvs[:, 0],
            "v": self.uvs[:, 1],
            "nx": self.normals[:, 0],
            "ny": self.normals[:, 1],
            "nz": self.normals[:, 2],
        })

    def export_to_parquet(self, output_path: Path) -> None:
        """Write the mesh to a Parquet file, creating parent directories.

        Parameters
        ----------
        output_path : Path
            Destination file.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        df = self.to_dataframe()
        if self.material is not None:
            df["material"] = self.material
        df.to_parquet(output_path, index=False)

    @staticmethod
    def load_from_parquet(input_path: Path) -> "TriangleMesh":
        """Load a mesh written by `export_to_parquet`."""
        input_path = Path(input_path)
        if not input_path.exists():
            raise FileNotFoundError(f"Mesh file not found: {input_path}")
        df = pd.read_parquet(input_path)
        material = None
        if "material" in df.columns and len(df) > 0:
            material = str(df["material"].iloc[0])
        return TriangleMesh(
            positions=df[["x", "y", "z"]].to_numpy(dtype=float),
            uvs=df[["u", "v"]].to_numpy(dtype=float),
            normals=df[["nx", "ny", "nz"]].to_numpy(dtype=float),
            material=material,
        )


@dataclass
class SurfaceBuilder:
    """Accumulates quads as triangle pairs and assembles a `TriangleMesh`."""

    positions: List[np.ndarray] = field(default_factory=list)
    uvs: List[np.ndarray] = field(default_factory=list)

    def add_quad(self, corners: Sequence[np.ndarray], uv_corners: Sequence[Sequence[float]]) -> None:
        """Add a quad as two triangles.

        Parameters
        ----------
        corners : sequence of numpy.ndarray
            Positions ordered near-left, near-right, far-left, far-right.
        uv_corners : sequence of (u, v)
            UVs in the same order.
        """
        near_left, near_right, far_left, far_right = (0, 1, 2, 3)
        # Split along the near-left to far-right diagonal.
        for tri in ((near_left, near_right, far_right), (near_left, far_right, far_left)):
            for idx in tri:
                self.positions.append(np.asarray(corners[idx], dtype=float))
                self.uvs.append(np.asarray(uv_corners[idx], dtype=float))

    @property
    def triangle_count(self) -> int:
        return len(self.positions) // 3

    def commit(self, material: Optional[str] = None) -> TriangleMesh:
        """Assemble the accumulated triangles and generate smooth normals."""
        if not self.positions:
            return TriangleMesh.empty(material)
        positions = np.vstack(self.positions)
        uvs = np.vstack(self.uvs)
        return TriangleMesh(positions, uvs, smooth_normals(positions), material)
