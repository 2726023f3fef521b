"""
globe_data.py — loading edges and overlay models, and the scene context that holds them

WHAT THIS MODULE DOES
---------------------
  1) Errors raised while loading (data file problems are fatal, overlay problems are not)
  2) load_edges(): read the JSON edge list from a file or an http(s) URL
  3) load_overlay(): read a model file (OBJ etc.) into line segments with trimesh
  4) SceneContext: the one object that owns everything drawn on the globe
  5) build_arcs(): turn loaded edges into Arcs inside a SceneContext

Nothing in here touches Qt or OpenGL, so the desktop view and the HTML export share it.
"""

# ----- Standard library imports ----------------------------------------------
import json
import logging
import math
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# ----- Third-party libraries --------------------------------------------------
import numpy as np
import requests
import trimesh
from matplotlib.colors import to_rgb
from trimesh.path import Path3D

from globe_colors import ColorLUT, RGB
from globe_geometry import GLOBE_RADIUS, Arc, Edge, GeoPoint, build_arc, project

logger = logging.getLogger(__name__)

# Record field names in the edge data file
FIELD_A_LAT = "loc_a_latitude"
FIELD_A_LON = "loc_a_longitude"
FIELD_B_LAT = "loc_b_latitude"
FIELD_B_LON = "loc_b_longitude"
FIELD_WEIGHT = "edge_weight"
RECORD_FIELDS = (FIELD_A_LAT, FIELD_A_LON, FIELD_B_LAT, FIELD_B_LON, FIELD_WEIGHT)

HTTP_TIMEOUT_S = 30

# Fixed overlay materials
GRID_COLOR = to_rgb("#ffffff")
GRID_OPACITY = 0.25
BORDERS_COLOR = to_rgb("#00000f")
BORDERS_OPACITY = 1.0

# Globe appearance: drawn a hair inside the unit radius so surface lines stay visible
SPHERE_RADIUS = 0.999
SPHERE_COLOR = to_rgb("#0088ff")
SPHERE_SEGMENTS = 32

# Endpoint markers sit just above the surface
MARKER_RADIUS = GLOBE_RADIUS + 0.002
MARKER_COLOR = to_rgb("#ffffff")


# -----------------------------------------------------------------------------
# 1) ERRORS
# -----------------------------------------------------------------------------
class GlobeArcsError(Exception):
    """Base class for loading errors."""


class DataFileError(GlobeArcsError):
    """The edge data file is missing, unreadable or not a JSON array. Fatal."""


class OverlayError(GlobeArcsError):
    """An overlay model could not be loaded. The scene carries on without it."""


# -----------------------------------------------------------------------------
# 2) EDGE DATA
# -----------------------------------------------------------------------------
@dataclass
class LoadResult:
    edges: List[Edge]
    skipped: List[Tuple[int, str]] = field(default_factory=list)


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _read_source(source: str) -> str:
    """Fetch the raw text of the data file from disk or over HTTP."""
    if _is_url(source):
        try:
            r = requests.get(source, timeout=HTTP_TIMEOUT_S); r.raise_for_status()
        except requests.RequestException as e:
            raise DataFileError(f"Could not fetch {source}: {e}") from e
        return r.text

    if not os.path.exists(source):
        raise DataFileError(f"Data file not found: {source}")
    try:
        with open(source, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise DataFileError(f"Could not read {source}: {e}") from e


def parse_record(record) -> Edge:
    """
    Convert one JSON record to an Edge.

    Raises ValueError with a short reason when the record is unusable. Values outside the
    usual lat/lon ranges are accepted as-is.
    """
    if not isinstance(record, dict):
        raise ValueError(f"expected an object, got {type(record).__name__}")
    values = {}
    for name in RECORD_FIELDS:
        if name not in record:
            raise ValueError(f"missing field '{name}'")
        raw = record[name]
        # bool is an int subclass; "true" is not a coordinate
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"field '{name}' is not a number: {raw!r}")
        value = float(raw)
        if not math.isfinite(value):
            raise ValueError(f"field '{name}' is not finite: {raw!r}")
        values[name] = value
    return Edge(
        point_a=GeoPoint(values[FIELD_A_LAT], values[FIELD_A_LON]),
        point_b=GeoPoint(values[FIELD_B_LAT], values[FIELD_B_LON]),
        weight=values[FIELD_WEIGHT],
    )


def parse_edges(text: str, source: str = "<data>") -> LoadResult:
    """Parse the whole data file. The top level must be a JSON array of records."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataFileError(f"{source} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise DataFileError(f"{source} must contain a JSON array of records, got {type(data).__name__}")

    result = LoadResult(edges=[])
    for i, record in enumerate(data):
        try:
            result.edges.append(parse_record(record))
        except ValueError as e:
            logger.warning("Skipping record %d in %s: %s", i, source, e)
            result.skipped.append((i, str(e)))

    logger.info("Loaded %d edges from %s (%d skipped)", len(result.edges), source, len(result.skipped))
    return result


def load_edges(source: str) -> LoadResult:
    """Read and parse the edge data file (local path or http(s) URL)."""
    logger.info("Reading edge data from %s", source)
    return parse_edges(_read_source(str(source)), str(source))


# -----------------------------------------------------------------------------
# 3) OVERLAY MODELS
# -----------------------------------------------------------------------------
@dataclass
class Overlay:
    """A set of line segments drawn with one fixed material."""
    name: str
    segments: np.ndarray  # (N, 2, 3) float32
    color: RGB
    opacity: float = 1.0

    @property
    def transparent(self) -> bool:
        return self.opacity < 1.0


def geometry_segments(geom) -> np.ndarray:
    """
    Extract line segments, shape (N, 2, 3), from anything trimesh loads.

      • Scene: every geometry, with its scene-graph transform applied
      • Path3D: each entity discretised into a polyline
      • Trimesh: unique edges (the wireframe)
    Other geometry (point clouds, 2D paths) contributes nothing.
    """
    if isinstance(geom, trimesh.Scene):
        parts = [geometry_segments(g) for g in geom.dump()]
        parts = [p for p in parts if len(p)]
        return np.concatenate(parts) if parts else np.zeros((0, 2, 3), dtype=np.float32)

    if isinstance(geom, Path3D):
        parts = []
        for entity in geom.entities:
            pts = np.asarray(entity.discrete(geom.vertices), dtype=np.float64)
            if len(pts) >= 2:
                parts.append(np.stack([pts[:-1], pts[1:]], axis=1))
        return np.concatenate(parts).astype(np.float32) if parts else np.zeros((0, 2, 3), dtype=np.float32)

    if isinstance(geom, trimesh.Trimesh):
        return np.asarray(geom.vertices[geom.edges_unique], dtype=np.float32).reshape(-1, 2, 3)

    return np.zeros((0, 2, 3), dtype=np.float32)


def _obj_index(token: str, n_vertices: int) -> int:
    # 'i', 'i/vt' or negative (relative to the vertices read so far); OBJ is 1-based
    i = int(token.split("/")[0])
    return i - 1 if i > 0 else n_vertices + i


def obj_line_segments(path: str) -> np.ndarray:
    """
    Read the 'l' polyline elements of a Wavefront OBJ file as (N, 2, 3) segments.

    trimesh only builds faces from OBJ files, so a grid or border model made of lines alone
    loads as a bare point cloud. Each 'l a b c ...' record becomes the segments a-b, b-c, ...
    """
    vertices: List[Tuple[float, float, float]] = []
    pairs: List[Tuple[int, int]] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            parts = line.split()
            if not parts or parts[0].startswith("#"):
                continue
            if parts[0] == "v" and len(parts) >= 4:
                vertices.append((float(parts[1]), float(parts[2]), float(parts[3])))
            elif parts[0] == "l" and len(parts) >= 3:
                idx = [_obj_index(t, len(vertices)) for t in parts[1:]]
                pairs.extend(zip(idx[:-1], idx[1:]))

    if not pairs:
        return np.zeros((0, 2, 3), dtype=np.float32)
    verts = np.asarray(vertices, dtype=np.float32)
    idx = np.asarray(pairs, dtype=np.int64)
    if idx.min() < 0 or idx.max() >= len(verts):
        raise ValueError("line element refers to a missing vertex")
    return verts[idx]


def load_overlay(path: str) -> np.ndarray:
    """
    Load a model file into line segments. Raises OverlayError if there's nothing to draw.

    OBJ files with 'l' elements are drawn from those polylines; anything else goes through
    trimesh and is drawn as its wireframe.
    """
    if not os.path.exists(path):
        raise OverlayError(f"Overlay model not found: {path}")
    segments = np.zeros((0, 2, 3), dtype=np.float32)
    if path.lower().endswith(".obj"):
        try:
            segments = obj_line_segments(path)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise OverlayError(f"Could not read line elements of {path}: {e}") from e
    if not len(segments):
        try:
            geom = trimesh.load(path)
        except Exception as e:
            raise OverlayError(f"Could not load overlay {path}: {e}") from e
        segments = geometry_segments(geom)
    if not len(segments):
        raise OverlayError(f"Overlay {path} has no line geometry")
    logger.info("Loaded overlay %s: %d segments", path, len(segments))
    return segments


# -----------------------------------------------------------------------------
# 4) SCENE CONTEXT
# -----------------------------------------------------------------------------
class SceneContext:
    """
    Owns everything on the globe for the session: arcs, overlays and endpoint markers.

    The entry point creates one and hands it to the builders and loaders. Renderers draw
    arcs only after finalize(), which is called once the edge data has loaded and the arcs
    are built; overlays may arrive at any time.
    """

    def __init__(self, color_lut: Optional[ColorLUT] = None, show_points: bool = False):
        self.color_lut = color_lut or ColorLUT()
        self.show_points = show_points

        self.sphere_radius = SPHERE_RADIUS
        self.sphere_color = SPHERE_COLOR
        self.sphere_segments = SPHERE_SEGMENTS

        self.arcs: List[Arc] = []
        self.overlays: Dict[str, Overlay] = {}
        self.endpoints = np.zeros((0, 3), dtype=np.float32)
        self.finalized = False

        self._arc_vertices = np.zeros((0, 3), dtype=np.float32)
        self._arc_colors = np.zeros((0, 3), dtype=np.float32)

    def add_arc(self, arc: Arc):
        if self.finalized:
            raise RuntimeError("Scene is already finalized")
        self.arcs.append(arc)

    def add_overlay(self, name: str, segments: np.ndarray, color: RGB, opacity: float = 1.0) -> Overlay:
        overlay = Overlay(name=name, segments=np.asarray(segments, dtype=np.float32).reshape(-1, 2, 3),
                          color=color, opacity=opacity)
        self.overlays[name] = overlay
        return overlay

    def finalize(self):
        """Pack arcs into flat GL_LINES buffers and mark the scene ready to draw."""
        if self.arcs:
            # Each polyline of K points becomes K-1 segments (2 vertices each)
            verts = np.concatenate([np.stack([a.points[:-1], a.points[1:]], axis=1).reshape(-1, 3)
                                    for a in self.arcs])
            cols = np.concatenate([np.tile(np.asarray(a.color), (2 * (len(a.points) - 1), 1))
                                   for a in self.arcs])
            self._arc_vertices = verts.astype(np.float32)
            self._arc_colors = cols.astype(np.float32)

            points = [a.edge.point_a for a in self.arcs] + [a.edge.point_b for a in self.arcs]
            lat = np.array([p.latitude for p in points])
            lon = np.array([p.longitude for p in points])
            self.endpoints = project(lat, lon, MARKER_RADIUS).astype(np.float32)
        self.finalized = True

    def arc_segments(self) -> Tuple[np.ndarray, np.ndarray]:
        """(vertices (M, 3), colors (M, 3)) float32, consecutive vertex pairs are segments."""
        return self._arc_vertices, self._arc_colors


# -----------------------------------------------------------------------------
# 5) BUILD STEP
# -----------------------------------------------------------------------------
def build_arcs(edges: List[Edge], ctx: SceneContext) -> SceneContext:
    """Build one Arc per Edge into ctx and finalize it."""
    for edge in edges:
        ctx.add_arc(build_arc(edge, ctx.color_lut))
    ctx.finalize()
    logger.info("Built %d arcs", len(ctx.arcs))
    return ctx
