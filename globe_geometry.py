"""
globe_geometry.py — lat/lon projection and curved arcs above the globe

WHAT THIS MODULE DOES
---------------------
Everything drawn on the globe starts life as a latitude/longitude pair. This module
turns those pairs into 3D positions and builds the curved "flight path" arcs that
connect two locations:
  1) project()          lat/lon/radius -> point on a sphere centred at the origin
  2) geo_interpolate()  walk along the great circle between two locations
  3) bezier_points()    sample a cubic Bezier curve into a polyline
  4) build_arc()        put it all together for one Edge

Axis convention (shared by the OpenGL view and the browser page):
  +Y is the north pole, +Z is (lat 0, lon 0), +X is (lat 0, lon 90E).
"""

# ----- Standard library imports ----------------------------------------------
import math
from dataclasses import dataclass
from typing import Callable, Tuple

# ----- Third-party libraries --------------------------------------------------
import numpy as np

# ----- Globe constants ---------------------------------------------------------
GLOBE_RADIUS = 1.0

# Arc altitude above the surface is proportional to the chord length,
# but kept inside these bounds so short hops still lift off and long ones don't fly away.
CURVE_MIN_ALTITUDE = 0.1
CURVE_MAX_ALTITUDE = 1.0
ALTITUDE_SCALE = 0.75

# Great-circle fractions used for the two Bezier control points
CONTROL_FRACTIONS = (0.25, 0.75)

# Polyline resolution: 50 divisions -> 51 points per arc
CURVE_DIVISIONS = 50

RGB = Tuple[float, float, float]


# -----------------------------------------------------------------------------
# 1) DATA TYPES
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class GeoPoint:
    """A location in degrees (latitude north-positive, longitude east-positive)."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Edge:
    """Two locations and the scalar value that colours the arc between them."""
    point_a: GeoPoint
    point_b: GeoPoint
    weight: float


@dataclass(frozen=True, eq=False)
class Arc:
    """
    The renderable form of an Edge.

    start/end sit on the globe surface; control1/control2 sit at GLOBE_RADIUS + altitude.
    points is the sampled Bezier polyline, shape (CURVE_DIVISIONS + 1, 3).
    """
    start: np.ndarray
    end: np.ndarray
    control1: np.ndarray
    control2: np.ndarray
    altitude: float
    points: np.ndarray
    color: RGB
    edge: Edge

    @property
    def control_points(self) -> np.ndarray:
        """The 4-point Bezier control cage, shape (4, 3)."""
        return np.vstack([self.start, self.control1, self.control2, self.end])


# -----------------------------------------------------------------------------
# 2) SMALL MATH HELPERS
# -----------------------------------------------------------------------------
def clamp(value: float, lo: float, hi: float) -> float:
    """Bound value to [lo, hi]."""
    return lo if value <= lo else (hi if value >= hi else value)


def project(latitude, longitude, radius=GLOBE_RADIUS) -> np.ndarray:
    """
    Convert (lat, lon in degrees) to Cartesian coordinates on a sphere of the given radius.

    Scalars give a (3,) array; arrays of lat/lon give (..., 3).
    Inputs outside the usual ranges are not rejected, they just land somewhere else
    on the same sphere.
    """
    lat_r = np.radians(np.asarray(latitude, dtype=np.float64))
    lon_r = np.radians(np.asarray(longitude, dtype=np.float64))
    cos_lat = np.cos(lat_r)
    xyz = np.stack([cos_lat * np.sin(lon_r), np.sin(lat_r), cos_lat * np.cos(lon_r)], axis=-1)
    return xyz * np.asarray(radius, dtype=np.float64)[..., None]


def chord_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Straight-line (through the globe) distance between two 3D points."""
    return float(np.linalg.norm(np.asarray(b) - np.asarray(a)))


def arc_altitude(chord: float) -> float:
    """Peak height of an arc above the surface, from the chord between its endpoints."""
    return clamp(chord * ALTITUDE_SCALE, CURVE_MIN_ALTITUDE, CURVE_MAX_ALTITUDE)


# -----------------------------------------------------------------------------
# 3) GREAT-CIRCLE INTERPOLATION
# -----------------------------------------------------------------------------
def _unit_vector(lat_r: float, lon_r: float) -> np.ndarray:
    # Geographic frame (x toward lon 0, y toward lon 90E, z toward the north pole).
    # Only used internally; results go back out as lat/lon.
    cos_lat = math.cos(lat_r)
    return np.array([cos_lat * math.cos(lon_r), cos_lat * math.sin(lon_r), math.sin(lat_r)])


def _to_latlon(v: np.ndarray) -> Tuple[float, float]:
    x, y, z = float(v[0]), float(v[1]), float(v[2])
    return math.degrees(math.atan2(z, math.hypot(x, y))), math.degrees(math.atan2(y, x))


def geo_interpolate(a: GeoPoint, b: GeoPoint) -> Callable[[float], Tuple[float, float]]:
    """
    Return f(t) -> (lat, lon) that walks the shortest path on the sphere from a (t=0) to b (t=1).

    Straight interpolation of lat/lon does not follow the surface and bends badly for long
    edges, so we slerp between unit vectors instead. The central angle uses the haversine
    form, which stays accurate for nearby points.

    Special cases:
      • a == b: the path is a single point; f(t) returns a for every t.
      • a and b antipodal: every meridian-like circle is a shortest path. We pick the one
        through the north pole (through lon 0 if a is a pole) so results are repeatable.
    """
    lat0, lon0 = math.radians(a.latitude), math.radians(a.longitude)
    lat1, lon1 = math.radians(b.latitude), math.radians(b.longitude)

    hav = (math.sin((lat1 - lat0) / 2.0) ** 2
           + math.cos(lat0) * math.cos(lat1) * math.sin((lon1 - lon0) / 2.0) ** 2)
    d = 2.0 * math.asin(math.sqrt(min(1.0, max(0.0, hav))))

    p0 = _unit_vector(lat0, lon0)
    p1 = _unit_vector(lat1, lon1)

    if d == 0.0:
        start = (a.latitude, a.longitude)
        return lambda t: start

    k = math.sin(d)
    if k < 1e-12:
        # Antipodal: build a tangent direction at p0 and rotate through 180 degrees
        ref = np.array([0.0, 0.0, 1.0])
        if abs(float(np.dot(ref, p0))) > 1.0 - 1e-12:
            ref = np.array([1.0, 0.0, 0.0])
        w = ref - np.dot(ref, p0) * p0
        w /= np.linalg.norm(w)

        def interpolate_antipodal(t: float) -> Tuple[float, float]:
            angle = t * math.pi
            return _to_latlon(math.cos(angle) * p0 + math.sin(angle) * w)
        return interpolate_antipodal

    def interpolate(t: float) -> Tuple[float, float]:
        td = t * d
        coef_b = math.sin(td) / k
        coef_a = math.sin(d - td) / k
        return _to_latlon(coef_a * p0 + coef_b * p1)
    return interpolate


# -----------------------------------------------------------------------------
# 4) BEZIER SAMPLING
# -----------------------------------------------------------------------------
def bezier_points(p0, p1, p2, p3, divisions: int = CURVE_DIVISIONS) -> np.ndarray:
    """Sample a cubic Bezier at divisions+1 evenly spaced parameter values (ends included)."""
    t = np.linspace(0.0, 1.0, divisions + 1)[:, None]
    u = 1.0 - t
    return (u ** 3 * np.asarray(p0)
            + 3.0 * u ** 2 * t * np.asarray(p1)
            + 3.0 * u * t ** 2 * np.asarray(p2)
            + t ** 3 * np.asarray(p3))


# -----------------------------------------------------------------------------
# 5) ARC BUILDER
# -----------------------------------------------------------------------------
def build_arc(edge: Edge, color_lut, divisions: int = CURVE_DIVISIONS) -> Arc:
    """
    Build the curved arc for one Edge.

    Steps:
      (a) project both endpoints onto the globe surface
      (b) altitude = clamp(0.75 * chord, 0.1, 1.0): longer hops fly higher
      (c) take the great-circle points at 25% and 75%, lift them to GLOBE_RADIUS + altitude
      (d) cubic Bezier start -> control1 -> control2 -> end, sampled into a polyline
      (e) colour from the look-up table (the LUT does any clamping of the weight)
    """
    a, b = edge.point_a, edge.point_b
    start = project(a.latitude, a.longitude, GLOBE_RADIUS)
    end = project(b.latitude, b.longitude, GLOBE_RADIUS)

    altitude = arc_altitude(chord_distance(start, end))

    along = geo_interpolate(a, b)
    lifted = GLOBE_RADIUS + altitude
    lat1, lon1 = along(CONTROL_FRACTIONS[0])
    lat2, lon2 = along(CONTROL_FRACTIONS[1])
    control1 = project(lat1, lon1, lifted)
    control2 = project(lat2, lon2, lifted)

    return Arc(
        start=start,
        end=end,
        control1=control1,
        control2=control2,
        altitude=altitude,
        points=bezier_points(start, control1, control2, end, divisions),
        color=color_lut.get_color(edge.weight),
        edge=edge,
    )
