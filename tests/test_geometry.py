"""
Tests for globe_geometry: projection, great-circle interpolation, Bezier sampling and arcs.
"""

import math

import numpy as np
import pytest

from globe_colors import ColorLUT
from globe_geometry import (
    CURVE_DIVISIONS,
    CURVE_MAX_ALTITUDE,
    CURVE_MIN_ALTITUDE,
    Edge,
    GeoPoint,
    arc_altitude,
    bezier_points,
    build_arc,
    chord_distance,
    clamp,
    geo_interpolate,
    project,
)


# ============== Fixtures ==============

@pytest.fixture
def lut():
    return ColorLUT("blackbody")


@pytest.fixture
def sample_edge():
    """The reference record: (0, 0) -> (0, 90) with weight 0.5."""
    return Edge(GeoPoint(0.0, 0.0), GeoPoint(0.0, 90.0), 0.5)


def edge(lat_a, lon_a, lat_b, lon_b, weight=0.5):
    return Edge(GeoPoint(lat_a, lon_a), GeoPoint(lat_b, lon_b), weight)


# ============== Projection ==============

class TestProject:

    def test_origin_maps_to_plus_z(self):
        assert np.allclose(project(0, 0, 2.5), [0.0, 0.0, 2.5], atol=1e-12)

    def test_north_pole_maps_to_plus_y(self):
        assert np.allclose(project(90, 0, 3.0), [0.0, 3.0, 0.0], atol=1e-12)

    def test_ninety_east_maps_to_plus_x(self):
        assert np.allclose(project(0, 90, 1.0), [1.0, 0.0, 0.0], atol=1e-12)

    @pytest.mark.parametrize("radius", [0.5, 1.0, 1.1, 2.0])
    def test_points_lie_on_sphere(self, radius):
        lat, lon = np.meshgrid(np.linspace(-90, 90, 37), np.linspace(-180, 180, 73))
        xyz = project(lat, lon, radius)
        assert xyz.shape == lat.shape + (3,)
        assert np.allclose(np.linalg.norm(xyz, axis=-1), radius, atol=1e-9)

    def test_out_of_range_input_still_on_sphere(self):
        assert math.isclose(np.linalg.norm(project(120, 400, 1.0)), 1.0, abs_tol=1e-9)

    def test_array_radius(self):
        xyz = project(np.zeros(3), np.zeros(3), np.array([1.0, 2.0, 3.0]))
        assert np.allclose(xyz[:, 2], [1.0, 2.0, 3.0])


class TestHelpers:

    def test_clamp(self):
        assert clamp(-1, 0, 1) == 0
        assert clamp(2, 0, 1) == 1
        assert clamp(0.3, 0, 1) == 0.3

    def test_altitude_bounds(self):
        assert arc_altitude(0.0) == CURVE_MIN_ALTITUDE
        assert arc_altitude(2.0) == CURVE_MAX_ALTITUDE

    def test_altitude_scales_with_chord(self):
        chord = chord_distance(project(0, 0), project(0, 30))
        assert math.isclose(chord, 2 * math.sin(math.radians(15)), rel_tol=1e-12)
        assert math.isclose(arc_altitude(chord), 0.75 * chord, rel_tol=1e-12)

    def test_bezier_endpoints_and_count(self):
        p0, p1, p2, p3 = np.eye(3)[0], np.eye(3)[1], np.eye(3)[2], np.ones(3)
        pts = bezier_points(p0, p1, p2, p3, divisions=10)
        assert pts.shape == (11, 3)
        assert np.allclose(pts[0], p0)
        assert np.allclose(pts[-1], p3)

    def test_bezier_straight_line(self):
        # Collinear, evenly spaced control points give a uniformly sampled segment
        pts = bezier_points([0, 0, 0], [1, 0, 0], [2, 0, 0], [3, 0, 0], divisions=3)
        assert np.allclose(pts[:, 0], [0, 1, 2, 3])


# ============== Great-circle interpolation ==============

class TestGeoInterpolate:

    def test_endpoints(self):
        f = geo_interpolate(GeoPoint(10, 20), GeoPoint(40, -60))
        assert np.allclose(f(0.0), (10, 20))
        assert np.allclose(f(1.0), (40, -60))

    def test_equator_midpoint(self):
        f = geo_interpolate(GeoPoint(0, 0), GeoPoint(0, 90))
        assert np.allclose(f(0.5), (0, 45), atol=1e-9)
        assert np.allclose(f(0.25), (0, 22.5), atol=1e-9)

    def test_stays_on_great_circle(self):
        a, b = GeoPoint(10, 20), GeoPoint(40, -60)
        normal = np.cross(project(a.latitude, a.longitude), project(b.latitude, b.longitude))
        f = geo_interpolate(a, b)
        for t in np.linspace(0, 1, 9):
            lat, lon = f(t)
            assert abs(np.dot(normal, project(lat, lon))) < 1e-9

    def test_not_linear_in_latlon(self):
        # Shortest path between two mid-latitude points bulges poleward
        lat, _ = geo_interpolate(GeoPoint(50, -100), GeoPoint(50, 100))(0.5)
        assert lat > 50

    def test_identical_points(self):
        f = geo_interpolate(GeoPoint(12, 34), GeoPoint(12, 34))
        assert f(0.25) == (12, 34)
        assert f(0.75) == (12, 34)

    def test_antipodal_goes_over_north_pole(self):
        f = geo_interpolate(GeoPoint(0, 0), GeoPoint(0, 180))
        assert np.allclose(f(0.25), (45, 0), atol=1e-9)
        assert math.isclose(f(0.5)[0], 90, abs_tol=1e-9)

    def test_antipodal_poles(self):
        f = geo_interpolate(GeoPoint(90, 0), GeoPoint(-90, 0))
        lat, lon = f(0.5)
        assert math.isclose(lat, 0, abs_tol=1e-9)
        assert math.isclose(lon, 0, abs_tol=1e-9)


# ============== Arc builder ==============

class TestBuildArc:

    def test_sample_record(self, sample_edge, lut):
        arc = build_arc(sample_edge, lut)
        cage = arc.control_points
        assert cage.shape == (4, 3)
        assert np.allclose(arc.start, [0, 0, 1], atol=1e-9)
        assert np.allclose(arc.end, [1, 0, 0], atol=1e-9)

        # chord = sqrt(2) -> 0.75 * sqrt(2) > 1 -> clamped
        assert arc.altitude == CURVE_MAX_ALTITUDE

        # control points sit at 22.5E and 67.5E on the equator, lifted to radius 2
        a = math.radians(22.5)
        assert np.allclose(arc.control1, [2 * math.sin(a), 0, 2 * math.cos(a)], atol=1e-9)
        assert np.allclose(arc.control2, [2 * math.cos(a), 0, 2 * math.sin(a)], atol=1e-9)

    def test_sample_record_colour_is_mid_scale(self, sample_edge, lut):
        arc = build_arc(sample_edge, lut)
        assert arc.color == lut.get_color(0.5)
        assert arc.color != lut.get_color(0.0)
        assert arc.color != lut.get_color(1.0)
        r, g, b = arc.color
        assert r > 0.85 and 0.15 < g < 0.3 and b < 0.05

    def test_polyline(self, sample_edge, lut):
        arc = build_arc(sample_edge, lut)
        assert arc.points.shape == (CURVE_DIVISIONS + 1, 3)
        assert np.allclose(arc.points[0], arc.start)
        assert np.allclose(arc.points[-1], arc.end)
        # Interior of the curve is above the surface
        assert np.all(np.linalg.norm(arc.points[1:-1], axis=1) > 1.0)

    def test_identical_endpoints(self, lut):
        arc = build_arc(edge(20, 30, 20, 30), lut)
        assert arc.altitude == CURVE_MIN_ALTITUDE
        assert math.isclose(np.linalg.norm(arc.control1), 1.1, rel_tol=1e-12)
        assert math.isclose(np.linalg.norm(arc.control2), 1.1, rel_tol=1e-12)

    def test_antipodal_endpoints(self, lut):
        arc = build_arc(edge(0, 0, 0, 180), lut)
        assert math.isclose(chord_distance(arc.start, arc.end), 2.0, rel_tol=1e-12)
        assert arc.altitude == CURVE_MAX_ALTITUDE
        assert np.all(np.isfinite(arc.points))
        assert math.isclose(np.linalg.norm(arc.control1), 2.0, rel_tol=1e-12)

    def test_control_points_at_lifted_radius(self, lut):
        arc = build_arc(edge(51.5, -0.1, 40.7, -74.0), lut)
        lifted = 1.0 + arc.altitude
        assert CURVE_MIN_ALTITUDE <= arc.altitude <= CURVE_MAX_ALTITUDE
        assert math.isclose(np.linalg.norm(arc.start), 1.0, rel_tol=1e-12)
        assert math.isclose(np.linalg.norm(arc.control1), lifted, rel_tol=1e-12)
        assert math.isclose(np.linalg.norm(arc.control2), lifted, rel_tol=1e-12)

    def test_weight_out_of_range_uses_scale_extremes(self, lut):
        assert build_arc(edge(0, 0, 10, 10, weight=-3), lut).color == lut.get_color(0.0)
        assert build_arc(edge(0, 0, 10, 10, weight=7), lut).color == lut.get_color(1.0)

    def test_independent_of_build_order(self, lut):
        edges = [edge(0, 0, 10, 10, 0.1), edge(-30, 100, 45, -20, 0.9)]
        forward = [build_arc(e, lut) for e in edges]
        backward = [build_arc(e, lut) for e in reversed(edges)][::-1]
        for x, y in zip(forward, backward):
            assert np.array_equal(x.points, y.points)
            assert x.color == y.color
