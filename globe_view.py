"""
globe_view.py — the interactive desktop globe (PyQt5 + PyOpenGL)

WHAT THIS MODULE DOES
---------------------
Opens a window with a rotating 3D globe and draws, on top of it:
  • the coordinate grid and political border overlays (model files)
  • one curved arc per edge, coloured by the edge weight
  • optional white dots at every arc endpoint

HOW IT IS ORGANISED
-------------------
  1) Background loaders (EdgeLoader, OverlayLoader) — QThreads that read files and
     report back through Qt signals, so the window appears immediately
  2) Globe — the QGLWidget: GL state, camera, drawing, mouse/keyboard orbit controls
  3) MainWindow — info bar + globe; wires loaders to the SceneContext
  4) run_viewer() — called by globe_arcs.main()

All geometry is built once, when the edge data arrives. The timer-driven paint loop
only redraws what is already in the SceneContext.
"""

# ----- Standard library imports ----------------------------------------------
import logging
from typing import Dict, List, Optional, Tuple

# ----- Third-party libraries --------------------------------------------------
import numpy as np

from PyQt5.QtWidgets import QApplication, QMainWindow, QWidget, QVBoxLayout, QLabel
from PyQt5.QtCore import Qt, QTimer, QThread, pyqtSignal, QPoint
from PyQt5.QtOpenGL import QGLWidget

from OpenGL.GL import *
from OpenGL.GLU import *

from globe_data import (
    DataFileError, LoadResult, OverlayError, SceneContext,
    build_arcs, load_edges, load_overlay,
)
from globe_html import aspect_ratio

logger = logging.getLogger(__name__)

# Camera defaults
CAMERA_FOV = 45.0
CAMERA_NEAR = 0.1
CAMERA_FAR = 100.0
DEFAULT_DISTANCE = 3.0
MIN_DISTANCE = 1.2
MAX_DISTANCE = 20.0

FRAME_INTERVAL_MS = 16  # ~60 Hz render loop


# -----------------------------------------------------------------------------
# 1) BACKGROUND LOADERS
# -----------------------------------------------------------------------------
class EdgeLoader(QThread):
    """
    Reads the edge data file off the UI thread.
    Emits finished(LoadResult) exactly once on success, or error(message) on failure.
    The arcs are built by whoever receives finished, not here.
    """
    finished = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, source: str):
        super().__init__()
        self.source = source

    def run(self):
        try:
            result = load_edges(self.source)
        except DataFileError as e:
            self.error.emit(str(e))
            return
        except Exception as e:
            logger.exception("Unexpected failure reading %s", self.source)
            self.error.emit(f"Edge data load failed: {e}")
            return
        self.finished.emit(result)


class OverlayLoader(QThread):
    """Loads one overlay model (grid or borders) into line segments."""
    finished = pyqtSignal(str, object)  # (name, segments array)
    error = pyqtSignal(str, str)        # (name, message)

    def __init__(self, name: str, path: str):
        super().__init__()
        self.name = name
        self.path = path

    def run(self):
        try:
            segments = load_overlay(self.path)
        except OverlayError as e:
            self.error.emit(self.name, str(e))
            return
        except Exception as e:
            logger.exception("Unexpected failure loading overlay %s from %s", self.name, self.path)
            self.error.emit(self.name, f"Overlay load failed: {e}")
            return
        self.finished.emit(self.name, segments)


def wait_for_threads(threads):
    """Block until every thread has returned from run()."""
    for t in threads:
        if t.isRunning():
            logger.debug("Waiting for %s to finish", type(t).__name__)
        t.wait()


# -----------------------------------------------------------------------------
# 2) OPENGL GLOBE WIDGET
# -----------------------------------------------------------------------------
class Globe(QGLWidget):
    """
    Draws whatever the SceneContext holds.
    High-level draw order:
      (a) blue sphere
      (b) overlays (opaque first, then the translucent grid)
      (c) arcs, once the scene is finalized
      (d) optional endpoint markers

    TIP: OpenGL state is global. Each method tries to leave GL in a clean state
         so other methods are not surprised.
    """

    def __init__(self, ctx: SceneContext):
        super().__init__()
        self.ctx = ctx

        # Camera controls: orbit (rotation), pan, zoom (distance)
        self.rotation_x = 0.0
        self.rotation_y = 0.0
        self.pan_x = 0.0
        self.pan_y = 0.0
        self.distance = DEFAULT_DISTANCE
        self.drag_button = None
        self.last_pos: Optional[QPoint] = None

        self.line_smooth_enabled = True
        self.marker_size = 3.0

        # Render loop
        self._timer = QTimer(); self._timer.timeout.connect(self.updateGL); self._timer.start(FRAME_INTERVAL_MS)

    # -- Qt/GL lifecycle hooks -------------------------------------------------
    def initializeGL(self):
        """Called once after the GL context is created. Everything is unlit (flat colours)."""
        glEnable(GL_DEPTH_TEST)
        glDisable(GL_LIGHTING)
        glEnable(GL_CULL_FACE)
        glCullFace(GL_BACK)
        glFrontFace(GL_CCW)
        glClearColor(0.05, 0.05, 0.15, 1.0)

    def resizeGL(self, w, h):
        """Keep the perspective aspect matched to the widget on every resize."""
        glViewport(0, 0, w, max(h, 1))
        glMatrixMode(GL_PROJECTION); glLoadIdentity()
        gluPerspective(CAMERA_FOV, aspect_ratio(w, h), CAMERA_NEAR, CAMERA_FAR)
        glMatrixMode(GL_MODELVIEW)

    def paintGL(self):
        """The main draw function — called by the timer and by interactions."""
        glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)
        glLoadIdentity()

        # Camera transform: pan and pull back, then orbit
        glTranslatef(self.pan_x, self.pan_y, -self.distance)
        glRotatef(self.rotation_x, 1, 0, 0)
        glRotatef(self.rotation_y, 0, 1, 0)

        self._draw_sphere()
        if self.ctx.overlays: self._draw_overlays()
        if self.ctx.finalized:
            self._draw_arcs()
            if self.ctx.show_points: self._draw_markers()

    # -- Drawing ---------------------------------------------------------------
    def _draw_sphere(self):
        """A simple solid-colour sphere just under the unit radius."""
        glEnable(GL_CULL_FACE)
        glColor3f(*self.ctx.sphere_color)
        quad = gluNewQuadric(); gluQuadricNormals(quad, GLU_SMOOTH)
        gluSphere(quad, self.ctx.sphere_radius, self.ctx.sphere_segments, self.ctx.sphere_segments)
        gluDeleteQuadric(quad)

    def _begin_lines(self):
        glDisable(GL_CULL_FACE)
        if self.line_smooth_enabled:
            glEnable(GL_LINE_SMOOTH); glHint(GL_LINE_SMOOTH_HINT, GL_NICEST)
        else:
            glDisable(GL_LINE_SMOOTH)
        glEnableClientState(GL_VERTEX_ARRAY)

    def _end_lines(self):
        glDisableClientState(GL_VERTEX_ARRAY)
        glEnable(GL_CULL_FACE)

    def _draw_overlays(self):
        """Overlays are static line segments with one colour each."""
        self._begin_lines()
        glLineWidth(1.0)
        for overlay in sorted(self.ctx.overlays.values(), key=lambda o: o.transparent):
            verts = np.ascontiguousarray(overlay.segments.reshape(-1, 3), dtype=np.float32)
            if not verts.size:
                continue
            if overlay.transparent:
                glEnable(GL_BLEND); glBlendFunc(GL_SRC_ALPHA, GL_ONE_MINUS_SRC_ALPHA)
                glDepthMask(GL_FALSE)
            glColor4f(*overlay.color, overlay.opacity)
            glVertexPointer(3, GL_FLOAT, 0, verts)
            glDrawArrays(GL_LINES, 0, len(verts))
            if overlay.transparent:
                glDepthMask(GL_TRUE); glDisable(GL_BLEND)
        self._end_lines()

    def _draw_arcs(self):
        """All arcs in one draw call: per-vertex colours, consecutive vertex pairs are segments."""
        verts, cols = self.ctx.arc_segments()
        if not len(verts):
            return
        self._begin_lines()
        glLineWidth(1.4)
        glEnableClientState(GL_COLOR_ARRAY)
        glVertexPointer(3, GL_FLOAT, 0, verts)
        glColorPointer(3, GL_FLOAT, 0, cols)
        glDrawArrays(GL_LINES, 0, len(verts))
        glDisableClientState(GL_COLOR_ARRAY)
        self._end_lines()

    def _draw_markers(self):
        pts = self.ctx.endpoints
        if not len(pts):
            return
        glEnableClientState(GL_VERTEX_ARRAY)
        glPointSize(self.marker_size)
        glColor3f(1.0, 1.0, 1.0)
        glVertexPointer(3, GL_FLOAT, 0, pts)
        glDrawArrays(GL_POINTS, 0, len(pts))
        glDisableClientState(GL_VERTEX_ARRAY)

    # -- Interaction (mouse/keyboard) -----------------------------------------
    def mousePressEvent(self, e):
        """Left-drag orbits, right-drag pans. Line smoothing is off while dragging for speed."""
        if e.button() in (Qt.LeftButton, Qt.RightButton):
            self.drag_button = e.button(); self.last_pos = e.pos()
            self.line_smooth_enabled = False

    def mouseReleaseEvent(self, e):
        if e.button() == self.drag_button:
            self.drag_button = None
            self.line_smooth_enabled = True

    def mouseMoveEvent(self, e):
        if self.drag_button is None or self.last_pos is None:
            return
        dx = e.x() - self.last_pos.x(); dy = e.y() - self.last_pos.y()
        if self.drag_button == Qt.LeftButton:
            self.rotation_y += dx * 0.5
            self.rotation_x = max(-90, min(90, self.rotation_x + dy * 0.5))
        else:
            # Pan speed follows distance so the globe tracks the cursor roughly
            scale = 0.002 * self.distance
            self.pan_x += dx * scale
            self.pan_y -= dy * scale
        self.last_pos = e.pos(); self.updateGL()

    def keyPressEvent(self, e):
        """Keyboard zoom shortcuts (also see wheelEvent)."""
        key = e.key()
        if key in (Qt.Key_Plus, Qt.Key_Equal, Qt.Key_Up):
            self._zoom_by(-0.25)
        elif key in (Qt.Key_Minus, Qt.Key_Underscore, Qt.Key_Down):
            self._zoom_by(0.25)
        elif key == Qt.Key_PageUp:
            self._zoom_by(-1.0)
        elif key == Qt.Key_PageDown:
            self._zoom_by(1.0)
        else:
            return super().keyPressEvent(e)

    def wheelEvent(self, e):
        """Mouse-wheel/trackpad zoom."""
        steps = e.angleDelta().y() / 120.0
        if steps == 0: return
        self._zoom_by(-0.2 * steps)

    def _zoom_by(self, delta: float):
        self.distance = max(MIN_DISTANCE, min(MAX_DISTANCE, self.distance + delta))
        self.updateGL()


# -----------------------------------------------------------------------------
# 3) MAIN WINDOW
# -----------------------------------------------------------------------------
class MainWindow(QMainWindow):
    """
    The globe plus a one-line info bar reporting what has loaded, what was skipped and
    which overlays failed. Edge data failure is fatal: the app exits with status 1.
    """

    def __init__(self, ctx: SceneContext, data_source: str,
                 overlays: List[Tuple[str, str, Tuple[float, float, float], float]],
                 title: str = "Arc Globe"):
        super().__init__()
        self.setWindowTitle(title)
        self.resize(1200, 900)

        self.ctx = ctx
        self.data_source = data_source
        self.skipped = 0
        self.data_state = "loading"
        self.overlay_state: Dict[str, str] = {}
        self._overlay_styles = {}

        self.gl = Globe(ctx)

        central = QWidget(); layout = QVBoxLayout(central); layout.setSpacing(0); layout.setContentsMargins(0, 0, 0, 0)
        self.setCentralWidget(central)

        self.info = QLabel(f"Loading {data_source}…")
        self.info.setStyleSheet("background:#f7f7f7;padding:6px;border-bottom:1px solid #ccc;")
        layout.addWidget(self.info)
        layout.addWidget(self.gl, 1)

        # Kick off the background loaders; the arcs are built when the data arrives
        self.edge_loader = EdgeLoader(data_source)
        self.edge_loader.finished.connect(self._on_edges_ready)
        self.edge_loader.error.connect(self._on_edges_error)
        self.edge_loader.start()

        self.overlay_loaders = []
        for name, path, color, opacity in overlays:
            self.overlay_state[name] = "loading"
            self._overlay_styles[name] = (color, opacity)
            loader = OverlayLoader(name, path)
            loader.finished.connect(self._on_overlay_ready)
            loader.error.connect(self._on_overlay_error)
            loader.start()
            self.overlay_loaders.append(loader)

        self._refresh_info()

    # -- Loader callbacks (run on the UI thread) --------------------------------
    def _on_edges_ready(self, result: LoadResult):
        build_arcs(result.edges, self.ctx)
        self.skipped = len(result.skipped)
        self.data_state = "ready"
        self._refresh_info()

    def _on_edges_error(self, msg: str):
        logger.error("%s", msg)
        self.data_state = "failed"
        self.info.setText(f"Error: {msg}")
        QTimer.singleShot(0, lambda: QApplication.instance().exit(1))

    def _on_overlay_ready(self, name: str, segments):
        color, opacity = self._overlay_styles[name]
        self.ctx.add_overlay(name, segments, color, opacity)
        self.overlay_state[name] = "on"
        self._refresh_info()

    def _on_overlay_error(self, name: str, msg: str):
        logger.warning("%s overlay omitted: %s", name, msg)
        self.overlay_state[name] = "failed"
        self._refresh_info()

    def loaders(self) -> List[QThread]:
        return [self.edge_loader] + self.overlay_loaders

    def _refresh_info(self):
        if self.data_state == "failed":
            return
        arcs = f"Arcs: {len(self.ctx.arcs)}" if self.data_state == "ready" else "Arcs: loading…"
        parts = [arcs, f"Skipped records: {self.skipped}"]
        parts += [f"{name.capitalize()}: {state}" for name, state in self.overlay_state.items()]
        parts.append(f"Colour map: {self.ctx.color_lut.colormap}")
        self.info.setText(" | ".join(parts))


# -----------------------------------------------------------------------------
# 4) ENTRY POINT
# -----------------------------------------------------------------------------
def run_viewer(ctx: SceneContext, data_source: str, overlays, title: str = "Arc Globe") -> int:
    """Run the Qt application until the window closes. Returns the exit status."""
    app = QApplication.instance() or QApplication([])
    w = MainWindow(ctx, data_source, overlays, title); w.show()
    status = app.exec_()
    # A slow URL or model load can still be running after the window closes
    wait_for_threads(w.loaders())
    return status
