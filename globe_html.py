"""
globe_html.py — export the scene as a self-contained three.js page

The arcs, overlays and markers are computed in Python, packed into JSON, gzipped and
base64-encoded straight into the page. The page only needs three.js, OrbitControls and
pako from a CDN; it can be opened directly from disk.
"""

import base64
import gzip
import html
import json
import logging
from pathlib import Path
from typing import Union

import numpy as np
from matplotlib.colors import to_hex

from globe_data import SceneContext

logger = logging.getLogger(__name__)

MAX_PIXEL_RATIO = 2.0

CAMERA_FOV = 45
CAMERA_DISTANCE = 3.0
BACKGROUND_COLOR = "#0d0d26"
MARKER_SIZE = 0.012

# Coordinates are rounded before embedding to keep pages small
COORD_DECIMALS = 5


def capped_pixel_ratio(device_pixel_ratio: float) -> float:
    """Output resolution multiplier: the device's ratio, but never above MAX_PIXEL_RATIO."""
    return min(float(device_pixel_ratio), MAX_PIXEL_RATIO)


def aspect_ratio(width: int, height: int) -> float:
    """Camera aspect for a surface of width x height (height of 0 treated as 1)."""
    return width / max(height, 1)


def _flat(array: np.ndarray) -> list:
    return np.round(np.asarray(array, dtype=np.float64).reshape(-1), COORD_DECIMALS).tolist()


def scene_payload(ctx: SceneContext) -> dict:
    """Everything the page needs to rebuild the scene, as plain JSON types."""
    return {
        "sphere": {
            "radius": ctx.sphere_radius,
            "segments": ctx.sphere_segments,
            "color": to_hex(ctx.sphere_color),
        },
        "overlays": [
            {
                "name": ov.name,
                "positions": _flat(ov.segments),
                "color": to_hex(ov.color),
                "opacity": ov.opacity,
            }
            for ov in ctx.overlays.values()
        ],
        "arcs": [{"points": _flat(arc.points), "color": to_hex(arc.color)} for arc in ctx.arcs],
        "markers": _flat(ctx.endpoints) if ctx.show_points else [],
        "camera": {"fov": CAMERA_FOV, "distance": CAMERA_DISTANCE},
        "maxPixelRatio": MAX_PIXEL_RATIO,
    }


def encode_payload(payload: dict) -> str:
    """JSON -> gzip -> base64 text, as decoded in the page by pako.ungzip."""
    json_str = json.dumps(payload, separators=(',', ':'))
    return base64.b64encode(gzip.compress(json_str.encode('utf-8'))).decode('ascii')


def decode_payload(encoded: str) -> dict:
    return json.loads(gzip.decompress(base64.b64decode(encoded)).decode('utf-8'))


def render_html(ctx: SceneContext, title: str = "Arc Globe") -> str:
    """Generate the complete HTML page for a finalized scene."""
    if not ctx.finalized:
        raise RuntimeError("Scene must be finalized before export")

    encoded_data = encode_payload(scene_payload(ctx))
    safe_title = html.escape(title)

    html_template = '''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>''' + safe_title + '''</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        html, body { width: 100%; height: 100%; overflow: hidden; background: ''' + BACKGROUND_COLOR + '''; }
        canvas.webgl { position: fixed; top: 0; left: 0; outline: none; }
        #info {
            position: absolute; top: 10px; left: 10px;
            color: #ddd; font: 13px sans-serif; pointer-events: none;
        }
    </style>
</head>
<body>
    <canvas class="webgl"></canvas>
    <div id="info">''' + safe_title + ''' &mdash; drag to rotate, right-drag to pan, scroll to zoom</div>
    <script src="https://cdnjs.cloudflare.com/ajax/libs/three.js/r128/three.min.js"></script>
    <script src="https://cdn.jsdelivr.net/npm/three@0.128.0/examples/js/controls/OrbitControls.js"></script>
    <script src="https://cdnjs.cloudflare.com/ajax/libs/pako/2.1.0/pako.min.js"></script>
    <script>
        const EMBEDDED_SCENE = "''' + encoded_data + '''";

        const compressed = Uint8Array.from(atob(EMBEDDED_SCENE), c => c.charCodeAt(0));
        const sceneData = JSON.parse(pako.ungzip(compressed, { to: 'string' }));

        const canvas = document.querySelector('canvas.webgl');
        const scene = new THREE.Scene();
        scene.background = new THREE.Color(''' + json.dumps(BACKGROUND_COLOR) + ''');
        scene.add(new THREE.AmbientLight(0xffffff, 1));

        // Globe
        const sphere = new THREE.Mesh(
            new THREE.SphereGeometry(sceneData.sphere.radius, sceneData.sphere.segments, sceneData.sphere.segments),
            new THREE.MeshBasicMaterial({ color: sceneData.sphere.color })
        );
        scene.add(sphere);

        // Overlays (grid, borders): pairs of vertices are independent segments
        for (const overlay of sceneData.overlays) {
            const geometry = new THREE.BufferGeometry();
            geometry.setAttribute('position', new THREE.Float32BufferAttribute(overlay.positions, 3));
            const material = new THREE.LineBasicMaterial({
                color: overlay.color,
                transparent: overlay.opacity < 1,
                opacity: overlay.opacity
            });
            scene.add(new THREE.LineSegments(geometry, material));
        }

        // Arcs: one line strip each
        for (const arc of sceneData.arcs) {
            const geometry = new THREE.BufferGeometry();
            geometry.setAttribute('position', new THREE.Float32BufferAttribute(arc.points, 3));
            scene.add(new THREE.Line(geometry, new THREE.LineBasicMaterial({ color: arc.color })));
        }

        if (sceneData.markers.length) {
            const geometry = new THREE.BufferGeometry();
            geometry.setAttribute('position', new THREE.Float32BufferAttribute(sceneData.markers, 3));
            scene.add(new THREE.Points(geometry, new THREE.PointsMaterial({ color: 0xffffff, size: ''' + str(MARKER_SIZE) + ''' })));
        }

        // Sizes
        const sizes = { width: window.innerWidth, height: window.innerHeight };

        // Camera
        const camera = new THREE.PerspectiveCamera(sceneData.camera.fov, sizes.width / sizes.height, 0.1, 100);
        camera.position.set(0, 0, sceneData.camera.distance);
        scene.add(camera);

        const controls = new THREE.OrbitControls(camera, canvas);
        controls.enableDamping = true;

        // Renderer
        const renderer = new THREE.WebGLRenderer({ canvas: canvas, antialias: true });
        renderer.setSize(sizes.width, sizes.height);
        renderer.setPixelRatio(Math.min(window.devicePixelRatio, sceneData.maxPixelRatio));

        window.addEventListener('resize', () => {
            sizes.width = window.innerWidth;
            sizes.height = window.innerHeight;

            camera.aspect = sizes.width / sizes.height;
            camera.updateProjectionMatrix();

            renderer.setSize(sizes.width, sizes.height);
            renderer.setPixelRatio(Math.min(window.devicePixelRatio, sceneData.maxPixelRatio));
        });

        // Render loop
        const tick = () => {
            controls.update();
            renderer.render(scene, camera);
            window.requestAnimationFrame(tick);
        };
        tick();
    </script>
</body>
</html>
'''
    return html_template


def write_html(ctx: SceneContext, path: Union[str, Path], title: str = "Arc Globe") -> Path:
    """Render the page and write it to path (parent directories are created)."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(render_html(ctx, title))

    size_mb = output_path.stat().st_size / (1024 * 1024)
    logger.info("Wrote %s (%.2f MB, %d arcs, %d overlays)", output_path, size_mb, len(ctx.arcs), len(ctx.overlays))
    return output_path
