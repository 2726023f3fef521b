"""
globe_arcs.py — command-line entry point

Usage:
    globe-arcs data/g_slim.json
    globe-arcs data/g_slim.json --colormap rainbow --points
    globe-arcs https://example.org/g_slim.json --html out/globe.html
    globe-arcs data/g_slim.json --grid "" --borders models/borders_3d_nofaces.obj

Without --html the interactive desktop globe opens. With --html the same scene is
written to a single self-contained page that opens in any WebGL browser.
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from globe_colors import COLOR_MAPS, DEFAULT_COLORMAP, ColorLUT
from globe_data import (
    BORDERS_COLOR, BORDERS_OPACITY, GRID_COLOR, GRID_OPACITY,
    DataFileError, OverlayError, SceneContext, build_arcs, load_edges, load_overlay,
)

logger = logging.getLogger("globe_arcs")

DEFAULT_DATA_FILE = "data/g_slim.json"
DEFAULT_GRID_MODEL = "models/world_grid_nofaces.obj"
DEFAULT_BORDERS_MODEL = "models/borders_3d_nofaces.obj"
DEFAULT_TITLE = "Arc Globe"


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configure the root logger (the globe_* modules are top-level, so they share it).

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to also save logs to a file.
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Avoid duplicate handlers when main() runs more than once in a process
    if root.hasHandlers():
        root.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # trimesh is chatty at INFO
    logging.getLogger("trimesh").setLevel(max(level, logging.WARNING))


# -----------------------------------------------------------------------------
# Arguments
# -----------------------------------------------------------------------------
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Draw weighted arcs between paired locations on a 3D globe')
    parser.add_argument('data', nargs='?', default=DEFAULT_DATA_FILE,
                        help=f'Edge data JSON file or http(s) URL (default: {DEFAULT_DATA_FILE})')
    parser.add_argument('--grid', default=DEFAULT_GRID_MODEL,
                        help='Coordinate grid model, "" to disable (default: %(default)s)')
    parser.add_argument('--borders', default=DEFAULT_BORDERS_MODEL,
                        help='Political borders model, "" to disable (default: %(default)s)')
    parser.add_argument('--colormap', default=DEFAULT_COLORMAP, choices=sorted(COLOR_MAPS),
                        help='Colour map for edge weights (default: %(default)s)')
    parser.add_argument('--points', action='store_true',
                        help='Mark arc endpoints with dots')
    parser.add_argument('--html', metavar='OUT',
                        help='Write a standalone three.js page instead of opening a window')
    parser.add_argument('--title', default=DEFAULT_TITLE,
                        help='Window / page title')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: %(default)s)')
    parser.add_argument('--log-file', help='Also write the log to this file')
    return parser.parse_args(argv)


def overlay_specs(args: argparse.Namespace):
    """(name, path, colour, opacity) for every overlay that wasn't disabled."""
    specs = [
        ("grid", args.grid, GRID_COLOR, GRID_OPACITY),
        ("borders", args.borders, BORDERS_COLOR, BORDERS_OPACITY),
    ]
    return [s for s in specs if s[1]]


# -----------------------------------------------------------------------------
# HTML export
# -----------------------------------------------------------------------------
def export_html(args: argparse.Namespace, ctx: SceneContext) -> None:
    """
    Load everything in parallel, then build. The arcs are only built once the data
    future has resolved; a missing overlay just leaves it out of the page.
    """
    from globe_html import write_html

    specs = overlay_specs(args)
    with ThreadPoolExecutor(max_workers=1 + len(specs)) as pool:
        data_future = pool.submit(load_edges, args.data)
        overlay_futures = [(spec, pool.submit(load_overlay, spec[1])) for spec in specs]

        result = data_future.result()

        for (name, _path, color, opacity), future in overlay_futures:
            try:
                ctx.add_overlay(name, future.result(), color, opacity)
            except OverlayError as e:
                logger.warning("%s overlay omitted: %s", name, e)

    build_arcs(result.edges, ctx)
    write_html(ctx, args.html, args.title)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)

    ctx = SceneContext(ColorLUT(args.colormap), show_points=args.points)

    if args.html:
        try:
            export_html(args, ctx)
        except DataFileError as e:
            logger.error("%s", e)
            return 1
        return 0

    # Qt/OpenGL are only needed for the window
    from globe_view import run_viewer
    return run_viewer(ctx, args.data, overlay_specs(args), args.title)


if __name__ == "__main__":
    sys.exit(main())
