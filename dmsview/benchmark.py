"""Throughput benchmark: a grid of spinning copies of one model.

Every frame each ball turns a little about its x and y axes, then every
ball is rendered with the same model. The triangle count of a frame is
the number of triangles its display lists describe.
"""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import dataclass
from itertools import islice, product
from typing import Optional, Sequence

from .dms import DMSFormatError, Model, load_model
from .render import DisplayItem, render_model, texture_paths

NUM_BALLS = 44
GRID_COLS = 10
GRID_ROWS = 5
SPACING_X = 3.0
SPACING_Y = 3.0
BASE_Z = 25.0
FULL_TURN = 6.28
SPIN_STEP = 0.01
DEFAULT_SCALE = 1.2


@dataclass
class Ball:
    """Position, rotation and spin rates of one model copy."""

    x: float
    y: float
    z: float
    rx: float = 0.0
    ry: float = 0.0
    rz: float = 0.0
    drx: float = 0.0
    dry: float = 0.0
    drz: float = 0.0

    def advance(self) -> None:
        """Turn the ball by one frame's spin, wrapping past a full turn."""
        self.rx += self.drx * SPIN_STEP
        self.ry += self.dry * SPIN_STEP
        if self.rx >= FULL_TURN:
            self.rx -= FULL_TURN
        if self.ry >= FULL_TURN:
            self.ry -= FULL_TURN


@dataclass(frozen=True)
class FrameStats:
    """Result of a benchmark run."""

    frames: int
    elapsed: float
    frame_triangles: int
    benchmark_triangles: int

    @property
    def fps(self) -> float:
        return self.frames / self.elapsed if self.elapsed > 0 else 0.0

    @property
    def pps(self) -> float:
        """Triangles per second, from the last frame's triangle count."""
        return self.frame_triangles * self.fps


def make_ball_grid(count: int = NUM_BALLS) -> list[Ball]:
    """Place ``count`` balls row by row on a centred 10 x 5 grid."""
    capacity = GRID_COLS * GRID_ROWS
    if not 0 <= count <= capacity:
        raise ValueError(f"ball count must be between 0 and {capacity}, got {count}")
    start_x = -((GRID_COLS - 1) * SPACING_X) / 2.0
    start_y = -((GRID_ROWS - 1) * SPACING_Y) / 2.0
    cells = islice(product(range(GRID_ROWS), range(GRID_COLS)), count)
    return [
        Ball(
            x=start_x + col * SPACING_X,
            y=start_y + row * SPACING_Y,
            z=BASE_Z,
            drx=0.3 + (idx % 5) * 0.1,
            dry=0.5 + (idx % 7) * 0.1,
        )
        for idx, (row, col) in enumerate(cells)
    ]


def model_triangle_count(model: Model) -> int:
    """Recount every mesh's triangles from its indices and return the total.

    Unlike the count made at load time, a mesh without indices counts zero.
    """
    total = 0
    for mesh in model.meshes:
        mesh.triangle_count = sum(p.triangle_count for p in mesh.primitives())
        total += mesh.triangle_count
    return total


def render_frame(
    model: Model, balls: Sequence[Ball], scale: float = DEFAULT_SCALE
) -> tuple[list[DisplayItem], int]:
    """Spin every ball, render them all and return the display list and triangle count."""
    for ball in balls:
        ball.advance()
    display: list[DisplayItem] = []
    triangles = 0
    per_model = sum(
        primitive.triangle_count for mesh in model.meshes for primitive in mesh.primitives()
    )
    for ball in balls:
        display.extend(
            render_model(model, ball.rx, ball.ry, ball.rz, ball.x, ball.y, ball.z, scale)
        )
        triangles += per_model
    return display, triangles


def run_benchmark(model: Model, frames: int, scale: float = DEFAULT_SCALE) -> FrameStats:
    """Render ``frames`` frames of the ball grid and time them."""
    if frames < 0:
        raise ValueError(f"frame count must not be negative, got {frames}")
    balls = make_ball_grid(NUM_BALLS)
    benchmark_triangles = model_triangle_count(model) * len(balls)
    frame_triangles = 0
    start = time.perf_counter()
    for _ in range(frames):
        _display, frame_triangles = render_frame(model, balls, scale)
    elapsed = time.perf_counter() - start
    return FrameStats(
        frames=frames,
        elapsed=elapsed,
        frame_triangles=frame_triangles,
        benchmark_triangles=benchmark_triangles,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Load a model, run the benchmark and print its statistics."""
    parser = argparse.ArgumentParser(
        prog="dmsview-bench", description="Benchmark rendering of a DMS model."
    )
    parser.add_argument("model", help="path of the .dms file")
    parser.add_argument("--frames", type=int, default=60, help="frames to render")
    parser.add_argument("--scale", type=float, default=DEFAULT_SCALE, help="model scale")
    args = parser.parse_args(argv)

    try:
        model = load_model(args.model)
    except (OSError, DMSFormatError) as exc:
        print(f"Failed to load animated model: {exc}")
        return 1

    if model.texture_count > 0:
        print(f"Model has {model.texture_count} textures")
        stem = args.model.rsplit(".", 1)[0]
        for slot, path in enumerate(texture_paths(stem, model.texture_count)):
            print(f"Texture {slot}: {path}")

    per_model = model_triangle_count(model)
    print(
        f"Model loaded: {per_model} triangles per model, "
        f"{per_model * NUM_BALLS} total triangles for benchmark"
    )

    try:
        stats = run_benchmark(model, args.frames, args.scale)
    except ValueError as exc:
        print(f"Benchmark failed: {exc}")
        return 1

    print(
        f"FPS: {stats.fps:.2f} | PPS: {stats.pps / 1000.0:.2f}K | "
        f"Tris: {stats.frame_triangles}/{stats.benchmark_triangles}"
    )
    print(f"Final stats - Average FPS: {stats.fps:.2f} | PPS: {stats.pps / 1000.0:.2f}K")
    return 0


if __name__ == "__main__":
    sys.exit(main())