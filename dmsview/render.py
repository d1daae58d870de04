"""Software model of the viewer's display list and its controller handling.

Rendering a model produces the display list the hardware would receive:
a :class:`PolyHeader` for each mesh followed by the projected
:class:`ScreenVertex` entries of its strips and triangles. Every strip
and every list triangle ends with a vertex marked ``end_of_strip``.
"""

from __future__ import annotations

import argparse
import math
import os
import sys
from dataclasses import dataclass
from enum import IntFlag
from functools import reduce
from typing import Optional, Sequence, Union

from .dms import DMSFormatError, Model, load_model
from .raymath import Matrix, matrix_multiply, matrix_scale, matrix_translate

SCREEN_CENTER_X = 320.0
SCREEN_CENTER_Y = 240.0
FOV_COTANGENT = 1.732050808
NEAR_PLANE = 1.0
FAR_PLANE = 10000.0
DEFAULT_MODEL_SCALE = 1.0
WHITE = 0xFFFFFFFF
FRAME_TIME = 1.0 / 60.0


@dataclass(frozen=True)
class Texture:
    """A texture bound to a model slot."""

    path: str
    width: int
    height: int
    fmt: int


@dataclass(frozen=True)
class PolyHeader:
    """Polygon state sent before the vertices of a mesh."""

    texture: Optional[Texture]
    culling: str = "ccw"
    depth_compare: str = "gequal"
    depth_write: bool = True


@dataclass(frozen=True)
class ScreenVertex:
    """A projected vertex: screen x and y, and 1/w as depth."""

    x: float
    y: float
    z: float
    u: float
    v: float
    argb: int = WHITE
    end_of_strip: bool = False


DisplayItem = Union[PolyHeader, ScreenVertex]


class Buttons(IntFlag):
    """Controller buttons."""

    NONE = 0
    C = 1 << 0
    B = 1 << 1
    A = 1 << 2
    START = 1 << 3
    DPAD_UP = 1 << 4
    DPAD_DOWN = 1 << 5
    DPAD_LEFT = 1 << 6
    DPAD_RIGHT = 1 << 7
    Z = 1 << 8
    Y = 1 << 9
    X = 1 << 10


@dataclass(frozen=True)
class ControllerState:
    """Buttons held and analogue trigger positions."""

    buttons: Buttons = Buttons.NONE
    ltrig: int = 0
    rtrig: int = 0


def _from_rows(*rows: Sequence[float]) -> Matrix:
    return Matrix(*(value for row in rows for value in row))


def _rotate_x(angle: float) -> Matrix:
    c, s = math.cos(angle), math.sin(angle)
    return _from_rows((1, 0, 0, 0), (0, c, -s, 0), (0, s, c, 0), (0, 0, 0, 1))


def _rotate_y(angle: float) -> Matrix:
    c, s = math.cos(angle), math.sin(angle)
    return _from_rows((c, 0, s, 0), (0, 1, 0, 0), (-s, 0, c, 0), (0, 0, 0, 1))


def _rotate_z(angle: float) -> Matrix:
    c, s = math.cos(angle), math.sin(angle)
    return _from_rows((c, -s, 0, 0), (s, c, 0, 0), (0, 0, 1, 0), (0, 0, 0, 1))


def _perspective() -> Matrix:
    near, far = NEAR_PLANE, FAR_PLANE
    return _from_rows(
        (FOV_COTANGENT, 0, 0, 0),
        (0, FOV_COTANGENT, 0, 0),
        (0, 0, (far + near) / (near - far), 2 * far * near / (near - far)),
        (0, 0, -1, 0),
    )


def _screen_view() -> Matrix:
    return _from_rows(
        (SCREEN_CENTER_X, 0, 0, SCREEN_CENTER_X),
        (0, -SCREEN_CENTER_Y, 0, SCREEN_CENTER_Y),
        (0, 0, 1, 0),
        (0, 0, 0, 1),
    )


def model_view_matrix(
    x_rot: float,
    y_rot: float,
    z_rot: float,
    pos_x: float,
    pos_y: float,
    pos_z: float,
    scale: float = DEFAULT_MODEL_SCALE,
) -> Matrix:
    """Full object-to-screen transform; ``pos_z`` is the distance in front of the camera."""
    steps = [
        matrix_scale(scale, scale, scale),
        _rotate_z(z_rot),
        _rotate_y(y_rot),
        _rotate_x(x_rot),
        matrix_translate(pos_x, pos_y, -pos_z),
        _perspective(),
        _screen_view(),
    ]
    return reduce(matrix_multiply, steps)


def transform_point(matrix: Matrix, x: float, y: float, z: float) -> tuple[float, float, float]:
    """Project a point: returns screen x, screen y and 1/w.

    Raises ValueError for a point on the camera plane, where w is zero.
    """
    values = tuple(matrix)
    point = (x, y, z, 1.0)
    tx, ty, _tz, tw = (
        sum(p * m for p, m in zip(point, values[start:start + 4]))
        for start in range(0, 16, 4)
    )
    if tw == 0.0:
        raise ValueError("point lies on the camera plane")
    inv_w = 1.0 / tw
    return tx * inv_w, ty * inv_w, inv_w


def render_model(
    model: Optional[Model],
    rot_x: float,
    rot_y: float,
    rot_z: float,
    pos_x: float,
    pos_y: float,
    pos_z: float,
    scale: float = DEFAULT_MODEL_SCALE,
) -> list[DisplayItem]:
    """Build the display list for a model placed and rotated in view."""
    if model is None:
        return []
    matrix = model_view_matrix(rot_x, rot_y, rot_z, pos_x, pos_y, pos_z, scale)
    display: list[DisplayItem] = []
    for mesh in model.meshes:
        texture = None
        if 0 <= mesh.texture_id < model.texture_count:
            texture = model.textures[mesh.texture_id]
        display.append(PolyHeader(texture=texture))

        if model.skeleton is not None and mesh.animated_vertices is not None:
            buffer = mesh.animated_vertices
        else:
            buffer = mesh.vertices
        for primitive in mesh.primitives():
            last = len(primitive.indices) - 1
            for position, index in enumerate(primitive.indices):
                vertex = buffer[index]
                sx, sy, sz = transform_point(matrix, vertex.x, vertex.y, vertex.z)
                display.append(
                    ScreenVertex(
                        x=sx,
                        y=sy,
                        z=sz,
                        u=vertex.u,
                        v=vertex.v,
                        end_of_strip=position == last,
                    )
                )
    return display


def texture_paths(stem: str, count: int) -> list[str]:
    """Texture file names for each slot: ``<stem><slot>.dt``."""
    return [f"{stem}{slot}.dt" for slot in range(count)]


@dataclass
class Viewer:
    """Placement, rotation and animation choice of a viewed model."""

    model: Model
    model_x: float = 0.0
    model_y: float = 0.0
    model_z: float = 4.0
    move_speed: float = 5.0
    rot_speed: float = 0.05
    rot_x: float = 0.0
    rot_y: float = 0.0
    rot_z: float = 0.0
    current_animation: int = 0
    anim_button_last_press: int = 0
    anim_button_delay: int = 500

    @property
    def animation_count(self) -> int:
        skeleton = self.model.skeleton
        return skeleton.anim_count if skeleton is not None else 0

    def handle_input(self, state: ControllerState, current_time: int) -> bool:
        """Apply one controller reading; returns False when START asks to quit."""
        buttons = state.buttons
        step = self.move_speed * self.model_z * 0.001
        if buttons & Buttons.DPAD_LEFT:
            self.model_x -= step
        if buttons & Buttons.DPAD_RIGHT:
            self.model_x += step
        if buttons & Buttons.DPAD_UP:
            self.model_y += step
        if buttons & Buttons.DPAD_DOWN:
            self.model_y -= step

        if (
            buttons & Buttons.A
            and current_time - self.anim_button_last_press > self.anim_button_delay
            and self.animation_count > 0
        ):
            self.current_animation = (self.current_animation + 1) % self.animation_count
            skeleton = self.model.skeleton
            if skeleton is not None:
                skeleton.current_anim = self.current_animation
                skeleton.current_time = 0.0
            self.anim_button_last_press = current_time

        if buttons & Buttons.B:
            self.rot_y += self.rot_speed
        if buttons & Buttons.X:
            self.rot_x -= self.rot_speed
        if buttons & Buttons.Y:
            self.rot_x += self.rot_speed

        if state.ltrig > 0:
            self.model_z -= self.move_speed * self.model_z * 0.01
        if state.rtrig > 0:
            self.model_z += self.move_speed * self.model_z * 0.01

        # The model is always shown facing the camera.
        self.rot_y = 3.14

        self.model_z = min(max(self.model_z, 1.0), 20.0)
        return not buttons & Buttons.START

    def step(self, delta_time: float = FRAME_TIME) -> list[DisplayItem]:
        """Advance animation and skinning, then build this frame's display list."""
        skeleton = self.model.skeleton
        if skeleton is not None and skeleton.anim_count > 0:
            self.model.update_animation(delta_time)
            for mesh in self.model.meshes:
                mesh.update_animation(skeleton)
        return render_model(
            self.model,
            self.rot_x,
            self.rot_y,
            self.rot_z,
            self.model_x,
            self.model_y,
            self.model_z,
            DEFAULT_MODEL_SCALE,
        )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Load a model, play its animation for some frames and report the result."""
    parser = argparse.ArgumentParser(prog="dmsview", description="View a DMS model.")
    parser.add_argument("model", help="path of the .dms file")
    parser.add_argument("--frames", type=int, default=60, help="frames to run")
    parser.add_argument(
        "--texture-stem",
        default=None,
        help="texture file stem (defaults to the model path without its suffix)",
    )
    args = parser.parse_args(argv)

    try:
        model = load_model(args.model)
    except (OSError, DMSFormatError) as exc:
        print(f"Failed to load animated model: {exc}")
        return 1

    if model.skeleton is None:
        print("Loading static model (no skeleton)")

    stem = args.texture_stem or os.path.splitext(args.model)[0]
    if model.texture_count > 0:
        print(f"Model has {model.texture_count} textures")
        for slot, path in enumerate(texture_paths(stem, model.texture_count)):
            state = "found" if os.path.exists(path) else "missing"
            print(f"Texture {slot}: {path} ({state})")

    viewer = Viewer(model)
    if viewer.animation_count:
        print(f"Model has {viewer.animation_count} animations")

    display: list[DisplayItem] = []
    frames = max(args.frames, 0)
    for _ in range(frames):
        display = viewer.step(FRAME_TIME)
    vertices = sum(isinstance(item, ScreenVertex) for item in display)
    print(f"Rendered {frames} frames, {vertices} vertices in last frame")
    return 0


if __name__ == "__main__":
    sys.exit(main())