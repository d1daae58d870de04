"""Reading, skinning and animating DMS model files.

A DMS file is little-endian throughout. It starts with four 32-bit
unsigned words: the magic ``0x54534D44``, a version, the mesh count and
the bone count. When there are bones, the bone records and the
animations follow; otherwise only an (ignored) animation count does.
The meshes come last, each with its vertices and its packed indices.

Packed indices carry the vertex number in the low 24 bits. When the top
bit is set the entry belongs to a triangle strip whose id sits in bits
24 to 30; consecutive strip entries with the same id form one strip.
Entries without the top bit are read three at a time as a triangle list.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass, field, replace
from os import PathLike
from typing import Iterator, Optional, Sequence, Union

from .raymath import (
    Matrix,
    Quaternion,
    Vector3,
    matrix_multiply,
    matrix_scale,
    matrix_translate,
    quaternion_slerp,
    quaternion_to_matrix,
    vector3_lerp,
    vector3_transform,
)

DMS_MAGIC_NUMBER = 0x54534D44
STRIP_FLAG = 0x80000000
INDEX_MASK = 0x00FFFFFF

_HEADER = struct.Struct("<4I")
_COUNT = struct.Struct("<I")
_BONE = struct.Struct("<64si10f16f")
_ANIMATION = struct.Struct("<32siif")
_TRANSFORM = struct.Struct("<10f")
_MESH = struct.Struct("<IIi")
_SKINNED_VERTEX = struct.Struct("<3f3bx2fB3xf")
_STATIC_VERTEX = struct.Struct("<8f")
_INDEX = struct.Struct("<I")


class DMSFormatError(ValueError):
    """Raised when data is not a well-formed DMS model."""


@dataclass(frozen=True)
class Transform:
    """Translation, rotation and scale of a bone."""

    translation: Vector3 = Vector3()
    rotation: Quaternion = Quaternion()
    scale: Vector3 = Vector3()


@dataclass
class Bone:
    """A skeleton joint with its bind data and current pose."""

    name: str
    parent: int
    bind_pose: Transform
    inverse_bind_matrix: Matrix
    local_pose: Transform = field(default_factory=Transform)
    world_pose: Matrix = field(default_factory=Matrix)


@dataclass
class Animation:
    """Keyframed bone poses; ``frame_poses`` is frame-major."""

    name: str
    bone_count: int
    frame_count: int
    duration: float
    frame_poses: list[Transform] = field(default_factory=list)


@dataclass
class Skeleton:
    """Bones, their animations and the playback state."""

    bones: list[Bone]
    animations: list[Animation] = field(default_factory=list)
    current_anim: int = 0
    current_time: float = 0.0

    @property
    def bone_count(self) -> int:
        return len(self.bones)

    @property
    def anim_count(self) -> int:
        return len(self.animations)


@dataclass(frozen=True)
class Vertex:
    """A mesh vertex with packed normal and a single bone influence."""

    x: float
    y: float
    z: float
    nx: int = 0
    ny: int = 0
    nz: int = 0
    u: float = 0.0
    v: float = 0.0
    bone_id: int = 0
    bone_weight: float = 0.0


@dataclass(frozen=True)
class Primitive:
    """One strip or one list triangle, as vertex numbers."""

    strip: bool
    indices: tuple[int, ...]

    @property
    def triangle_count(self) -> int:
        if self.strip:
            return max(0, len(self.indices) - 2)
        return 1


def iter_primitives(indices: Sequence[int]) -> Iterator[Primitive]:
    """Split packed indices into strips and list triangles.

    A trailing group of fewer than three list entries is skipped.
    """
    count = len(indices)
    i = 0
    while i < count:
        raw = indices[i]
        if raw & STRIP_FLAG:
            strip_id = (raw >> 24) & 0x7F
            end = i
            while (
                end < count
                and indices[end] & STRIP_FLAG
                and (indices[end] >> 24) & 0x7F == strip_id
            ):
                end += 1
            yield Primitive(True, tuple(x & INDEX_MASK for x in indices[i:end]))
            i = end
        elif i + 2 < count:
            yield Primitive(False, tuple(x & INDEX_MASK for x in indices[i:i + 3]))
            i += 3
        else:
            i += 1


def count_triangles(indices: Sequence[int], vertex_count: int) -> int:
    """Number of triangles the indices describe, or vertices / 3 without indices."""
    if not indices:
        return vertex_count // 3
    return sum(primitive.triangle_count for primitive in iter_primitives(indices))


@dataclass
class Mesh:
    """Vertices, packed indices and the texture slot of one mesh."""

    vertices: list[Vertex]
    indices: list[int]
    texture_id: int = 0
    animated_vertices: Optional[list[Vertex]] = None
    triangle_count: int = field(init=False)

    def __post_init__(self) -> None:
        self.triangle_count = count_triangles(self.indices, len(self.vertices))

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def index_count(self) -> int:
        return len(self.indices)

    def primitives(self) -> Iterator[Primitive]:
        """Strips and triangles of this mesh."""
        return iter_primitives(self.indices)

    def update_animation(self, skeleton: Optional[Skeleton]) -> None:
        """Skin the bind-pose vertices with the skeleton's current world poses."""
        if skeleton is None:
            return
        skinned = []
        for vertex in self.vertices:
            if vertex.bone_weight > 0.0 and vertex.bone_id < skeleton.bone_count:
                bone = skeleton.bones[vertex.bone_id]
                skin = matrix_multiply(bone.inverse_bind_matrix, bone.world_pose)
                moved = vector3_transform(Vector3(vertex.x, vertex.y, vertex.z), skin)
                vertex = replace(vertex, x=moved.x, y=moved.y, z=moved.z)
            skinned.append(vertex)
        self.animated_vertices = skinned


@dataclass
class Model:
    """A loaded model: meshes, optional skeleton and texture slots."""

    meshes: list[Mesh]
    skeleton: Optional[Skeleton] = None
    textures: list = field(default_factory=list)

    @property
    def mesh_count(self) -> int:
        return len(self.meshes)

    @property
    def texture_count(self) -> int:
        return len(self.textures)

    def update_animation(self, delta_time: float) -> None:
        """Advance the current animation and recompute every bone's world pose."""
        skeleton = self.skeleton
        if skeleton is None or not skeleton.animations:
            return
        anim = skeleton.animations[skeleton.current_anim]
        if anim.duration <= 0.0:
            raise ValueError(f"animation {anim.name!r} has no positive duration")

        skeleton.current_time += delta_time
        while skeleton.current_time >= anim.duration:
            skeleton.current_time -= anim.duration

        if anim.frame_count < 2:
            return

        time_per_frame = anim.duration / anim.frame_count
        frame = min(int(skeleton.current_time / time_per_frame), anim.frame_count - 1)
        next_frame = (frame + 1) % anim.frame_count
        alpha = math.fmod(skeleton.current_time, time_per_frame) / time_per_frame

        bone_count = skeleton.bone_count
        for i, bone in enumerate(skeleton.bones):
            current = anim.frame_poses[frame * bone_count + i]
            following = anim.frame_poses[next_frame * bone_count + i]
            pose = Transform(
                translation=vector3_lerp(current.translation, following.translation, alpha),
                rotation=quaternion_slerp(current.rotation, following.rotation, alpha),
                scale=vector3_lerp(current.scale, following.scale, alpha),
            )
            bone.local_pose = pose

            scaled_rotated = matrix_multiply(
                matrix_scale(pose.scale.x, pose.scale.y, pose.scale.z),
                quaternion_to_matrix(pose.rotation),
            )
            local = matrix_multiply(
                scaled_rotated,
                matrix_translate(pose.translation.x, pose.translation.y, pose.translation.z),
            )
            if bone.parent >= 0:
                bone.world_pose = matrix_multiply(local, skeleton.bones[bone.parent].world_pose)
            else:
                bone.world_pose = local


class _Reader:
    """Sequential little-endian reader that raises on short data."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    def unpack(self, layout: struct.Struct, what: str) -> tuple:
        end = self._pos + layout.size
        if end > len(self._data):
            raise DMSFormatError(f"data ends while reading {what}")
        values = layout.unpack_from(self._data, self._pos)
        self._pos = end
        return values

    def unpack_many(self, layout: struct.Struct, count: int, what: str) -> list[tuple]:
        if count < 0:
            raise DMSFormatError(f"negative count for {what}")
        end = self._pos + layout.size * count
        if end > len(self._data):
            raise DMSFormatError(f"data ends while reading {what}")
        values = list(layout.iter_unpack(self._data[self._pos:end]))
        self._pos = end
        return values


def _transform(values: Sequence[float]) -> Transform:
    return Transform(
        translation=Vector3(*values[0:3]),
        rotation=Quaternion(*values[3:7]),
        scale=Vector3(*values[7:10]),
    )


def _name(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def _to_int8(value: float) -> int:
    return max(-128, min(127, math.trunc(value)))


def _read_skeleton(reader: _Reader, bone_count: int) -> Skeleton:
    bones = []
    for number in range(bone_count):
        record = reader.unpack(_BONE, f"bone {number}")
        bones.append(
            Bone(
                name=_name(record[0]),
                parent=record[1],
                bind_pose=_transform(record[2:12]),
                inverse_bind_matrix=Matrix(*record[12:28]),
            )
        )

    (anim_count,) = reader.unpack(_COUNT, "animation count")
    animations = []
    for number in range(anim_count):
        name, anim_bones, frames, duration = reader.unpack(_ANIMATION, f"animation {number}")
        poses = reader.unpack_many(_TRANSFORM, frames * anim_bones, f"poses of animation {number}")
        animations.append(
            Animation(
                name=_name(name),
                bone_count=anim_bones,
                frame_count=frames,
                duration=duration,
                frame_poses=[_transform(values) for values in poses],
            )
        )
    return Skeleton(bones=bones, animations=animations)


def _read_mesh(reader: _Reader, number: int, skinned: bool) -> Mesh:
    vertex_count, index_count, texture_id = reader.unpack(_MESH, f"mesh {number} header")
    if skinned:
        vertices = [
            Vertex(x, y, z, nx, ny, nz, u, v, bone_id, weight)
            for x, y, z, nx, ny, nz, u, v, bone_id, weight in reader.unpack_many(
                _SKINNED_VERTEX, vertex_count, f"vertices of mesh {number}"
            )
        ]
    else:
        vertices = [
            Vertex(x, y, z, _to_int8(nx), _to_int8(ny), _to_int8(nz), u, v)
            for x, y, z, nx, ny, nz, u, v in reader.unpack_many(
                _STATIC_VERTEX, vertex_count, f"vertices of mesh {number}"
            )
        ]
    indices = [
        value
        for (value,) in reader.unpack_many(_INDEX, index_count, f"indices of mesh {number}")
    ]
    return Mesh(
        vertices=vertices,
        indices=indices,
        texture_id=texture_id,
        animated_vertices=list(vertices) if skinned else None,
    )


def parse_model(data: bytes) -> Model:
    """Parse the bytes of a DMS file into a :class:`Model`."""
    reader = _Reader(data)
    magic, _version, mesh_count, bone_count = reader.unpack(_HEADER, "file header")
    if magic != DMS_MAGIC_NUMBER:
        raise DMSFormatError(f"invalid file format: magic {magic:#010x}")

    if bone_count > 0:
        skeleton: Optional[Skeleton] = _read_skeleton(reader, bone_count)
    else:
        skeleton = None
        reader.unpack(_COUNT, "animation count")

    meshes = [_read_mesh(reader, number, skeleton is not None) for number in range(mesh_count)]
    highest_texture = max((mesh.texture_id for mesh in meshes), default=-1)
    textures = [None] * (highest_texture + 1 if highest_texture >= 0 else 0)
    return Model(meshes=meshes, skeleton=skeleton, textures=textures)


def load_model(path: Union[str, PathLike]) -> Model:
    """Read and parse a DMS file from disk."""
    with open(path, "rb") as handle:
        return parse_model(handle.read())