"""Small vector, quaternion and 4x4 matrix toolkit used by the model code.

Matrices follow the column-vector convention: ``m12``, ``m13`` and ``m14``
hold the translation, and a point is transformed as ``M @ (x, y, z, 1)``.
The dataclass fields of :class:`Matrix` are declared in storage order
(``m0, m4, m8, m12, m1, ...``), so ``Matrix(*floats)`` builds a matrix
straight from sixteen values as they are laid out in a file.
"""

from __future__ import annotations

import math
from dataclasses import astuple, dataclass
from typing import Iterator, Sequence

PI = 3.1415926
EPSILON = 0.000001


@dataclass(frozen=True)
class Vector2:
    """Two-component vector."""

    x: float = 0.0
    y: float = 0.0

    def __iter__(self) -> Iterator[float]:
        return iter(astuple(self))


@dataclass(frozen=True)
class Vector3:
    """Three-component vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __iter__(self) -> Iterator[float]:
        return iter(astuple(self))


@dataclass(frozen=True)
class Vector4:
    """Four-component vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 0.0

    def __iter__(self) -> Iterator[float]:
        return iter(astuple(self))


@dataclass(frozen=True)
class Quaternion(Vector4):
    """Rotation quaternion stored as (x, y, z, w)."""


@dataclass(frozen=True)
class Matrix:
    """4x4 matrix; fields are listed row by row in storage order."""

    m0: float = 0.0
    m4: float = 0.0
    m8: float = 0.0
    m12: float = 0.0
    m1: float = 0.0
    m5: float = 0.0
    m9: float = 0.0
    m13: float = 0.0
    m2: float = 0.0
    m6: float = 0.0
    m10: float = 0.0
    m14: float = 0.0
    m3: float = 0.0
    m7: float = 0.0
    m11: float = 0.0
    m15: float = 0.0

    def __iter__(self) -> Iterator[float]:
        return iter(astuple(self))


def _rows(mat: Matrix) -> list[tuple[float, ...]]:
    values = astuple(mat)
    return [values[start:start + 4] for start in range(0, 16, 4)]


def _from_rows(rows: Sequence[Sequence[float]]) -> Matrix:
    return Matrix(*(value for row in rows for value in row))


def float_equals(x: float, y: float) -> bool:
    """Return True when two floats are equal within a relative epsilon."""
    return abs(x - y) <= EPSILON * max(1.0, abs(x), abs(y))


def vector3_zero() -> Vector3:
    """Vector with every component set to zero."""
    return Vector3(0.0, 0.0, 0.0)


def vector3_add(v1: Vector3, v2: Vector3) -> Vector3:
    """Component-wise sum of two vectors."""
    return Vector3(v1.x + v2.x, v1.y + v2.y, v1.z + v2.z)


def vector3_scale(v: Vector3, scalar: float) -> Vector3:
    """Multiply every component by ``scalar``."""
    return Vector3(v.x * scalar, v.y * scalar, v.z * scalar)


def vector3_length(v: Vector3) -> float:
    """Euclidean length of a vector."""
    return math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z)


def vector3_negate(v: Vector3) -> Vector3:
    """Vector pointing the opposite way."""
    return Vector3(-v.x, -v.y, -v.z)


def vector3_transform(v: Vector3, mat: Matrix) -> Vector3:
    """Transform a point (w = 1) by a matrix."""
    point = (v.x, v.y, v.z, 1.0)
    x, y, z = (
        sum(p * m for p, m in zip(point, row)) for row in _rows(mat)[:3]
    )
    return Vector3(x, y, z)


def vector3_lerp(v1: Vector3, v2: Vector3, amount: float) -> Vector3:
    """Linear interpolation between two vectors."""
    return Vector3(
        v1.x + amount * (v2.x - v1.x),
        v1.y + amount * (v2.y - v1.y),
        v1.z + amount * (v2.z - v1.z),
    )


def matrix_identity() -> Matrix:
    """Identity matrix."""
    return Matrix(
        1.0, 0.0, 0.0, 0.0,
        0.0, 1.0, 0.0, 0.0,
        0.0, 0.0, 1.0, 0.0,
        0.0, 0.0, 0.0, 1.0,
    )


def matrix_translate(x: float, y: float, z: float) -> Matrix:
    """Translation matrix."""
    return Matrix(
        1.0, 0.0, 0.0, x,
        0.0, 1.0, 0.0, y,
        0.0, 0.0, 1.0, z,
        0.0, 0.0, 0.0, 1.0,
    )


def matrix_scale(x: float, y: float, z: float) -> Matrix:
    """Scaling matrix."""
    return Matrix(
        x, 0.0, 0.0, 0.0,
        0.0, y, 0.0, 0.0,
        0.0, 0.0, z, 0.0,
        0.0, 0.0, 0.0, 1.0,
    )


def matrix_multiply(left: Matrix, right: Matrix) -> Matrix:
    """Combine two transforms so that ``left`` is applied first, then ``right``."""
    columns = list(zip(*_rows(left)))
    return _from_rows(
        [
            [sum(a * b for a, b in zip(row, column)) for column in columns]
            for row in _rows(right)
        ]
    )


def quaternion_identity() -> Quaternion:
    """Quaternion representing no rotation."""
    return Quaternion(0.0, 0.0, 0.0, 1.0)


def quaternion_slerp(q1: Quaternion, q2: Quaternion, amount: float) -> Quaternion:
    """Spherical linear interpolation between two quaternions."""
    cos_half_theta = q1.x * q2.x + q1.y * q2.y + q1.z * q2.z + q1.w * q2.w

    if cos_half_theta < 0:
        q2 = Quaternion(-q2.x, -q2.y, -q2.z, -q2.w)
        cos_half_theta = -cos_half_theta

    if abs(cos_half_theta) >= 1.0:
        return Quaternion(q1.x, q1.y, q1.z, q1.w)

    if cos_half_theta > 0.95:
        # Close enough that a normalised linear blend is accurate.
        x = q1.x + amount * (q2.x - q1.x)
        y = q1.y + amount * (q2.y - q1.y)
        z = q1.z + amount * (q2.z - q1.z)
        w = q1.w + amount * (q2.w - q1.w)
        length = math.sqrt(x * x + y * y + z * z + w * w)
        if length > 0.0:
            inv = 1.0 / length
            x, y, z, w = x * inv, y * inv, z * inv, w * inv
        return Quaternion(x, y, z, w)

    half_theta = math.acos(cos_half_theta)
    sin_half_theta = math.sqrt(1.0 - cos_half_theta * cos_half_theta)

    if abs(sin_half_theta) < EPSILON:
        return Quaternion(
            q1.x * 0.5 + q2.x * 0.5,
            q1.y * 0.5 + q2.y * 0.5,
            q1.z * 0.5 + q2.z * 0.5,
            q1.w * 0.5 + q2.w * 0.5,
        )

    ratio_a = math.sin((1 - amount) * half_theta) / sin_half_theta
    ratio_b = math.sin(amount * half_theta) / sin_half_theta
    return Quaternion(
        q1.x * ratio_a + q2.x * ratio_b,
        q1.y * ratio_a + q2.y * ratio_b,
        q1.z * ratio_a + q2.z * ratio_b,
        q1.w * ratio_a + q2.w * ratio_b,
    )


def quaternion_from_matrix(mat: Matrix) -> Quaternion:
    """Extract the rotation of a pure rotation matrix as a quaternion."""
    candidates = [
        mat.m0 + mat.m5 + mat.m10,
        mat.m0 - mat.m5 - mat.m10,
        mat.m5 - mat.m0 - mat.m10,
        mat.m10 - mat.m0 - mat.m5,
    ]
    biggest_index = 0
    biggest = candidates[0]
    for index, value in enumerate(candidates[1:], start=1):
        if value > biggest:
            biggest = value
            biggest_index = index

    biggest_val = math.sqrt(biggest + 1.0) * 0.5
    mult = 0.25 / biggest_val

    if biggest_index == 0:
        return Quaternion(
            (mat.m6 - mat.m9) * mult,
            (mat.m8 - mat.m2) * mult,
            (mat.m1 - mat.m4) * mult,
            biggest_val,
        )
    if biggest_index == 1:
        return Quaternion(
            biggest_val,
            (mat.m1 + mat.m4) * mult,
            (mat.m8 + mat.m2) * mult,
            (mat.m6 - mat.m9) * mult,
        )
    if biggest_index == 2:
        return Quaternion(
            (mat.m1 + mat.m4) * mult,
            biggest_val,
            (mat.m6 + mat.m9) * mult,
            (mat.m8 - mat.m2) * mult,
        )
    return Quaternion(
        (mat.m8 + mat.m2) * mult,
        (mat.m6 + mat.m9) * mult,
        biggest_val,
        (mat.m1 - mat.m4) * mult,
    )


def quaternion_to_matrix(q: Quaternion) -> Matrix:
    """Rotation matrix for a quaternion."""
    a2 = q.x * q.x
    b2 = q.y * q.y
    c2 = q.z * q.z
    ac = q.x * q.z
    ab = q.x * q.y
    bc = q.y * q.z
    ad = q.w * q.x
    bd = q.w * q.y
    cd = q.w * q.z

    return Matrix(
        m0=1 - 2 * (b2 + c2),
        m1=2 * (ab + cd),
        m2=2 * (ac - bd),
        m4=2 * (ab - cd),
        m5=1 - 2 * (a2 + c2),
        m6=2 * (bc + ad),
        m8=2 * (ac + bd),
        m9=2 * (bc - ad),
        m10=1 - 2 * (a2 + b2),
        m15=1.0,
    )


def matrix_decompose(mat: Matrix) -> tuple[Vector3, Quaternion, Vector3]:
    """Split a transform into ``(translation, rotation, scale)``."""
    translation = Vector3(mat.m12, mat.m13, mat.m14)

    a, b, c = mat.m0, mat.m4, mat.m8
    d, e, f = mat.m1, mat.m5, mat.m9
    g, h, i = mat.m2, mat.m6, mat.m10
    det = a * (e * i - f * h) + b * (f * g - d * i) + c * (d * h - e * g)

    scale = Vector3(
        vector3_length(Vector3(a, b, c)),
        vector3_length(Vector3(d, e, f)),
        vector3_length(Vector3(g, h, i)),
    )
    if det < 0:
        scale = vector3_negate(scale)

    if float_equals(det, 0.0):
        return translation, quaternion_identity(), scale

    unscaled = Matrix(
        m0=a / scale.x, m4=b / scale.x, m8=c / scale.x, m12=mat.m12,
        m1=d / scale.y, m5=e / scale.y, m9=f / scale.y, m13=mat.m13,
        m2=g / scale.z, m6=h / scale.z, m10=i / scale.z, m14=mat.m14,
        m3=mat.m3, m7=mat.m7, m11=mat.m11, m15=mat.m15,
    )
    return translation, quaternion_from_matrix(unscaled), scale