import struct

import pytest

from dmsview.dms import (
    DMS_MAGIC_NUMBER,
    DMSFormatError,
    Mesh,
    Primitive,
    Vertex,
    count_triangles,
    iter_primitives,
    load_model,
    parse_model,
)
from dmsview.raymath import matrix_identity

IDENTITY = tuple(matrix_identity())


def strip(strip_id, *numbers):
    return [0x80000000 | (strip_id << 24) | n for n in numbers]


def static_file(meshes):
    data = struct.pack("<4I", DMS_MAGIC_NUMBER, 1, len(meshes), 0)
    data += struct.pack("<I", 0)
    for vertices, indices, texture_id in meshes:
        data += struct.pack("<IIi", len(vertices), len(indices), texture_id)
        for vertex in vertices:
            data += struct.pack("<8f", *vertex)
        data += struct.pack(f"<{len(indices)}I", *indices)
    return data


def pose(tx=0.0, ty=0.0, tz=0.0):
    return (tx, ty, tz, 0.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0)


def skinned_file(frames, duration=1.0, vertices=None):
    data = struct.pack("<4I", DMS_MAGIC_NUMBER, 1, 1, 1)
    data += struct.pack("<64si10f16f", b"root", -1, *pose(), *IDENTITY)
    data += struct.pack("<I", 1)
    data += struct.pack("<32siif", b"walk", 1, len(frames), duration)
    for frame in frames:
        data += struct.pack("<10f", *frame)
    vertices = vertices or [
        (0.0, 0.0, 0.0, 1, 0, 0, 0.0, 0.0, 0, 1.0),
        (5.0, 0.0, 0.0, 0, 1, 0, 1.0, 0.0, 0, 0.0),
        (0.0, 5.0, 0.0, 0, 0, 1, 0.0, 1.0, 7, 1.0),
    ]
    data += struct.pack("<IIi", len(vertices), 3, 0)
    for vertex in vertices:
        data += struct.pack("<3f3bx2fB3xf", *vertex)
    data += struct.pack("<3I", 0, 1, 2)
    return data


TRIANGLE = [
    (0.0, 0.0, 0.0, 0.5, 1.0, -1.0, 0.0, 0.0),
    (1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 1.0, 0.0),
    (0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 1.0),
]


def test_magic_mismatch_raises():
    data = b"XXXX" + static_file([])[4:]
    with pytest.raises(DMSFormatError):
        parse_model(data)


def test_truncated_header_raises():
    with pytest.raises(DMSFormatError):
        parse_model(b"DMST\x01\x00")


def test_truncated_indices_raise():
    data = static_file([(TRIANGLE, [0, 1, 2], 0)])
    with pytest.raises(DMSFormatError):
        parse_model(data[:-4])


def test_magic_bytes_spell_dmst():
    model = parse_model(b"DMST" + static_file([])[4:])
    assert model.mesh_count == 0
    assert model.texture_count == 0


def test_static_model_fields():
    model = parse_model(static_file([(TRIANGLE, [0, 1, 2], 2)]))
    assert model.skeleton is None
    assert model.texture_count == 3
    mesh = model.meshes[0]
    assert mesh.vertex_count == 3
    assert mesh.indices == [0, 1, 2]
    assert mesh.triangle_count == 1
    assert mesh.animated_vertices is None
    first = mesh.vertices[0]
    assert (first.nx, first.ny, first.nz) == (0, 1, -1)
    assert (first.bone_id, first.bone_weight) == (0, 0.0)
    assert mesh.vertices[1].u == 1.0


def test_texture_count_uses_highest_id_over_meshes():
    model = parse_model(
        static_file([(TRIANGLE, [0, 1, 2], 1), (TRIANGLE, [0, 1, 2], 0)])
    )
    assert model.texture_count == 2
    assert model.textures == [None, None]


def test_negative_texture_ids_give_no_textures():
    model = parse_model(static_file([(TRIANGLE, [0, 1, 2], -1)]))
    assert model.texture_count == 0


def test_mesh_without_indices_counts_vertices():
    model = parse_model(static_file([(TRIANGLE * 2, [], 0)]))
    assert model.meshes[0].triangle_count == 2


def test_strip_primitive():
    primitives = list(iter_primitives(strip(1, 0, 1, 2, 3)))
    assert primitives == [Primitive(True, (0, 1, 2, 3))]
    assert primitives[0].triangle_count == 2


def test_strip_ids_split_strips_and_lists_follow():
    indices = strip(1, 0, 1, 2) + strip(2, 3, 4, 5, 6) + [7, 8, 9]
    primitives = list(iter_primitives(indices))
    assert [p.strip for p in primitives] == [True, True, False]
    assert primitives[1].indices == (3, 4, 5, 6)
    assert primitives[2].indices == (7, 8, 9)
    assert count_triangles(indices, 10) == sum(p.triangle_count for p in primitives)


def test_trailing_list_entries_skipped():
    primitives = list(iter_primitives([0, 1, 2, 3, 4]))
    assert primitives == [Primitive(False, (0, 1, 2))]


def test_short_strip_has_no_triangles():
    assert count_triangles(strip(3, 0, 1), 2) == 0


def test_mesh_computes_triangle_count():
    vertices = [Vertex(float(n), 0.0, 0.0) for n in range(4)]
    mesh = Mesh(vertices=vertices, indices=strip(0, 0, 1, 2, 3))
    assert mesh.triangle_count == 2
    assert list(mesh.primitives()) == [Primitive(True, (0, 1, 2, 3))]


def test_skinned_model_loads_skeleton():
    model = parse_model(skinned_file([pose(), pose(2.0)]))
    skeleton = model.skeleton
    assert skeleton.bone_count == 1
    assert skeleton.bones[0].name == "root"
    assert skeleton.bones[0].parent == -1
    assert skeleton.animations[0].name == "walk"
    assert skeleton.animations[0].frame_count == 2
    mesh = model.meshes[0]
    assert mesh.animated_vertices == mesh.vertices
    assert mesh.vertices[2].bone_id == 7


def test_animation_interpolates_translation():
    model = parse_model(skinned_file([pose(), pose(2.0)]))
    model.update_animation(0.25)
    bone = model.skeleton.bones[0]
    assert bone.local_pose.translation.x == pytest.approx(1.0)
    assert bone.world_pose.m12 == pytest.approx(1.0)
    assert bone.world_pose.m0 == pytest.approx(1.0)


def test_mesh_skinning_moves_weighted_vertices_only():
    model = parse_model(skinned_file([pose(), pose(2.0)]))
    model.update_animation(0.25)
    mesh = model.meshes[0]
    mesh.update_animation(model.skeleton)
    moved, unweighted, out_of_range = mesh.animated_vertices
    assert (moved.x, moved.y, moved.z) == pytest.approx((1.0, 0.0, 0.0))
    assert unweighted == mesh.vertices[1]
    assert out_of_range == mesh.vertices[2]


def test_animation_time_loops():
    model = parse_model(skinned_file([pose(), pose(2.0)]))
    model.update_animation(1.25)
    assert model.skeleton.current_time == pytest.approx(0.25)


def test_single_frame_animation_leaves_bones():
    model = parse_model(skinned_file([pose(3.0)]))
    before = model.skeleton.bones[0].world_pose
    model.update_animation(0.5)
    assert model.skeleton.current_time == pytest.approx(0.5)
    assert model.skeleton.bones[0].world_pose == before


def test_static_model_update_is_noop():
    model = parse_model(static_file([(TRIANGLE, [0, 1, 2], 0)]))
    model.update_animation(0.5)
    model.meshes[0].update_animation(None)
    assert model.skeleton is None
    assert model.meshes[0].animated_vertices is None


def test_zero_duration_raises():
    model = parse_model(skinned_file([pose(), pose(1.0)], duration=0.0))
    with pytest.raises(ValueError):
        model.update_animation(0.1)


def test_load_model_from_disk(tmp_path):
    path = tmp_path / "ball.dms"
    path.write_bytes(static_file([(TRIANGLE, strip(1, 0, 1, 2), 0)]))
    model = load_model(path)
    assert model.meshes[0].triangle_count == 1
    assert model.texture_count == 1


def test_load_model_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_model(tmp_path / "missing.dms")