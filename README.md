# dmsview

`dmsview` reads DMS model files. These are compact little-endian binary
meshes with an optional skeleton and keyframed animations. The package
animates models on the CPU and turns them into display lists of projected
screen-space vertices. It uses only the standard library.

## Modules

### `dmsview.dms`

- `load_model(path)` and `parse_model(data)` read a `.dms` file into a
  `Model`. A `Model` holds its `Mesh`es, an optional `Skeleton` with its
  `Bone`s and `Animation`s, and one empty texture slot for each texture id
  the meshes use.
- A bad magic number or data that ends too early raises `DMSFormatError`,
  which is a `ValueError`.
- `Model.update_animation(delta_time)` advances the current animation,
  loops it, and works out every bone's world pose. An animation whose
  duration is not positive raises `ValueError`.
- `Mesh.update_animation(skeleton)` skins the bind-pose vertices with those
  poses and stores them in `Mesh.animated_vertices`.
- `iter_primitives(indices)` splits packed indices into `Primitive`s.
  In the packing the high bit marks a strip entry, bits 24–30 hold the strip
  id and the low 24 bits the vertex number. Other entries form a triangle
  list, read three at a time.
- `count_triangles(indices, vertex_count)` counts the triangles those
  primitives describe. Without indices it uses `vertex_count // 3`.

### `dmsview.raymath`

`Vector2`, `Vector3`, `Vector4`, `Quaternion` and `Matrix`, with helpers
such as:

- `vector3_transform`
- `vector3_lerp`
- `matrix_multiply`
- `quaternion_slerp`
- `quaternion_to_matrix`
- `quaternion_from_matrix`
- `matrix_decompose`, which returns `(translation, rotation, scale)`

### `dmsview.palette`

- `read_palette(path)` reads a palette file into a `Palette`. The file holds
  a four-byte tag, a 32-bit colour count and the 0xAARRGGBB colours. A
  truncated file raises `ValueError`.
- `convert_color(color, fmt)` converts a colour to one of the
  `PaletteFormat` values: `ARGB4444`, `RGB565` or `ARGB1555`. `ARGB8888`
  and unknown formats leave the colour unchanged.
- `load_palette(path, fmt, offset)` returns the converted entries as a dict
  keyed by palette slot, starting at `offset`.

### `dmsview.render`

- `model_view_matrix(...)` builds the full object-to-screen transform.
- `transform_point(...)` projects a point to screen x, y and 1/w.
- `render_model(...)` returns a display list. Each mesh gets a `PolyHeader`,
  followed by the `ScreenVertex` records of its strips and triangles. The
  last vertex of each strip or triangle has `end_of_strip` set.
- `texture_paths(stem, count)` gives the texture file names
  `<stem>0.dt`, `<stem>1.dt`, and so on.
- `Viewer` holds the viewer's placement and animation state.
  - `Viewer.handle_input(state, current_time)` applies a `ControllerState`
    (see `Buttons`). It returns `False` when START is held.
  - `Viewer.step(delta_time)` advances the animation, skins the meshes and
    renders a frame.

### `dmsview.benchmark`

- `make_ball_grid(count)` places up to 50 `Ball`s on a 10 × 5 grid.
- `render_frame(model, balls, scale)` spins every ball and renders all of
  them.
- `run_benchmark(model, frames, scale)` times a run and returns
  `FrameStats`, with `fps` and `pps` (triangles per second).

## Example

```python
from dmsview.dms import load_model
from dmsview.render import render_model

model = load_model("model.dms")
for mesh in model.meshes:
    print(mesh.vertex_count, "vertices,", mesh.triangle_count, "triangles")

model.update_animation(1 / 60)
for mesh in model.meshes:
    mesh.update_animation(model.skeleton)

display = render_model(model, 0.0, 3.14, 0.0, 0.0, 0.0, 4.0)
```

## Commands

```
dmsview path/to/model.dms [--frames N] [--texture-stem STEM]
dmsview-bench path/to/model.dms [--frames N] [--scale S]
```

### `dmsview`

1. Loads the model.
2. Lists the texture files expected for its slots, each marked found or
   missing.
3. Runs the given number of animated frames (60 by default).
4. Prints how many vertices the last frame produced.

### `dmsview-bench`

1. Prints the triangles per model and the total for the 44-ball grid.
2. Renders the grid for the given number of frames.
3. Prints the frames per second, the triangles per second and the triangle
   counts.

## What it does not do

- Nothing is drawn to a window or a screen. Rendering ends with the display
  list of `PolyHeader` and `ScreenVertex` records.
- `.dt` texture files are not read or decoded. The package only works out
  their names, and the model's texture slots start out empty.
- No game controller is read. `Viewer` reacts only to the `ControllerState`
  values passed to it.

## Tests

```
pip install -e ".[test]"
pytest
```