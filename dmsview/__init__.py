"""Reading, animating and rendering DMS 3D model files to display lists."""

__version__ = "0.1.0"
__all__ = ["raymath", "palette", "dms", "render", "benchmark"]