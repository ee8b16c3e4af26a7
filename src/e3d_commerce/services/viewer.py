"""
e3d_commerce.services.viewer

Renderer configuration for a product's glTF/GLB asset.

Responsibilities:
- Resolve the asset URL and loader decoders from the stored model metadata.
- Produce camera, lighting, orbit-control and canvas settings the web viewer
  hands to its renderer unchanged.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from e3d_commerce.db.models import ProductModel3D
from e3d_commerce.formatting import format_file_size
from e3d_commerce.settings import Settings

EnvironmentPreset = Literal[
    "warehouse", "forest", "city", "dawn", "night", "sunset", "apartment"
]


class ViewerOptions(BaseModel):
    auto_rotate: bool = True
    auto_rotate_speed: float = Field(default=0.5, gt=0, le=10)
    environment: EnvironmentPreset = "warehouse"
    background_color: str = Field(default="#f5f5f5", pattern=r"^#[0-9a-fA-F]{6}$")
    enable_fullscreen: bool = True


CAMERA = {"position": [0.0, 0.0, 2.5], "fov": 45}
LIGHTS = {
    "ambient": {"intensity": 0.7},
    "spot": {
        "position": [10, 10, 10],
        "angle": 0.15,
        "penumbra": 1,
        "intensity": 0.5,
        "cast_shadow": True,
    },
}
CONTROLS = {
    "enable_pan": True,
    "enable_zoom": True,
    "enable_rotate": True,
    "min_distance": 1.5,
    "max_distance": 10,
    "enable_damping": True,
    "damping_factor": 0.05,
}
BOUNDS_MARGIN = 1.2
DPR = [1, 2]


def model_url(model: ProductModel3D, *, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/{model.storage_key.lstrip('/')}"


def loader_config(model: ProductModel3D, *, draco_decoder_path: str) -> dict[str, Any]:
    compression = (model.compression or "").lower()
    return {
        "draco_decoder_path": draco_decoder_path if compression == "draco" else None,
        "meshopt": compression == "meshopt",
    }


def build_viewer_config(
    model: ProductModel3D,
    settings: Settings,
    options: ViewerOptions | None = None,
) -> dict[str, Any]:
    opts = options or ViewerOptions()
    return {
        "model": {
            "id": str(model.id),
            "url": model_url(model, base_url=settings.asset_base_url),
            "format": model.format,
            "compression": model.compression,
            "preview_url": model.preview_url,
            "size_bytes": model.size_bytes,
            "size": format_file_size(model.size_bytes),
        },
        "loader": loader_config(model, draco_decoder_path=settings.draco_decoder_path),
        "camera": dict(CAMERA),
        "lights": {name: dict(light) for name, light in LIGHTS.items()},
        "controls": {
            **CONTROLS,
            "auto_rotate": opts.auto_rotate,
            "auto_rotate_speed": opts.auto_rotate_speed,
        },
        "environment": {"preset": opts.environment, "background": opts.background_color},
        "bounds": {"fit": True, "clip": True, "observe": True, "margin": BOUNDS_MARGIN},
        "canvas": {
            "dpr": list(DPR),
            "shadows": True,
            "enable_fullscreen": opts.enable_fullscreen,
        },
    }
