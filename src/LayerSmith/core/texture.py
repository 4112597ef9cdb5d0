"""Texture abstraction consumed by the samplers.

Decoding image files is the host's job; textures here wrap arrays that are
already in memory and expose wrap-around bilinear sampling.
"""

import logging
from typing import Optional, Sequence

import cv2
import numpy as np

from ..errors import GraphError

logger = logging.getLogger("layered_material.texture")

_REMAP_ROW = 4096


def expand_to_rgba(arr: np.ndarray) -> np.ndarray:
    """Promote `(..., C)` data (C in 1..4) to RGBA; grey is replicated, alpha = 1."""
    channels = arr.shape[-1]
    if channels == 4:
        return arr
    alpha = np.ones(arr.shape[:-1] + (1,), dtype=arr.dtype)
    if channels == 1:
        return np.concatenate([arr, arr, arr, alpha], axis=-1)
    if channels == 2:
        grey, a = arr[..., :1], arr[..., 1:2]
        return np.concatenate([grey, grey, grey, a], axis=-1)
    if channels == 3:
        return np.concatenate([arr, alpha], axis=-1)
    raise GraphError(f"Textures support 1-4 channels, got {channels}")


class Texture:
    """Base class for anything that can be sampled by UV coordinates."""

    name: Optional[str] = None

    def sample_array(self, uv: np.ndarray) -> np.ndarray:
        """Return RGBA samples shaped `uv.shape[:-1] + (4,)`."""
        raise NotImplementedError


class ImageTexture(Texture):
    """Repeat-wrapped, bilinearly filtered 2D texture backed by an array.

    `data` is `H x W` or `H x W x C` (C in 1..4) in [0, 1]. Row 0 is
    `v = 0`; texel centres sit at `(i + 0.5) / size`.
    """

    def __init__(self, data, name: Optional[str] = None):
        arr = np.asarray(data, dtype=np.float32)
        if arr.ndim not in (2, 3) or arr.shape[0] < 1 or arr.shape[1] < 1:
            raise GraphError(f"ImageTexture expects HxW or HxWxC data, got {arr.shape}")
        if arr.ndim == 3 and not 1 <= arr.shape[2] <= 4:
            raise GraphError(f"ImageTexture supports 1-4 channels, got {arr.shape[2]}")
        if arr.ndim == 2:
            arr = arr[..., None]
        if not np.all(np.isfinite(arr)):
            logger.warning("Texture %s contains NaN/Inf texels; replacing with 0.", name)
            arr = np.nan_to_num(arr, nan=0.0, posinf=0.0, neginf=0.0)
        self.data = np.ascontiguousarray(arr)
        self.name = name

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def channels(self) -> int:
        return self.data.shape[2]

    def __repr__(self):
        return f"ImageTexture({self.name!r}, {self.width}x{self.height}x{self.channels})"

    def sample_array(self, uv: np.ndarray) -> np.ndarray:
        uv = np.asarray(uv, dtype=np.float64)
        lead = uv.shape[:-1]
        flat = uv.reshape(-1, 2)
        # Wrap to one period first: cv2.remap stores maps in fixed point.
        u = flat[:, 0] - np.floor(flat[:, 0])
        v = flat[:, 1] - np.floor(flat[:, 1])
        count = u.shape[0]
        # cv2.remap caps map sides below SHRT_MAX, so lay points out in rows.
        cols = max(1, min(count, _REMAP_ROW))
        rows = -(-count // cols)
        pad = rows * cols - count
        map_x = np.pad(u * self.width - 0.5, (0, pad)).astype(np.float32).reshape(rows, cols)
        map_y = np.pad(v * self.height - 0.5, (0, pad)).astype(np.float32).reshape(rows, cols)
        sampled = cv2.remap(
            self.data, map_x, map_y,
            interpolation=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_WRAP,
        )
        sampled = np.asarray(sampled, dtype=np.float64)
        if sampled.ndim == 2:
            sampled = sampled[..., None]
        sampled = sampled.reshape(-1, sampled.shape[-1])[:count]
        rgba = expand_to_rgba(sampled)
        return rgba.reshape(lead + (4,))


class SolidTexture(Texture):
    """Texture that returns one colour everywhere."""

    def __init__(self, color: Sequence[float], name: Optional[str] = None):
        rgba = expand_to_rgba(np.asarray(color, dtype=np.float64).reshape(1, -1))
        self.color = rgba.reshape(4)
        self.name = name

    def __repr__(self):
        return f"SolidTexture({self.color.tolist()})"

    def sample_array(self, uv: np.ndarray) -> np.ndarray:
        lead = np.asarray(uv).shape[:-1]
        return np.broadcast_to(self.color, lead + (4,)).copy()
