"""Shared test fixtures."""

import shutil
import tempfile

import numpy as np
import pytest

from LayerSmith.core import ImageTexture, SurfaceContext


def make_checker(size=8, cells=2, low=0.0, high=1.0, channels=3):
    """Return a checkerboard texture with `cells` squares per side."""
    idx = (np.arange(size) * cells // size)
    board = (idx[:, None] + idx[None, :]) % 2
    values = np.where(board == 1, high, low).astype(np.float32)
    if channels > 1:
        values = np.repeat(values[..., None], channels, axis=-1)
    return ImageTexture(values, name="checker")


def make_constant(value, size=4):
    """Return an image texture filled with one RGB(A) value."""
    value = np.asarray(value, dtype=np.float32).reshape(-1)
    data = np.broadcast_to(value, (size, size, value.size)).copy()
    return ImageTexture(data, name=f"constant{tuple(value.tolist())}")


def make_ramp(size=16):
    """Single-channel texture rising from 0 to 1 along U."""
    ramp = np.tile(np.linspace(0.0, 1.0, size, dtype=np.float32), (size, 1))
    return ImageTexture(ramp, name="ramp")


def tilted_plane(height=8, width=8, normal=(0.0, 1.0, 0.0)):
    """Plane context whose world normal is overridden everywhere."""
    return SurfaceContext.plane(height, width).with_inputs(normal_world=normal)


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def plane_context():
    return SurfaceContext.plane(16, 16)


@pytest.fixture
def checker_texture():
    return make_checker()


@pytest.fixture
def white_texture():
    return make_constant((1.0, 1.0, 1.0))
