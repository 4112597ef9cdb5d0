"""Tests for textures, hashing, and math helpers."""

import importlib.util
import unittest

import numpy as np

from LayerSmith.core import SurfaceContext, evaluate
from LayerSmith.core import graph as g
from LayerSmith.core.hashing import hash1d, hash2d, int_hash2d
from LayerSmith.core.mathutil import (
    remap, safe_divide, safe_normalize, smooth_max, smooth_min, unpack_normal,
)
from LayerSmith.core.texture import ImageTexture, SolidTexture, expand_to_rgba
from LayerSmith.errors import GraphError

HAS_CV2 = importlib.util.find_spec("cv2") is not None
_requires_cv2 = unittest.skipUnless(HAS_CV2, "cv2 (opencv) not installed")


@_requires_cv2
class TestImageTexture(unittest.TestCase):
    def test_texel_centres_are_exact(self):
        data = np.arange(16, dtype=np.float32).reshape(4, 4) / 16.0
        tex = ImageTexture(data)
        uv = np.array([[(1 + 0.5) / 4, (2 + 0.5) / 4]])
        out = tex.sample_array(uv)
        np.testing.assert_allclose(out[0, :3], data[2, 1], atol=1e-5)
        np.testing.assert_allclose(out[0, 3], 1.0)

    def test_wraps_outside_unit_square(self):
        data = np.random.rand(8, 8, 3).astype(np.float32)
        tex = ImageTexture(data)
        uv = np.array([[0.3, 0.6], [1.3, -0.4], [-2.7, 3.6]])
        out = tex.sample_array(uv)
        np.testing.assert_allclose(out[1], out[0], atol=1e-4)
        np.testing.assert_allclose(out[2], out[0], atol=1e-4)

    def test_bilinear_between_texels(self):
        data = np.array([[0.0, 1.0]], dtype=np.float32)
        tex = ImageTexture(data)
        out = tex.sample_array(np.array([[0.5, 0.5]]))
        np.testing.assert_allclose(out[0, 0], 0.5, atol=1e-3)

    def test_large_grid_samples(self):
        tex = ImageTexture(np.full((4, 4, 3), 0.25, dtype=np.float32))
        uv = np.random.rand(200, 200, 2)
        out = tex.sample_array(uv)
        self.assertEqual(out.shape, (200, 200, 4))
        np.testing.assert_allclose(out[..., :3], 0.25, atol=1e-5)

    def test_nan_texels_replaced(self):
        data = np.array([[np.nan, 1.0], [1.0, 1.0]], dtype=np.float32)
        with self.assertLogs("layered_material.texture", level="WARNING"):
            tex = ImageTexture(data)
        self.assertTrue(np.all(np.isfinite(tex.data)))

    def test_multichannel_lookup_on_grid(self):
        tex = ImageTexture(np.full((4, 4, 3), 0.5, dtype=np.float32))
        out = tex.sample_array(np.zeros((2, 2, 2)))
        self.assertEqual(out.shape, (2, 2, 4))
        np.testing.assert_allclose(out[..., :3], 0.5, atol=1e-5)
        np.testing.assert_allclose(out[..., 3], 1.0)

    def test_grey_image_stored_with_channel_axis(self):
        tex = ImageTexture(np.zeros((3, 5), dtype=np.float32))
        self.assertEqual(tex.data.shape, (3, 5, 1))
        self.assertEqual(tex.channels, 1)
        self.assertEqual((tex.width, tex.height), (5, 3))

    def test_rejects_bad_channel_count(self):
        with self.assertRaises(GraphError):
            ImageTexture(np.zeros((2, 2, 5)))

    def test_texture_node_evaluates(self):
        tex = ImageTexture(np.full((2, 2, 3), (0.1, 0.2, 0.3), dtype=np.float32))
        ctx = SurfaceContext.plane(3, 3)
        out = evaluate(g.texture(tex, g.uv()), ctx)
        self.assertEqual(out.shape, (3, 3, 4))
        np.testing.assert_allclose(out[1, 1], [0.1, 0.2, 0.3, 1.0], atol=1e-5)


class TestSolidTexture(unittest.TestCase):
    def test_grey_expands_to_rgba(self):
        out = SolidTexture((0.4,)).sample_array(np.zeros((2, 2)))
        np.testing.assert_allclose(out[0], [0.4, 0.4, 0.4, 1.0])

    def test_rgb_and_rgba_colours(self):
        rgb = SolidTexture((0.5, 0.25, 0.125)).sample_array(np.zeros((2, 2, 2)))
        self.assertEqual(rgb.shape, (2, 2, 4))
        np.testing.assert_allclose(rgb[1, 0], [0.5, 0.25, 0.125, 1.0])
        rgba = SolidTexture((0.1, 0.2, 0.3, 0.4))
        np.testing.assert_allclose(rgba.color, [0.1, 0.2, 0.3, 0.4])


class TestExpandToRgba(unittest.TestCase):
    def test_last_axis_is_channels(self):
        rgb = np.tile([0.2, 0.4, 0.6], (3, 1))
        out = expand_to_rgba(rgb)
        self.assertEqual(out.shape, (3, 4))
        np.testing.assert_allclose(out[2], [0.2, 0.4, 0.6, 1.0])
        grey_alpha = expand_to_rgba(np.array([[0.3, 0.5]]))
        np.testing.assert_allclose(grey_alpha[0], [0.3, 0.3, 0.3, 0.5])

    def test_rejects_five_channels(self):
        with self.assertRaises(GraphError):
            expand_to_rgba(np.zeros((2, 5)))


class TestHashing(unittest.TestCase):
    def setUp(self):
        self.ctx = SurfaceContext.plane(16, 16, uv_range=(0.0, 37.0))

    def test_hash2d_in_unit_range(self):
        out = evaluate(hash2d(g.uv()), self.ctx)
        self.assertEqual(out.shape, (16, 16, 3))
        self.assertGreaterEqual(out.min(), 0.0)
        self.assertLess(out.max(), 1.0)
        self.assertGreater(out.std(), 0.1)

    def test_hash2d_is_deterministic(self):
        a = evaluate(hash2d(g.uv()), self.ctx)
        b = evaluate(hash2d(g.uv()), self.ctx)
        np.testing.assert_array_equal(a, b)

    def test_hash2d_matches_reference(self):
        p = np.array([3.0, 7.0])
        p3 = np.array([p[0], p[1], p[0]]) * np.array([0.1031, 0.1030, 0.0973])
        p3 = p3 - np.floor(p3)
        dp = np.dot(p3, p3[[1, 2, 0]] + 33.33)
        expected = dp * (p3 + p3[[1, 0, 2]])
        expected = expected - np.floor(expected)
        out = evaluate(hash2d(g.const(3.0, 7.0)), self.ctx)[0, 0]
        np.testing.assert_allclose(out, expected, atol=1e-9)

    def test_int_hash_constant_within_cell(self):
        ctx = SurfaceContext.plane(8, 8, uv_range=(2.0, 3.0))
        out = evaluate(int_hash2d(g.uv()), ctx)
        self.assertAlmostEqual(float(out.std()), 0.0)

    def test_hash1d_range(self):
        out = evaluate(hash1d(g.uv().x * 13.0), self.ctx)
        self.assertGreaterEqual(out.min(), 0.0)
        self.assertLess(out.max(), 1.0)


class TestMathHelpers(unittest.TestCase):
    def setUp(self):
        self.ctx = SurfaceContext.plane(2, 2)

    def test_safe_divide_keeps_sign(self):
        np.testing.assert_allclose(evaluate(safe_divide(1.0, -0.0), self.ctx), 1e4)
        np.testing.assert_allclose(evaluate(safe_divide(1.0, -1e-6), self.ctx), -1e4)
        np.testing.assert_allclose(evaluate(safe_divide(1.0, 4.0), self.ctx), 0.25)

    def test_safe_normalize_fallback(self):
        out = evaluate(safe_normalize(g.const(0.0, 0.0, 0.0)), self.ctx)
        np.testing.assert_allclose(out[0, 0], [0.0, 0.0, 1.0])
        out = evaluate(safe_normalize(g.const(3.0, 0.0, 4.0)), self.ctx)
        np.testing.assert_allclose(out[0, 0], [0.6, 0.0, 0.8])

    def test_unpack_normal(self):
        out = evaluate(unpack_normal(g.const(0.5, 0.5, 1.0)), self.ctx)
        np.testing.assert_allclose(out[0, 0], [0.0, 0.0, 1.0])

    def test_smooth_min_approaches_min(self):
        out = evaluate(smooth_min(0.2, 0.9, 0.1), self.ctx)
        np.testing.assert_allclose(out, 0.2, atol=1e-9)
        out = evaluate(smooth_min(0.5, 0.5, 0.2), self.ctx)
        self.assertLess(float(out.max()), 0.5)
        out = evaluate(smooth_max(0.2, 0.9, 0.1), self.ctx)
        np.testing.assert_allclose(out, 0.9, atol=1e-9)

    def test_remap_rejects_empty_range(self):
        with self.assertRaises(ValueError):
            remap(g.const(0.5), 1.0, 1.0, 0.0, 1.0)


if __name__ == "__main__":
    unittest.main(verbosity=2)
