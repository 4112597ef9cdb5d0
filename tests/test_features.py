"""Tests for noise, texture bombing, parallax, edge wear, and triplanar sampling."""

import unittest

import numpy as np

from LayerSmith.config import (
    BombingSpec, CurvatureMethod, EdgeWearSpec, LayerSpec, NoiseSpec,
    ParallaxSpec, TextureMaps, TriplanarSpec, WearPattern,
)
from LayerSmith.core import ImageTexture, SolidTexture, SurfaceContext, SurfaceSample, evaluate
from LayerSmith.core import graph as g
from LayerSmith.core.hashing import hash2d
from LayerSmith.errors import ConfigError, LayerResolutionError
from LayerSmith.features.bombing import TextureBomber
from LayerSmith.features.edge_wear import EdgeWearCalculator
from LayerSmith.features.noise import NoiseGenerator
from LayerSmith.features.parallax import ParallaxMapper, view_dir_tangent
from LayerSmith.features.triplanar import TriplanarSampler, blend_weights

from conftest import make_checker, tilted_plane


class TestNoiseGenerator(unittest.TestCase):
    def setUp(self):
        self.ctx = SurfaceContext.plane(24, 24, uv_range=(0.0, 6.0))

    def _eval(self, node):
        return evaluate(node, self.ctx)

    def test_disabled_is_constant_one(self):
        out = self._eval(NoiseGenerator.generate(g.uv(), NoiseSpec()))
        np.testing.assert_allclose(out, 1.0)

    def test_all_types_in_unit_range(self):
        for noise_type in ("perlin", "fbm", "voronoi"):
            with self.subTest(noise_type=noise_type):
                spec = NoiseSpec(use_noise=True, noise_type=noise_type)
                out = self._eval(NoiseGenerator.generate(g.uv(), spec))
                self.assertGreaterEqual(out.min(), 0.0)
                self.assertLessEqual(out.max(), 1.0)
                self.assertGreater(out.std(), 0.01)

    def test_value_noise_hits_lattice_hash(self):
        node = NoiseGenerator.value_noise(g.const(3.0, 7.0))
        expected = self._eval(hash2d(g.const(3.0, 7.0)).x)
        np.testing.assert_allclose(self._eval(node), expected)

    def test_default_octaves(self):
        self.assertEqual(NoiseSpec(noise_type="fbm").effective_octaves, 4)
        self.assertEqual(NoiseSpec(noise_type="perlin").effective_octaves, 1)
        self.assertEqual(NoiseSpec(noise_type="voronoi", octaves=3).effective_octaves, 3)

    def test_threshold_pushes_values_to_extremes(self):
        raw_spec = NoiseSpec(use_noise=True, noise_type="fbm")
        cut_spec = NoiseSpec(use_noise=True, noise_type="fbm", threshold=0.5)
        raw = self._eval(NoiseGenerator.generate(g.uv(), raw_spec))
        cut = self._eval(NoiseGenerator.generate(g.uv(), cut_spec))
        np.testing.assert_allclose(cut[raw <= 0.4], 0.0)
        np.testing.assert_allclose(cut[raw >= 0.6], 1.0)

    def test_scale_changes_pattern(self):
        a = self._eval(NoiseGenerator.generate(g.uv(), NoiseSpec(use_noise=True)))
        b = self._eval(NoiseGenerator.generate(g.uv(), NoiseSpec(use_noise=True, scale=3.0)))
        self.assertFalse(np.allclose(a, b))

    def test_turbulence_and_domain_warp(self):
        turb = self._eval(NoiseGenerator.turbulence(g.uv(), 3))
        self.assertGreaterEqual(turb.min(), 0.0)
        self.assertLessEqual(turb.max(), 1.0)
        warped = NoiseGenerator.domain_warp(g.uv(), 0.5)
        self.assertEqual(warped.dim, 2)
        shift = self._eval(warped) - self._eval(g.uv())
        self.assertGreaterEqual(shift.min(), 0.0)
        self.assertLessEqual(shift.max(), 0.5 + 1e-9)

    def test_invalid_persistence_rejected(self):
        with self.assertRaises(ConfigError):
            NoiseSpec(persistence=0.0)


class TestTextureBomber(unittest.TestCase):
    def setUp(self):
        self.ctx = SurfaceContext.plane(16, 16, uv_range=(0.0, 4.0))
        self.solid = SolidTexture((0.2, 0.4, 0.6))

    def test_disabled_is_plain_lookup(self):
        node = TextureBomber.apply(self.solid, g.uv(), BombingSpec())
        self.assertEqual(node.op, "texture")

    def test_solid_texture_unchanged_by_every_method(self):
        for method in ("dual", "multi", "hex"):
            with self.subTest(method=method):
                spec = BombingSpec(enable=True, method=method, samples=8, blend_radius=1.0)
                out = evaluate(TextureBomber.apply(self.solid, g.uv(), spec), self.ctx)
                np.testing.assert_allclose(out[..., :3], [0.2, 0.4, 0.6])

    def test_multi_sample_defaults_never_go_black(self):
        white = ImageTexture(np.ones((4, 4), dtype=np.float32))
        ctx = SurfaceContext.plane(8, 8, uv_range=(0.0, 2.0))
        for samples in (4, 8):
            with self.subTest(samples=samples):
                spec = BombingSpec(enable=True, method="multi", samples=samples)
                out = evaluate(TextureBomber.apply(white, g.uv(), spec), ctx)
                np.testing.assert_allclose(out, 1.0, atol=1e-5)

    def test_multi_sample_tiny_radius_keeps_own_cell(self):
        white = ImageTexture(np.ones((4, 4), dtype=np.float32))
        node = TextureBomber.sample_multi(white, g.uv(), samples=8, blend_radius=0.01)
        out = evaluate(node, self.ctx)
        np.testing.assert_allclose(out, 1.0, atol=1e-5)

    def test_bombing_rearranges_checker(self):
        checker = make_checker(size=16, cells=4)
        plain = evaluate(g.texture(checker, g.uv()), self.ctx)
        bombed = evaluate(TextureBomber.sample(checker, g.uv(), 0.5), self.ctx)
        self.assertFalse(np.allclose(plain, bombed))
        self.assertGreaterEqual(bombed.min(), -1e-6)
        self.assertLessEqual(bombed.max(), 1.0 + 1e-6)

    def test_zero_blend_uses_own_cell_only(self):
        checker = make_checker(size=16, cells=4)
        no_blend = TextureBomber.sample(checker, g.uv(), 0.0, rotation=False, offset=False)
        out = evaluate(no_blend, self.ctx)
        plain = evaluate(g.texture(checker, g.uv()), self.ctx)
        np.testing.assert_allclose(out, plain, atol=1e-5)

    def test_spec_validation(self):
        with self.assertRaises(ConfigError):
            BombingSpec(samples=9)
        with self.assertRaises(ConfigError):
            BombingSpec(blend=1.5)


class TestParallaxMapper(unittest.TestCase):
    def setUp(self):
        self.ctx = SurfaceContext.plane(8, 8, camera=(0.3, 2.0, 0.2))
        self.uv = evaluate(g.uv(), self.ctx)

    def _offset(self, height, **spec):
        result = ParallaxMapper.offset(g.uv(), height, ParallaxSpec(enable=True, **spec))
        return evaluate(result, self.ctx) - self.uv

    def _expected_full_shift(self, scale):
        view = evaluate(view_dir_tangent(), self.ctx)
        return -view[..., :2] / np.maximum(view[..., 2:3], 0.1) * scale

    def test_disabled_returns_same_node(self):
        coord = g.uv()
        self.assertIs(ParallaxMapper.offset(coord, 0.5, ParallaxSpec()), coord)

    def test_tangent_view_is_unit(self):
        view = evaluate(view_dir_tangent(), self.ctx)
        np.testing.assert_allclose(np.linalg.norm(view, axis=-1), 1.0)

    def test_top_of_height_field_does_not_move(self):
        for method in ("simple", "steep", "pom"):
            with self.subTest(method=method):
                np.testing.assert_allclose(self._offset(1.0, method=method), 0.0, atol=1e-12)

    def test_simple_offset_is_clamped(self):
        ctx = SurfaceContext.plane(8, 8, camera=(50.0, 0.01, 0.0))
        spec = ParallaxSpec(enable=True, method="simple", scale=1.0, max_offset=0.05)
        shift = evaluate(ParallaxMapper.offset(g.uv(), 0.0, spec), ctx) - evaluate(g.uv(), ctx)
        self.assertLessEqual(np.abs(shift).max(), 0.05 + 1e-12)

    def test_steep_marches_all_steps_on_floor(self):
        shift = self._offset(0.0, method="steep", scale=0.08, steps=10)
        np.testing.assert_allclose(shift, self._expected_full_shift(0.08), atol=1e-9)

    def test_pom_stops_at_mid_height(self):
        shift = self._offset(0.5, method="pom", scale=0.1, steps=16)
        np.testing.assert_allclose(shift, 0.5 * self._expected_full_shift(0.1), atol=1e-9)

    def test_textured_height_field(self):
        shift = self._offset(SolidTexture((0.0,)), method="steep", scale=0.08, steps=4)
        np.testing.assert_allclose(shift, self._expected_full_shift(0.08), atol=1e-9)

    def test_quality_presets(self):
        self.assertEqual(ParallaxSpec(quality="low").effective_steps, 4)
        self.assertEqual(ParallaxSpec(quality="medium").effective_steps, 8)
        self.assertEqual(ParallaxSpec(quality="high").effective_steps, 12)
        self.assertEqual(ParallaxSpec(quality="high", steps=20).effective_steps, 20)
        self.assertAlmostEqual(ParallaxSpec(method="pom").effective_scale, 0.1)


class TestEdgeWearCalculator(unittest.TestCase):
    def setUp(self):
        self.sample = SurfaceSample.default()

    def test_disabled_returns_sample(self):
        self.assertIs(EdgeWearCalculator.apply(self.sample, EdgeWearSpec()), self.sample)

    def test_flat_surface_has_no_curvature_wear(self):
        ctx = SurfaceContext.plane(8, 8)
        worn = EdgeWearCalculator.apply(self.sample, EdgeWearSpec(enable=True))
        np.testing.assert_allclose(evaluate(worn.color, ctx), 0.8)

    def test_world_space_wear_on_side_faces(self):
        spec = EdgeWearSpec(
            enable=True, wear_pattern=WearPattern.WORLD_SPACE, affects_material=True,
        )
        worn = EdgeWearCalculator.apply(self.sample, spec)
        side = tilted_plane(normal=(1.0, 0.0, 0.0))
        np.testing.assert_allclose(evaluate(worn.color, side)[0, 0], [0.7, 0.6, 0.5])
        np.testing.assert_allclose(evaluate(worn.roughness, side), 0.3)
        np.testing.assert_allclose(evaluate(worn.metalness, side), 0.8)
        top = tilted_plane(normal=(0.0, 1.0, 0.0))
        np.testing.assert_allclose(evaluate(worn.color, top), 0.8)

    def test_curved_normals_produce_wear(self):
        ctx = SurfaceContext.plane(16, 16)
        bumpy = g.normalize(g.vec3(g.sin(g.uv().x * 40.0), 0.0, 1.0))
        mask = EdgeWearCalculator.wear_mask(bumpy, EdgeWearSpec(enable=True, intensity=4.0))
        out = evaluate(mask, ctx)
        self.assertGreater(out.max(), 0.0)
        self.assertLessEqual(out.max(), 1.0)

    def test_every_pattern_and_method_in_unit_range(self):
        ctx = SurfaceContext.plane(8, 8)
        normal = g.normalize(g.vec3(g.uv().x, g.uv().y, 1.0))
        for pattern in WearPattern:
            for method in CurvatureMethod:
                with self.subTest(pattern=pattern, method=method):
                    spec = EdgeWearSpec(
                        enable=True, wear_pattern=pattern, curvature_method=method,
                        use_noise=True,
                    )
                    out = evaluate(EdgeWearCalculator.wear_mask(normal, spec), ctx)
                    self.assertTrue(np.all(np.isfinite(out)))
                    self.assertGreaterEqual(out.min(), 0.0)
                    self.assertLessEqual(out.max(), 1.0)

    def test_wear_intensity(self):
        ctx = SurfaceContext.plane(2, 2)
        np.testing.assert_allclose(
            evaluate(EdgeWearCalculator.wear_intensity(1.0, 0.0, 1.0), ctx), 1.0
        )
        np.testing.assert_allclose(
            evaluate(EdgeWearCalculator.wear_intensity(0.2, 0.5, 1.0), ctx), 0.15
        )


class TestTriplanarSampler(unittest.TestCase):
    def test_requires_enable_flag(self):
        with self.assertRaises(LayerResolutionError) as cm:
            TriplanarSampler.sample(LayerSpec(name="rock"))
        self.assertIn("rock", str(cm.exception))

    def test_weights_sum_to_one(self):
        ctx = SurfaceContext.plane(4, 4)
        w = evaluate(blend_weights(g.const(0.3, -0.8, 0.5)), ctx)
        np.testing.assert_allclose(w.sum(axis=-1), 1.0, atol=1e-5)
        w = evaluate(blend_weights(g.const(0.0, 1.0, 0.0)), ctx)
        np.testing.assert_allclose(w[0, 0], [0.0, 1.0, 0.0], atol=1e-5)

    def test_solid_maps_resolve_through_all_projections(self):
        layer = LayerSpec(
            triplanar=TriplanarSpec(enable=True),
            maps=TextureMaps(
                color=SolidTexture((0.1, 0.5, 0.9)),
                normal=SolidTexture((0.5, 0.5, 1.0)),
                arm=SolidTexture((0.7, 0.3, 1.0)),
            ),
        )
        ctx = tilted_plane(normal=(0.6, 0.8, 0.0))
        values = TriplanarSampler.sample(layer).evaluate(ctx)
        np.testing.assert_allclose(values.color[0, 0], [0.1, 0.5, 0.9], atol=1e-5)
        np.testing.assert_allclose(values.ao, 0.7, atol=1e-5)
        np.testing.assert_allclose(values.roughness, 0.3, atol=1e-5)
        np.testing.assert_allclose(values.metalness, 1.0, atol=1e-5)
        np.testing.assert_allclose(np.linalg.norm(values.normal, axis=-1), 1.0, atol=1e-6)

    def test_flat_normal_map_faces_up_on_ground(self):
        layer = LayerSpec(
            triplanar=TriplanarSpec(enable=True),
            maps=TextureMaps(normal=SolidTexture((0.5, 0.5, 1.0))),
        )
        values = TriplanarSampler.sample(layer).evaluate(SurfaceContext.plane(4, 4))
        np.testing.assert_allclose(values.normal[0, 0], [0.0, 1.0, 0.0], atol=1e-6)
        np.testing.assert_allclose(values.height, 0.5)


if __name__ == "__main__":
    unittest.main(verbosity=2)
