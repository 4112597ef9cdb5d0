"""Tests for packaging and pyproject.toml correctness."""

import os
import re
import tomllib
import unittest

import LayerSmith


def _load_pyproject():
    toml_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)), "pyproject.toml"
    )
    with open(toml_path, "rb") as f:
        return tomllib.load(f)


def _names(requirements):
    return {re.split(r"[<>=!~\[; ]", r, maxsplit=1)[0].lower() for r in requirements}


class TestPyproject(unittest.TestCase):
    def setUp(self):
        self.data = _load_pyproject()

    def test_runtime_dependencies(self):
        deps = _names(self.data["project"]["dependencies"])
        self.assertEqual(deps, {"numpy", "opencv-python", "pyyaml"})

    def test_test_extra_has_pytest(self):
        test_deps = _names(self.data["project"]["optional-dependencies"]["test"])
        self.assertIn("pytest", test_deps)

    def test_no_ml_runtime_dependencies(self):
        deps = _names(self.data["project"]["dependencies"])
        for heavy in ("torch", "onnx", "onnxruntime", "scipy", "pillow"):
            self.assertNotIn(heavy, deps)

    def test_version_matches_package(self):
        self.assertEqual(self.data["project"]["version"], LayerSmith.__version__)

    def test_public_api_is_exported(self):
        for name in LayerSmith.__all__:
            self.assertTrue(hasattr(LayerSmith, name), name)


if __name__ == "__main__":
    unittest.main(verbosity=2)
