"""Tests for noise layer transforms, stacking and bundled presets."""
from __future__ import annotations

import numpy as np
import pytest

from cavegen.noise_layers import BlendMode, HeightWindow, NoiseKind, NoiseLayer, NoiseLayerStack
from cavegen.presets import build_preset_stack, load_noise_presets

POINTS = np.array(
    [
        [0.3, 1.2, -4.5],
        [12.5, -3.0, 7.25],
        [-20.0, 8.5, 33.0],
        [45.5, 0.0, -12.0],
    ]
)


def _layer(**overrides) -> NoiseLayer:
    base = dict(kind=NoiseKind.GRADIENT, blend=BlendMode.ADD, frequency=0.1, octaves=2)
    base.update(overrides)
    return NoiseLayer(**base)


def _evaluate(layer: NoiseLayer, seed: int = 4) -> np.ndarray:
    return layer.evaluate_xyz(seed, POINTS[:, 0], POINTS[:, 1], POINTS[:, 2])


class TestNoiseLayer:
    # //1.- Vertical squash never divides by less than 0.01.
    def test_vertical_squash_is_floored(self):
        np.testing.assert_allclose(_evaluate(_layer(vertical_squash=0.0)), _evaluate(_layer(vertical_squash=0.01)))

    # //2.- Power curve reshapes magnitude while keeping sign.
    def test_power_curve_keeps_sign(self):
        linear = _evaluate(_layer(power=1.0))
        squared = _evaluate(_layer(power=2.0))
        np.testing.assert_allclose(squared, np.sign(linear) * linear ** 2)

    # //3.- Bias is added before the amplitude multiplier.
    def test_bias_then_amplitude(self):
        base = _evaluate(_layer())
        shaped = _evaluate(_layer(density_bias=0.25, amplitude=2.0))
        np.testing.assert_allclose(shaped, (base + 0.25) * 2.0)

    # //4.- Height window scales the layer by its falloff curve.
    def test_height_window_falloff(self):
        window = HeightWindow(min_height=0.0, max_height=10.0, falloff=((0.0, 1.0), (1.0, 0.0)))
        layer = _layer(density_bias=0.3, height_window=window)
        plain = _layer(density_bias=0.3)
        above = layer.evaluate_xyz(1, 2.0, 15.0, 3.0)
        below = layer.evaluate_xyz(1, 2.0, -5.0, 3.0)
        middle = layer.evaluate_xyz(1, 2.0, 5.0, 3.0)
        assert float(above) == pytest.approx(0.0)
        assert float(below) == pytest.approx(float(plain.evaluate_xyz(1, 2.0, -5.0, 3.0)))
        assert float(middle) == pytest.approx(0.5 * float(plain.evaluate_xyz(1, 2.0, 5.0, 3.0)))

    def test_invalid_parameters_raise(self):
        with pytest.raises(ValueError):
            _layer(octaves=0)
        with pytest.raises(ValueError):
            _layer(frequency=0.0)
        with pytest.raises(ValueError):
            HeightWindow(min_height=5.0, max_height=5.0)

    # //5.- Mapping payloads accept case-insensitive enum names.
    def test_from_mapping_parses_enum_names(self):
        layer = NoiseLayer.from_mapping(
            {
                "kind": "Composite_Cavern",
                "blend": "OVERRIDE",
                "offset": [1, 2, 3],
                "height_window": {"min_height": -1, "max_height": 1},
            }
        )
        assert layer.kind is NoiseKind.COMPOSITE_CAVERN
        assert layer.blend is BlendMode.OVERRIDE
        assert layer.offset == (1.0, 2.0, 3.0)
        assert layer.height_window == HeightWindow(min_height=-1.0, max_height=1.0)

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError, match="NoiseKind"):
            NoiseLayer.from_mapping({"kind": "simplexish"})


class TestNoiseLayerStack:
    # //1.- A stack without enabled layers contributes nothing.
    def test_empty_stack_is_zero(self):
        stack = NoiseLayerStack.from_layers([_layer(enabled=False)], seed=3)
        assert stack.is_empty
        np.testing.assert_array_equal(stack.evaluate_xyz(POINTS[:, 0], POINTS[:, 1], POINTS[:, 2]), 0.0)
        assert NoiseLayerStack().evaluate((1.0, 2.0, 3.0)) == 0.0

    # //2.- Each blend mode folds the layer into the running value.
    @pytest.mark.parametrize(
        "mode, combine",
        [
            (BlendMode.ADD, lambda a, b: a + b),
            (BlendMode.SUBTRACT, lambda a, b: a - b),
            (BlendMode.MULTIPLY, lambda a, b: a * b),
            (BlendMode.MIN, np.minimum),
            (BlendMode.MAX, np.maximum),
            (BlendMode.OVERRIDE, lambda a, b: b),
        ],
    )
    def test_blend_modes(self, mode, combine):
        first = _layer(kind=NoiseKind.CELLULAR, blend=BlendMode.OVERRIDE, density_bias=-0.2)
        second = _layer(kind=NoiseKind.RIDGED, blend=mode, offset=(5.0, 0.0, 5.0))
        stack = NoiseLayerStack.from_layers([first, second], seed=6)
        expected = combine(_evaluate(first, 6), _evaluate(second, 6))
        np.testing.assert_allclose(stack.evaluate_xyz(POINTS[:, 0], POINTS[:, 1], POINTS[:, 2]), expected)

    # //3.- Disabled layers are skipped without breaking the fold.
    def test_disabled_layers_are_skipped(self):
        active = _layer(kind=NoiseKind.VALUE)
        stack = NoiseLayerStack.from_layers([active, _layer(blend=BlendMode.MULTIPLY, enabled=False)], seed=2)
        np.testing.assert_allclose(stack.evaluate_xyz(POINTS[:, 0], POINTS[:, 1], POINTS[:, 2]), _evaluate(active, 2))

    def test_scalar_evaluation_matches_array(self):
        stack = NoiseLayerStack.from_layers([_layer(), _layer(kind=NoiseKind.CELLULAR, blend=BlendMode.MIN)], seed=8)
        array = stack.evaluate_xyz(POINTS[:, 0], POINTS[:, 1], POINTS[:, 2])
        for point, value in zip(POINTS, array):
            assert stack.evaluate(tuple(point)) == pytest.approx(float(value))


# //4.- Every bundled preset parses and produces finite values.
def test_bundled_presets_load_and_evaluate():
    presets = load_noise_presets()
    assert set(presets) == {
        "large_cavern_system",
        "tunnel_network",
        "vertical_shafts",
        "massive_chamber",
        "lavatubes",
    }
    for name in presets:
        stack = build_preset_stack(name, seed=12)
        values = stack.evaluate_xyz(POINTS[:, 0], POINTS[:, 1], POINTS[:, 2])
        assert np.isfinite(values).all()


def test_unknown_preset_raises():
    with pytest.raises(ValueError, match="Unknown noise preset"):
        build_preset_stack("crystal_grotto")
