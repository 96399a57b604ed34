import tempfile
import unittest
import warnings
from pathlib import Path

import numpy as np

from src.leafdnn.domain._errors import (
    LayerConnectionError,
    ShapeMismatchError,
    UnsupportedLayerTypeError,
    WeightShareError,
)
from src.leafdnn.infrastructure.backend import NativeBackend
from src.leafdnn.infrastructure.layers import (
    DimCheckMode,
    Layer,
    LayerConfig,
    LinearConfig,
    NegativeLogLikelihoodConfig,
    ReLUConfig,
    ReshapeConfig,
    WeightConfig,
)
from src.leafdnn.infrastructure.models import SequentialConfig
from src.leafdnn.infrastructure.tensor import Blob, SharedTensor
from src.leafdnn.infrastructure.utils.weight_initializer import ConstantFiller


def t(arr) -> SharedTensor:
    return SharedTensor.from_numpy(np.asarray(arr, dtype=np.float32))


def registry_with(**arrays):
    registry = {}
    for name, arr in arrays.items():
        arr = np.asarray(arr, dtype=np.float32)
        blob = Blob.new(arr.shape)
        blob.data.copy_from_numpy(arr)
        registry[name] = blob
    return registry


class TestLinearLayer(unittest.TestCase):
    def setUp(self):
        self.backend = NativeBackend()
        np.random.seed(1)

    def _linear(self, x, output_size=2, params=()):
        cfg = LayerConfig("fc", LinearConfig(output_size), inputs=["x"])
        for p in params:
            cfg.add_weight(p)
        layer = Layer.from_config(self.backend, cfg)
        layer.connect(registry_with(x=x))
        return layer

    def test_weights_created_from_input_width(self):
        layer = self._linear(np.zeros((4, 3)))
        weight, bias = layer.learnable_weights_data()
        self.assertEqual(weight.shape, (2, 3))
        self.assertEqual(bias.shape, (2,))
        np.testing.assert_array_equal(bias.to_numpy(), [0.0, 0.0])
        limit = np.sqrt(6.0 / 5.0)
        self.assertTrue(np.all(np.abs(weight.to_numpy()) <= limit + 1e-6))
        self.assertEqual(layer.learnable_weights_names(), ["fc-weight", "fc-bias"])
        self.assertEqual(layer.output_blobs_data[0].shape, (4, 2))

    def test_forward_and_gradients(self):
        x_np = np.array([[1.0, 2.0, 3.0], [0.5, -1.0, 0.0]], dtype=np.float32)
        layer = self._linear(x_np)
        w_np = np.array([[0.1, 0.2, 0.3], [-0.1, 0.0, 0.1]], dtype=np.float32)
        b_np = np.array([0.5, -0.5], dtype=np.float32)
        weight, bias = layer.learnable_weights_data()
        weight.copy_from_numpy(w_np)
        bias.copy_from_numpy(b_np)

        out = layer.forward()
        np.testing.assert_allclose(out[0].to_numpy(), x_np @ w_np.T + b_np, rtol=1e-6)

        dy_np = np.array([[1.0, 0.0], [2.0, -1.0]], dtype=np.float32)
        dx = layer.backward([t(dy_np)])
        np.testing.assert_allclose(dx[0].to_numpy(), dy_np @ w_np, rtol=1e-6)
        dw, db = layer.learnable_weights_gradients()
        np.testing.assert_allclose(dw.to_numpy(), dy_np.T @ x_np, rtol=1e-6)
        np.testing.assert_allclose(db.to_numpy(), dy_np.sum(axis=0), rtol=1e-6)

        # parameter gradients are overwritten, not accumulated
        layer.backward([t(dy_np)])
        np.testing.assert_allclose(dw.to_numpy(), dy_np.T @ x_np, rtol=1e-6)

    def test_update_weights_subtracts_gradient(self):
        layer = self._linear(np.ones((1, 2)), output_size=1)
        weight, bias = layer.learnable_weights_data()
        weight.copy_from_numpy([[1.0, 1.0]])
        dw, db = layer.learnable_weights_gradients()
        dw.copy_from_numpy([[0.25, -0.5]])
        db.copy_from_numpy([1.0])
        layer.update_weights()
        np.testing.assert_allclose(weight.to_numpy(), [[0.75, 1.5]])
        np.testing.assert_allclose(bias.to_numpy(), [-1.0])

    def test_weight_config_filler_and_multipliers(self):
        layer = self._linear(
            np.ones((1, 2)),
            params=[
                WeightConfig(filler=ConstantFiller(0.5), lr_mult=2.0),
                WeightConfig(decay_mult=0.0),
            ],
        )
        np.testing.assert_array_equal(
            layer.learnable_weights_data()[0].to_numpy(), np.full((2, 2), 0.5)
        )
        self.assertEqual(layer.learnable_weights_lr(), [2.0, 1.0])
        self.assertEqual(layer.learnable_weights_decay(), [1.0, 0.0])

    def test_batch_size_change_propagates(self):
        layer = self._linear(np.zeros((4, 3)))
        out = layer.forward([t(np.ones((6, 3)))])
        self.assertEqual(out[0].shape, (6, 2))

    def test_binding_wrong_sample_size(self):
        layer = self._linear(np.zeros((4, 3)))
        with self.assertRaises(ShapeMismatchError):
            layer.forward([t(np.ones((4, 2)))])


class TestConnection(unittest.TestCase):
    def setUp(self):
        self.backend = NativeBackend()

    def test_unknown_input_name(self):
        layer = Layer.from_config(
            self.backend, LayerConfig("relu", ReLUConfig(), inputs=["missing"])
        )
        with self.assertRaises(LayerConnectionError):
            layer.connect(registry_with(x=[1.0]))

    def test_wrong_input_count(self):
        layer = Layer.from_config(
            self.backend,
            LayerConfig("relu", ReLUConfig(), inputs=["a", "b"]),
        )
        with self.assertRaises(LayerConnectionError):
            layer.connect(registry_with(a=[1.0], b=[1.0]))

    def test_named_output_is_registered(self):
        registry = registry_with(x=[1.0, -1.0])
        layer = Layer.from_config(
            self.backend,
            LayerConfig("relu", ReLUConfig(), inputs=["x"], outputs=["act"]),
        )
        layer.connect(registry)
        self.assertIn("act", registry)
        self.assertIs(registry["act"].data, layer.output_blobs_data[0])

    def test_in_place_layer_writes_into_input_blob(self):
        registry = registry_with(x=np.zeros((2, 2)))
        layer = Layer.from_config(
            self.backend, LayerConfig("reshape", ReshapeConfig((4,)), inputs=["x"])
        )
        layer.connect(registry)
        self.assertEqual(layer.output_blob_names, ["x"])
        self.assertIs(layer.output_blobs_data[0], layer.input_blobs_data[0])
        self.assertEqual(registry["x"].data.shape, (4,))

    def test_extra_weight_configs_warn(self):
        layer = Layer.from_config(
            self.backend,
            LayerConfig(
                "relu", ReLUConfig(), inputs=["x"], params=[WeightConfig(lr_mult=2.0)]
            ),
        )
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            layer.connect(registry_with(x=[1.0]))
        self.assertTrue(any(issubclass(w.category, RuntimeWarning) for w in caught))

    def test_propagate_down_disabled(self):
        layer = Layer.from_config(
            self.backend,
            LayerConfig("relu", ReLUConfig(), inputs=["x"], propagate_down=[False]),
        )
        layer.connect(registry_with(x=[1.0, 2.0]))
        layer.forward()
        grads = layer.backward([t([5.0, 5.0])])
        np.testing.assert_array_equal(grads[0].to_numpy(), [0.0, 0.0])


class TestWeightSharing(unittest.TestCase):
    def setUp(self):
        self.backend = NativeBackend()

    def _connect(self, registry, weights, name, output_size=2, mode=DimCheckMode.STRICT):
        layer = Layer.from_config(
            self.backend,
            LayerConfig(
                name,
                LinearConfig(output_size),
                inputs=["x"],
                params=[WeightConfig(name="shared_w", share_mode=mode)],
            ),
        )
        layer.connect(registry, weights)
        return layer

    def test_second_layer_reuses_owner_weight(self):
        registry, weights = registry_with(x=np.ones((1, 3))), {}
        owner = self._connect(registry, weights, "fc1")
        sharer = self._connect(registry, weights, "fc2")
        self.assertIs(sharer.weights_data[0], owner.weights_data[0])
        self.assertIsNot(sharer.weights_gradient[0], owner.weights_gradient[0])
        self.assertEqual(weights["shared_w"][0], "fc1")

    def test_strict_shape_mismatch(self):
        registry, weights = registry_with(x=np.ones((1, 3))), {}
        self._connect(registry, weights, "fc1", output_size=2)
        with self.assertRaises(WeightShareError):
            self._connect(registry, weights, "fc2", output_size=3)


class TestLayerConfigDict(unittest.TestCase):
    def test_round_trip(self):
        net = SequentialConfig(force_backward=True)
        net.add_input("data", (2, 4))
        net.add_layer(
            LayerConfig("fc", LinearConfig(3)).add_weight(
                WeightConfig(name="w", lr_mult=0.5)
            )
        )
        net.add_layer(LayerConfig("relu", ReLUConfig()))
        cfg = LayerConfig("network", net)
        self.assertEqual(LayerConfig.from_dict(cfg.to_dict()), cfg)

    def test_variant_name_stored(self):
        d = LayerConfig("nll", NegativeLogLikelihoodConfig(10)).to_dict()
        self.assertEqual(d["layer_type"]["type"], "negative_log_likelihood")
        self.assertEqual(d["layer_type"]["config"], {"num_classes": 10})

    def test_unknown_variant_name(self):
        d = LayerConfig("relu", ReLUConfig()).to_dict()
        d["layer_type"]["type"] = "convolution"
        with self.assertRaises(UnsupportedLayerTypeError):
            LayerConfig.from_dict(d)


class TestCheckpoint(unittest.TestCase):
    def test_save_and_load_json(self):
        backend = NativeBackend()
        net = SequentialConfig()
        net.add_input("data", (2, 3))
        net.add_layer(LayerConfig("fc", LinearConfig(2)))
        layer = Layer.from_config(backend, LayerConfig("network", net))
        layer.learnable_weights_data()[1].copy_from_numpy([0.5, -0.5])

        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "ckpt" / "model.json"
            layer.save_json(path)
            loaded = Layer.load_json(backend, path)

        for a, b in zip(layer.learnable_weights_data(), loaded.learnable_weights_data()):
            np.testing.assert_array_equal(a.to_numpy(), b.to_numpy())
        x = t(np.arange(6).reshape(2, 3))
        np.testing.assert_allclose(
            layer.forward([x])[0].to_numpy(), loaded.forward([x])[0].to_numpy()
        )

    def test_unsupported_format(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.json"
            path.write_text('{"format": "other"}', encoding="utf-8")
            with self.assertRaises(ValueError):
                Layer.load_json(NativeBackend(), path)

    def test_only_self_contained_containers_are_saved(self):
        layer = Layer.from_config(
            NativeBackend(), LayerConfig("fc", LinearConfig(2), inputs=["x"])
        )
        layer.connect(registry_with(x=np.ones((1, 3))))
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "fc.json"
            with self.assertRaises(ValueError):
                layer.save_json(path)
            self.assertFalse(path.exists())


if __name__ == "__main__":
    unittest.main()
