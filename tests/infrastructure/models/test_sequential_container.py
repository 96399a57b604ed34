import unittest

import numpy as np

from src.leafdnn.domain._errors import LayerConnectionError
from src.leafdnn.infrastructure.backend import NativeBackend
from src.leafdnn.infrastructure.layers import (
    FlattenConfig,
    Layer,
    LayerConfig,
    LinearConfig,
    NegativeLogLikelihoodConfig,
    ReLUConfig,
    ReshapeConfig,
    SigmoidConfig,
)
from src.leafdnn.infrastructure.models import Sequential, SequentialConfig
from src.leafdnn.infrastructure.tensor import SharedTensor


def mlp_config(force_backward=False) -> SequentialConfig:
    cfg = SequentialConfig(force_backward=force_backward)
    cfg.add_input("data", (2, 4))
    cfg.add_layer(LayerConfig("fc1", LinearConfig(3)))
    cfg.add_layer(LayerConfig("relu", ReLUConfig()))
    cfg.add_layer(LayerConfig("fc2", LinearConfig(2)))
    return cfg


class TestSequentialForwardBackward(unittest.TestCase):
    def setUp(self):
        self.backend = NativeBackend()
        self.net = Layer.from_config(self.backend, LayerConfig("net", mlp_config()))

    def test_container_is_connected_on_creation(self):
        self.assertTrue(self.net.connected)
        self.assertIsInstance(self.net.worker, Sequential)
        self.assertEqual(self.net.input_blob_names, ["data"])
        self.assertEqual(self.net.output_blob_names, ["fc2_output_0"])
        self.assertEqual(
            self.net.learnable_weights_names(),
            ["fc1-weight", "fc1-bias", "fc2-weight", "fc2-bias"],
        )

    def test_matches_numpy_reference(self):
        rng = np.random.default_rng(3)
        x = rng.normal(size=(2, 4)).astype(np.float32)
        dy = rng.normal(size=(2, 2)).astype(np.float32)
        w1, b1, w2, b2 = [t.to_numpy() for t in self.net.learnable_weights_data()]

        out = self.net.forward([SharedTensor.from_numpy(x)])[0]
        h = x @ w1.T + b1
        r = np.maximum(h, 0.0)
        np.testing.assert_allclose(out.to_numpy(), r @ w2.T + b2, rtol=1e-5, atol=1e-6)

        dx = self.net.backward([SharedTensor.from_numpy(dy)])[0]
        dh = (dy @ w2) * (h > 0)
        grads = [g.to_numpy() for g in self.net.learnable_weights_gradients()]
        np.testing.assert_allclose(grads[0], dh.T @ x, rtol=1e-5, atol=1e-6)
        np.testing.assert_allclose(grads[1], dh.sum(axis=0), rtol=1e-5, atol=1e-6)
        np.testing.assert_allclose(grads[2], dy.T @ r, rtol=1e-5, atol=1e-6)
        # fc1 has weights, so it also fills the input gradient
        np.testing.assert_allclose(dx.to_numpy(), dh @ w1, rtol=1e-5, atol=1e-6)

    def test_new_batch_size_propagates(self):
        out = self.net.forward([SharedTensor.from_numpy(np.ones((5, 4)))])[0]
        self.assertEqual(out.shape, (5, 2))


class TestInPlaceShapeLayersInContainer(unittest.TestCase):
    """Activations upstream of Reshape/Flatten share their output blob."""

    def _net(self, input_shape, shape_layer, activation):
        cfg = SequentialConfig(force_backward=True)
        cfg.add_input("data", input_shape)
        cfg.add_layer(LayerConfig("act", activation))
        cfg.add_layer(LayerConfig("shape", shape_layer))
        cfg.add_layer(LayerConfig("fc", LinearConfig(3)))
        return Layer.from_config(NativeBackend(), LayerConfig("net", cfg))

    def test_relu_then_flatten(self):
        net = self._net((2, 1, 2, 2), FlattenConfig(), ReLUConfig())
        w, b = [p.to_numpy() for p in net.learnable_weights_data()]
        self.assertEqual(w.shape, (3, 4))
        rng = np.random.default_rng(7)
        dy = np.ones((2, 3), dtype=np.float32)

        # a second round must see the same shapes as the first
        for _ in range(2):
            x = rng.normal(size=(2, 1, 2, 2)).astype(np.float32)
            out = net.forward([SharedTensor.from_numpy(x)])[0]
            flat = np.maximum(x, 0.0).reshape(2, 4)
            self.assertEqual(out.shape, (2, 3))
            np.testing.assert_allclose(
                out.to_numpy(), flat @ w.T + b, rtol=1e-5, atol=1e-6
            )

            dx = net.backward([SharedTensor.from_numpy(dy)])[0]
            self.assertEqual(dx.shape, (2, 1, 2, 2))
            expected = ((dy @ w) * (x.reshape(2, 4) > 0)).reshape(2, 1, 2, 2)
            np.testing.assert_allclose(dx.to_numpy(), expected, rtol=1e-5, atol=1e-6)
            dw = net.learnable_weights_gradients()[0].to_numpy()
            np.testing.assert_allclose(dw, dy.T @ flat, rtol=1e-5, atol=1e-6)

    def test_sigmoid_then_reshape(self):
        net = self._net((2, 4), ReshapeConfig((2, 2, 2)), SigmoidConfig())
        w, b = [p.to_numpy() for p in net.learnable_weights_data()]
        x = np.random.default_rng(11).normal(size=(2, 4)).astype(np.float32)
        dy = np.ones((2, 3), dtype=np.float32)

        out = net.forward([SharedTensor.from_numpy(x)])[0]
        s = 1.0 / (1.0 + np.exp(-x))
        np.testing.assert_allclose(out.to_numpy(), s @ w.T + b, rtol=1e-5, atol=1e-6)

        dx = net.backward([SharedTensor.from_numpy(dy)])[0]
        self.assertEqual(dx.shape, (2, 4))
        np.testing.assert_allclose(
            dx.to_numpy(), (dy @ w) * s * (1.0 - s), rtol=1e-5, atol=1e-6
        )


class TestBackwardPlanning(unittest.TestCase):
    def setUp(self):
        self.backend = NativeBackend()

    def _children(self, cfg):
        return Layer.from_config(self.backend, LayerConfig("net", cfg)).worker.layers

    def test_stateless_layer_on_declared_input_skips_backward(self):
        cfg = SequentialConfig()
        cfg.add_input("data", (1, 3))
        cfg.add_layer(LayerConfig("relu", ReLUConfig()))
        cfg.add_layer(LayerConfig("fc", LinearConfig(2)))
        relu, fc = self._children(cfg)
        self.assertFalse(relu.needs_backward)
        self.assertTrue(fc.needs_backward)

    def test_layer_after_weighted_layer_needs_backward(self):
        children = self._children(mlp_config())
        self.assertEqual([c.needs_backward for c in children], [True, True, True])

    def test_force_backward(self):
        cfg = SequentialConfig(force_backward=True)
        cfg.add_input("data", (1, 3))
        cfg.add_layer(LayerConfig("relu", ReLUConfig()))
        (relu,) = self._children(cfg)
        self.assertTrue(relu.needs_backward)

    def test_loss_layer_needs_backward(self):
        cfg = SequentialConfig()
        cfg.add_input("network_out", (2, 3))
        cfg.add_input("label", (2, 1))
        cfg.add_layer(
            LayerConfig(
                "nll",
                NegativeLogLikelihoodConfig(3),
                inputs=["network_out", "label"],
            )
        )
        (nll,) = self._children(cfg)
        self.assertTrue(nll.needs_backward)


class TestNestedContainer(unittest.TestCase):
    def test_inner_container_shares_outer_blobs(self):
        inner = SequentialConfig()
        inner.add_input("x", (2, 3))
        inner.add_layer(LayerConfig("inner_fc", LinearConfig(2)))

        outer = SequentialConfig()
        outer.add_input("data", (2, 3))
        outer.add_layer(LayerConfig("block", inner))
        outer.add_layer(LayerConfig("relu", ReLUConfig()))

        net = Layer.from_config(NativeBackend(), LayerConfig("net", outer))
        block = net.worker.layers[0]
        self.assertIs(block.input_blobs_data[0], net.input_blobs_data[0])
        self.assertEqual(len(net.learnable_weights_data()), 2)

        out = net.forward([SharedTensor.from_numpy(np.ones((2, 3)))])[0]
        self.assertEqual(out.shape, (2, 2))
        self.assertTrue(np.all(out.to_numpy() >= 0.0))

    def test_unknown_child_input(self):
        cfg = SequentialConfig()
        cfg.add_input("data", (1, 3))
        cfg.add_layer(LayerConfig("relu", ReLUConfig(), inputs=["pixels"]))
        with self.assertRaises(LayerConnectionError):
            Layer.from_config(NativeBackend(), LayerConfig("net", cfg))

    def test_declared_input_count_must_match(self):
        inner = SequentialConfig()
        inner.add_input("a", (1, 3))
        inner.add_input("b", (1, 3))
        outer = SequentialConfig()
        outer.add_input("data", (1, 3))
        outer.add_layer(LayerConfig("block", inner))
        with self.assertRaises(LayerConnectionError):
            Layer.from_config(NativeBackend(), LayerConfig("net", outer))


if __name__ == "__main__":
    unittest.main()
