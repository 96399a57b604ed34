import unittest

import numpy as np

from src.leafdnn.domain._errors import (
    MissingInputError,
    ShapeMismatchError,
    UnsupportedLayerTypeError,
)
from src.leafdnn.domain._layer import ILayerWorker
from src.leafdnn.infrastructure.backend import NativeBackend
from src.leafdnn.infrastructure.layers import (
    Flatten,
    FlattenConfig,
    Layer,
    LayerConfig,
    LogSoftmax,
    LogSoftmaxConfig,
    NegativeLogLikelihood,
    NegativeLogLikelihoodConfig,
    ReLU,
    ReLUConfig,
    Reshape,
    ReshapeConfig,
    Sigmoid,
    SigmoidConfig,
    Softmax,
    SoftmaxConfig,
    TanH,
    TanHConfig,
    worker_from_config,
)
from src.leafdnn.infrastructure.layers._reshape import _InPlaceShapeLayer
from src.leafdnn.infrastructure.tensor import Blob, SharedTensor


def t(arr) -> SharedTensor:
    return SharedTensor.from_numpy(np.asarray(arr, dtype=np.float32))


def connected(backend, config, **inputs):
    """Connect a single layer to a registry holding `inputs`."""
    registry = {}
    for name, arr in inputs.items():
        arr = np.asarray(arr, dtype=np.float32)
        blob = Blob.new(arr.shape)
        blob.data.copy_from_numpy(arr)
        registry[name] = blob
        config.add_input(name)
    layer = Layer.from_config(backend, config)
    layer.connect(registry)
    return layer


class TestBlobCounts(unittest.TestCase):
    def test_one_to_one_layers(self):
        for worker in (ReLU(), Sigmoid(), TanH(), Softmax(), LogSoftmax()):
            self.assertEqual(worker.exact_num_input_blobs(), 1)
            self.assertEqual(worker.exact_num_output_blobs(), 1)
            self.assertTrue(worker.auto_output_blobs())
            self.assertFalse(worker.compute_in_place())
            self.assertIsInstance(worker, ILayerWorker)

    def test_nll_structure(self):
        nll = NegativeLogLikelihood(10)
        self.assertEqual(nll.exact_num_input_blobs(), 2)
        self.assertTrue(nll.sync_native())
        self.assertEqual(nll.loss_weight(0), 1.0)
        self.assertIsNone(nll.loss_weight(1))

    def test_reshape_is_in_place(self):
        self.assertTrue(Reshape((1, 784)).compute_in_place())
        self.assertTrue(Flatten().compute_in_place())

    def test_unknown_variant(self):
        class ConvConfig:
            pass

        with self.assertRaises(UnsupportedLayerTypeError):
            worker_from_config(ConvConfig())


class TestActivationLayers(unittest.TestCase):
    def setUp(self):
        self.backend = NativeBackend()

    def test_shape_inference_matches_input_for_every_activation(self):
        variants = (
            ReLUConfig(),
            SigmoidConfig(),
            TanHConfig(),
            SoftmaxConfig(),
            LogSoftmaxConfig(),
        )
        for variant in variants:
            for shape in ((3,), (2, 5), (2, 1, 4, 4)):
                layer = connected(
                    self.backend, LayerConfig("act", variant), x=np.zeros(shape)
                )
                self.assertEqual(layer.input_blobs_gradient[0].shape, shape)
                self.assertEqual(layer.output_blobs_data[0].shape, shape)
                self.assertEqual(layer.output_blobs_gradient[0].shape, shape)

    def test_relu_forward_backward(self):
        layer = connected(
            self.backend, LayerConfig("relu", ReLUConfig()), data=[-1.0, 0.0, 2.0]
        )
        self.assertEqual(layer.output_blob_names, ["relu_output_0"])
        out = layer.forward()
        np.testing.assert_array_equal(out[0].to_numpy(), [0.0, 0.0, 2.0])

        grads = layer.backward([t([1.0, 1.0, 1.0])])
        np.testing.assert_array_equal(grads[0].to_numpy(), [0.0, 0.0, 1.0])

    def test_sigmoid_zero(self):
        layer = connected(self.backend, LayerConfig("sig", SigmoidConfig()), x=[0.0])
        self.assertEqual(float(layer.forward()[0].to_numpy()[0]), 0.5)

    def test_forward_binds_input_by_copy(self):
        layer = connected(self.backend, LayerConfig("relu", ReLUConfig()), x=[0.0, 0.0])
        given = t([3.0, -3.0])
        out = layer.forward([given])
        np.testing.assert_array_equal(out[0].to_numpy(), [3.0, 0.0])
        self.assertIsNot(layer.input_blobs_data[0], given)

    def test_missing_input_is_fatal(self):
        layer = Layer.from_config(self.backend, LayerConfig("relu", ReLUConfig()))
        with self.assertRaises(MissingInputError):
            layer.forward()

    def test_missing_input_from_worker(self):
        with self.assertRaises(MissingInputError):
            ReLU().compute_output(self.backend, [], [], [SharedTensor((1,))])
        with self.assertRaises(MissingInputError):
            Sigmoid().compute_input_gradient(
                self.backend, [], [], [], [SharedTensor((1,))], [SharedTensor((1,))]
            )

    def test_output_shape_follows_input(self):
        layer = connected(
            self.backend, LayerConfig("relu", ReLUConfig()), x=np.zeros((2, 3))
        )
        layer.forward([t(np.ones((5, 3)))])
        self.assertEqual(layer.output_blobs_data[0].shape, (5, 3))
        self.assertEqual(layer.output_blobs_gradient[0].shape, (5, 3))
        self.assertEqual(layer.input_blobs_gradient[0].shape, (5, 3))


class TestNegativeLogLikelihood(unittest.TestCase):
    def setUp(self):
        self.backend = NativeBackend()
        self.probs = [[-0.1, -2.3], [-1.6, -0.2]]

    def _layer(self, labels, probs=None):
        return connected(
            self.backend,
            LayerConfig("nll", NegativeLogLikelihoodConfig(num_classes=2)),
            probabilities=self.probs if probs is None else probs,
            labels=labels,
        )

    def test_forward_loss(self):
        layer = self._layer([[0.0], [1.0]])
        out = layer.forward()
        self.assertEqual(out[0].shape, (1,))
        np.testing.assert_allclose(out[0].to_numpy(), [0.15], rtol=1e-5)

    def test_backward_marks_target_indices(self):
        layer = self._layer([[0.0], [1.0]])
        layer.forward()
        grads = layer.backward()
        np.testing.assert_array_equal(
            grads[0].to_numpy(), [[-1.0, 0.0], [0.0, -1.0]]
        )

    def test_log_probability_loss(self):
        probs = np.array([[0.1, 0.9], [0.2, 0.8]], dtype=np.float32)
        layer = self._layer([[1.0], [1.0]], probs=np.log(probs))
        out = layer.forward()
        expected = -(np.log(0.9) + np.log(0.8)) / 2.0
        np.testing.assert_allclose(out[0].to_numpy(), [expected], rtol=1e-5)

    def test_rank_one_labels_mean_batch_of_one(self):
        layer = self._layer([1.0])
        out = layer.forward()
        np.testing.assert_allclose(out[0].to_numpy(), [2.3], rtol=1e-5)

    def test_unsupported_label_rank(self):
        layer = self._layer(np.zeros((2, 1, 1)))
        with self.assertRaises(ShapeMismatchError):
            layer.forward()

    def test_label_out_of_range(self):
        layer = self._layer([[0.0], [2.0]])
        with self.assertRaises(ValueError):
            layer.forward()


class TestReshapeLayers(unittest.TestCase):
    def setUp(self):
        self.backend = NativeBackend()

    def test_reshape_round_trip_preserves_values(self):
        values = np.arange(784, dtype=np.float32).reshape(1, 28, 28)
        layer = connected(
            self.backend, LayerConfig("reshape", ReshapeConfig((1, 784))), data=values
        )
        out = layer.forward()
        self.assertEqual(out[0].shape, (1, 784))
        self.assertIs(out[0], layer.input_blobs_data[0])
        np.testing.assert_array_equal(out[0].to_numpy().reshape(-1), values.reshape(-1))

        back = connected(
            self.backend,
            LayerConfig("back", ReshapeConfig((1, 28, 28))),
            flat=out[0].to_numpy(),
        )
        np.testing.assert_array_equal(back.forward()[0].to_numpy(), values)

    def test_reshape_capacity_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            connected(
                self.backend,
                LayerConfig("reshape", ReshapeConfig((1, 783))),
                data=np.zeros((1, 28, 28)),
            )

    def test_reshape_gradient_passes_through(self):
        layer = connected(
            self.backend, LayerConfig("reshape", ReshapeConfig((2, 2))), data=np.zeros(4)
        )
        layer.forward()
        grads = layer.backward([t([[1.0, 2.0], [3.0, 4.0]])])
        np.testing.assert_array_equal(grads[0].to_numpy().reshape(-1), [1, 2, 3, 4])

    def test_flatten(self):
        values = np.arange(24, dtype=np.float32).reshape(2, 3, 2, 2)
        layer = connected(self.backend, LayerConfig("flat", FlattenConfig()), x=values)
        out = layer.forward()
        self.assertEqual(out[0].shape, (2, 12))
        np.testing.assert_array_equal(out[0].to_numpy(), values.reshape(2, 12))

    def test_shape_layer_must_define_target_shape(self):
        class NoTarget(_InPlaceShapeLayer):
            pass

        with self.assertRaises(TypeError):
            NoTarget()


if __name__ == "__main__":
    unittest.main()
