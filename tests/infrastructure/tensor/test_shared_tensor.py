import threading
import time
import unittest

import numpy as np

from src.leafdnn.domain._errors import ShapeMismatchError
from src.leafdnn.infrastructure.tensor import (
    Blob,
    ReadWriteLock,
    SharedTensor,
    write_batch_sample,
)


class TestSharedTensorShape(unittest.TestCase):
    def test_new_tensor_is_zero_filled_float32(self):
        t = SharedTensor((2, 3))
        self.assertEqual(t.shape, (2, 3))
        self.assertEqual(t.capacity, 6)
        self.assertEqual(t.dtype, np.float32)
        np.testing.assert_array_equal(t.to_numpy(), np.zeros((2, 3), np.float32))

    def test_default_shape_is_placeholder(self):
        self.assertEqual(SharedTensor().shape, (1,))

    def test_scalar_shape_has_capacity_one(self):
        t = SharedTensor(())
        self.assertEqual(t.capacity, 1)
        self.assertEqual(t.ndim, 0)

    def test_non_positive_dimension_rejected(self):
        with self.assertRaises(ValueError):
            SharedTensor((2, 0))

    def test_resize_same_capacity_keeps_values(self):
        t = SharedTensor.from_numpy(np.arange(6, dtype=np.float32).reshape(2, 3))
        t.resize((3, 2))
        self.assertEqual(t.shape, (3, 2))
        np.testing.assert_array_equal(
            t.to_numpy().reshape(-1), np.arange(6, dtype=np.float32)
        )

    def test_resize_new_capacity_reallocates_zeros(self):
        t = SharedTensor.from_numpy(np.ones((2, 2), np.float32))
        t.resize((3, 3))
        self.assertEqual(t.capacity, 9)
        self.assertEqual(t.to_numpy().size, t.capacity)
        np.testing.assert_array_equal(t.to_numpy(), np.zeros((3, 3), np.float32))

    def test_reshape_requires_same_capacity(self):
        t = SharedTensor((4, 784))
        t.reshape((4, 28, 28))
        self.assertEqual(t.shape, (4, 28, 28))
        with self.assertRaises(ShapeMismatchError):
            t.reshape((4, 27, 28))


class TestSharedTensorAccess(unittest.TestCase):
    def test_read_view_is_read_only(self):
        t = SharedTensor((2,))
        with t.read() as buf:
            with self.assertRaises(ValueError):
                buf[0] = 1.0

    def test_write_modifies_in_place(self):
        t = SharedTensor((3,))
        with t.write() as buf:
            buf[...] = [1.0, 2.0, 3.0]
        np.testing.assert_array_equal(t.to_numpy(), [1.0, 2.0, 3.0])

    def test_copy_from_numpy_reinterprets_into_shape(self):
        t = SharedTensor((2, 2))
        t.copy_from_numpy([1, 2, 3, 4])
        np.testing.assert_array_equal(t.to_numpy(), [[1, 2], [3, 4]])

    def test_copy_from_numpy_size_mismatch(self):
        t = SharedTensor((2, 2))
        with self.assertRaises(ShapeMismatchError):
            t.copy_from_numpy(np.zeros(5))

    def test_to_numpy_returns_copy(self):
        t = SharedTensor((2,))
        arr = t.to_numpy()
        arr[0] = 5.0
        self.assertEqual(t.to_numpy()[0], 0.0)

    def test_fill(self):
        t = SharedTensor((2, 2))
        t.fill(3.5)
        np.testing.assert_array_equal(t.to_numpy(), np.full((2, 2), 3.5, np.float32))

    def test_blob_new_pairs_equal_shapes(self):
        blob = Blob.new((2, 5))
        self.assertEqual(blob.data.shape, blob.gradient.shape)
        self.assertIsNot(blob.data, blob.gradient)


class TestWriteBatchSample(unittest.TestCase):
    def test_writes_sample_at_offset(self):
        t = SharedTensor((3, 2))
        write_batch_sample(t, [7, 8], 1)
        np.testing.assert_array_equal(t.to_numpy(), [[0, 0], [7, 8], [0, 0]])

    def test_wrong_sample_size(self):
        t = SharedTensor((3, 2))
        with self.assertRaises(ShapeMismatchError):
            write_batch_sample(t, [1, 2, 3], 0)

    def test_index_out_of_range(self):
        t = SharedTensor((3, 2))
        with self.assertRaises(IndexError):
            write_batch_sample(t, [1, 2], 3)


class TestReadWriteLock(unittest.TestCase):
    def test_many_readers_at_once(self):
        lock = ReadWriteLock()
        lock.acquire_read()
        lock.acquire_read()
        self.assertEqual(lock.readers, 2)
        lock.release_read()
        lock.release_read()
        self.assertEqual(lock.readers, 0)

    def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        lock.acquire_read()
        acquired = threading.Event()

        def writer():
            with lock.write_locked():
                acquired.set()

        th = threading.Thread(target=writer)
        th.start()
        time.sleep(0.05)
        self.assertFalse(acquired.is_set())
        lock.release_read()
        th.join(timeout=2.0)
        self.assertTrue(acquired.is_set())
        self.assertFalse(lock.writing)

    def test_release_without_hold_raises(self):
        lock = ReadWriteLock()
        with self.assertRaises(RuntimeError):
            lock.release_read()
        with self.assertRaises(RuntimeError):
            lock.release_write()


if __name__ == "__main__":
    unittest.main()
