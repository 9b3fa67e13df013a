import chex
import jax.numpy as jnp
import numpy as np
from absl.testing import absltest, parameterized

from tmcmc.util import linear_map


class LinearMapTest(chex.TestCase):
    @parameterized.parameters(
        [
            (jnp.array(2.0), jnp.array([1.0, 2.0]), [2.0, 4.0]),
            (jnp.array([1.0, 3.0]), jnp.array([1.0, 2.0]), [1.0, 6.0]),
            (jnp.array([[1.0, 1.0], [0.0, 2.0]]), jnp.array([1.0, 2.0]), [3.0, 4.0]),
        ]
    )
    def test_linear_map(self, a, b, expected):
        np.testing.assert_allclose(linear_map(a, b), expected)

    def test_output_dtype_follows_inputs(self):
        out = linear_map(jnp.eye(2, dtype=jnp.float32), jnp.ones(2, dtype=jnp.int32))
        self.assertTrue(jnp.issubdtype(out.dtype, jnp.floating))


if __name__ == "__main__":
    absltest.main()
