"""Test the proposal covariance estimation"""
import chex
import jax
import jax.numpy as jnp
import numpy as np
from absl.testing import absltest, parameterized

import tmcmc.smc.covariance as covariance


class ProposalCovarianceTest(chex.TestCase):
    def setUp(self):
        super().setUp()
        self.key = jax.random.key(20240917)

    def population(self, num_particles, num_dims):
        particles_key, weights_key = jax.random.split(self.key)
        particles = jax.random.normal(particles_key, (num_particles, num_dims))
        weights = jax.random.uniform(weights_key, (num_particles,))
        return particles, weights / jnp.sum(weights)

    @chex.all_variants(with_pmap=False)
    def test_weighted_statistics_match_numpy(self):
        particles, weights = self.population(500, 3)
        mean = self.variant(covariance.weighted_mean)(particles, weights)
        cov = self.variant(covariance.weighted_covariance)(particles, weights)

        np.testing.assert_allclose(
            mean, np.average(particles, axis=0, weights=weights), rtol=1e-5, atol=1e-6
        )
        np.testing.assert_allclose(
            cov,
            np.cov(np.asarray(particles), rowvar=False, aweights=weights, bias=True),
            rtol=1e-4,
            atol=1e-6,
        )

    @chex.all_variants(with_pmap=False)
    @parameterized.parameters([(10, 1), (100, 2), (1000, 7)])
    def test_proposal_covariance_is_exactly_symmetric(self, num_particles, num_dims):
        particles, weights = self.population(num_particles, num_dims)
        particles = particles * jnp.arange(1, num_dims + 1) + 3.0
        cov = self.variant(covariance.proposal_covariance)(particles, weights, 0.01)
        np.testing.assert_array_equal(cov, cov.T)
        self.assertTrue(np.all(np.linalg.eigvalsh(np.asarray(cov)) >= -1e-6))

    def test_jitted_proposal_covariance_is_exactly_symmetric(self):
        """Symmetry must survive compilation together with the product."""
        particles, weights = self.population(100, 2)
        particles = particles * jnp.array([1e-3, 1e3]) + jnp.array([5.0, -2.0])

        @jax.jit
        def scaled_covariance(particles, weights):
            return covariance.proposal_covariance(particles, weights, 0.01) * 2.0

        cov = scaled_covariance(particles, weights)
        np.testing.assert_array_equal(cov, cov.T)

        product = jax.jit(lambda a: covariance.symmetrize(a @ jnp.tanh(a)))(
            jax.random.normal(self.key, (7, 7))
        )
        np.testing.assert_array_equal(product, product.T)

    def test_scale_multiplies_the_covariance_once(self):
        particles, weights = self.population(200, 2)
        cov = covariance.weighted_covariance(particles, weights)
        np.testing.assert_allclose(
            covariance.proposal_covariance(particles, weights, 0.04),
            0.04 * cov,
            rtol=1e-5,
        )

    def test_uniform_weights_on_identical_particles(self):
        particles = jnp.ones((20, 3))
        weights = jnp.ones(20) / 20
        cov = covariance.proposal_covariance(particles, weights)
        np.testing.assert_allclose(cov, np.zeros((3, 3)), atol=1e-12)

    def test_single_particle_weight(self):
        """All the weight on one particle gives a zero covariance."""
        particles, _ = self.population(50, 2)
        weights = jnp.zeros(50).at[7].set(1.0)
        np.testing.assert_allclose(
            covariance.weighted_mean(particles, weights), particles[7]
        )
        np.testing.assert_allclose(
            covariance.weighted_covariance(particles, weights),
            np.zeros((2, 2)),
            atol=1e-6,
        )


if __name__ == "__main__":
    absltest.main()
