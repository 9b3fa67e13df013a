import chex
import jax
import jax.numpy as jnp
import jax.scipy.stats as stats
import numpy as np


class GaussianModelTestCase(chex.TestCase):
    """Conjugate Gaussian model, for which posterior and evidence are known.

    x ~ N(0, I) and y | x ~ N(x, sigma^2 I) with a single observation y.
    """

    num_dims = 2
    sigma = 0.5
    observation = np.array([1.0, -0.5])

    def logprior_fn(self, x):
        return stats.multivariate_normal.logpdf(
            x, jnp.zeros(self.num_dims), jnp.eye(self.num_dims)
        )

    def loglikelihood_fn(self, x):
        return jnp.sum(stats.norm.logpdf(self.observation, x, self.sigma))

    def prior_sampler_fn(self, rng_key, num_particles):
        return jax.random.normal(rng_key, (num_particles, self.num_dims))

    def expected_log_evidence(self):
        return np.sum(
            stats.norm.logpdf(self.observation, 0.0, np.sqrt(1 + self.sigma**2))
        )

    def expected_posterior_mean(self):
        return self.observation / (1 + self.sigma**2)

    def assert_gaussian_test_case(self, particles, log_evidence):
        np.testing.assert_allclose(
            np.mean(particles, axis=0), self.expected_posterior_mean(), atol=1e-1
        )
        np.testing.assert_allclose(
            log_evidence, self.expected_log_evidence(), atol=2e-1
        )
