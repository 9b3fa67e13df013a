"""Test the importance weights and evidence bookkeeping"""
import chex
import jax
import jax.numpy as jnp
import numpy as np
from absl.testing import absltest, parameterized

import tmcmc.smc.weights as weights


class TemperingWeightsTest(chex.TestCase):
    @chex.all_variants(with_pmap=False)
    def test_weights_are_shifted_by_the_max(self):
        loglikelihoods = jnp.array([-1000.0, -1001.0, -1003.0])
        unnormalized, max_loglikelihood = self.variant(weights.tempering_weights)(
            0.5, loglikelihoods
        )
        np.testing.assert_allclose(max_loglikelihood, -1000.0)
        np.testing.assert_allclose(
            unnormalized, np.exp([0.0, -0.5, -1.5]), rtol=1e-6
        )

    @chex.all_variants(with_pmap=False)
    def test_normalized_weights_sum_to_one(self):
        loglikelihoods = jax.random.normal(jax.random.key(0), (1000,)) * 50
        unnormalized, _ = weights.tempering_weights(0.3, loglikelihoods)
        normalized = self.variant(weights.normalized_weights)(unnormalized)
        np.testing.assert_allclose(jnp.sum(normalized), 1.0, atol=1e-5)
        self.assertTrue(jnp.all(normalized >= 0))

    @chex.all_variants(with_pmap=False)
    def test_log_evidence_increment(self):
        """The shift is added back so that the increment is log(mean(L^delta))."""
        loglikelihoods = jnp.array([-2.0, -3.0, -5.0, -2.5])
        delta = 0.4
        unnormalized, max_loglikelihood = weights.tempering_weights(
            delta, loglikelihoods
        )
        increment = self.variant(weights.log_evidence_increment)(
            delta, unnormalized, max_loglikelihood
        )
        expected = np.log(np.mean(np.exp(delta * np.asarray(loglikelihoods))))
        np.testing.assert_allclose(increment, expected, rtol=1e-5)

    def test_log_evidence_increment_does_not_overflow(self):
        loglikelihoods = jnp.array([1000.0, 999.0])
        unnormalized, max_loglikelihood = weights.tempering_weights(
            1.0, loglikelihoods
        )
        increment = weights.log_evidence_increment(
            1.0, unnormalized, max_loglikelihood
        )
        expected = 1000.0 + np.log((1 + np.exp(-1.0)) / 2)
        np.testing.assert_allclose(increment, expected, rtol=1e-6)

    def test_coefficient_of_variation(self):
        np.testing.assert_allclose(weights.coefficient_of_variation(jnp.ones(5)), 0.0)
        values = jnp.array([1.0, 0.0, 0.0, 0.0])
        # population std of [1, 0, 0, 0] is sqrt(3) / 4 and the mean 1 / 4
        np.testing.assert_allclose(
            weights.coefficient_of_variation(values), np.sqrt(3.0), rtol=1e-6
        )


class DoublePrecisionWeightsTest(chex.TestCase):
    def setUp(self):
        super().setUp()
        self.enable_x64 = jax.config.jax_enable_x64
        jax.config.update("jax_enable_x64", True)

    def tearDown(self):
        jax.config.update("jax_enable_x64", self.enable_x64)
        super().tearDown()

    @parameterized.parameters([0.3, 1e-4, 5.0])
    def test_normalized_weights_sum_to_one(self, delta):
        loglikelihoods = jax.random.normal(
            jax.random.key(0), (10_000,), dtype=jnp.float64
        )
        unnormalized, _ = weights.tempering_weights(delta, 50 * loglikelihoods)
        normalized = weights.normalized_weights(unnormalized)

        self.assertEqual(normalized.dtype, jnp.float64)
        self.assertLess(abs(float(jnp.sum(normalized)) - 1.0), 1e-9)


class EffectiveSampleSizeTest(chex.TestCase):
    @chex.all_variants(with_pmap=False)
    def test_ess(self):
        # All particles have zero weight but one
        log_weights = jnp.array([-jnp.inf, -jnp.inf, 0, -jnp.inf])
        ess_val = self.variant(weights.ess)(log_weights)
        assert ess_val == 1.0

        log_weights = jnp.zeros(12)
        ess_val = self.variant(weights.ess)(log_weights)
        np.testing.assert_allclose(ess_val, 12, rtol=1e-6)


class NextTemperingParamTest(chex.TestCase):
    @chex.all_variants(with_pmap=False)
    @parameterized.parameters([0.0, 0.3])
    def test_constant_likelihood_jumps_to_one(self, tempering_param):
        loglikelihoods = jnp.full((100,), -3.0)
        next_param = self.variant(weights.next_tempering_param)(
            tempering_param, loglikelihoods
        )
        self.assertEqual(next_param, 1.0)

    @chex.all_variants(with_pmap=False)
    @parameterized.parameters([(0.0, 1.0), (0.2, 1.0), (0.0, 0.5)])
    def test_next_tempering_param_hits_target_cov(self, tempering_param, target_cov):
        loglikelihoods = -500 * jax.random.uniform(jax.random.key(1), (1000,))
        next_param = self.variant(weights.next_tempering_param)(
            tempering_param, loglikelihoods, target_cov=target_cov
        )
        self.assertGreater(next_param, tempering_param)
        self.assertLess(next_param, 1.0)

        unnormalized, _ = weights.tempering_weights(
            next_param - tempering_param, loglikelihoods
        )
        np.testing.assert_allclose(
            weights.coefficient_of_variation(unnormalized), target_cov, rtol=1e-3
        )

    def test_next_tempering_param_is_clamped(self):
        # A flat-ish likelihood only reaches the target cov beyond 1.
        loglikelihoods = jnp.linspace(-0.01, 0.0, 50)
        next_param = weights.next_tempering_param(0.5, loglikelihoods)
        self.assertEqual(next_param, 1.0)


if __name__ == "__main__":
    absltest.main()
