# Copyright 2020- The Blackjax Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""All things related to importance weights and evidence bookkeeping."""
import jax.numpy as jnp
from jax.scipy.special import logsumexp

import tmcmc.smc.solver as solver
from tmcmc.types import Array, ArrayLike


def tempering_weights(
    delta: float | Array, loglikelihoods: ArrayLike
) -> tuple[Array, Array]:
    """Compute the unnormalized importance weights of a tempering step.

    The maximum log-likelihood is subtracted before exponentiation, so that
    the largest weight is always 1 and no weight overflows.

    Parameters
    ----------
    delta: float | Array
        Increment of the tempering parameter.
    loglikelihoods: Array
        Log-likelihood of each particle, shape (n_particles,).

    Returns
    -------
    weights: Array
        The unnormalized weights :math:`\\exp(\\delta (L_i - L_{max}))`.
    max_loglikelihood: Array
        The shift :math:`L_{max}` that was applied.
    """
    loglikelihoods = jnp.asarray(loglikelihoods)
    max_loglikelihood = jnp.max(loglikelihoods)
    weights = jnp.exp(delta * (loglikelihoods - max_loglikelihood))
    return weights, max_loglikelihood


def normalized_weights(weights: ArrayLike) -> Array:
    weights = jnp.asarray(weights)
    return weights / jnp.sum(weights)


def log_evidence_increment(
    delta: float | Array, weights: ArrayLike, max_loglikelihood: float | Array
) -> Array:
    """Compute the contribution of a tempering step to the log-evidence.

    This is the sequential importance sampling identity
    :math:`\\log(\\frac{1}{N}\\sum_i w_i) + \\delta L_{max}`, where the weights
    were computed with the :math:`L_{max}` shift.

    Parameters
    ----------
    delta: float | Array
        Increment of the tempering parameter.
    weights: Array
        Unnormalized, shifted weights as returned by `tempering_weights`.
    max_loglikelihood: float | Array
        The shift used to compute the weights.

    Returns
    -------
    The log-evidence increment.
    """
    weights = jnp.asarray(weights)
    num_particles = weights.shape[0]
    return jnp.log(jnp.sum(weights) / num_particles) + delta * max_loglikelihood


def coefficient_of_variation(weights: ArrayLike) -> Array:
    """Ratio of the (population) standard deviation to the mean of the weights."""
    weights = jnp.asarray(weights)
    mean = jnp.mean(weights)
    return jnp.std(weights) / mean


def ess(log_weights: ArrayLike) -> float | Array:
    """Compute the effective sample size.

    Parameters
    ----------
    log_weights: Array
        Log-weights of the sample, normalized or not, shape (n_particles,).

    Returns
    -------
    ess: float | Array
        The effective sample size.
    """
    return jnp.exp(log_ess(log_weights))


def log_ess(log_weights: ArrayLike) -> float | Array:
    """Compute the logarithm of the effective sample size.

    Parameters
    ----------
    log_weights: Array
        Log-weights of the sample, shape (n_particles,).

    Returns
    -------
    log_ess: float | Array
        The logarithm of the effective sample size.
    """
    log_weights = jnp.asarray(log_weights)
    return 2 * logsumexp(log_weights) - logsumexp(2 * log_weights)


def next_tempering_param(
    tempering_param: float | Array,
    loglikelihoods: ArrayLike,
    target_cov: float = 1.0,
    upper: float = 2.0,
    rtol: float = 1e-6,
    max_iter: int = 100,
) -> Array:
    """Find the next tempering parameter of the adaptive schedule.

    The new value :math:`\\beta'` is searched by bisection in
    `[tempering_param, upper]` so that the coefficient of variation of the
    weights :math:`\\exp((\\beta' - \\beta)(L_i - L_{max}))` equals
    `target_cov`. Steps are short when the likelihood is peaked over the
    population and long when it is flat. The result is clamped to 1.

    Parameters
    ----------
    tempering_param: float | Array
        Current value of the tempering parameter.
    loglikelihoods: Array
        Log-likelihood of each particle of the current population.
    target_cov: float
        Target coefficient of variation of the weights.
    upper: float
        Upper end of the bracket of the search.
    rtol: float
        Relative width of the bracket at which the search stops.
    max_iter: int
        Maximum number of bisection iterations.

    Returns
    -------
    The next tempering parameter, in `[tempering_param, 1]`.
    """

    def fun_to_solve(candidate: Array) -> Array:
        weights, _ = tempering_weights(candidate - tempering_param, loglikelihoods)
        return coefficient_of_variation(weights) - target_cov

    candidate = solver.bisection(fun_to_solve, tempering_param, upper, rtol, max_iter)
    return jnp.minimum(1.0, candidate)
