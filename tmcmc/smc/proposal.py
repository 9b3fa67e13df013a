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
"""Gaussian random walk proposals restricted to the support of the prior."""
from typing import Callable, NamedTuple

import jax
import jax.numpy as jnp

from tmcmc.types import Array, ArrayLike, PRNGKey
from tmcmc.util import linear_map

__all__ = [
    "Proposal",
    "ProposalSupportError",
    "build_proposal",
    "draw_within_support",
    "as_transition_generator",
]


class ProposalSupportError(RuntimeError):
    """Raised when proposals keep falling outside the support of the prior.

    This happens when the proposal covariance is badly scaled with respect to
    the region where the prior density is finite, so that no candidate with
    a finite prior density is found within the allowed number of draws.
    """


class Proposal(NamedTuple):
    """Gaussian random walk shared by every chain of a TMCMC step.

    covariance
        The proposal covariance, shape (n_dims, n_dims).
    factor
        A square root of the covariance, `factor @ factor.T == covariance`,
        used to turn standard normal noise into a move.

    """

    covariance: Array
    factor: Array


def build_proposal(covariance: ArrayLike) -> Proposal:
    """Build the proposal from a symmetric positive semi-definite covariance.

    The square root is computed with an eigendecomposition rather than a
    Cholesky factorization so that singular covariances, e.g. after the
    population collapsed onto a few distinct points, remain usable.
    """
    covariance = jnp.asarray(covariance)
    eigenvalues, eigenvectors = jnp.linalg.eigh(covariance)
    factor = eigenvectors * jnp.sqrt(jnp.clip(eigenvalues, min=0.0))
    return Proposal(covariance, factor)


def draw_within_support(
    rng_key: PRNGKey,
    proposal: Proposal,
    mean: ArrayLike,
    logprior_fn: Callable,
    max_tries: int = 1000,
) -> tuple[Array, Array, Array]:
    """Draw from :math:`N(mean, \\Sigma)` until the prior density is finite.

    Parameters
    ----------
    rng_key
        Key used to generate pseudo-random numbers.
    proposal
        The Gaussian random walk.
    mean
        The center of the draw, usually the current position of a chain.
    logprior_fn
        Log-density of the prior, equal to `-inf` outside of its support.
    max_tries
        Maximum number of draws before giving up.

    Returns
    -------
    sample
        The last candidate drawn.
    num_tries
        The number of candidates drawn.
    is_within_support
        Whether `sample` has a finite prior density. When False the retry cap
        was reached and `sample` must not be used.

    """
    mean = jnp.asarray(mean)
    mean = mean.astype(jnp.result_type(mean.dtype, float))
    logprior_dtype = jax.eval_shape(logprior_fn, mean).dtype

    def cond(carry):
        num_tries, _, _, logprior = carry
        return jnp.logical_and(logprior == -jnp.inf, num_tries < max_tries)

    def body(carry):
        num_tries, rng_key, _, _ = carry
        rng_key, draw_key = jax.random.split(rng_key)
        noise = jax.random.normal(draw_key, mean.shape, mean.dtype)
        sample = (mean + linear_map(proposal.factor, noise)).astype(mean.dtype)
        return num_tries + 1, rng_key, sample, logprior_fn(sample)

    initial_logprior = jnp.asarray(-jnp.inf, dtype=logprior_dtype)
    num_tries, _, sample, logprior = jax.lax.while_loop(
        cond, body, (0, rng_key, mean, initial_logprior)
    )
    return sample, num_tries, logprior > -jnp.inf


def as_transition_generator(
    proposal: Proposal, logprior_fn: Callable, max_tries: int = 1000
) -> Callable:
    """Turn the proposal into a `(rng_key, position) -> position` generator.

    When the retry cap is reached the out-of-support candidate is returned
    as is; its target log-density is `-inf` so the Metropolis-Hastings step
    rejects it.
    """

    def generate(rng_key: PRNGKey, position: ArrayLike) -> Array:
        sample, _, _ = draw_within_support(
            rng_key, proposal, position, logprior_fn, max_tries
        )
        return sample

    return generate
