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
"""All things resampling.

Every scheme has the signature `(rng_key, weights, num_samples) -> idx` and
returns the indices of the particles selected, with replacement, according to
the normalized `weights`. TMCMC uses `multinomial` by default; the lower
variance schemes can be swapped in through the `resampling_fn` argument of
the sampler.
"""
from functools import partial
from typing import Callable

import jax
import jax.numpy as jnp

from tmcmc.types import Array, PRNGKey

__all__ = ["multinomial", "systematic", "stratified", "residual"]


def _resampling_func(func, name, desc="") -> Callable:
    # Decorator that attaches the shared documentation

    doc = f"""
    {name} resampling. {desc}

    Parameters
    ----------
    rng_key: Array
        PRNGKey to use in resampling
    weights: Array
        Normalized weights, shape (n_particles,)
    num_samples: int
        Number of particles to sample

    Returns
    -------
    idx: Array
        Array of size `num_samples` of indices in `[0, n_particles)`
    """

    func.__doc__ = doc
    return func


@partial(
    _resampling_func,
    name="Multinomial",
    desc="""
    Each index is drawn independently with probability equal to its weight,
    as in the original formulation of the transitional MCMC algorithm.""",
)
def multinomial(rng_key: PRNGKey, weights: Array, num_samples: int) -> Array:
    # Sorting the uniforms is not required, but searchsorted is faster and
    # more stable when both inputs are sorted.
    n = weights.shape[0]
    uniforms = _sorted_uniforms(rng_key, num_samples)
    idx = jnp.searchsorted(jnp.cumsum(weights), uniforms)
    return jnp.clip(idx, 0, n - 1)


@partial(_resampling_func, name="Systematic")
def systematic(rng_key: PRNGKey, weights: Array, num_samples: int) -> Array:
    return _systematic_or_stratified(rng_key, weights, num_samples, True)


@partial(_resampling_func, name="Stratified")
def stratified(rng_key: PRNGKey, weights: Array, num_samples: int) -> Array:
    return _systematic_or_stratified(rng_key, weights, num_samples, False)


@partial(
    _resampling_func,
    name="Residual",
    desc="""
    Deterministically keeps :math:`\\lfloor N w_i \\rfloor` copies of each
    particle and fills the remaining slots by multinomial resampling of the
    residual weights. The index `n_particles` acts as a sink for the unused
    slots of the deterministic part so that every shape stays static.""",
)
def residual(rng_key: PRNGKey, weights: Array, num_samples: int) -> Array:
    multinomial_key, permutation_key = jax.random.split(rng_key)
    n = weights.shape[0]
    expected_counts = num_samples * weights

    integer_part = jnp.floor(expected_counts).astype(jnp.int32)
    num_deterministic = jnp.sum(integer_part)

    residual_weights = (expected_counts - integer_part) / (
        num_samples - num_deterministic
    )
    residual_idx = multinomial(multinomial_key, residual_weights, num_samples)
    residual_idx = jax.random.permutation(permutation_key, residual_idx)

    deterministic_idx = jnp.repeat(
        jnp.arange(n + 1),
        jnp.concatenate([integer_part, jnp.array([num_samples - num_deterministic])]),
        total_repeat_length=num_samples,
    )

    slots = jnp.arange(num_samples)
    return jnp.where(slots >= num_deterministic, residual_idx, deterministic_idx)


def _systematic_or_stratified(
    rng_key: PRNGKey, weights: Array, num_samples: int, is_systematic: bool
) -> Array:
    n = weights.shape[0]
    if is_systematic:
        u = jax.random.uniform(rng_key, ())
    else:
        u = jax.random.uniform(rng_key, (num_samples,))
    positions = (jnp.arange(num_samples, dtype=weights.dtype) + u) / num_samples
    idx = jnp.searchsorted(jnp.cumsum(weights), positions)
    return jnp.clip(idx, 0, n - 1)


def _sorted_uniforms(rng_key: PRNGKey, n) -> Array:
    # Normalized partial sums of exponential variables are distributed as
    # the order statistics of n uniforms.
    exponentials = -jnp.log(jax.random.uniform(rng_key, (n + 1,)))
    z = jnp.cumsum(exponentials)
    return z[:-1] / z[-1]
