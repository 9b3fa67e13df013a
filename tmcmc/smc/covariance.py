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
"""Weighted population statistics used to shape the random walk proposal."""
import jax
import jax.numpy as jnp

from tmcmc.types import Array, ArrayLike


def weighted_mean(particles: ArrayLike, weights: ArrayLike) -> Array:
    """Weighted mean of the population.

    Parameters
    ----------
    particles: Array
        Population, shape (n_particles, n_dims).
    weights: Array
        Normalized weights, shape (n_particles,).

    Returns
    -------
    The weighted mean, shape (n_dims,).
    """
    return jnp.asarray(weights) @ jnp.asarray(particles)


def weighted_covariance(particles: ArrayLike, weights: ArrayLike) -> Array:
    """Weighted empirical covariance of the population.

    This is :math:`\\sum_i w_i (\\theta_i - \\mu)^T (\\theta_i - \\mu)` with
    :math:`\\mu` the weighted mean. No small-sample correction is applied,
    and the result is positive semi-definite by construction.

    Parameters
    ----------
    particles: Array
        Population, shape (n_particles, n_dims).
    weights: Array
        Normalized weights, shape (n_particles,).

    Returns
    -------
    The weighted covariance, shape (n_dims, n_dims).
    """
    particles = jnp.asarray(particles)
    weights = jnp.asarray(weights)
    centered = particles - weighted_mean(particles, weights)
    return (centered.T * weights) @ centered


def symmetrize(matrix: ArrayLike) -> Array:
    """Average a square matrix with its transpose.

    The result is exactly symmetric, also under `jax.jit`: the barrier keeps
    XLA from rewriting the transpose of a product as a second product, which
    rounds differently.
    """
    matrix = jax.lax.optimization_barrier(jnp.asarray(matrix))
    return (matrix + matrix.T) / 2


def proposal_covariance(
    particles: ArrayLike, weights: ArrayLike, scale: float | Array = 0.01
) -> Array:
    """Covariance of the Gaussian random walk shared by all chains of a step.

    The weighted covariance is multiplied once by `scale` and averaged with
    its transpose so that it is exactly symmetric.

    Parameters
    ----------
    particles: Array
        Population, shape (n_particles, n_dims).
    weights: Array
        Normalized weights, shape (n_particles,).
    scale: float
        Tuning constant controlling the proposal step size.

    Returns
    -------
    The proposal covariance, shape (n_dims, n_dims).
    """
    return symmetrize(scale * weighted_covariance(particles, weights))
