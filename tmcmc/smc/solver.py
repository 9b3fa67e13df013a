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
"""All things solving for adaptive tempering."""
from typing import Callable

import jax
import jax.numpy as jnp

from tmcmc.types import Array


def bisection(
    fun: Callable,
    lower: float | Array,
    upper: float | Array,
    rtol: float = 1e-6,
    max_iter: int = 100,
) -> Array:
    """Solves for the tempering parameter by bisection.

    The bracket `[lower, upper]` is halved until its width relative to its
    midpoint falls below `rtol`. At each iteration the midpoint is evaluated:
    if `fun(mid) > 0` the step is considered too big and the upper bound is
    tightened, otherwise the lower bound is raised.

    There is no requirement that `fun` changes sign within the bracket. When
    it does not, the search simply converges towards one of the ends, which
    is what the adaptive tempering schedule expects for nearly flat
    likelihoods.

    Parameters
    ----------
    fun: Callable
        The increasing function to solve.
    lower: float
        Starting point of the interval search
    upper: float
        End point of the interval search
    rtol: float
        Tolerance for :math:`(b - a) / ((a + b) / 2)`
    max_iter: int
        Maximum number of iterations in the bisection search

    Returns
    -------
    mid: Array, shape (,)
        The last midpoint evaluated by the search.

    """
    lower = jnp.asarray(lower)
    lower = lower.astype(jnp.result_type(lower.dtype, float))
    upper = jnp.asarray(upper, dtype=lower.dtype)

    def body(carry: tuple) -> tuple:
        i, a, b, _ = carry

        mid = 0.5 * (a + b)
        a, b = jax.lax.cond(
            fun(mid) > 0,
            lambda _: (a, mid),
            lambda _: (mid, b),
            None,
        )
        return i + 1, a, b, mid

    def cond(carry: tuple) -> Array:
        i, a, b, _ = carry
        return jnp.logical_and(i < max_iter, (b - a) / (0.5 * (a + b)) > rtol)

    _, _, _, mid = jax.lax.while_loop(
        cond, body, (0, lower, upper, 0.5 * (lower + upper))
    )
    return mid
