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
"""Acceptance rules for Metropolis-Hastings transitions."""
from typing import Callable

import jax
import jax.numpy as jnp

from tmcmc.types import PRNGKey


def safe_energy_diff(initial_energy: float, new_energy: float) -> float:
    delta_energy = initial_energy - new_energy
    delta_energy = jnp.where(jnp.isnan(delta_energy), -jnp.inf, delta_energy)
    return delta_energy


def compute_asymmetric_acceptance_ratio(transition_energy_fn: Callable) -> Callable:
    """Generate a function to compute the log acceptance ratio of a transition.

    Parameters
    ----------
    transition_energy_fn
        A function that computes the energy of moving from a state to
        another, `transition_energy_fn(prev_state, new_state)`.

    Returns
    -------
    A function that computes the log acceptance probability of moving from
    `initial_state` to `state`. Undefined energy differences (NaN) are
    mapped to a rejection.
    """

    def compute_acceptance_ratio(initial_state, state) -> float:
        new_energy = transition_energy_fn(initial_state, state)
        prev_energy = transition_energy_fn(state, initial_state)
        return safe_energy_diff(prev_energy, new_energy)

    return compute_acceptance_ratio


def static_binomial_sampling(
    rng_key: PRNGKey, log_p_accept: float, proposal, new_proposal
):
    """Accept or reject a proposal.

    The new proposal is accepted with probability
    :math:`\\min(1, \\exp(\\log p))`; if the energy decreases it is always
    accepted.

    """
    p_accept = jnp.clip(jnp.exp(log_p_accept), max=1)
    do_accept = jax.random.bernoulli(rng_key, p_accept)
    info = do_accept, p_accept
    return (
        jax.lax.cond(
            do_accept,
            lambda _: new_proposal,
            lambda _: proposal,
            operand=None,
        ),
        info,
    )
