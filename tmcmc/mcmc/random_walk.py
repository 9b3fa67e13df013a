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
"""Random Walk Rosenbluth-Metropolis-Hastings chains.

TMCMC refines every resampled particle with a short Metropolis-Hastings chain
whose transitions are drawn from a Gaussian centered on the current position.
This module implements the single transition (`build_rmh`) and the chain
that runs it for a fixed number of steps and keeps the last position
(`advance`).

Let's note $x_{t-1}$ the previous position and $x_t$ the newly sampled one.
When no `proposal_logdensity_fn` is given the transition is assumed to be
symmetric, $P(x_t|x_{t-1}) = P(x_{t-1}|x_t)$, which is the case of the
Gaussian random walk. See 'Metropolis Algorithm' in :cite:p:`gelman2014bayesian`
Section 11.2.

Examples
--------

    .. code::

        kernel = tmcmc.mcmc.random_walk.build_rmh()
        state = tmcmc.mcmc.random_walk.init(position, logdensity_fn)
        new_state, info = kernel(rng_key, state, logdensity_fn, transition_generator)

    or, to run a whole chain and keep its last position:

    .. code::

        position, info = tmcmc.mcmc.random_walk.advance(
            rng_key, logdensity_fn, transition_generator, position, num_steps=23
        )

"""
from typing import Callable, NamedTuple, Optional

import jax
from jax import numpy as jnp

from tmcmc.mcmc import proposal
from tmcmc.types import Array, ArrayLike, PRNGKey
from tmcmc.util import linear_map

__all__ = [
    "RWInfo",
    "RWState",
    "init",
    "normal",
    "build_rmh",
    "rmh_proposal",
    "build_rmh_transition_energy",
    "advance",
]


def normal(sigma: Array) -> Callable:
    """Normal Random Walk transition.

    Propose a new position such that its distance to the current position is
    normally distributed.

    Parameter
    ---------
    sigma:
        vector or matrix that contains the standard deviation (or a square
        root of the covariance) of the centered normal distribution from which
        we draw the moves.

    """
    if jnp.ndim(sigma) > 2:
        raise ValueError("sigma must be a vector or a matrix.")

    def propose(rng_key: PRNGKey, position: ArrayLike) -> Array:
        position = jnp.asarray(position)
        noise = jax.random.normal(rng_key, position.shape, position.dtype)
        return position + linear_map(sigma, noise)

    return propose


class RWState(NamedTuple):
    """State of the RW chain.

    position
        Current position of the chain.
    logdensity
        Current value of the log-density

    """

    position: Array
    logdensity: float


class RWInfo(NamedTuple):
    """Additional information on the RW chain.

    acceptance_rate
        The acceptance probability of the transition.
    is_accepted
        Whether the proposed position was accepted or the original position
        was returned.
    proposal
        The state proposed by the transition generator.

    """

    acceptance_rate: float
    is_accepted: bool
    proposal: RWState


def init(position: ArrayLike, logdensity_fn: Callable) -> RWState:
    """Create a chain state from a position.

    Parameters
    ----------
    position
        The initial position of the chain
    logdensity_fn
        Log-probability density function of the distribution we wish to sample
        from.

    """
    position = jnp.asarray(position)
    return RWState(position, logdensity_fn(position))


def build_rmh() -> Callable:
    """Build a Rosenbluth-Metropolis-Hastings kernel.

    Returns
    -------
    A kernel that takes a rng_key and the current state of the chain and that
    returns a new state of the chain along with information about the
    transition.

    """

    def kernel(
        rng_key: PRNGKey,
        state: RWState,
        logdensity_fn: Callable,
        transition_generator: Callable,
        proposal_logdensity_fn: Optional[Callable] = None,
    ) -> tuple[RWState, RWInfo]:
        """Move the chain by one step.

        Parameters
        ----------
        rng_key:
           The pseudo-random number generator key used to generate random
           numbers.
        state:
            The current state of the chain.
        logdensity_fn:
            A function that returns the log-probability at a given position.
        transition_generator:
            A function `(rng_key, position) -> position` that generates a
            candidate for the next position of the chain.
        proposal_logdensity_fn:
            For non-symmetric proposals, a function that returns the log-density
            to obtain a given proposal knowing the current state. If it is not
            provided we assume the proposal is symmetric.

        Returns
        -------
        The next state of the chain and additional information about the
        current step.

        """
        transition_energy = build_rmh_transition_energy(proposal_logdensity_fn)

        compute_acceptance_ratio = proposal.compute_asymmetric_acceptance_ratio(
            transition_energy
        )

        proposal_generator = rmh_proposal(
            logdensity_fn, transition_generator, compute_acceptance_ratio
        )
        new_state, do_accept, p_accept, proposed_state = proposal_generator(
            rng_key, state
        )
        return new_state, RWInfo(p_accept, do_accept, proposed_state)

    return kernel


def build_rmh_transition_energy(proposal_logdensity_fn: Optional[Callable]) -> Callable:
    if proposal_logdensity_fn is None:

        def transition_energy(prev_state, new_state):
            return -new_state.logdensity

    else:

        def transition_energy(prev_state, new_state):
            return -new_state.logdensity - proposal_logdensity_fn(new_state, prev_state)

    return transition_energy


def rmh_proposal(
    logdensity_fn: Callable,
    transition_generator: Callable,
    compute_acceptance_ratio: Callable,
    sample_proposal: Callable = proposal.static_binomial_sampling,
) -> Callable:
    def generate(rng_key, previous_state: RWState):
        key_proposal, key_accept = jax.random.split(rng_key, 2)
        new_position = transition_generator(key_proposal, previous_state.position)
        proposed_state = RWState(new_position, logdensity_fn(new_position))
        log_p_accept = compute_acceptance_ratio(previous_state, proposed_state)
        accepted_state, (do_accept, p_accept) = sample_proposal(
            key_accept, log_p_accept, previous_state, proposed_state
        )
        return accepted_state, do_accept, p_accept, proposed_state

    return generate


def advance(
    rng_key: PRNGKey,
    logdensity_fn: Callable,
    transition_generator: Callable,
    position: ArrayLike,
    num_steps: int,
) -> tuple[Array, RWInfo]:
    """Run a Metropolis-Hastings chain and return its last position.

    Burn-in and thinning reduce to running the chain for
    `num_burnin + num_thin` steps when a single draw is kept per chain.

    Parameters
    ----------
    rng_key
        Key used to generate pseudo-random numbers along the chain.
    logdensity_fn
        Log-density of the distribution the chain targets.
    transition_generator
        A function `(rng_key, position) -> position` that generates candidates.
    position
        The initial position of the chain.
    num_steps
        Number of transitions, must be static.

    Returns
    -------
    position
        The last position of the chain.
    info
        The `RWInfo` of every transition, stacked along a leading axis of
        length `num_steps`.

    """
    kernel = build_rmh()
    state = init(position, logdensity_fn)

    def one_step(state, rng_key):
        return kernel(rng_key, state, logdensity_fn, transition_generator)

    keys = jax.random.split(rng_key, num_steps)
    last_state, info = jax.lax.scan(one_step, state, keys)
    return last_state.position, info
