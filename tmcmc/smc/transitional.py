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
"""Transitional Markov Chain Monte Carlo.

TMCMC :cite:p:`ching2007transitional` bridges the prior :math:`p_0` and the
posterior through the sequence of distributions

.. math::
    p_j(x) \\propto p_0(x) L(x)^{\\beta_j}, \\qquad 0 = \\beta_0 < \\beta_1 < \\dots < \\beta_m = 1

Each iteration evaluates the log-likelihood of the population, chooses the
next tempering parameter so that the coefficient of variation of the
importance weights equals a target value, accumulates the log-evidence,
estimates a proposal covariance from the weighted population, resamples the
population and moves every resampled particle with a short random walk
Metropolis-Hastings chain targeting the new tempered distribution.

Examples
--------

    .. code::

        particles, log_evidence = tmcmc.run_tmcmc(
            rng_key, loglikelihood_fn, logprior_fn, prior_sampler_fn, 1_000
        )

    To drive the iterations yourself:

    .. code::

        algorithm = tmcmc.transitional(logprior_fn, loglikelihood_fn)
        state = algorithm.init(initial_particles)
        step = jax.jit(algorithm.step)
        while state.tempering_param < 1:
            rng_key, step_key = jax.random.split(rng_key)
            state, info = step(step_key, state)

"""
import logging
from typing import Callable, NamedTuple, Optional

import jax
import jax.numpy as jnp

import tmcmc.smc.covariance as covariance
import tmcmc.smc.proposal as proposal
import tmcmc.smc.resampling as resampling
import tmcmc.smc.weights as weights
from tmcmc.base import SamplingAlgorithm
from tmcmc.mcmc import random_walk
from tmcmc.progress_bar import tempering_progress_bar
from tmcmc.smc.parallel import vectorized_map
from tmcmc.smc.target import Target
from tmcmc.types import Array, ArrayLike, MapFn, PRNGKey

__all__ = [
    "TMCMCState",
    "TMCMCInfo",
    "init",
    "build_kernel",
    "as_top_level_api",
    "run_tmcmc",
]

logger = logging.getLogger(__name__)


class TMCMCState(NamedTuple):
    """Current state of the TMCMC algorithm.

    Parameters
    ----------
    particles: Array
        The population, shape (n_particles, n_dims). After each step the
        particles are equally weighted draws from the current tempered
        distribution.
    tempering_param: float | Array
        Current value of the tempering parameter.
    log_evidence: float | Array
        Running estimate of the log-evidence of the tempered distribution.
    iteration: int | Array
        Number of steps taken so far.

    """

    particles: Array
    tempering_param: float | Array
    log_evidence: float | Array
    iteration: int | Array


class TMCMCInfo(NamedTuple):
    """Additional information on a TMCMC step.

    Parameters
    ----------
    ancestors: Array
        Index of the particle that seeded each chain of the step.
    loglikelihoods: Array
        Log-likelihood of each particle of the population the step started from.
    weights: Array
        Normalized importance weights of that population.
    log_evidence_increment: float | Array
        The contribution of the step to the log-evidence.
    ess: float | Array
        Effective sample size of the importance weights.
    proposal_covariance: Array
        Covariance of the random walk shared by all chains.
    acceptance_rate: float | Array
        Average Metropolis-Hastings acceptance probability over all chains.
    num_support_failures: int | Array
        Number of chains where a proposal could not be drawn within the
        support of the prior in `max_proposal_tries` draws.

    """

    ancestors: Array
    loglikelihoods: Array
    weights: Array
    log_evidence_increment: float | Array
    ess: float | Array
    proposal_covariance: Array
    acceptance_rate: float | Array
    num_support_failures: int | Array


def init(particles: ArrayLike) -> TMCMCState:
    """Initialize the TMCMC state.

    Parameters
    ----------
    particles: Array
        Initial N particles, typically sampled from the prior, shape
        (n_particles, n_dims).

    Returns
    -------
    TMCMCState
        Initial state with tempering_param and log_evidence set to 0.
    """
    particles = jnp.asarray(particles)
    if particles.ndim != 2:
        raise ValueError(
            "The particles must be a 2D array of shape (n_particles, n_dims), "
            f"got shape {particles.shape}."
        )
    particles = particles.astype(jnp.result_type(particles.dtype, float))
    zero = jnp.zeros((), dtype=particles.dtype)
    return TMCMCState(particles, zero, zero, jnp.zeros((), dtype=jnp.int32))


def build_kernel(
    logprior_fn: Callable,
    loglikelihood_fn: Callable,
    resampling_fn: Callable = resampling.multinomial,
    map_fn: MapFn = vectorized_map,
    target_cov: float = 1.0,
    rtol: float = 1e-6,
    max_proposal_tries: int = 1000,
) -> Callable:
    """Build the TMCMC kernel.

    Parameters
    ----------
    logprior_fn: Callable
        Log prior probability function of a single particle, `-inf` outside
        of the support of the prior.
    loglikelihood_fn: Callable
        Log likelihood function of a single particle.
    resampling_fn: Callable
        Resampling function (from tmcmc.smc.resampling).
    map_fn: Callable
        How per-particle work is distributed (from tmcmc.smc.parallel). Used
        to evaluate the log-likelihoods and to run the chains.
    target_cov: float
        Target coefficient of variation of the importance weights, which
        sets the size of the tempering steps.
    rtol: float
        Relative tolerance of the bisection on the tempering parameter.
    max_proposal_tries: int
        Maximum number of draws to find a proposal inside the support of the
        prior.

    Returns
    -------
    kernel: Callable
        A callable that takes a rng_key, a TMCMCState, the number of MCMC
        steps and the proposal scale, and returns a new TMCMCState along with
        information about the transition.

    """

    def kernel(
        rng_key: PRNGKey,
        state: TMCMCState,
        num_mcmc_steps: int,
        proposal_scale: float | Array,
    ) -> tuple[TMCMCState, TMCMCInfo]:
        """Move the population one step closer to the posterior.

        Parameters
        ----------
        rng_key: PRNGKey
            Key used for random number generation.
        state: TMCMCState
            Current state of the TMCMC algorithm.
        num_mcmc_steps: int
            Length of the chain run from each resampled particle, static.
        proposal_scale: float | Array
            Multiplies the weighted covariance of the population to give the
            covariance of the random walk.

        Returns
        -------
        state: TMCMCState
            The new state of the TMCMC algorithm.
        info: TMCMCInfo
            Additional information on the TMCMC step.

        """
        resampling_key, updating_key = jax.random.split(rng_key, 2)
        particles = state.particles
        num_particles = particles.shape[0]

        loglikelihoods = map_fn(loglikelihood_fn, particles)

        tempering_param = weights.next_tempering_param(
            state.tempering_param, loglikelihoods, target_cov, rtol=rtol
        )
        delta = tempering_param - state.tempering_param
        unnormalized_weights, max_loglikelihood = weights.tempering_weights(
            delta, loglikelihoods
        )
        log_evidence_increment = weights.log_evidence_increment(
            delta, unnormalized_weights, max_loglikelihood
        )
        normalized_weights = weights.normalized_weights(unnormalized_weights)

        proposal_covariance = covariance.proposal_covariance(
            particles, normalized_weights, proposal_scale
        )
        transition_generator = proposal.as_transition_generator(
            proposal.build_proposal(proposal_covariance),
            logprior_fn,
            max_proposal_tries,
        )
        target = Target(tempering_param, loglikelihood_fn, logprior_fn)

        ancestors = resampling_fn(resampling_key, normalized_weights, num_particles)
        seeds = particles[ancestors]

        def refine(key_and_seed):
            key, seed = key_and_seed
            position, chain_info = random_walk.advance(
                key, target, transition_generator, seed, num_mcmc_steps
            )
            out_of_support = (
                jax.vmap(logprior_fn)(chain_info.proposal.position) == -jnp.inf
            )
            return position, jnp.mean(chain_info.acceptance_rate), jnp.any(out_of_support)

        keys = jax.random.split(updating_key, num_particles)
        new_particles, acceptance_rates, support_failures = map_fn(
            refine, (keys, seeds)
        )

        new_state = TMCMCState(
            new_particles,
            tempering_param,
            state.log_evidence + log_evidence_increment,
            state.iteration + 1,
        )
        info = TMCMCInfo(
            ancestors,
            loglikelihoods,
            normalized_weights,
            log_evidence_increment,
            weights.ess(jnp.log(normalized_weights)),
            proposal_covariance,
            jnp.mean(acceptance_rates),
            jnp.sum(support_failures),
        )
        return new_state, info

    return kernel


def _check_parameters(
    num_burnin: int,
    num_thin: int,
    proposal_scale: float,
    target_cov: float,
    max_proposal_tries: int,
):
    if num_burnin < 0:
        raise ValueError(f"num_burnin must be non-negative, got {num_burnin}.")
    if num_thin < 1:
        raise ValueError(f"num_thin must be at least 1, got {num_thin}.")
    if proposal_scale <= 0:
        raise ValueError(f"proposal_scale must be positive, got {proposal_scale}.")
    if target_cov <= 0:
        raise ValueError(f"target_cov must be positive, got {target_cov}.")
    if max_proposal_tries < 1:
        raise ValueError(
            f"max_proposal_tries must be at least 1, got {max_proposal_tries}."
        )


def as_top_level_api(
    logprior_fn: Callable,
    loglikelihood_fn: Callable,
    num_burnin: int = 20,
    num_thin: int = 3,
    proposal_scale: float = 0.01,
    resampling_fn: Callable = resampling.multinomial,
    map_fn: MapFn = vectorized_map,
    target_cov: float = 1.0,
    rtol: float = 1e-6,
    max_proposal_tries: int = 1000,
) -> SamplingAlgorithm:
    """Implements the user interface for the TMCMC kernel.

    Parameters
    ----------
    logprior_fn: Callable
        The log-prior function of the model we wish to draw samples from.
    loglikelihood_fn: Callable
        The log-likelihood function of the model we wish to draw samples from.
    num_burnin: int, optional
        Number of burn-in steps of each chain, by default 20.
    num_thin: int, optional
        Thinning of each chain, by default 3. A single draw is kept per
        chain, after `num_burnin + num_thin` steps.
    proposal_scale: float, optional
        Multiplies the weighted covariance of the population to give the
        covariance of the random walk, by default 0.01.
    resampling_fn: Callable, optional
        The function used to resample the particles, by default multinomial.
    map_fn: Callable, optional
        How per-particle work is distributed, by default `jax.vmap`.
    target_cov: float, optional
        Target coefficient of variation of the importance weights, by
        default 1.
    rtol: float, optional
        Relative tolerance of the bisection on the tempering parameter.
    max_proposal_tries: int, optional
        Maximum number of draws to find a proposal inside the support of the
        prior, by default 1000.

    Returns
    -------
    SamplingAlgorithm
        A ``SamplingAlgorithm`` instance with init and step methods.

    """
    _check_parameters(
        num_burnin, num_thin, proposal_scale, target_cov, max_proposal_tries
    )
    kernel = build_kernel(
        logprior_fn,
        loglikelihood_fn,
        resampling_fn,
        map_fn,
        target_cov,
        rtol,
        max_proposal_tries,
    )
    num_mcmc_steps = num_burnin + num_thin

    def init_fn(position: ArrayLike, rng_key: Optional[PRNGKey] = None) -> TMCMCState:
        del rng_key
        return init(position)

    def step_fn(rng_key: PRNGKey, state: TMCMCState) -> tuple[TMCMCState, TMCMCInfo]:
        return kernel(rng_key, state, num_mcmc_steps, proposal_scale)

    return SamplingAlgorithm(init_fn, step_fn)  # type: ignore[arg-type]


def run_tmcmc(
    rng_key: PRNGKey,
    loglikelihood_fn: Callable,
    logprior_fn: Callable,
    prior_sampler_fn: Callable,
    num_particles: int,
    num_burnin: int = 20,
    num_thin: int = 3,
    proposal_scale: float = 0.01,
    *,
    resampling_fn: Callable = resampling.multinomial,
    map_fn: MapFn = vectorized_map,
    target_cov: float = 1.0,
    rtol: float = 1e-6,
    max_proposal_tries: int = 1000,
    max_num_iterations: Optional[int] = None,
    progress_bar: bool = False,
    return_infos: bool = False,
) -> tuple:
    """Sample from the posterior and estimate the log-evidence with TMCMC.

    The population is drawn from the prior, then moved by TMCMC steps until
    the tempering parameter reaches 1. Each step is jit-compiled.

    Parameters
    ----------
    rng_key
        The random state used by JAX's random numbers generator.
    loglikelihood_fn
        Log-likelihood of a single particle.
    logprior_fn
        Log-density of the prior of a single particle, `-inf` outside of its
        support.
    prior_sampler_fn
        `prior_sampler_fn(rng_key, num_particles)` returns `num_particles`
        draws from the prior as an array of shape (num_particles, n_dims).
    num_particles
        Size of the population.
    num_burnin, num_thin, proposal_scale
        Parameters of the refinement chains, see `as_top_level_api`.
    resampling_fn, map_fn, target_cov, rtol, max_proposal_tries
        See `as_top_level_api`.
    max_num_iterations
        Raise a `RuntimeError` if the tempering parameter has not reached 1
        after that many iterations. No limit by default.
    progress_bar
        Whether to display a progress bar of the tempering parameter.
    return_infos
        Whether to also return the `TMCMCInfo` of every iteration.

    Returns
    -------
        1. The final population, shape (num_particles, n_dims).
        2. The estimate of the log-evidence.
        3. If `return_infos`, the list of `TMCMCInfo` of every iteration.

    Raises
    ------
    ProposalSupportError
        If, in some chain, no proposal with a finite prior density could be
        drawn within `max_proposal_tries` draws.

    """
    if num_particles < 1:
        raise ValueError(f"num_particles must be positive, got {num_particles}.")

    algorithm = as_top_level_api(
        logprior_fn,
        loglikelihood_fn,
        num_burnin,
        num_thin,
        proposal_scale,
        resampling_fn,
        map_fn,
        target_cov,
        rtol,
        max_proposal_tries,
    )

    rng_key, init_key = jax.random.split(rng_key)
    particles = jnp.asarray(prior_sampler_fn(init_key, num_particles))
    if particles.ndim != 2 or particles.shape[0] != num_particles:
        raise ValueError(
            f"prior_sampler_fn must return an array of shape ({num_particles}, "
            f"n_dims), got shape {particles.shape}."
        )
    state = algorithm.init(particles)
    step = jax.jit(algorithm.step)

    if progress_bar:
        update_bar, close_bar = tempering_progress_bar()

    infos = []
    try:
        while state.tempering_param < 1:
            if (
                max_num_iterations is not None
                and state.iteration >= max_num_iterations
            ):
                raise RuntimeError(
                    "The tempering parameter only reached "
                    f"{float(state.tempering_param)} after {max_num_iterations} "
                    "iterations."
                )
            logger.debug("Beginning iteration %d", int(state.iteration) + 1)

            rng_key, step_key = jax.random.split(rng_key)
            state, info = step(step_key, state)

            num_support_failures = int(info.num_support_failures)
            if num_support_failures > 0:
                raise proposal.ProposalSupportError(
                    f"{num_support_failures} chains could not draw a proposal "
                    "inside the support of the prior in "
                    f"{max_proposal_tries} tries at iteration {int(state.iteration)}."
                )

            logger.info(
                "beta_%d = %g", int(state.iteration), float(state.tempering_param)
            )
            if progress_bar:
                update_bar(
                    float(state.tempering_param),
                    f"beta={float(state.tempering_param):.3g}",
                )
            if return_infos:
                infos.append(info)
    finally:
        if progress_bar:
            close_bar()

    logger.info(
        "Log-evidence after %d iterations: %g",
        int(state.iteration),
        float(state.log_evidence),
    )

    if return_infos:
        return state.particles, state.log_evidence, infos
    return state.particles, state.log_evidence
