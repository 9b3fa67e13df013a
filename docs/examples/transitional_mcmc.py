import jax
import jax.numpy as jnp
from jax.scipy.linalg import inv, solve

import tmcmc

# jax.config.update("jax_enable_x64", True)

rng_key = jax.random.key(0)
d = 5

C = jax.random.normal(rng_key, (d, d)) * 0.1
like_cov = C @ C.T + 0.05 * jnp.eye(d)
like_mean = jax.random.normal(rng_key, (d,))
prior_mean = jnp.zeros(d)
prior_cov = jnp.eye(d) * 1
logprior_fn = lambda x: jax.scipy.stats.multivariate_normal.logpdf(
    x, prior_mean, prior_cov
)


def loglikelihood_fn(x):
    return jax.scipy.stats.multivariate_normal.logpdf(x, mean=like_mean, cov=like_cov)


def prior_sampler_fn(rng_key, num_particles):
    return jax.random.multivariate_normal(
        rng_key, prior_mean, prior_cov, (num_particles,)
    )


def compute_logZ(mu_L, Sigma_L, logLmax=0, mu_pi=None, Sigma_pi=None):
    Sigma_P = inv(inv(Sigma_pi) + inv(Sigma_L))
    mu_P = jnp.dot(Sigma_P, (solve(Sigma_pi, mu_pi) + solve(Sigma_L, mu_L)))
    logdet_Sigma_P = jnp.linalg.slogdet(Sigma_P)[1]
    logdet_Sigma_pi = jnp.linalg.slogdet(Sigma_pi)[1]

    return (
        logLmax
        + logdet_Sigma_P / 2
        - logdet_Sigma_pi / 2
        - jnp.dot((mu_P - mu_pi), solve(Sigma_pi, mu_P - mu_pi)) / 2
        - jnp.dot((mu_P - mu_L), solve(Sigma_L, mu_P - mu_L)) / 2
    )


log_analytic_evidence = compute_logZ(
    like_mean,
    like_cov,
    mu_pi=prior_mean,
    Sigma_pi=prior_cov,
    logLmax=loglikelihood_fn(like_mean),
)

############################################
# Running the whole schedule with the driver
############################################

# num_particles is the size of the population carried from the prior to the posterior
num_particles = 2000
# every resampled particle is refined by a chain of num_burnin + num_thin
# Metropolis-Hastings steps, only the last position is kept
num_burnin = 20
num_thin = 3

rng_key, run_key = jax.random.split(rng_key)
particles, log_evidence = tmcmc.run_tmcmc(
    run_key,
    loglikelihood_fn,
    logprior_fn,
    prior_sampler_fn,
    num_particles,
    num_burnin=num_burnin,
    num_thin=num_thin,
    proposal_scale=0.04,
    progress_bar=True,
)

print(f"analytic evidence: {log_analytic_evidence:.2f}")
print(f"estimated evidence: {log_evidence:.2f}")
print(f"posterior mean: {particles.mean(axis=0)}")

############################################
# Driving the loop by hand
############################################

# The same algorithm is available as an `init`/`step` pair, one step being one
# tempering iteration. This is useful to inspect every intermediate population.
algo = tmcmc.transitional(
    logprior_fn,
    loglikelihood_fn,
    num_burnin=num_burnin,
    num_thin=num_thin,
    proposal_scale=0.04,
)
step = jax.jit(algo.step)

rng_key, init_key = jax.random.split(rng_key)
state = algo.init(prior_sampler_fn(init_key, num_particles))
while state.tempering_param < 1:
    rng_key, step_key = jax.random.split(rng_key)
    state, info = step(step_key, state)
    print(
        f"iteration {int(state.iteration)}: beta={float(state.tempering_param):.4f} "
        f"ess={float(info.ess):.0f} acceptance={float(info.acceptance_rate):.2f}"
    )

print(f"estimated evidence: {state.log_evidence:.2f}")
