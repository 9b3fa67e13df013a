from . import (
    covariance,
    parallel,
    proposal,
    resampling,
    solver,
    target,
    transitional,
    weights,
)
from .proposal import ProposalSupportError
from .transitional import run_tmcmc

__all__ = [
    "covariance",
    "parallel",
    "proposal",
    "resampling",
    "solver",
    "target",
    "transitional",
    "weights",
    "ProposalSupportError",
    "run_tmcmc",
]
