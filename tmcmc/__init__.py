import dataclasses
from typing import Callable

from tmcmc._version import __version__

from .base import SamplingAlgorithm
from .mcmc import random_walk
from .smc import transitional as _transitional
from .smc.proposal import ProposalSupportError
from .smc.transitional import run_tmcmc

"""
The class below exposes both the high level factory of an algorithm and its
low level components, `init` and `build_kernel`, which operate on explicit
parameters and are mostly functional in nature.
"""


@dataclasses.dataclass
class GenerateSamplingAPI:
    differentiable: Callable
    init: Callable
    build_kernel: Callable

    def __call__(self, *args, **kwargs) -> SamplingAlgorithm:
        return self.differentiable(*args, **kwargs)


def generate_top_level_api_from(module):
    return GenerateSamplingAPI(
        module.as_top_level_api, module.init, module.build_kernel
    )


transitional = generate_top_level_api_from(_transitional)

__all__ = [
    "__version__",
    "transitional",
    "random_walk",
    "run_tmcmc",
    "ProposalSupportError",
    "SamplingAlgorithm",
]
