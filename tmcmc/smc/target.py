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
from typing import NamedTuple

from tmcmc.types import Array, ArrayLike, LogDensityFn


class Target(NamedTuple):
    """Tempered posterior targeted by the chains of a TMCMC step.

    Its log-density is :math:`\\beta \\log L(x) + \\log p_0(x)`, the prior
    times the likelihood raised to the tempering parameter.

    tempering_param
        The tempering parameter :math:`\\beta` of the step.
    loglikelihood_fn
        Log-likelihood of a single particle.
    logprior_fn
        Log-density of the prior of a single particle.

    """

    tempering_param: float | Array
    loglikelihood_fn: LogDensityFn
    logprior_fn: LogDensityFn

    def __call__(self, position: ArrayLike) -> Array:
        tempered_loglikelihood = self.tempering_param * self.loglikelihood_fn(position)
        return tempered_loglikelihood + self.logprior_fn(position)
