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
from typing import NamedTuple, Optional

from typing_extensions import Protocol

from .types import ArrayLike, PRNGKey

Position = ArrayLike
State = NamedTuple
Info = NamedTuple


class InitFn(Protocol):
    """A `Callable` used to initialize the kernel state.

    The TMCMC kernel does not operate on the population alone but on a state
    that carries the population together with the current tempering parameter
    and the running log-evidence. The `InitFn` returns the state that
    corresponds to an initial population, typically drawn from the prior.

    """

    def __call__(self, position: Position, rng_key: Optional[PRNGKey]) -> State:
        """Initialize the algorithm's state.

        Parameters
        ----------
        position
           The initial population.

        Returns
        -------
        The kernel state that corresponds to the population.

        """


class UpdateFn(Protocol):
    """A transition kernel used as the `step` of a `SamplingAlgorithm`.

    Kernels are pure functions. They take a random state `rng_key` and the
    current kernel state as parameters, and return a new state and some
    information about the transition.

    """

    def __call__(self, rng_key: PRNGKey, state: State) -> tuple[State, Info]:
        """Update the current state using the sampling algorithm.

        Parameters
        ----------
        rng_key:
            The random state used by JAX's random numbers generator.
        state:
            The current kernel state.

        Returns
        -------
        A new state, as well as a NamedTuple that contains extra information
        about the transition that does not need to be carried over to the next
        step.

        """


class SamplingAlgorithm(NamedTuple):
    """A pair of functions that represents a sampling algorithm.

    Sampling algorithms are implemented as a pair of pure functions: a
    kernel, that generates a new state from the current state, and an
    initialization function that creates a kernel state from a position.

    init:
        A pure function which when called with the initial position will
        return the kernel's initial state.

    step:
        A pure function that takes a rng key and a state and returns a new
        state and some information about the transition.

    """

    init: InitFn
    step: UpdateFn
