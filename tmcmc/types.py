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
from typing import Callable

import jax
from jax.typing import ArrayLike

"""
Following the current best practice (https://jax.readthedocs.io/en/latest/jax.typing.html)
We use:
- `ArrayLike` to annotate function input,
- `Array` to annotate function output.

The population of particles is always a two-dimensional array of shape
`(num_particles, num_dims)`; a single particle is a `(num_dims,)` vector.
Scalar quantities such as the tempering parameter or the log-evidence are
annotated as `float | Array` to emphasize they are scalars.
"""
#: JAX arrays
Array = jax.Array

#: JAX PRNGKey
PRNGKey = jax.Array

#: Log-density of a single particle, `(num_dims,) -> ()`
LogDensityFn = Callable[[ArrayLike], ArrayLike]

#: `map_fn(fn, xs) -> ys`, mapping over the leading axis of `xs`
MapFn = Callable[[Callable, ArrayLike], Array]
