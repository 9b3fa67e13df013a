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
"""Strategies to map a per-particle function over the population.

A map function has the signature `map_fn(fn, xs) -> ys`: `fn` is applied to
every slice of `xs` along its leading axis (`xs` may be a tuple of arrays)
and the results are stacked in the same order. Each call is a barrier: the
result is only available once every item has been processed. The work items
share no mutable state, so they can be evaluated in any order or
concurrently.
"""
from typing import Callable, Optional

import jax
import jax.numpy as jnp

from tmcmc.types import Array, ArrayLike, MapFn

__all__ = ["vectorized_map", "sequential_map", "device_map"]


def vectorized_map(fn: Callable, xs: ArrayLike) -> Array:
    """Evaluate all items at once with `jax.vmap`."""
    return jax.vmap(fn)(xs)


def sequential_map(batch_size: Optional[int] = None) -> MapFn:
    """Evaluate the items one by one, or `batch_size` at a time, with `jax.lax.map`.

    This keeps the memory footprint of expensive log-likelihoods bounded at
    the cost of less parallelism.
    """
    if batch_size is not None and batch_size < 1:
        raise ValueError("batch_size must be a positive integer.")

    def map_fn(fn: Callable, xs: ArrayLike) -> Array:
        return jax.lax.map(fn, xs, batch_size=batch_size)

    return map_fn


def device_map(devices: Optional[list] = None) -> MapFn:
    """Spread the items over several devices with `jax.pmap`.

    The items are split into as many contiguous chunks as there are devices,
    each chunk being vectorized on its device. The population is padded by
    repeating its last item when its size is not a multiple of the number of
    devices, and the padding is dropped from the results.

    Parameters
    ----------
    devices
        The devices to use, by default all local devices.

    """
    num_devices = len(devices) if devices is not None else jax.local_device_count()

    def map_fn(fn: Callable, xs: ArrayLike) -> Array:
        leaves = jax.tree.leaves(xs)
        num_items = leaves[0].shape[0]
        chunk_size = -(-num_items // num_devices)
        num_padding = chunk_size * num_devices - num_items

        idx = jnp.concatenate(
            [jnp.arange(num_items), jnp.full((num_padding,), num_items - 1)]
        )

        def split(x):
            x = x[idx]
            return x.reshape((num_devices, chunk_size) + x.shape[1:])

        def merge(y):
            y = y.reshape((num_devices * chunk_size,) + y.shape[2:])
            return y[:num_items]

        ys = jax.pmap(jax.vmap(fn), devices=devices)(jax.tree.map(split, xs))
        return jax.tree.map(merge, ys)

    return map_fn
