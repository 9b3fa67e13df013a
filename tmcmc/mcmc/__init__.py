from . import proposal, random_walk

__all__ = [
    "proposal",
    "random_walk",
]
