"""
manif_geom: rotation-group manifolds for robotics and estimation.

This library provides unit-norm representations of 2D and 3D rotations
(SO(2) as unit complex numbers, SO(3) as unit quaternions) as immutable JAX
pytrees, usable under jit, vmap and grad in single or double precision.
"""

import jax
jax.config.update("jax_enable_x64", True)

from . import transforms
from .errors import DegenerateInputError
from .transforms import SO2, SO3

__version__ = "0.1.0"
__all__ = ["transforms", "DegenerateInputError", "SO2", "SO3"]
