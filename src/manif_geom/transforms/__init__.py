"""
JAX-based rotation groups for robotics and computer vision.

This module provides immutable, JIT-compilable value types for:
- SO(2) rotations as unit complex numbers (so2 module)
- SO(3) rotations as unit quaternions (so3 module)

The raw-array conversion helpers they share live in the rotation module.
"""

from . import rotation
from .so2 import SO2
from .so3 import SO3

__all__ = [
    "rotation",
    "SO2",
    "SO3",
]
