"""SO(2) rotations as unit complex numbers.

A rotation by θ is stored as the (..., 2) array (cos θ, sin θ). Values are
immutable pytrees and work under jit, vmap and grad.
"""

from typing import Tuple

import jax
import jax.numpy as jnp
from flax import struct

from .rotation import (
    check_last_dim,
    complex_multiply,
    default_dtype,
    normalize,
    safe_normalize,
)

Array = jax.Array


@struct.dataclass
class SO2:
    """Immutable 2D rotation(s), stored as unit complex numbers (w, x).

    Constructing SO2 directly from an array stores it unchecked; use the class
    method constructors to get a normalized value.

    Attributes:
        unit_complex: (..., 2) array of (cos θ, sin θ).
    """
    unit_complex: Array

    # Constructors
    @classmethod
    def identity(cls, batch_shape: Tuple[int, ...] = (), *, dtype=None) -> "SO2":
        unit = jnp.array([1.0, 0.0], dtype=default_dtype(dtype))
        return cls(jnp.broadcast_to(unit, batch_shape + (2,)))

    @classmethod
    def from_angle(cls, theta) -> "SO2":
        """Rotation by *theta* radians. Unit by construction, not re-normalized."""
        theta = jnp.asarray(theta)
        return cls(jnp.stack([jnp.cos(theta), jnp.sin(theta)], axis=-1))

    @classmethod
    def from_complex(cls, w, x) -> "SO2":
        """
        Rotation from a (not necessarily unit) complex number w + xi.

        Raises:
            DegenerateInputError: if w and x are both zero.
        """
        wx = jnp.stack(jnp.broadcast_arrays(jnp.asarray(w), jnp.asarray(x)), axis=-1)
        return cls(safe_normalize(wx, "complex number"))

    @classmethod
    def from_rotation_matrix(cls, matrix) -> "SO2":
        """
        Rotation from a 2x2 rotation matrix.

        Only the first column is read and normalized; *matrix* is assumed to be
        a valid rotation.

        Args:
            matrix: (..., 2, 2) rotation matrix
        """
        matrix = jnp.asarray(matrix)
        if matrix.shape[-2:] != (2, 2):
            raise ValueError(f"matrix must have shape (...,2,2), got {matrix.shape}")
        return cls(safe_normalize(matrix[..., :, 0], "rotation matrix column"))

    @classmethod
    def random(cls, key: Array, batch_shape: Tuple[int, ...] = (), *, dtype=None) -> "SO2":
        """Uniformly distributed rotation(s) drawn with the PRNG *key*."""
        theta = jax.random.uniform(
            key, batch_shape, dtype=default_dtype(dtype), minval=-jnp.pi, maxval=jnp.pi
        )
        return cls.from_angle(theta)

    # Accessors
    def w(self) -> Array:
        return self.unit_complex[..., 0]

    def x(self) -> Array:
        return self.unit_complex[..., 1]

    def array(self) -> Array:
        """Copy of the raw (..., 2) array."""
        return jnp.array(self.unit_complex)

    def angle(self) -> Array:
        return jnp.arctan2(self.x(), self.w())

    def as_matrix(self) -> Array:
        w, x = self.w(), self.x()
        return jnp.stack([
            jnp.stack([w, -x], axis=-1),
            jnp.stack([x, w], axis=-1),
        ], axis=-2)

    # Group operations
    def inverse(self) -> "SO2":
        return SO2(self.unit_complex * jnp.array([1.0, -1.0], dtype=self.unit_complex.dtype))

    def compose(self, other: "SO2") -> "SO2":
        """
        Self ∘ other (apply *other* first, then self).

        Mixed precision promotes by the usual JAX rules; build identity() with
        a matching dtype= to stay in float32.
        """
        return SO2(normalize(complex_multiply(self.unit_complex, other.unit_complex)))

    otimes = compose

    def __mul__(self, other: "SO2") -> "SO2":
        if not isinstance(other, SO2):
            return NotImplemented
        return self.compose(other)

    def rotate(self, v) -> Array:
        """
        Rotate 2D vector(s).

        Args:
            v: (..., 2) vector(s)

        Returns:
            (..., 2) rotated vector(s)
        """
        v = jnp.asarray(v)
        check_last_dim(v, 2, "v")
        w, x = self.w(), self.x()
        return jnp.stack([w * v[..., 0] - x * v[..., 1], x * v[..., 0] + w * v[..., 1]], axis=-1)
