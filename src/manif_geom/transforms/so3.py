"""SO(3) rotations as unit quaternions.

Rotations are stored as (..., 4) Hamilton quaternions in (w, x, y, z) order.
q and -q describe the same rotation; no operation picks one sign over the
other. Euler angles follow the intrinsic Z-Y-X (roll-pitch-yaw) convention,
i.e. q = q_yaw ⊗ q_pitch ⊗ q_roll.
"""

from typing import Tuple

import jax
import jax.numpy as jnp
from flax import struct

from .rotation import (
    check_last_dim,
    default_dtype,
    matrix_to_quaternion,
    normalize,
    quaternion_conjugate,
    quaternion_multiply,
    quaternion_rotate,
    quaternion_to_matrix,
    safe_normalize,
)

Array = jax.Array


@struct.dataclass
class SO3:
    """Immutable 3D rotation(s), stored as unit quaternions.

    Constructing SO3 directly from an array stores it unchecked, like an
    unchecked unit wrapper; the class method constructors all normalize.

    Attributes:
        wxyz: (..., 4) array of quaternions in (w, x, y, z) format.
    """
    wxyz: Array

    # Constructors
    @classmethod
    def identity(cls, batch_shape: Tuple[int, ...] = (), *, dtype=None) -> "SO3":
        unit = jnp.array([1.0, 0.0, 0.0, 0.0], dtype=default_dtype(dtype))
        return cls(jnp.broadcast_to(unit, batch_shape + (4,)))

    @classmethod
    def from_quaternion(cls, w, x, y, z) -> "SO3":
        """
        Rotation from a (not necessarily unit) quaternion w + xi + yj + zk.

        Raises:
            DegenerateInputError: if all four components are zero.
        """
        parts = jnp.broadcast_arrays(*(jnp.asarray(c) for c in (w, x, y, z)))
        return cls(safe_normalize(jnp.stack(parts, axis=-1), "quaternion"))

    @classmethod
    def from_axis_angle(cls, axis, angle) -> "SO3":
        """
        Rotation by *angle* radians about *axis*.

        Args:
            axis: (..., 3) rotation axis, any non-zero length
            angle: (...) rotation angle in radians

        Returns:
            SO3 with wxyz = (cos(angle/2), sin(angle/2) * axis / |axis|)

        Raises:
            DegenerateInputError: if the axis is the zero vector.
        """
        axis = jnp.asarray(axis)
        check_last_dim(axis, 3, "axis")
        axis = safe_normalize(axis.astype(jnp.result_type(axis.dtype, float)), "axis")

        half_angle = 0.5 * jnp.asarray(angle)
        xyz = jnp.sin(half_angle)[..., None] * axis
        w = jnp.broadcast_to(jnp.cos(half_angle)[..., None], xyz.shape[:-1] + (1,))
        wxyz = jnp.concatenate([w, xyz], axis=-1)
        return cls(normalize(wxyz))

    @classmethod
    def from_euler(cls, roll, pitch, yaw) -> "SO3":
        """
        Rotation from roll (about X), pitch (about Y) and yaw (about Z).

        The result is q_yaw ⊗ q_pitch ⊗ q_roll: acting on a vector, roll is
        applied first and yaw last. roll(), pitch() and yaw() invert this.
        """
        dtype = jnp.result_type(roll, pitch, yaw, float)
        x_axis, y_axis, z_axis = jnp.eye(3, dtype=dtype)
        q_roll = cls.from_axis_angle(x_axis, roll)
        q_pitch = cls.from_axis_angle(y_axis, pitch)
        q_yaw = cls.from_axis_angle(z_axis, yaw)
        return q_yaw * q_pitch * q_roll

    @classmethod
    def from_rotation_matrix(cls, matrix) -> "SO3":
        """Rotation from a (..., 3, 3) rotation matrix (not checked for orthogonality)."""
        matrix = jnp.asarray(matrix)
        if matrix.shape[-2:] != (3, 3):
            raise ValueError(f"matrix must have shape (...,3,3), got {matrix.shape}")
        matrix = matrix.astype(jnp.result_type(matrix.dtype, float))
        return cls(matrix_to_quaternion(matrix))

    @classmethod
    def random(cls, key: Array, batch_shape: Tuple[int, ...] = (), *, dtype=None) -> "SO3":
        """Uniformly distributed rotation(s) drawn with the PRNG *key*."""
        # An isotropic Gaussian in R^4 projects to the uniform measure on S^3
        samples = jax.random.normal(key, batch_shape + (4,), dtype=default_dtype(dtype))
        return cls(normalize(samples))

    # Accessors
    def w(self) -> Array:
        return self.wxyz[..., 0]

    def x(self) -> Array:
        return self.wxyz[..., 1]

    def y(self) -> Array:
        return self.wxyz[..., 2]

    def z(self) -> Array:
        return self.wxyz[..., 3]

    def array(self) -> Array:
        """Copy of the raw (..., 4) array."""
        return jnp.array(self.wxyz)

    def as_matrix(self) -> Array:
        return quaternion_to_matrix(self.wxyz)

    # Euler decomposition
    def roll(self) -> Array:
        w, x, y, z = jnp.moveaxis(self.wxyz, -1, 0)
        return jnp.arctan2(2 * (w * x + y * z), 1 - 2 * (x * x + y * y))

    def pitch(self) -> Array:
        """
        Pitch angle in [-π/2, π/2].

        Near gimbal lock rounding can push the arcsine argument just outside
        [-1, 1]; the result is then held at ±π/2 instead of becoming NaN.
        """
        w, x, y, z = jnp.moveaxis(self.wxyz, -1, 0)
        val = 2 * (w * y - x * z)
        out_of_range = jnp.abs(val) > 1
        # keep arcsin (and its gradient) finite on the branch that is discarded
        safe_val = jnp.where(out_of_range, 0.0, val)
        return jnp.where(out_of_range, jnp.copysign(jnp.pi / 2, val), jnp.arcsin(safe_val))

    def yaw(self) -> Array:
        w, x, y, z = jnp.moveaxis(self.wxyz, -1, 0)
        return jnp.arctan2(2 * (w * z + x * y), 1 - 2 * (y * y + z * z))

    # Group operations
    def inverse(self) -> "SO3":
        return SO3(quaternion_conjugate(self.wxyz))

    def compose(self, other: "SO3") -> "SO3":
        """
        Self ∘ other (apply *other* first, then self). Re-normalized.

        Mixed precision promotes by the usual JAX rules, so composing with the
        float64 default identity() yields float64; pass dtype= to keep float32.
        """
        return SO3(normalize(quaternion_multiply(self.wxyz, other.wxyz)))

    otimes = compose

    def __mul__(self, other: "SO3") -> "SO3":
        if not isinstance(other, SO3):
            return NotImplemented
        return self.compose(other)

    def rotate(self, v) -> Array:
        """
        Apply the rotation to vector(s).

        Args:
            v: (..., 3) vector(s)

        Returns:
            (..., 3) rotated vector(s), not normalized
        """
        v = jnp.asarray(v)
        check_last_dim(v, 3, "v")
        return quaternion_rotate(self.wxyz, v)
