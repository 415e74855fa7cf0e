"""Rotation conversion utilities in JAX.

Raw-array helpers shared by the SO(2) and SO(3) value types. Quaternions are
stored as (..., 4) arrays in (w, x, y, z) order, unit complex numbers as
(..., 2) arrays in (w, x) = (cos, sin) order.
"""

import logging

import jax
import jax.numpy as jnp

from ..errors import DegenerateInputError

logger = logging.getLogger(__name__)

# Type aliases
Array = jax.Array


def check_last_dim(v: Array, size: int, name: str) -> None:
    if v.shape[-1:] != (size,):
        raise ValueError(f"{name} must have shape (...,{size}), got {v.shape}")


def check_nonzero(norm: Array, name: str) -> None:
    """Raise DegenerateInputError if any norm is zero.

    Only concrete values can be checked. Under jit/vmap tracing the check is
    skipped and a zero input yields non-finite output.
    """
    try:
        degenerate = bool(jnp.any(norm == 0))
    except jax.errors.ConcretizationTypeError:
        logger.debug("Skipping zero-norm check on traced %s", name)
        return
    if degenerate:
        raise DegenerateInputError(f"{name} must be non-zero to be normalized")


def default_dtype(dtype=None):
    """Resolve an optional dtype to the active default floating point type."""
    return jnp.result_type(float) if dtype is None else jnp.dtype(dtype)


def normalize(v: Array) -> Array:
    """Normalize vectors to unit length along the last axis."""
    return v / jnp.linalg.norm(v, axis=-1, keepdims=True)


def safe_normalize(v: Array, name: str) -> Array:
    """Like normalize, but reject zero-length input by name."""
    norm = jnp.linalg.norm(v, axis=-1, keepdims=True)
    check_nonzero(norm, name)
    return v / norm


def quaternion_multiply(q1: Array, q2: Array) -> Array:
    """
    Hamilton product q1 ⊗ q2.

    Args:
        q1: (..., 4) quaternions in (w, x, y, z) format
        q2: (..., 4) quaternions in (w, x, y, z) format

    Returns:
        (..., 4) product, not normalized
    """
    w1, x1, y1, z1 = jnp.moveaxis(q1, -1, 0)
    w2, x2, y2, z2 = jnp.moveaxis(q2, -1, 0)

    return jnp.stack([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2,
    ], axis=-1)


def quaternion_conjugate(q: Array) -> Array:
    return q * jnp.array([1.0, -1.0, -1.0, -1.0], dtype=q.dtype)


def quaternion_rotate(q: Array, v: Array) -> Array:
    """
    Rotate vectors by unit quaternions without building a matrix.

    Expands q v q^-1 into the same nine terms as quaternion_to_matrix. The
    result is not normalized.

    Args:
        q: (..., 4) unit quaternions in (w, x, y, z) format
        v: (..., 3) vectors

    Returns:
        (..., 3) rotated vectors
    """
    w, x, y, z = jnp.moveaxis(q, -1, 0)
    vx, vy, vz = jnp.moveaxis(v, -1, 0)

    xx, yy, zz = x*x, y*y, z*z
    wx, wy, wz = w*x, w*y, w*z
    xy, xz, yz = x*y, x*z, y*z

    return jnp.stack([
        vx + 2*(-(yy + zz)*vx + (xy - wz)*vy + (xz + wy)*vz),
        vy + 2*((xy + wz)*vx - (xx + zz)*vy + (yz - wx)*vz),
        vz + 2*((xz - wy)*vx + (yz + wx)*vy - (xx + yy)*vz),
    ], axis=-1)


def quaternion_to_matrix(quaternions: Array) -> Array:
    """
    Convert unit quaternions to rotation matrices.

    Args:
        quaternions: (..., 4) array of quaternions in (w, x, y, z) format

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    w, x, y, z = jnp.moveaxis(quaternions, -1, 0)

    xx, yy, zz = x*x, y*y, z*z
    wx, wy, wz = w*x, w*y, w*z
    xy, xz, yz = x*y, x*z, y*z

    return jnp.stack([
        jnp.stack([1 - 2*(yy + zz), 2*(xy - wz), 2*(xz + wy)], axis=-1),
        jnp.stack([2*(xy + wz), 1 - 2*(xx + zz), 2*(yz - wx)], axis=-1),
        jnp.stack([2*(xz - wy), 2*(yz + wx), 1 - 2*(xx + yy)], axis=-1)
    ], axis=-2)


def matrix_to_quaternion(matrix: Array) -> Array:
    """
    Convert rotation matrices to quaternions (w, x, y, z).
    Batch-safe and JIT-friendly implementation.

    The sign of the result is whatever the selected branch produces; q and -q
    are the same rotation and neither is preferred.

    Args:
        matrix: (..., 3, 3) array of rotation matrices

    Returns:
        (..., 4) array of unit quaternions in (w, x, y, z) format
    """
    m00 = matrix[..., 0, 0]
    m01 = matrix[..., 0, 1]
    m02 = matrix[..., 0, 2]
    m10 = matrix[..., 1, 0]
    m11 = matrix[..., 1, 1]
    m12 = matrix[..., 1, 2]
    m20 = matrix[..., 2, 0]
    m21 = matrix[..., 2, 1]
    m22 = matrix[..., 2, 2]

    trace = m00 + m11 + m22

    # Use dtype-adaptive epsilon
    eps = jnp.finfo(matrix.dtype).eps

    # Four candidates, each well conditioned when its leading term dominates
    q0 = jnp.stack([trace + 1.0, m21 - m12, m02 - m20, m10 - m01], axis=-1)
    q1 = jnp.stack([m21 - m12, m00 - m11 - m22 + 1.0, m01 + m10, m02 + m20], axis=-1)
    q2 = jnp.stack([m02 - m20, m01 + m10, m11 - m00 - m22 + 1.0, m12 + m21], axis=-1)
    q3 = jnp.stack([m10 - m01, m02 + m20, m12 + m21, m22 - m00 - m11 + 1.0], axis=-1)

    s0 = 0.5 / jnp.sqrt(jnp.maximum(1.0 + trace, eps))
    s1 = 0.5 / jnp.sqrt(jnp.maximum(1.0 + m00 - m11 - m22, eps))
    s2 = 0.5 / jnp.sqrt(jnp.maximum(1.0 + m11 - m00 - m22, eps))
    s3 = 0.5 / jnp.sqrt(jnp.maximum(1.0 + m22 - m00 - m11, eps))

    mask0 = trace > 0
    mask1 = (~mask0) & (m00 > m11) & (m00 > m22)
    mask2 = (~mask0) & (~mask1) & (m11 > m22)

    quaternion = jnp.where(
        mask0[..., None], q0 * s0[..., None],
        jnp.where(
            mask1[..., None], q1 * s1[..., None],
            jnp.where(mask2[..., None], q2 * s2[..., None], q3 * s3[..., None]),
        ),
    )

    return quaternion / jnp.linalg.norm(quaternion, axis=-1, keepdims=True)


def complex_multiply(a: Array, b: Array) -> Array:
    """Product of (..., 2) complex numbers stored as (w, x)."""
    w1, x1 = jnp.moveaxis(a, -1, 0)
    w2, x2 = jnp.moveaxis(b, -1, 0)
    return jnp.stack([w1*w2 - x1*x2, w1*x2 + x1*w2], axis=-1)
