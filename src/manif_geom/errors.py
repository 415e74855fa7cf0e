"""Exceptions raised by manif_geom."""


class DegenerateInputError(ValueError):
    """A zero vector was given where a direction (axis, complex number,
    quaternion) is required, so it cannot be normalized."""
