'''Universal-variable Kepler propagation package
Vector geometry helpers

Angles, vector rejection, and the rotation constructions used to orient
orbits in world space. Vectors are length-3 numpy arrays; rotations are
3x3 numpy matrices acting on column vectors.

Dot products and matrix products are summed in a fixed x, y, z order
rather than through BLAS, so propagated states do not depend on the
numpy build.'''

import math

import numpy as np

from .config import config

X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])


def dot(u, v):
    """Dot product of two 3-vectors."""
    return float(u[0] * v[0] + u[1] * v[1] + u[2] * v[2])


def norm(v):
    """Euclidean length of a 3-vector."""
    return math.sqrt(dot(v, v))


def rotate(rotation, v):
    """Apply a 3x3 matrix to a 3-vector."""
    return rotation[:, 0] * v[0] + rotation[:, 1] * v[1] + rotation[:, 2] * v[2]


def compose(a, b):
    """Matrix product a b of two 3x3 matrices."""
    return np.column_stack([rotate(a, b[:, j]) for j in range(3)])


def reject(u, v):
    """
    Vector rejection of u from v: the part of u perpendicular to v.

    v must be non-zero.
    """
    u = np.asarray(u, dtype=float)
    v = np.asarray(v, dtype=float)
    return u - dot(u, v) * v / dot(v, v)


def angle_between(u, v):
    """Unsigned angle between u and v in [0, pi]; 0 if either is zero."""
    n1 = norm(u)
    n2 = norm(v)
    if n1 == 0.0 or n2 == 0.0:
        return 0.0
    cos_angle = dot(u, v) / (n1 * n2)
    if cos_angle > 1.0:
        return 0.0
    elif cos_angle < -1.0:
        return math.pi
    return math.acos(cos_angle)


def directed_angle(u, v, up):
    """
    Angle from u to v measured counter-clockwise around `up`.

    Returns
    -------
    float
        Angle in [0, 2 pi)
    """
    theta = angle_between(u, v)
    if dot(np.cross(u, v), up) >= 0.0:
        return theta
    return 2.0 * math.pi - theta


def axis_rotation(axis, angle):
    """Right-handed rotation matrix by `angle` about the unit vector `axis`."""
    axis = np.asarray(axis, dtype=float)
    x, y, z = axis
    c = math.cos(angle)
    s = math.sin(angle)
    C = 1.0 - c
    # diagonal as sq + (1 - sq) c, which is exactly 1 on the axis
    xx, yy, zz = x * x, y * y, z * z
    return np.array([
        [xx + (1.0 - xx) * c, x * y * C - z * s, x * z * C + y * s],
        [x * y * C + z * s, yy + (1.0 - yy) * c, y * z * C - x * s],
        [x * z * C - y * s, y * z * C + x * s, zz + (1.0 - zz) * c],
    ])


def rotation_from_angles(incl, lan, argp):
    """
    Orientation of an orbit from its Keplerian angles.

    Starting from an orbit in the xy-plane with periapsis along +x: turn by
    argp about z, tilt by incl about x, then turn by lan about z.

    Parameters
    ----------
    incl : float
        Inclination [rad]
    lan : float
        Longitude of the ascending node [rad]
    argp : float
        Argument of periapsis [rad]

    Returns
    -------
    np.ndarray
        3x3 rotation matrix
    """
    return compose(
        compose(axis_rotation(Z_AXIS, lan), axis_rotation(X_AXIS, incl)),
        axis_rotation(Z_AXIS, argp),
    )


def _face_towards(direction, up):
    # orthonormal frame with z along `direction` and y in the (direction, up) plane
    z_axis = direction / norm(direction)
    x_axis = np.cross(up, z_axis)
    x_axis = x_axis / norm(x_axis)
    y_axis = np.cross(z_axis, x_axis)
    return x_axis, y_axis, z_axis


def always_find_rotation(new_z, new_x, tolerance=None):
    """
    Rotation R with R z along new_z and R x along new_x.

    Orthogonality of new_z and new_x is not checked. When either input is
    shorter than `tolerance`, semi-canonical choices are made:

    - new_z small: R z is the direction closest to +z that is perpendicular
      to new_x; if that is ill-defined (new_x along z), R z = +y.
    - new_x small: R x is the direction closest to +x that is perpendicular
      to new_z; if that is ill-defined (new_z along x), R x = -y.
    - both small: the identity.

    Parameters
    ----------
    new_z, new_x : array-like
        Target directions; need not be normalized
    tolerance : float, optional
        Norm below which a vector counts as degenerate.
        Defaults to config.ROTATION_TOLERANCE

    Returns
    -------
    np.ndarray
        3x3 rotation matrix
    """
    if tolerance is None:
        tolerance = config.ROTATION_TOLERANCE
    new_z = np.asarray(new_z, dtype=float)
    new_x = np.asarray(new_x, dtype=float)

    z_large_enough = norm(new_z) >= tolerance
    x_large_enough = norm(new_x) >= tolerance

    if not z_large_enough and not x_large_enough:
        return np.eye(3)
    elif not z_large_enough:
        new_z = reject(Z_AXIS, new_x)
        if norm(new_z) < tolerance:
            new_z = Y_AXIS.copy()
    elif not x_large_enough:
        new_x = reject(X_AXIS, new_z)
        if norm(new_x) < tolerance:
            new_x = -Y_AXIS

    # face_towards gives (x', y', z') with y' along new_x; a quarter turn about
    # z then sends x to y', so the columns become (y', -x', z')
    x_axis, y_axis, z_axis = _face_towards(new_z, new_x)
    return np.column_stack((y_axis, -x_axis, z_axis))
