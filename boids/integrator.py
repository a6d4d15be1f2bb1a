"""Heading integration - force blending, quaternion slerp and position advance."""

import math
import numpy as np
from numba import njit, prange


# Local axis that an identity orientation points along
FORWARD = (0.0, 0.0, 1.0)

# Below this magnitude a blended force has no usable direction
BLEND_EPSILON = 1e-9

# Above this 4D dot product slerp falls back to normalized lerp
SLERP_LINEAR_THRESHOLD = 0.9995


# ============================================================================
# QUATERNION HELPERS (x, y, z, w)
# ============================================================================

@njit(cache=True)
def quat_normalize(x: float, y: float, z: float, w: float) -> tuple:
    mag = math.sqrt(x * x + y * y + z * z + w * w)
    if mag < 1e-12:
        return 0.0, 0.0, 0.0, 1.0
    return x / mag, y / mag, z / mag, w / mag


@njit(cache=True)
def quat_from_arc(ax: float, ay: float, az: float,
                  bx: float, by: float, bz: float) -> tuple:
    """Shortest rotation taking unit vector a onto unit vector b."""
    d = ax * bx + ay * by + az * bz

    if d < -1.0 + 1e-9:
        # Antiparallel: rotate half a turn about any axis perpendicular to a
        px = 0.0
        py = -az
        pz = ay
        mag = math.sqrt(py * py + pz * pz)
        if mag < 1e-6:
            px = az
            py = 0.0
            pz = -ax
            mag = math.sqrt(px * px + pz * pz)
        return px / mag, py / mag, pz / mag, 0.0

    cx = ay * bz - az * by
    cy = az * bx - ax * bz
    cz = ax * by - ay * bx
    return quat_normalize(cx, cy, cz, 1.0 + d)


@njit(cache=True)
def quat_mul(ax: float, ay: float, az: float, aw: float,
             bx: float, by: float, bz: float, bw: float) -> tuple:
    """Hamilton product a * b (apply b, then a)."""
    return (
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    )


@njit(cache=True)
def quat_rotate(qx: float, qy: float, qz: float, qw: float,
                vx: float, vy: float, vz: float) -> tuple:
    """Rotate vector v by unit quaternion q."""
    tx = 2.0 * (qy * vz - qz * vy)
    ty = 2.0 * (qz * vx - qx * vz)
    tz = 2.0 * (qx * vy - qy * vx)
    return (
        vx + qw * tx + (qy * tz - qz * ty),
        vy + qw * ty + (qz * tx - qx * tz),
        vz + qw * tz + (qx * ty - qy * tx),
    )


@njit(cache=True)
def quat_slerp(ax: float, ay: float, az: float, aw: float,
               bx: float, by: float, bz: float, bw: float,
               t: float) -> tuple:
    """
    Spherical interpolation from a toward b by fraction t.

    When the 4D dot product is negative the start orientation is negated so
    the interpolation follows the shortest arc.
    """
    d = ax * bx + ay * by + az * bz + aw * bw
    if d < 0.0:
        ax, ay, az, aw = -ax, -ay, -az, -aw
        d = -d

    if d > SLERP_LINEAR_THRESHOLD:
        return quat_normalize(
            ax + (bx - ax) * t,
            ay + (by - ay) * t,
            az + (bz - az) * t,
            aw + (bw - aw) * t,
        )

    theta_0 = math.acos(min(d, 1.0))
    theta = theta_0 * t
    sin_0 = math.sin(theta_0)
    s1 = math.sin(theta) / sin_0
    s0 = math.cos(theta) - d * s1
    return quat_normalize(
        ax * s0 + bx * s1,
        ay * s0 + by * s1,
        az * s0 + bz * s1,
        aw * s0 + bw * s1,
    )


@njit(parallel=True, cache=True)
def orient_headings(headings: np.ndarray, orientations: np.ndarray, num_boids: int):
    """Derive the orientation quaternion for each unit heading."""
    for i in prange(num_boids):
        qx, qy, qz, qw = quat_from_arc(
            FORWARD[0], FORWARD[1], FORWARD[2],
            headings[i, 0], headings[i, 1], headings[i, 2]
        )
        orientations[i, 0] = qx
        orientations[i, 1] = qy
        orientations[i, 2] = qz
        orientations[i, 3] = qw


# ============================================================================
# INTEGRATION PASS
# ============================================================================

@njit(parallel=True, cache=True)
def integrate_numba(
    positions: np.ndarray,
    headings: np.ndarray,
    orientations: np.ndarray,
    speeds: np.ndarray,
    turn_rates: np.ndarray,
    weights: np.ndarray,
    sep_forces: np.ndarray,
    align_forces: np.ndarray,
    coh_forces: np.ndarray,
    boundary_forces: np.ndarray,
    dt: float,
    batch_size: int,
    num_boids: int
):
    """Blend forces, turn each agent toward the blend and move it forward."""
    num_batches = (num_boids + batch_size - 1) // batch_size

    for b in prange(num_batches):
        start = b * batch_size
        stop = min(start + batch_size, num_boids)

        for i in range(start, stop):
            ws = weights[i, 0]
            wa = weights[i, 1]
            wc = weights[i, 2]

            fx = ws * sep_forces[i, 0] + wa * align_forces[i, 0] + wc * coh_forces[i, 0] + boundary_forces[i, 0]
            fy = ws * sep_forces[i, 1] + wa * align_forces[i, 1] + wc * coh_forces[i, 1] + boundary_forces[i, 1]
            fz = ws * sep_forces[i, 2] + wa * align_forces[i, 2] + wc * coh_forces[i, 2] + boundary_forces[i, 2]

            t = min(turn_rates[i] * dt, 1.0)
            mag = math.sqrt(fx * fx + fy * fy + fz * fz)

            if t > 0.0 and mag > BLEND_EPSILON and math.isfinite(mag):
                tx = fx / mag
                ty = fy / mag
                tz = fz / mag

                hx = headings[i, 0]
                hy = headings[i, 1]
                hz = headings[i, 2]

                qx = orientations[i, 0]
                qy = orientations[i, 1]
                qz = orientations[i, 2]
                qw = orientations[i, 3]

                # Target orientation: current orientation turned by the heading arc
                rx, ry, rz, rw = quat_from_arc(hx, hy, hz, tx, ty, tz)
                gx, gy, gz, gw = quat_mul(rx, ry, rz, rw, qx, qy, qz, qw)

                nx, ny, nz, nw = quat_slerp(qx, qy, qz, qw, gx, gy, gz, gw, t)
                vx, vy, vz = quat_rotate(nx, ny, nz, nw, FORWARD[0], FORWARD[1], FORWARD[2])

                vmag = math.sqrt(vx * vx + vy * vy + vz * vz)
                if vmag > BLEND_EPSILON and math.isfinite(vmag) and math.isfinite(nw):
                    headings[i, 0] = vx / vmag
                    headings[i, 1] = vy / vmag
                    headings[i, 2] = vz / vmag
                    orientations[i, 0] = nx
                    orientations[i, 1] = ny
                    orientations[i, 2] = nz
                    orientations[i, 3] = nw

            step = speeds[i] * dt
            positions[i, 0] += headings[i, 0] * step
            positions[i, 1] += headings[i, 1] * step
            positions[i, 2] += headings[i, 2] * step


def integrate(store, dt: float, batch_size: int):
    """Run the integration pass over every agent in the store."""
    integrate_numba(
        store.positions,
        store.headings,
        store.orientations,
        store.speeds,
        store.turn_rates,
        store.weights,
        store.separation,
        store.alignment,
        store.cohesion,
        store.boundary,
        float(dt),
        int(batch_size),
        store.num_boids
    )
