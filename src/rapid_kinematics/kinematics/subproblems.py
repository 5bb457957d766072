"""Paden-Kahan subproblems for closed-form inverse kinematics.

All functions work on numpy float64 vectors. Rotation axes ``k`` must be unit
vectors. The vectors are taken relative to a point on the rotation axis.
"""

from typing import List, Tuple

import numpy as np


def rotation(k: np.ndarray, theta: float) -> np.ndarray:
    """Rodrigues rotation matrix about unit axis ``k``."""
    K = np.array([
        [0.0, -k[2], k[1]],
        [k[2], 0.0, -k[0]],
        [-k[1], k[0], 0.0],
    ])
    return np.eye(3) + np.sin(theta) * K + (1.0 - np.cos(theta)) * (K @ K)


def _project(k: np.ndarray, v: np.ndarray) -> np.ndarray:
    return v - np.dot(k, v) * k


def subproblem1(k: np.ndarray, p: np.ndarray, q: np.ndarray) -> float:
    """Angle ``theta`` about ``k`` that rotates ``p`` onto ``q``.

    Only the components perpendicular to ``k`` are used, so the result is the
    least-squares answer when ``p`` and ``q`` do not match exactly.
    """
    p_perp = _project(k, p)
    q_perp = _project(k, q)
    return float(np.arctan2(np.dot(k, np.cross(p_perp, q_perp)), np.dot(p_perp, q_perp)))


def subproblem2(k1: np.ndarray, k2: np.ndarray, p: np.ndarray, q: np.ndarray) -> Tuple[List[Tuple[float, float]], bool]:
    """
    Solve ``rot(k1, theta1) @ rot(k2, theta2) @ p = q``.

    Args:
        k1: first (outer) rotation axis
        k2: second (inner) rotation axis, not parallel to ``k1``
        p: vector to rotate
        q: goal vector

    Returns:
        Tuple of ([(theta1, theta2), ...], exact). Two solutions are returned;
        ``exact`` is False when no exact solution exists and the closest one
        is returned instead.
    """
    c = float(np.dot(k1, k2))
    k12 = np.cross(k1, k2)
    k12_sq = float(np.dot(k12, k12))
    if k12_sq < 1e-12:
        raise ValueError("subproblem2 requires non-parallel rotation axes")

    alpha = (np.dot(q, k1) - c * np.dot(p, k2)) / (1.0 - c * c)
    beta = (np.dot(p, k2) - c * np.dot(q, k1)) / (1.0 - c * c)
    gamma_sq = (np.dot(p, p) - alpha * alpha - beta * beta - 2.0 * alpha * beta * c) / k12_sq

    exact = gamma_sq >= -1e-9
    gamma = np.sqrt(max(gamma_sq, 0.0))

    solutions = []
    for sign in (1.0, -1.0):
        z = alpha * k1 + beta * k2 + sign * gamma * k12
        theta2 = subproblem1(k2, p, z)
        theta1 = subproblem1(k1, z, q)
        solutions.append((theta1, theta2))
    return solutions, bool(exact)


def subproblem3(k: np.ndarray, p: np.ndarray, q: np.ndarray, delta: float) -> Tuple[List[float], bool]:
    """
    Angles ``theta`` about ``k`` with ``|rot(k, theta) @ p - q| = delta``.

    Returns:
        Tuple of ([theta_plus, theta_minus], exact). When the distance cannot
        be met the cosine is clamped and ``exact`` is False.
    """
    p_perp = _project(k, p)
    q_perp = _project(k, q)
    delta_sq = delta * delta - np.dot(k, p - q) ** 2

    theta0 = float(np.arctan2(np.dot(k, np.cross(p_perp, q_perp)), np.dot(p_perp, q_perp)))

    p_norm = np.linalg.norm(p_perp)
    q_norm = np.linalg.norm(q_perp)
    if p_norm < 1e-12 or q_norm < 1e-12:
        return [theta0, theta0], bool(abs(delta_sq - (p_norm - q_norm) ** 2) < 1e-9)

    cos_psi = (p_norm ** 2 + q_norm ** 2 - delta_sq) / (2.0 * p_norm * q_norm)
    exact = -1.0 - 1e-9 <= cos_psi <= 1.0 + 1e-9
    psi = float(np.arccos(np.clip(cos_psi, -1.0, 1.0)))
    return [theta0 + psi, theta0 - psi], bool(exact)
