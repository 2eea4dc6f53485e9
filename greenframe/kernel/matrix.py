# greenframe/kernel/matrix.py
"""
MATRIX KERNEL: Dense Linear Algebra for the Solver
==================================================

PURPOSE:
--------
Everything the solver needs from linear algebra lives here:

    zero(rows, cols)                 zero-filled matrix
    multiply / add / subtract        shape-checked arithmetic
    transpose / norm                 never fail
    solve_linear_system(A, b)        Gaussian elimination, partial pivoting
    solve_generalized_eigenvalue     K·φ = λ·M·φ (LAPACK via scipy)

Matrices are plain numpy arrays. The arithmetic helpers exist because
numpy broadcasting happily "works" on mismatched shapes; a stiffness matrix
multiplied by the wrong vector must fail loudly instead.

WHY PARTIAL PIVOTING?
---------------------
Before eliminating column k, the row with the largest |a_ik| (i >= k) is
swapped into the pivot position. Dividing by the largest available pivot
keeps the elimination multipliers at most 1 in magnitude, which bounds
the growth of round-off error.

A pivot that is (relatively) zero means K has a zero-energy mode: a
support is missing or a mechanism exists. That is a hard stop.
"""

import numpy as np
import scipy.linalg
from typing import Optional, Tuple

from ..errors import DimensionMismatchError, SingularMatrixError

SINGULAR_TOLERANCE = 1e-12


def zero(rows: int, cols: int) -> np.ndarray:
    """Return a zero-filled (rows x cols) float matrix."""
    if rows < 0 or cols < 0:
        raise DimensionMismatchError(f"Matrix dimensions must be non-negative, got ({rows}, {cols})")
    return np.zeros((rows, cols), dtype=float)


def _as_2d(A) -> np.ndarray:
    A = np.asarray(A, dtype=float)
    if A.ndim != 2:
        raise DimensionMismatchError(f"Expected a 2D matrix, got array with shape {A.shape}")
    return A


def multiply(A, B) -> np.ndarray:
    """Matrix product A·B. B may be a vector."""
    A = _as_2d(A)
    B = np.asarray(B, dtype=float)
    if B.ndim not in (1, 2) or A.shape[1] != B.shape[0]:
        raise DimensionMismatchError(
            f"Matrix dimensions incompatible for multiplication: {A.shape} x {B.shape}"
        )
    return A @ B


def add(A, B) -> np.ndarray:
    A = np.asarray(A, dtype=float)
    B = np.asarray(B, dtype=float)
    if A.shape != B.shape:
        raise DimensionMismatchError(f"Matrix dimensions incompatible for addition: {A.shape} + {B.shape}")
    return A + B


def subtract(A, B) -> np.ndarray:
    A = np.asarray(A, dtype=float)
    B = np.asarray(B, dtype=float)
    if A.shape != B.shape:
        raise DimensionMismatchError(f"Matrix dimensions incompatible for subtraction: {A.shape} - {B.shape}")
    return A - B


def transpose(A) -> np.ndarray:
    return np.asarray(A, dtype=float).T.copy()


def norm(A) -> float:
    """Frobenius norm: sqrt of the sum of squared entries (L2 for vectors)."""
    A = np.asarray(A, dtype=float)
    return float(np.sqrt(np.sum(A * A)))


def solve_linear_system(A, b, tol: float = SINGULAR_TOLERANCE) -> np.ndarray:
    """
    Solve A·x = b by Gaussian elimination with partial pivoting.

    Parameters:
    -----------
    A : array_like, shape (n, n)
        Coefficient matrix. Not modified.
    b : array_like, shape (n,) or (n, 1)
        Right-hand side.
    tol : float
        Relative pivot tolerance. A pivot with
        |pivot| < tol × max|A| raises SingularMatrixError.

    Returns:
    --------
    np.ndarray
        Solution with the same shape as b.

    Raises:
    -------
    DimensionMismatchError
        If A is not square or b does not match.
    SingularMatrixError
        If A is singular or nearly singular.
    """
    A = _as_2d(A)
    b = np.asarray(b, dtype=float)
    n = A.shape[0]
    if A.shape[1] != n:
        raise DimensionMismatchError(f"Coefficient matrix must be square, got {A.shape}")
    column = b.ndim == 2
    if (column and b.shape != (n, 1)) or (not column and b.shape != (n,)):
        raise DimensionMismatchError(f"Right-hand side shape {b.shape} does not match matrix {A.shape}")
    if n == 0:
        return b.copy()

    # Augmented matrix [A | b]
    aug = np.empty((n, n + 1), dtype=float)
    aug[:, :n] = A
    aug[:, n] = b.reshape(n)

    scale = float(np.max(np.abs(A)))
    threshold = tol * scale if scale > 0.0 else tol

    # Forward elimination
    for k in range(n):
        pivot_row = k + int(np.argmax(np.abs(aug[k:, k])))
        if pivot_row != k:
            aug[[k, pivot_row]] = aug[[pivot_row, k]]

        pivot = aug[k, k]
        if abs(pivot) < threshold:
            raise SingularMatrixError(
                f"Matrix is singular or nearly singular (pivot {pivot:.3e} at row {k}, "
                f"tolerance {threshold:.3e}). Check supports."
            )

        if k + 1 < n:
            factors = aug[k + 1:, k] / pivot
            aug[k + 1:, k:] -= np.outer(factors, aug[k, k:])

    # Back substitution
    x = np.zeros(n, dtype=float)
    for i in range(n - 1, -1, -1):
        x[i] = (aug[i, n] - aug[i, i + 1:n] @ x[i + 1:]) / aug[i, i]

    return x.reshape(n, 1) if column else x


def _is_positive_definite(A: np.ndarray) -> bool:
    try:
        np.linalg.cholesky(A)
    except np.linalg.LinAlgError:
        return False
    return True


def _normalize_columns(vectors: np.ndarray) -> np.ndarray:
    """Unit L2 norm per column, largest-magnitude component made positive."""
    out = np.array(vectors, dtype=float, copy=True)
    for j in range(out.shape[1]):
        col = out[:, j]
        length = np.linalg.norm(col)
        if length > 0.0:
            col /= length
        if col[np.argmax(np.abs(col))] < 0.0:
            col *= -1.0
    return out


def solve_generalized_eigenvalue(
    K, M, n_modes: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Solve the generalized eigenvalue problem K·φ = λ·M·φ.

    Strategy:
        - M positive definite       -> symmetric-definite solver (eigh)
        - only K positive definite  -> solve M·φ = μ·K·φ, map λ = 1/μ and
                                       drop μ ≈ 0 (infinite eigenvalues)
        - otherwise                 -> general solver (eig), keep finite
                                       real eigenvalues

    The second branch is what buckling needs: the geometric stiffness is
    indefinite and mostly singular, the elastic stiffness is not.

    Args:
        K: Square symmetric matrix (n x n)
        M: Square symmetric matrix (n x n)
        n_modes: Keep only the lowest n_modes eigenpairs

    Returns:
        eigenvalues: Ascending, shape (k,)
        eigenvectors: Columns, shape (n, k), unit L2 norm
    """
    K = _as_2d(K)
    M = _as_2d(M)
    if K.shape[0] != K.shape[1] or K.shape != M.shape:
        raise DimensionMismatchError(
            f"Eigenproblem needs two square matrices of equal size, got {K.shape} and {M.shape}"
        )
    if K.shape[0] == 0:
        return np.zeros(0), np.zeros((0, 0))

    if _is_positive_definite(M):
        eigenvalues, eigenvectors = scipy.linalg.eigh(K, M)
    elif _is_positive_definite(K):
        mu, vectors = scipy.linalg.eigh(M, K)
        cutoff = 1e-12 * max(float(np.max(np.abs(mu))), 1e-300)
        keep = np.abs(mu) > cutoff
        eigenvalues = 1.0 / mu[keep]
        eigenvectors = vectors[:, keep]
    else:
        values, vectors = scipy.linalg.eig(K, M)
        keep = np.isfinite(values) & (np.abs(values.imag) <= 1e-9 * np.maximum(1.0, np.abs(values.real)))
        eigenvalues = values[keep].real
        eigenvectors = vectors[:, keep].real

    order = np.argsort(eigenvalues, kind="stable")
    eigenvalues = np.asarray(eigenvalues[order], dtype=float)
    eigenvectors = eigenvectors[:, order]

    if n_modes is not None:
        eigenvalues = eigenvalues[:n_modes]
        eigenvectors = eigenvectors[:, :n_modes]

    return eigenvalues, _normalize_columns(eigenvectors)
