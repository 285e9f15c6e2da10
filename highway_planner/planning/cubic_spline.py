"""Natural cubic spline through trajectory anchor points.

Based on the implementation from PythonRobotics:
https://github.com/AtsushiSakai/PythonRobotics
"""

import bisect
from typing import List, Sequence, Union

import numpy as np


class CubicSpline1D:
    """1D Cubic Spline interpolation.

    Interpolates y(x) with natural boundary conditions. The curve passes
    through every knot and is twice continuously differentiable at the
    interior knots.

    Args:
        x: x coordinates of the knots (strictly increasing)
        y: y coordinates of the knots
    """

    def __init__(self, x: Sequence[float], y: Sequence[float]):
        if len(x) != len(y):
            raise ValueError(f"x and y must have the same length, got {len(x)} and {len(y)}")
        if len(x) < 2:
            raise ValueError(f"At least 2 knots are required, got {len(x)}")

        h = np.diff(x)
        if np.any(h <= 0):
            raise ValueError("x coordinates must be strictly increasing")

        self.x: List[float] = [float(v) for v in x]
        self.a: List[float] = [float(v) for v in y]
        self.nx = len(self.x)
        self.b: List[float] = []
        self.d: List[float] = []

        A = self._calc_A(h)
        B = self._calc_B(h, self.a)
        self.c: List[float] = np.linalg.solve(A, B).tolist()

        for i in range(self.nx - 1):
            d = (self.c[i + 1] - self.c[i]) / (3.0 * h[i])
            b = 1.0 / h[i] * (self.a[i + 1] - self.a[i]) \
                - h[i] / 3.0 * (2.0 * self.c[i] + self.c[i + 1])
            self.d.append(d)
            self.b.append(b)

        self._coeffs = np.array([self.a[:-1], self.b, self.c[:-1], self.d])

    def __call__(self, x: Union[float, np.ndarray]) -> Union[float, np.ndarray, None]:
        return self.calc_position(x)

    def calc_position(self, x: Union[float, np.ndarray]) -> Union[float, np.ndarray, None]:
        """Calculate y for given x.

        Returns None for a scalar outside the knot range and NaN entries for
        array elements outside it.
        """
        if np.isscalar(x):
            if x < self.x[0] or x > self.x[-1]:
                return None
            i = self._search_index(x)
            dx = x - self.x[i]
            return self.a[i] + self.b[i] * dx + self.c[i] * dx ** 2.0 + self.d[i] * dx ** 3.0

        x = np.asarray(x, dtype=float)
        mask = (x >= self.x[0]) & (x <= self.x[-1])
        res = np.full_like(x, np.nan, dtype=float)
        if np.any(mask):
            i = self._search_index(x[mask])
            dx = x[mask] - np.asarray(self.x)[i]
            a, b, c, d = self._coeffs[:, i]
            res[mask] = a + b * dx + c * dx ** 2.0 + d * dx ** 3.0
        return res

    def calc_first_derivative(self, x: Union[float, np.ndarray]) -> Union[float, np.ndarray, None]:
        """Calculate dy/dx for given x."""
        if np.isscalar(x):
            if x < self.x[0] or x > self.x[-1]:
                return None
            i = self._search_index(x)
            dx = x - self.x[i]
            return self.b[i] + 2.0 * self.c[i] * dx + 3.0 * self.d[i] * dx ** 2.0

        x = np.asarray(x, dtype=float)
        mask = (x >= self.x[0]) & (x <= self.x[-1])
        res = np.full_like(x, np.nan, dtype=float)
        if np.any(mask):
            i = self._search_index(x[mask])
            dx = x[mask] - np.asarray(self.x)[i]
            _, b, c, d = self._coeffs[:, i]
            res[mask] = b + 2.0 * c * dx + 3.0 * d * dx ** 2.0
        return res

    def _search_index(self, x: Union[float, np.ndarray]) -> Union[int, np.ndarray]:
        """Search data segment index for given x."""
        if np.isscalar(x):
            idx = bisect.bisect(self.x, x) - 1
            return min(max(idx, 0), self.nx - 2)

        idx = np.searchsorted(self.x, x, side='right') - 1
        return np.clip(idx, 0, self.nx - 2)

    def _calc_A(self, h: np.ndarray) -> np.ndarray:
        """Calculate matrix A for spline coefficient c."""
        A = np.zeros((self.nx, self.nx))
        A[0, 0] = 1.0
        for i in range(self.nx - 1):
            if i != (self.nx - 2):
                A[i + 1, i + 1] = 2.0 * (h[i] + h[i + 1])
            A[i + 1, i] = h[i]
            A[i, i + 1] = h[i]

        A[0, 1] = 0.0
        A[self.nx - 1, self.nx - 2] = 0.0
        A[self.nx - 1, self.nx - 1] = 1.0
        return A

    def _calc_B(self, h: np.ndarray, a: List[float]) -> np.ndarray:
        """Calculate matrix B for spline coefficient c."""
        B = np.zeros(self.nx)
        for i in range(self.nx - 2):
            B[i + 1] = 3.0 * (a[i + 2] - a[i + 1]) / h[i + 1] \
                - 3.0 * (a[i + 1] - a[i]) / h[i]
        return B
