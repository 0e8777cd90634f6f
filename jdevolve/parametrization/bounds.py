# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common import errors


def bound_to_array(x: tp.BoundValue) -> np.ndarray:
    """Updates type of bounds to use 1d float arrays"""
    if isinstance(x, (tuple, list, np.ndarray)):
        return np.asarray(x, dtype=float).ravel()
    else:
        return np.array([x], dtype=float)


class BoundChecker:
    """Simple object for checking whether an array lies
    between provided bounds.

    Parameter
    ---------
    lower: np.ndarray
        minimum values
    upper: np.ndarray
        maximum values
    """

    def __init__(self, lower: np.ndarray, upper: np.ndarray) -> None:
        self.bounds = (lower, upper)

    def __call__(self, value: np.ndarray) -> bool:
        """Checks whether the array lies within the bounds

        Parameter
        ---------
        value: np.ndarray
            array to check

        Returns
        -------
        bool
            True iff the array lies within the bounds
        """
        lower, upper = self.bounds
        return bool(np.all(value >= lower) and np.all(value <= upper))


class Bounds:
    """Box constraints of the decision space, and the policy used to
    bring mutated vectors back inside the box.

    Parameters
    ----------
    lower: float or array-like
        lower bounds (a float is broadcast if upper is an array)
    upper: float or array-like
        upper bounds
    integer_dimension: int
        number of trailing coordinates which are integers. Those are sampled
        (and rounded) at initialization, then kept fixed during the evolution,
        which only optimizes the continuous part.
    method: str
        repair method for out-of-bounds coordinates:

        - "clipping": project on the closest border
        - "bouncing": bounce on the border (at most once, then clip). This is a
          variant of clipping which avoids accumulating points on the borders.
    """

    methods = ("clipping", "bouncing")

    def __init__(
        self,
        lower: tp.BoundValue,
        upper: tp.BoundValue,
        integer_dimension: int = 0,
        method: str = "bouncing",
    ) -> None:
        low, up = bound_to_array(lower), bound_to_array(upper)
        try:
            low, up = (np.array(b) for b in np.broadcast_arrays(low, up))
        except ValueError as e:
            raise errors.ConfigurationError(
                f"Bounds shapes do not match: {low.shape} and {up.shape}"
            ) from e
        if not (np.all(np.isfinite(low)) and np.all(np.isfinite(up))):
            raise errors.ConfigurationError("Bounds must be finite for uniform sampling")
        if (low >= up).any():
            raise errors.ConfigurationError(f"Lower bounds {low} should be strictly smaller than upper bounds {up}")
        if method not in self.methods:
            raise errors.ConfigurationError(f'Unknown bound method "{method}", choose among {self.methods}')
        integer_dimension = int(integer_dimension)
        if not 0 <= integer_dimension < low.size:
            raise errors.ConfigurationError(
                f"integer_dimension must be in [0, {low.size}) to keep a continuous part "
                f"to optimize (got {integer_dimension})"
            )
        tail = slice(low.size - integer_dimension, None)
        if np.any(np.ceil(low[tail]) > np.floor(up[tail])):
            raise errors.ConfigurationError(
                f"Integer coordinates must have at least one integer within their bounds "
                f"(got lower={low[tail]}, upper={up[tail]})"
            )
        self.lower = low
        self.upper = up
        self.integer_dimension = integer_dimension
        self.method = method
        self._checker = BoundChecker(low, up)

    @property
    def dimension(self) -> int:
        """int: total dimension of the decision space"""
        return self.lower.size

    @property
    def continuous_dimension(self) -> int:
        return self.dimension - self.integer_dimension

    @property
    def continuous_mask(self) -> np.ndarray:
        """np.ndarray: boolean mask of the coordinates which the evolution can modify"""
        mask = np.zeros(self.dimension, dtype=bool)
        mask[: self.continuous_dimension] = True
        return mask

    def sample(self, rng: np.random.RandomState, num: int) -> np.ndarray:
        """Samples num points uniformly within the bounds, as a (num, dimension) array"""
        out = rng.uniform(self.lower, self.upper, size=(num, self.dimension))
        if self.integer_dimension:
            out[:, self.continuous_dimension :] = np.clip(
                np.round(out[:, self.continuous_dimension :]),
                np.ceil(self.lower[self.continuous_dimension :]),
                np.floor(self.upper[self.continuous_dimension :]),
            )
        return out

    def matches(self, x: tp.ArrayLike) -> bool:
        """Checks that a vector has the dimension of the bounds"""
        return np.asarray(x).shape == (self.dimension,)

    def contains(self, x: tp.ArrayLike) -> bool:
        x = np.asarray(x, dtype=float)
        if not self.matches(x):
            raise errors.JdevolveValueError(f"Expected a vector of shape ({self.dimension},) but got {x.shape}")
        return self._checker(x)

    def repair(self, x: tp.ArrayLike) -> np.ndarray:
        """Returns a copy of x with all coordinates brought back within the bounds"""
        x = np.asarray(x, dtype=float)
        if not self.matches(x):
            raise errors.JdevolveValueError(f"Expected a vector of shape ({self.dimension},) but got {x.shape}")
        if self._checker(x):
            return np.array(x, copy=True)
        out = np.clip(x, self.lower, self.upper)
        if self.method == "bouncing":
            out = np.clip(2 * out - x, self.lower, self.upper)
        return out  # type: ignore

    def __repr__(self) -> str:
        extra = f", integer_dimension={self.integer_dimension}" if self.integer_dimension else ""
        return f"Bounds(dimension={self.dimension}, method={self.method}{extra})"
