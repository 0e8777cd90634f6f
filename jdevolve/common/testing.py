# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import inspect
import typing as tp
import numpy as np
import pytest


def assert_within_bounds(xs: np.ndarray, lower: np.ndarray, upper: np.ndarray, err_msg: str = "") -> None:
    """Asserts that all rows of xs lie within [lower, upper], with the offending
    coordinates in the error message.
    This function should only be used in tests.
    """
    xs = np.atleast_2d(xs)
    below = np.argwhere(xs < lower)
    above = np.argwhere(xs > upper)
    if below.size or above.size:
        messages = [err_msg] if err_msg else []
        messages += [f"  - below lower bound at (row, coord): {below.tolist()}"] if below.size else []
        messages += [f"  - above upper bound at (row, coord): {above.tolist()}"] if above.size else []
        raise AssertionError("\n".join(["Out of bounds coordinates:"] + messages))


class parametrized:
    """Named test cases for pytest: each keyword is the id of a case, and its value is
    the tuple of arguments of the test function, in definition order.

    Example
    -------
    @testing.parametrized(
        small=(3, True),
        too_small=(2, False),
    )
    def test_popsize(popsize: int, success: bool) -> None:
        ...
    """

    def __init__(self, **cases: tp.Tuple[tp.Any, ...]) -> None:
        assert cases, "At least one case is required"
        self.ids = sorted(cases)
        self.cases = [cases[name] for name in self.ids]
        lengths = {len(case) for case in self.cases if isinstance(case, (tuple, list))}
        assert all(isinstance(case, (tuple, list)) for case in self.cases), "Cases must be tuples"
        assert len(lengths) == 1, "All cases must have the same number of arguments"
        self.num_args = lengths.pop()

    def __call__(self, func: tp.Callable[..., None]) -> tp.Any:
        names = list(inspect.signature(func).parameters)
        assert len(names) == self.num_args, f"Expected {self.num_args} arguments, got {names}"
        values = self.cases if self.num_args > 1 else [case[0] for case in self.cases]
        return pytest.mark.parametrize(",".join(names), values, ids=self.ids)(func)
