# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp
import pytest
import numpy as np
from . import testing


@testing.parametrized(
    inside=([[0.0, 1.0], [-1.0, 0.5]], ""),
    below=([[0.0, 1.0], [-1.5, 0.5]], "  - below lower bound at (row, coord): [[1, 0]]"),
    above=([[0.0, 2.5], [-1.0, 0.5]], "  - above upper bound at (row, coord): [[0, 1]]"),
)
def test_assert_within_bounds(xs: tp.List[tp.List[float]], message: str) -> None:
    lower, upper = np.array([-1.0, 0.0]), np.array([1.0, 2.0])
    try:
        testing.assert_within_bounds(np.array(xs), lower, upper)
    except AssertionError as error:
        if not message:
            raise AssertionError("An error has been raised while it should not.")
        assert message in error.args[0].split("\n")
    else:
        if message:
            raise AssertionError("An error should have been raised.")


@testing.parametrized(
    one=(1,),
    two=(2,),
)
def test_single_argument(value: int) -> None:
    assert value in (1, 2)


def test_parametrized_errors() -> None:
    with pytest.raises(AssertionError):
        testing.parametrized(a=(1, 2), b=(1,))
    with pytest.raises(AssertionError):
        testing.parametrized(a=(1, 2))(lambda x: None)
