# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Types shared across the package, to be imported as :code:`import jdevolve.common.typing as tp`
"""
# pylint: disable=unused-import
from typing import Any as Any
from typing import Type as Type
from typing import TypeVar as TypeVar
from typing import Optional as Optional
from typing import Union as Union
from typing import Dict as Dict
from typing import Tuple as Tuple
from typing import List as List
from typing import Sequence as Sequence
from typing import MutableMapping as MutableMapping
from typing import Iterator as Iterator
from typing import Iterable as Iterable
from typing import Callable as Callable
from typing import TYPE_CHECKING as TYPE_CHECKING
from typing_extensions import Protocol
import numpy as _np


ArrayLike = Union[Tuple[float, ...], List[float], _np.ndarray]
BoundValue = Union[float, int, _np.ndarray, Sequence[float]]
# seeds of runs: nothing (random seed), an integer, or an existing random state
RandomLike = Union[None, int, _np.random.RandomState]


# executors as in concurrent.futures, only the methods used by the runs are required

R = TypeVar("R", covariant=True)


class JobLike(Protocol[R]):
    # pylint: disable=pointless-statement

    def result(self) -> R:
        ...


class ExecutorLike(Protocol):
    # pylint: disable=pointless-statement, unused-argument

    def submit(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> JobLike[R]:
        ...
