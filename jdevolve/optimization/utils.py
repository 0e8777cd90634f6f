# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import jdevolve.common.typing as tp


_PENDING = object()


class DelayedJob:
    """Future-like object which only evaluates its function when the result is requested,
    so that a sequential run interleaves evaluations and selections.
    """

    def __init__(self, func: tp.Callable[..., tp.Any], *args: tp.Any) -> None:
        self.func = func
        self.args = args
        self._result: tp.Any = _PENDING

    def result(self) -> tp.Any:
        if self._result is _PENDING:
            self._result = self.func(*self.args)
        return self._result


class SequentialExecutor:
    """Executor which runs the evaluations sequentially and locally, in the calling thread.
    Used by default when no executor is provided to the evolution.
    """

    def submit(self, fn: tp.Callable[..., tp.Any], *args: tp.Any) -> DelayedJob:
        return DelayedJob(fn, *args)
