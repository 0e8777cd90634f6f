# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .base import Objective as Objective
from .base import StochasticObjective as StochasticObjective
from .base import as_objective as as_objective
from . import corefuncs as corefuncs

__all__ = ["Objective", "StochasticObjective", "as_objective", "corefuncs"]
