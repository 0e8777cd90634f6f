# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .selfadaptive import SelfAdaptiveDE  # configuration of the algorithm
from .selfadaptive import SelfAdaptiveRun  # for type checking
from .selfadaptive import Result
from .selfadaptive import Termination
from .selfadaptive import registry
from . import selfadaptive
