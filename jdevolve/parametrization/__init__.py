# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .bounds import Bounds as Bounds
from .bounds import BoundChecker as BoundChecker

__all__ = ["Bounds", "BoundChecker"]
