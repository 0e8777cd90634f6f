# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.


# base classes


class JdevolveError(Exception):
    """Base class for error raised by jdevolve"""


class JdevolveWarning(Warning):
    pass


# errors
# pylint: disable=too-many-ancestors


class EarlyStopping(StopIteration, JdevolveError):
    """Stops the evolution loop if raised (by a callback for instance)"""


class JdevolveRuntimeError(RuntimeError, JdevolveError):
    """Runtime error raised by jdevolve"""


class JdevolveTypeError(TypeError, JdevolveError):
    """Type error raised by jdevolve"""


class JdevolveValueError(ValueError, JdevolveError):
    """Value error raised by jdevolve"""


class ConfigurationError(JdevolveValueError):
    """Invalid settings, detected at construction time: the run never starts"""


class EvaluationError(JdevolveRuntimeError):
    """Can be raised by objective functions for inputs outside of their domain.
    The corresponding candidate is then considered infinitely bad.
    """


# warnings


class JdevolveRuntimeWarning(RuntimeWarning, JdevolveWarning):
    """Runtime warning raise by jdevolve"""


class InefficientSettingsWarning(JdevolveRuntimeWarning):
    """Optimization settings are not optimal for the algorithm"""


class BadLossWarning(JdevolveRuntimeWarning):
    """Provided loss is unhelpful (NaN, infinite, or evaluation failure)"""


class DimensionMismatchWarning(JdevolveRuntimeWarning):
    """A provided decision vector does not match the dimension of the bounds"""
