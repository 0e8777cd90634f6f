# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from math import exp, sqrt
import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common.decorators import Registry


registry: Registry[tp.Callable[..., float]] = Registry()


@registry.register
def sphere(x: np.ndarray) -> float:
    """The most classical continuous optimization testbed.

    If you do not solve that one then you have a bug."""
    assert x.ndim == 1
    return float(x.dot(x))


@registry.register
def sphere1(x: np.ndarray) -> float:
    """Translated sphere function."""
    return sphere(x - 1.0)


@registry.register
def ellipsoid(x: np.ndarray) -> float:
    """Classical example of ill conditioned function."""
    dim = x.size
    weights = 10 ** np.linspace(0, 6, dim)
    return float(weights.dot(x ** 2))


@registry.register
def rastrigin(x: np.ndarray) -> float:
    """Classical multimodal function."""
    cosi = float(np.sum(np.cos(2 * np.pi * x)))
    return float(10 * (len(x) - cosi) + sphere(x))


@registry.register
def rosenbrock(x: np.ndarray) -> float:
    x_m_1 = x[:-1] - 1
    x_diff = x[:-1] ** 2 - x[1:]
    return float(100 * x_diff.dot(x_diff) + x_m_1.dot(x_m_1))


@registry.register
def ackley(x: np.ndarray) -> float:
    dim = x.size
    sum_cos = np.sum(np.cos(2 * np.pi * x))
    return -20.0 * exp(-0.2 * sqrt(sphere(x) / dim)) - exp(sum_cos / dim) + 20 + exp(1)


@registry.register
def deceptiveplateau(x: np.ndarray) -> float:
    """Deceptive function for testing restarts, best used in [-5, 5]^d.

    A broad funnel leads to a flat bottom of value 0.5 around (-2, ..., -2),
    while the global optimum 0 lies in a narrow basin around (3.5, ..., 3.5).
    Everywhere else the function is a plateau of value 1.
    """
    to_global = sphere(x - 3.5)
    if to_global < 0.25:
        return to_global
    return float(min(1.0, 0.5 + 0.05 * max(0.0, sphere(x + 2.0) - 1.0)))


@registry.register
def noisysphere(x: np.ndarray, random_state: np.random.RandomState, noise: float = 0.1) -> float:
    """Sphere with additive gaussian noise, to be wrapped in a StochasticObjective"""
    return sphere(x) + noise * float(random_state.normal())
