# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import inspect
import typing as tp


def different_from_defaults(
    *,
    instance: tp.Any,
    instance_dict: tp.Optional[tp.Dict[str, tp.Any]] = None,
    check_mismatches: bool = False,
) -> tp.Dict[str, tp.Any]:
    """Provides the constructor arguments of an instance which differ from their defaults,
    which is convenient for short representations of configurations.

    Parameters
    ----------
    instance: object
        the instance to inspect
    instance_dict: dict
        values of the arguments (defaults to :code:`instance.__dict__`)
    check_mismatches: bool
        if True, raises if the keys of instance_dict are not exactly the constructor arguments
    """
    signature = inspect.signature(type(instance).__init__)
    defaults = {name: param.default for name, param in signature.parameters.items() if name != "self"}
    values = instance.__dict__ if instance_dict is None else instance_dict
    if check_mismatches and set(defaults) != set(values):
        mismatch = set(defaults).symmetric_difference(values)
        raise RuntimeError(f"Arguments and attributes of {type(instance).__name__} do not match: {mismatch}")
    return {
        name: values[name]
        for name, default in defaults.items()
        if name in values and not name.startswith("_") and values[name] != default
    }
