# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp
from . import errors


X = tp.TypeVar("X")


class Registry(tp.MutableMapping[str, X]):
    """Name to object mapping, filled either by decoration (:code:`@registry.register`)
    or explicitly (:code:`registry.register_name("jDE", config)`).
    Names are unique: registering twice the same name raises.
    """

    def __init__(self) -> None:
        super().__init__()
        self.data: tp.Dict[str, X] = {}

    def register(self, obj: X) -> X:
        """Registers obj under its __name__ (or class name) and returns it unchanged,
        so that it can be used as a decorator
        """
        self.register_name(getattr(obj, "__name__", type(obj).__name__), obj)
        return obj

    def register_name(self, name: str, obj: X) -> None:
        if name in self.data:
            raise errors.JdevolveRuntimeError(f'"{name}" is already registered')
        self.data[name] = obj

    def unregister(self, name: str) -> None:
        """Removes name from the registry (no-op if it is not registered)"""
        self.data.pop(name, None)

    # MutableMapping interface

    def __getitem__(self, key: str) -> X:
        return self.data[key]

    def __setitem__(self, key: str, value: X) -> None:
        self.data[key] = value

    def __delitem__(self, key: str) -> None:
        del self.data[key]

    def __iter__(self) -> tp.Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)
