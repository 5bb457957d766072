"""Joint position value types for the robot's internal and external axes.

Both are immutable six-slot records. Robot axes are in degrees. External axes
are in degrees (rotational) or millimetres (linear) and use the controller's
``9E9`` sentinel for axes that are not connected.
"""

from dataclasses import dataclass
from numbers import Real
from typing import Iterable, Iterator, Sequence, Tuple, Union

import numpy as np

from ..errors import JointPositionMismatchError
from ..formatting import format_number

UNDEFINED = 9e9
NUMBER_OF_AXES = 6


def _pad(values: Iterable[float], fill: float) -> Tuple[float, ...]:
    values = [float(v) for v in values]
    if len(values) > NUMBER_OF_AXES:
        raise ValueError(f"At most {NUMBER_OF_AXES} axis values can be defined, got {len(values)}")
    return tuple(values + [fill] * (NUMBER_OF_AXES - len(values)))


@dataclass(frozen=True)
class RobotJointPosition:
    """Axis values of the six internal robot axes in degrees."""
    values: Tuple[float, ...] = (0.0,) * NUMBER_OF_AXES

    def __post_init__(self):
        object.__setattr__(self, "values", _pad(self.values, 0.0))

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "RobotJointPosition":
        return cls(tuple(values))

    def __getitem__(self, index: int) -> float:
        return self.values[index]

    def __len__(self) -> int:
        return NUMBER_OF_AXES

    def __iter__(self) -> Iterator[float]:
        return iter(self.values)

    def to_array(self) -> np.ndarray:
        return np.array(self.values, dtype=np.float64)

    def to_list(self):
        return list(self.values)

    def duplicate(self) -> "RobotJointPosition":
        return RobotJointPosition(self.values)

    def to_rapid(self) -> str:
        return "[" + ", ".join(format_number(v) for v in self.values) + "]"

    def _combine(self, other, op) -> "RobotJointPosition":
        if isinstance(other, RobotJointPosition):
            return RobotJointPosition(tuple(op(a, b) for a, b in zip(self.values, other.values)))
        if isinstance(other, Real):
            return RobotJointPosition(tuple(op(a, float(other)) for a in self.values))
        return NotImplemented

    def __add__(self, other):
        return self._combine(other, lambda a, b: a + b)

    def __sub__(self, other):
        return self._combine(other, lambda a, b: a - b)

    def __mul__(self, other):
        return self._combine(other, lambda a, b: a * b)

    def __truediv__(self, other):
        if isinstance(other, RobotJointPosition) and any(v == 0 for v in other.values):
            raise ZeroDivisionError("Division by a robot joint position that contains a zero value")
        if isinstance(other, Real) and other == 0:
            raise ZeroDivisionError("Division of a robot joint position by zero")
        return self._combine(other, lambda a, b: a / b)

    def __rsub__(self, other):
        return self._combine(other, lambda a, b: b - a)

    def __rtruediv__(self, other):
        if any(v == 0 for v in self.values):
            raise ZeroDivisionError("Division by a robot joint position that contains a zero value")
        return self._combine(other, lambda a, b: b / a)

    __radd__ = __add__
    __rmul__ = __mul__

    def __str__(self) -> str:
        return "Robot Joint Position"


@dataclass(frozen=True)
class ExternalJointPosition:
    """Axis values of up to six external axes, ``9E9`` where undefined."""
    values: Tuple[float, ...] = (UNDEFINED,) * NUMBER_OF_AXES

    def __post_init__(self):
        object.__setattr__(self, "values", _pad(self.values, UNDEFINED))

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "ExternalJointPosition":
        return cls(tuple(values))

    def __getitem__(self, index: int) -> float:
        return self.values[index]

    def __len__(self) -> int:
        return NUMBER_OF_AXES

    def __iter__(self) -> Iterator[float]:
        return iter(self.values)

    def is_defined(self, index: int) -> bool:
        return self.values[index] != UNDEFINED

    @property
    def number_of_defined_axes(self) -> int:
        return sum(1 for i in range(NUMBER_OF_AXES) if self.is_defined(i))

    def to_array(self) -> np.ndarray:
        return np.array(self.values, dtype=np.float64)

    def to_list(self):
        return list(self.values)

    def duplicate(self) -> "ExternalJointPosition":
        return ExternalJointPosition(self.values)

    def reset(self) -> "ExternalJointPosition":
        return ExternalJointPosition()

    def with_value(self, index: int, value: float) -> "ExternalJointPosition":
        values = list(self.values)
        values[index] = float(value)
        return ExternalJointPosition(tuple(values))

    def to_rapid(self) -> str:
        return "[" + ", ".join(
            "9E9" if v == UNDEFINED else format_number(v) for v in self.values) + "]"

    def _scalar(self, number: float, op) -> "ExternalJointPosition":
        return ExternalJointPosition(tuple(
            v if v == UNDEFINED else op(v, float(number)) for v in self.values))

    def _pairwise(self, other: "ExternalJointPosition", op) -> "ExternalJointPosition":
        result = []
        for i, (a, b) in enumerate(zip(self.values, other.values)):
            if a == UNDEFINED and b == UNDEFINED:
                result.append(UNDEFINED)
            elif a == UNDEFINED or b == UNDEFINED:
                raise JointPositionMismatchError(
                    f"Mismatch between two External Joint Positions. A defined axis value "
                    f"[on logic number {i + 1}] is combined with an undefined axis value.")
            else:
                result.append(op(a, b))
        return ExternalJointPosition(tuple(result))

    def _combine(self, other, op):
        if isinstance(other, ExternalJointPosition):
            return self._pairwise(other, op)
        if isinstance(other, Real):
            return self._scalar(other, op)
        return NotImplemented

    def __add__(self, other):
        return self._combine(other, lambda a, b: a + b)

    def __sub__(self, other):
        return self._combine(other, lambda a, b: a - b)

    def __mul__(self, other):
        return self._combine(other, lambda a, b: a * b)

    def __truediv__(self, other: Union["ExternalJointPosition", float]):
        if isinstance(other, ExternalJointPosition) and any(v == 0 for v in other.values):
            raise ZeroDivisionError("Division by an external joint position that contains a zero value")
        if isinstance(other, Real) and other == 0:
            raise ZeroDivisionError("Division of an external joint position by zero")
        return self._combine(other, lambda a, b: a / b)

    def __rsub__(self, other):
        return self._combine(other, lambda a, b: b - a)

    def __rtruediv__(self, other):
        if any(v == 0 for v in self.values):
            raise ZeroDivisionError("Division by an external joint position that contains a zero value")
        return self._combine(other, lambda a, b: b / a)

    __radd__ = __add__
    __rmul__ = __mul__

    def __str__(self) -> str:
        return "External Joint Position"
