"""Parameter vectors for the lattice automaton and the odometer that enumerates them."""

from dataclasses import dataclass, field
from typing import Iterable, List, Union

PARAMETER_SPACE = 128  # Capacity of a parameter vector
PARAMETER_MIN = -(2 ** 15)
PARAMETER_MAX = 2 ** 15 - 1


class ParameterError(ValueError):
    """Raised for malformed parameter vectors (bad tokens, out-of-range divisor)."""


def _divisor(values: List[int]) -> int:
    if not values:
        raise ParameterError("parameter vector is empty")
    d = values[0]
    if not 0 < d < min(len(values), PARAMETER_SPACE):
        raise ParameterError(
            f"divisor {d} out of range (must be 1..{min(len(values), PARAMETER_SPACE) - 1})"
        )
    return d


def increment(values: List[int]) -> List[int]:
    """Advance the odometer by one, in place.

    Positions ``1..d`` form a base-``d`` counter with position ``d`` as the
    least significant digit. Position 1 is never reset, so it grows without
    bound and the enumeration never wraps back to its start.
    """
    d = _divisor(values)
    values[d] += 1
    for i in range(d - 1, 0, -1):
        if values[i + 1] >= d:
            values[i + 1] = 0
            values[i] += 1
    return values


def decrement(values: List[int]) -> List[int]:
    """Step the odometer back by one, in place.

    Mirror of :func:`increment`. Decrementing past the all-zero state borrows
    from position 1, which then goes negative; nothing is clamped, choosing a
    sensible direction is up to the caller.
    """
    d = _divisor(values)
    values[d] -= 1
    for i in range(d - 1, 0, -1):
        if values[i + 1] == -1:
            values[i + 1] = d - 1
            values[i] -= 1
    return values


def parse_parameters(tokens: Iterable[Union[str, int]]) -> List[int]:
    """Parse command line tokens into a full-capacity parameter list.

    Missing trailing entries are zero-filled up to ``PARAMETER_SPACE``.
    """
    values = []
    for token in tokens:
        try:
            value = int(token)
        except (TypeError, ValueError):
            raise ParameterError(f"parameter {token!r} is not an integer") from None
        if not PARAMETER_MIN <= value <= PARAMETER_MAX:
            raise ParameterError(f"parameter {value} does not fit in 16 bits")
        values.append(value)

    if not values:
        raise ParameterError("at least the divisor must be given")
    if len(values) > PARAMETER_SPACE:
        raise ParameterError(f"at most {PARAMETER_SPACE} parameters are allowed, got {len(values)}")

    values.extend([0] * (PARAMETER_SPACE - len(values)))
    _divisor(values)
    return values


def format_parameters(values: List[int], sep: str = "-") -> str:
    """Join parameters with ``sep``, dropping trailing zeros (e.g. '3-1-0-2')."""
    end = len(values)
    while end > 1 and values[end - 1] == 0:
        end -= 1
    return sep.join(str(v) for v in values[:end])


@dataclass
class ParameterVector:
    """A parameter vector: element 0 is the divisor, elements ``1..divisor`` are active."""
    values: List[int] = field(default_factory=lambda: [1] + [0] * (PARAMETER_SPACE - 1))

    def __post_init__(self):
        self.values = parse_parameters(self.values)

    @classmethod
    def from_string(cls, text: str) -> "ParameterVector":
        """Parse from whitespace or dash separated integers like '3 0 1 2' or '3-0-1-2'."""
        tokens = text.replace(",", " ").split()
        if len(tokens) == 1 and "-" in tokens[0].lstrip("-"):
            tokens = _split_dashed(tokens[0])
        return cls(tokens)

    @classmethod
    def from_list(cls, values: Iterable[Union[str, int]]) -> "ParameterVector":
        return cls(list(values))

    @property
    def divisor(self) -> int:
        return _divisor(self.values)

    @property
    def active(self) -> List[int]:
        """The semantically meaningful digits ``values[1..divisor]``."""
        return self.values[1:self.divisor + 1]

    def increment(self) -> "ParameterVector":
        increment(self.values)
        return self

    def decrement(self) -> "ParameterVector":
        decrement(self.values)
        return self

    def step(self, direction: int = 1) -> "ParameterVector":
        """Move the odometer one position forward (``direction > 0``) or back."""
        return self.increment() if direction > 0 else self.decrement()

    def copy(self) -> "ParameterVector":
        return ParameterVector(list(self.values))

    def to_string(self) -> str:
        return format_parameters(self.values)

    def __len__(self):
        return len(self.values)

    def __getitem__(self, index):
        return self.values[index]


def _split_dashed(token: str) -> List[str]:
    """Split '3-1--1-2' into ['3', '1', '-1', '2'] (a doubled dash marks a negative value)."""
    parts = []
    negative = False
    for piece in token.split("-"):
        if piece == "":
            negative = True
            continue
        parts.append(f"-{piece}" if negative else piece)
        negative = False
    return parts
