"""
Argument validation for TSPL commands.

Guard functions used by the command encoder before anything is written to
a connector. Each returns the value unchanged on success and raises
ValidationError otherwise.
"""

from numbers import Real
from typing import Iterable, Sequence, Tuple

from .errors import ValidationError

Range = Tuple[Real, Real]


def _is_number(value) -> bool:
    # bool is an int subclass but never a meaningful printer argument
    return isinstance(value, Real) and not isinstance(value, bool)


def describe_ranges(ranges: Sequence[Range]) -> str:
    """Render ranges for error messages, e.g. "range 1-5 or 10-20"."""
    parts = [f"{low}-{high}" for low, high in ranges]
    if len(parts) <= 1:
        return "range " + "".join(parts)
    return "range " + ", ".join(parts[:-1]) + " or " + parts[-1]


def validate_range_union(
    value, ranges: Sequence[Range], source: str, argument: str = "Argument"
):
    """
    Check that value lies in at least one of the inclusive ranges.

    Args:
        value: Number to check
        ranges: Sequence of (min, max) pairs
        source: Name of the calling operation, used in the message
        argument: Name of the argument, used in the message

    Returns:
        The value, unchanged

    Raises:
        ValidationError: If value is not a number or matches no range
    """
    if not _is_number(value):
        raise ValidationError(
            f"{argument} given to {source} must be a number, but '{value}' was given."
        )
    if not any(low <= value <= high for low, high in ranges):
        raise ValidationError(
            f"{argument} given to {source} must be in {describe_ranges(ranges)}, "
            f"but {value} was given."
        )
    return value


def validate_range(value, minimum: Real, maximum: Real, source: str,
                   argument: str = "Argument"):
    """Check that minimum <= value <= maximum."""
    return validate_range_union(value, [(minimum, maximum)], source, argument)


def validate_enum(value, allowed: Iterable, source: str, argument: str = "Argument"):
    """
    Check that value is one of a closed set of permitted values.

    Comparison is by equality between values of the same kind, so "1"
    never matches 1 and True never matches 1.
    """
    allowed = tuple(allowed)
    for candidate in allowed:
        if _same_kind(value, candidate) and value == candidate:
            return value
    valid = ", ".join(str(_plain(candidate)) for candidate in allowed)
    raise ValidationError(
        f"{argument} given to {source} must be one of [{valid}], "
        f"but '{_plain(value)}' was given."
    )


def _same_kind(value, candidate) -> bool:
    # Enum members mixed with str/int compare against their plain values
    if isinstance(candidate, str):
        return isinstance(value, str)
    return _is_number(value) and _is_number(candidate)


def _plain(value):
    return getattr(value, "value", value)
