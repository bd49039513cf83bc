"""Build time estimation for construction sets.

Turns a piece count and a number of collaborating builders into an
estimated number of hours. Every request in a batch is handled on its own:
a bad request yields an error message in its response and never stops the
rest of the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, DecimalException, localcontext
from typing import Any, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

SECONDS_PER_PIECE = 12
SECONDS_PER_HOUR = 3600
BUILDER_TAPER = Decimal("0.2")
MIN_BUILDER_CONTRIBUTION = Decimal("0.1")
# first builder index whose contribution is at the floor
FLOOR_BUILDER = 5
HOURS_QUANTUM = Decimal("0.01")

UNEXPECTED_ERROR_PREFIX = "An unexpected error occurred during calculation: "


class EstimationError(ValueError):
    """Base class for errors reported back inside a response."""


class InvalidInputError(EstimationError):
    """Piece or builder count is missing or not a positive integer."""


class CalculationError(EstimationError):
    """Internal consistency failure while computing an estimate."""


@dataclass(frozen=True)
class BuildRequest:
    """One estimation request."""

    piece_count: Optional[int]
    builder_count: Optional[int]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BuildRequest":
        """Read the camelCase wire keys; absent keys become ``None``."""

        return cls(
            piece_count=data.get("pieceCount"),
            builder_count=data.get("builderCount"),
        )


@dataclass(frozen=True)
class BuildResponse:
    """Result for one request: either hours or an error message, never both."""

    estimated_hours: Optional[Decimal] = None
    error_message: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.estimated_hours is None) == (self.error_message is None):
            raise ValueError("Exactly one of estimated_hours or error_message must be set.")

    @classmethod
    def success(cls, hours: Decimal) -> "BuildResponse":
        return cls(estimated_hours=hours)

    @classmethod
    def failure(cls, message: str) -> "BuildResponse":
        return cls(error_message=message)

    @property
    def ok(self) -> bool:
        return self.error_message is None

    def to_dict(self) -> dict:
        hours = None if self.estimated_hours is None else str(self.estimated_hours)
        return {"estimatedHours": hours, "errorMessage": self.error_message}


def _is_positive_int(value: Any) -> bool:
    # bool is an int subclass but never a valid count
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _received(value: Any) -> Any:
    return "null" if value is None else value


def validate(request: BuildRequest) -> None:
    """Raise InvalidInputError for the first bad field, pieces before builders."""

    if not _is_positive_int(request.piece_count):
        raise InvalidInputError(
            "Number of pieces must be a positive integer. "
            f"Received: {_received(request.piece_count)}"
        )
    if not _is_positive_int(request.builder_count):
        raise InvalidInputError(
            "Number of builders must be a positive integer. "
            f"Received: {_received(request.builder_count)}"
        )


def collaboration_factor(builder_count: int) -> Decimal:
    """Combined throughput of ``builder_count`` builders relative to one.

    The first builder counts fully. Builder ``i + 1`` adds ``1 - 0.2 * i``,
    never less than 0.1, so the factor keeps growing but ever more slowly.
    From the sixth builder on every contribution sits at the floor.
    """

    factor = Decimal("1.0")
    for i in range(1, min(builder_count, FLOOR_BUILDER)):
        factor += max(MIN_BUILDER_CONTRIBUTION, Decimal(1) - BUILDER_TAPER * i)
    return factor + MIN_BUILDER_CONTRIBUTION * max(0, builder_count - FLOOR_BUILDER)


def _digits(value: int) -> int:
    return Decimal(value).adjusted() + 1


def estimate_hours(piece_count: int, builder_count: int) -> Decimal:
    """Estimated hours, rounded half-up to two decimal places."""

    with localcontext() as ctx:
        # room for every integer digit plus the two kept decimals
        ctx.prec = max(ctx.prec, _digits(piece_count), _digits(builder_count)) + 10
        base_seconds = Decimal(piece_count * SECONDS_PER_PIECE)
        factor = collaboration_factor(builder_count)
        # Unreachable while builder_count is validated positive.
        if factor == 0:
            raise CalculationError("Collaboration factor calculated as zero.")

        hours = base_seconds / factor / SECONDS_PER_HOUR
        return hours.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def _describe(exc: Exception) -> str:
    # decimal signals stringify as a list of signal classes
    if isinstance(exc, DecimalException) or not str(exc):
        return type(exc).__name__
    return str(exc)


def estimate_one(request: BuildRequest) -> BuildResponse:
    """Validate and estimate a single request, folding failures into the response."""

    try:
        validate(request)
        hours = estimate_hours(request.piece_count, request.builder_count)
    except EstimationError as exc:
        logger.debug("Rejected %s: %s", request, exc)
        return BuildResponse.failure(str(exc))
    except Exception as exc:  # reported per request, never raised out of the batch
        logger.exception("Unexpected failure estimating %s", request)
        return BuildResponse.failure(f"{UNEXPECTED_ERROR_PREFIX}{_describe(exc)}")

    logger.debug("Estimated %s -> %s hours", request, hours)
    return BuildResponse.success(hours)


def estimate(requests: Iterable[BuildRequest]) -> List[BuildResponse]:
    """Estimate every request, returning one response per request in order."""

    return [estimate_one(request) for request in requests]
