"""Exception types raised by the handicapping pipeline.

None of these are fatal to a race: the stage that owns the failure catches
it, records a reason and carries on with the rest of the field.
"""


class HandicapperError(Exception):
    """Base class for pipeline errors."""
    pass


class InvalidRecord(HandicapperError):
    """A horse record is missing fields needed even for neutral defaults."""

    def __init__(self, message: str, source_index: int | None = None):
        super().__init__(message)
        self.source_index = source_index


class InsufficientField(HandicapperError):
    """Field size is below the minimum for a wager type."""

    def __init__(self, bet_type: str, field_size: int, minimum: int):
        super().__init__(
            f"{bet_type} requires at least {minimum} runners, field has {field_size}"
        )
        self.bet_type = bet_type
        self.field_size = field_size
        self.minimum = minimum


class NumericDegenerate(HandicapperError):
    """A computed rate is non-finite or outside a realistic range."""
    pass
