"""Error kinds raised by the forecasting pipeline.

Every error is surfaced to the caller immediately. Incorrect statistics are
worse than an aborted run, so nothing here is caught and recovered from
inside the library.
"""


class PlayoffForecasterError(ValueError):
    """Base class for pipeline errors."""


class DataRequirementError(PlayoffForecasterError):
    """Raised when the input season table is missing or malformed."""


class DataLeakageError(PlayoffForecasterError):
    """Raised when thresholds would be fit on anything but the training split."""


class ColumnMismatchError(PlayoffForecasterError):
    """Raised when a design matrix is scored against a different column set."""

    def __init__(self, missing, unexpected):
        self.missing = list(missing)
        self.unexpected = list(unexpected)
        super().__init__(
            "Design matrix columns do not match the fitted columns "
            f"(missing={self.missing}, unexpected={self.unexpected}). "
            "Rebuild the matrix with reference_columns set."
        )


class InsufficientDataError(PlayoffForecasterError):
    """Raised when there are too few rows to partition."""


class DegenerateLabelError(PlayoffForecasterError):
    """Raised when the labels contain a single class."""


class EmptyGroupError(PlayoffForecasterError):
    """Raised when a season group has no rows to score."""
