"""Error taxonomy for the vendor evaluation core."""


class EvaluatorError(Exception):
    """Base class for every error raised by the evaluation core."""


class InvalidTransitionError(EvaluatorError, ValueError):
    """Attempted vendor status edge is not in the transition table."""

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        super().__init__(f"cannot move vendor from {self.from_status} to {self.to_status}")


class StaleStatusError(InvalidTransitionError):
    """The vendor's status changed between the read and the guarded write."""

    def __init__(self, vendor_id: str, from_status: str, to_status: str) -> None:
        super().__init__(from_status, to_status)
        self.vendor_id = vendor_id
        self.args = (
            f"vendor {vendor_id} is no longer {self.from_status}; "
            f"cannot move it to {self.to_status}",
        )


class NotFoundError(EvaluatorError, LookupError):
    """Referenced vendor, score or criterion does not exist (or is deleted)."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class InvalidScoreValueError(EvaluatorError, ValueError):
    """Score or consensus value outside the allowed integer range."""

    def __init__(self, value: object, low: int = 1, high: int = 5) -> None:
        self.value = value
        self.low = low
        self.high = high
        super().__init__(f"score must be an integer between {low} and {high}, got {value!r}")


class NoScoresToReconcileError(EvaluatorError, ValueError):
    """A consensus cannot be recorded for a pair that has no scores."""

    def __init__(self, vendor_id: str, criterion_id: str) -> None:
        self.vendor_id = vendor_id
        self.criterion_id = criterion_id
        super().__init__(f"no scores to reconcile for vendor {vendor_id}, criterion {criterion_id}")


class StoreUnavailableError(EvaluatorError, ConnectionError):
    """The backing record store could not serve the request."""

    logged = False


class ConflictError(EvaluatorError):
    """A conditional write found values other than the expected ones."""

    def __init__(self, table: str, record_id: str, expected: dict, actual: dict) -> None:
        self.table = table
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"conditional update on {table}/{record_id} failed: expected {expected}, found {actual}")
