"""Batch error hierarchy."""


class BatchError(Exception):
    """Base exception for batch errors."""

    def __init__(self, message: str, batch_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.batch_id = batch_id


class InvalidBatchRequestError(BatchError):
    """A batch submission selects no tests or is malformed."""

    pass


class BatchNotFoundError(BatchError):
    """No live batch has the requested id."""

    pass
