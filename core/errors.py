class NoWorkloadError(Exception):
    """Raised when the workload description contains no processes."""


class InvariantViolation(AssertionError):
    """An internal consistency check failed.

    These signal a defect in the engine, never bad input, and are not meant
    to be caught.
    """
