"""
Job tracker exceptions.
"""

from shared.exceptions import NotFoundError


class JobNotFoundError(NotFoundError):
    """
    Raised for unknown job ids.

    Evicted jobs and ids that never existed look the same to the caller.
    """

    def __init__(self, job_id: str):
        super().__init__(
            "Processing job not found or expired",
            code="JOB_NOT_FOUND",
            details={"job_id": job_id},
        )
