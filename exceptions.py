"""Error types raised by the matching pipeline.

Each error carries the HTTP status the API answers with.  Messages are kept
generic because they are returned to the caller as-is.
"""


class RecruitError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(RecruitError):
    status_code = 400
    default_message = "Invalid request"


class AuthorizationError(RecruitError):
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(RecruitError):
    status_code = 404
    default_message = "Not found"


class UpstreamServiceError(RecruitError):
    """The completion service failed or replied with something unusable"""
    status_code = 502
    default_message = "AI service error"


class PersistenceError(RecruitError):
    status_code = 500
    default_message = "Database error"
