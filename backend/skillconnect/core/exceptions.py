# skillconnect/core/exceptions.py


class SkillConnectError(Exception):
    """Base class for user-visible errors raised by the service layer."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SkillConnectError):
    status_code = 400


class AuthenticationError(SkillConnectError):
    status_code = 401


class AuthorizationError(SkillConnectError):
    status_code = 403


class NotFoundError(SkillConnectError):
    status_code = 404


class ConflictError(SkillConnectError):
    status_code = 409


class UpstreamError(SkillConnectError):
    """The asset store or the document store could not complete a call."""

    status_code = 502
