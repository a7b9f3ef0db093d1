"""Error taxonomy shared by services and routers.

Services raise these; ``larder.main`` maps them to JSON responses with the
status code carried on the class.
"""


class LarderError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotAuthenticated(LarderError):
    status_code = 401


class ProfileNotFound(LarderError):
    status_code = 404


class NotFound(LarderError):
    status_code = 404


class ValidationFailed(LarderError):
    status_code = 400


class BackendError(LarderError):
    """A store read/write failed after the request was accepted."""
    status_code = 502
