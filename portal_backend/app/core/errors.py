class PortalError(Exception):
    """Base for errors that end up as a user-facing message."""

    status_code = 500
    default_message = "Something went wrong. Please try again."
    retry = False

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingIdentityError(PortalError):
    """A student record came back without its autonomous roll number."""

    status_code = 422
    default_message = "Unable to retrieve student information."


class RecordNotFoundError(PortalError):
    status_code = 404
    default_message = "Record not found."


class SessionExpiredError(PortalError):
    status_code = 401
    default_message = "Your session has expired. Please log in again."


class InvalidCredentialsError(PortalError):
    status_code = 401
    default_message = "Invalid credentials. Please check your Roll No and Date of Birth."


class BackendUnavailableError(PortalError):
    status_code = 502
    default_message = "Failed to fetch student data. Please try again."
    retry = True


class ExportNotPermittedError(PortalError):
    status_code = 403
    default_message = "Download is not available yet."


class ExportError(PortalError):
    status_code = 500
    default_message = "Error generating PDF. Please try again."
    retry = True
