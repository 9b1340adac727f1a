"""
Centralized error hierarchy for the POP3 client.

Every failure the session layer reports is one of the classes below, so
callers can tell a bad form entry from an unknown mail domain, a server
refusal or a broken connection. ``human_friendly_message`` turns any of them
into text suitable for showing to the user.
"""
from typing import Optional, Union


class MailClientError(Exception):
    """
    Base exception class for all POP3 client errors.

    All application-specific exceptions inherit from this class so the
    presentation layer can catch them in one place.
    """
    pass


class CredentialsFormError(MailClientError):
    """Raised when an address or secret is malformed. Detected locally."""
    pass


class HostNotFoundError(MailClientError):
    """Raised when a mail domain has no entry in the host directory."""

    def __init__(self, domain: str):
        super().__init__(f"Cannot find host address for domain '{domain}'")
        self.domain = domain


class ServerRejectionError(MailClientError):
    """
    Raised when the server answers a command with an error status.

    The server-provided text is kept verbatim in ``detail``.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail


class TransportError(MailClientError):
    """Raised when connecting, reading or writing to the server fails."""
    pass


class ProtocolError(TransportError):
    """Raised when the server reply is malformed or inconsistent."""
    pass


class StartupFatalError(MailClientError):
    """Raised when the host directory cannot be loaded. Not recoverable."""
    pass


class SessionStateError(MailClientError):
    """Raised when a workflow is requested in a state that does not allow it."""
    pass


def human_friendly_message(exc: Union[MailClientError, Exception]) -> str:
    """
    Convert technical error exceptions to user-friendly messages.

    Args:
        exc: The exception to convert.

    Returns:
        A user-friendly error message string.
    """
    error_msg = str(exc) if str(exc) else ""

    if isinstance(exc, CredentialsFormError):
        return (
            "The e-mail address or password is not valid. Please check:\n\n"
            "• The address has the form name@domain\n"
            "• The password is not empty"
        )
    elif isinstance(exc, HostNotFoundError):
        return (
            f"No mail server is configured for '{exc.domain}'. "
            "Check the address or add the domain to the hosts file."
        )
    elif isinstance(exc, ServerRejectionError):
        if exc.detail:
            return f"The mail server refused the request: {exc.detail}"
        return "The mail server refused the request. Please try again."
    elif isinstance(exc, ProtocolError):
        return (
            "The mail server sent an unexpected response. "
            "Please try again later."
        )
    elif isinstance(exc, TransportError):
        if "timed out" in error_msg.lower() or "timeout" in error_msg.lower():
            return (
                "The connection to the mail server timed out. This might be "
                "due to a slow internet connection or server issues. Please try again."
            )
        return (
            "Could not communicate with the mail server. Please check:\n\n"
            "• Your internet connection\n"
            "• Whether the mail service is temporarily unavailable"
        )
    elif isinstance(exc, StartupFatalError):
        return (
            "The list of mail servers could not be loaded. "
            "The application cannot continue."
        )
    elif isinstance(exc, SessionStateError):
        return "Please sign in first."
    elif isinstance(exc, MailClientError):
        if error_msg:
            return f"An error occurred: {error_msg}"
        return "An unexpected error occurred. Please try again."

    # Handle standard Python exceptions
    elif isinstance(exc, ConnectionError):
        return (
            "Could not connect to the server. Please check your internet "
            "connection and try again."
        )
    elif isinstance(exc, TimeoutError):
        return (
            "The operation timed out. This might be due to a slow connection "
            "or server issues. Please try again."
        )
    elif isinstance(exc, ValueError):
        return f"Invalid setting: {str(exc)}"

    # Fallback for unknown exceptions
    else:
        error_msg = error_msg or "Unknown error"
        return f"An error occurred: {error_msg}"
