"""
Structural validation of sign-in credentials.
"""
from pop3_client.models import Credentials
from pop3_client.utils.errors import CredentialsFormError


def validate_credentials(address: str, secret: str) -> Credentials:
    """
    Check the form of an address/secret pair before any network activity.

    The address must contain exactly one ``@`` with a non-empty local part
    and a non-empty domain, and the secret must not be empty. No existence
    check is made.

    Args:
        address: The e-mail address entered by the user.
        secret: The password entered by the user.

    Returns:
        The validated Credentials.

    Raises:
        CredentialsFormError: If the address or secret is malformed.
    """
    if not address or address.count('@') != 1:
        raise CredentialsFormError("Address must contain exactly one '@'")

    local_part, domain = address.split('@')
    if not local_part:
        raise CredentialsFormError("Address is missing the part before '@'")
    if not domain:
        raise CredentialsFormError("Address is missing the domain after '@'")
    if not secret:
        raise CredentialsFormError("Password must not be empty")

    return Credentials(address=address, secret=secret)
