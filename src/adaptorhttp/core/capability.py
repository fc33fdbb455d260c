"""
Startup failures.

StartupError is the base for anything that stops the adaptor from coming
up. UnsupportedPlatformError is the specific case where the host operating
system cannot run this adaptor at all; the CLI reports it and exits rather
than retrying.
"""

import platform


class StartupError(Exception):
    """The adaptor failed to initialize."""


class UnsupportedPlatformError(StartupError):
    """
    The runtime platform cannot host this adaptor.

    With no message, the diagnosis names the host OS:

        >>> UnsupportedPlatformError().message
        'Plan9 is not a supported platform for this adaptor.'
    """

    def __init__(self, message: str = None):
        if message is None:
            message = f"{platform.system()} is not a supported platform for this adaptor."
        super().__init__(message)
        self._message = message

    @property
    def message(self) -> str:
        return self._message


def require_platform(*supported: str) -> None:
    """
    Fail startup unless the host OS is one of supported.

    Names are compared case-insensitively against platform.system()
    ("Linux", "Windows", "Darwin", ...). No names means any platform.

    Raises:
        UnsupportedPlatformError: If the host OS is not listed
    """
    if not supported:
        return
    system = platform.system().lower()
    if system not in {name.lower() for name in supported}:
        raise UnsupportedPlatformError()
