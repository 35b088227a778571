"""Error taxonomy shared by the services and the web layer."""


class GamesRandomError(Exception):
    """Base class for every error raised by this package."""


class InputValidationError(GamesRandomError):
    """Caller input was rejected before any model call was made."""


class ModelCallFailed(GamesRandomError):
    """The remote model call failed (transport, auth, rate limit, bad response).

    Carries the provider's message verbatim so the web layer can relay it.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StartupResourceMissing(GamesRandomError):
    """A prompt resource required at boot could not be read."""
