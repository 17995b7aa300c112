class RelayError(Exception):
    """Base error for provider operations. The message is shown to the user."""

class TextLimitError(RelayError, ValueError):
    """Post text exceeds a provider's character limit."""

    def __init__(self, provider: str, limit: int):
        super().__init__(f"{provider} accepts at most {limit} characters.")
        self.provider = provider
        self.limit = limit

class ThreadsAPIError(RelayError):
    """Threads Graph API failure, after every version candidate was tried."""

    def __init__(self, message: str, token_invalid: bool = False):
        super().__init__(message)
        self.token_invalid = token_invalid

class BlueskyAPIError(RelayError):
    """Bluesky XRPC failure."""
