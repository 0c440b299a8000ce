"""Exception types raised by the dispatcher, LLM backend and orchestrator.

Every failure is resolved at the request boundary that produced it; the
API routes translate these into HTTP status codes.
"""


class BridgeError(Exception):
    """Base exception for studio bridge errors."""
    pass


class ChannelClosedError(BridgeError):
    """Raised when a tool call's result channel closes without a value."""
    pass


class UnknownToolCallError(BridgeError):
    """Raised when a result arrives for an id with no live correlation entry."""

    def __init__(self, call_id):
        super().__init__(f"Unknown tool call id: {call_id}")
        self.call_id = call_id


class DispatcherClosedError(BridgeError):
    """Raised to pollers waiting on a dispatcher that has been shut down."""
    pass


class ExternalApiError(BridgeError):
    """Raised on transport failures or malformed text-generation responses."""
    pass


class MissingCredentialError(BridgeError):
    """Raised when the text-generation API key is not configured."""

    def __init__(self, env_var: str):
        super().__init__(f"Missing {env_var}")
        self.env_var = env_var


class ToolExecutionError(BridgeError):
    """Raised when code extracted from a prompt fails to run in Studio."""
    pass


class InstallError(BridgeError):
    """Raised when the Studio plugin cannot be installed."""
    pass
