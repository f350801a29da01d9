"""Exception types raised by tokenwatch."""


class TokenWatchError(Exception):
    """Base class for all tokenwatch errors."""


class ConfigError(TokenWatchError):
    """Missing or invalid configuration. Fatal at startup."""


class ProviderError(TokenWatchError):
    """The chain provider cannot be built or has no usable connection."""


class RpcError(ProviderError):
    """The node answered a JSON-RPC request with an error object."""

    def __init__(self, code, message):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class SourceNotFoundError(TokenWatchError):
    """The metadata API failed or returned no source for an address."""
