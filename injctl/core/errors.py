"""Domain-specific errors for injctl."""


class InjctlError(Exception):
    """Base error for injctl."""


class ConfigValidationError(InjctlError):
    """Raised when a config file does not conform to schema or semantics."""


class ConfigLoadError(InjctlError):
    """Raised when reading config sources fails."""


class DecodeError(InjctlError):
    """Raised when a tagged line carries a malformed payload."""


class CommandValidationError(InjctlError):
    """Raised when a command input is outside its accepted domain."""


class UnknownCommandError(InjctlError):
    """Raised when a logical command name is not in the command table."""


class LifecycleError(InjctlError):
    """Base error for connection lifecycle misuse."""


class AlreadyConnectedError(LifecycleError):
    """Raised when opening a session that is already connected."""


class NotConnectedError(LifecycleError):
    """Raised when sending on a session that is not connected."""


class TransportError(InjctlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when the serial port cannot be opened."""


class TransportSendError(TransportError):
    """Raised when writing to the serial port fails."""


class TransportReadError(TransportError):
    """Raised when reading from the serial port fails."""
