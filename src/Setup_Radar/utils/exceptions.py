"""Custom exception hierarchy for the Setup Radar engine.

Configuration problems fail loudly at load/registration time. Persistence
problems carry the failing store operation so the scan loop can log and skip
the affected (symbol, strategy) pair. Gating rejections are never exceptions.
"""


class SetupRadarError(Exception):
    """Base exception for all Setup Radar failures."""


class ConfigurationError(SetupRadarError):
    """Raised when static configuration is malformed."""


class DetectorConfigError(ConfigurationError):
    """Raised when a detector's factor set is invalid at registration.

    Attributes:
        detector: The opportunity type of the offending detector.
    """

    def __init__(self, message: str, *, detector: str) -> None:
        self.detector = detector
        super().__init__(message)


class StrategyConfigError(ConfigurationError):
    """Raised when a strategy definition fails validation on load.

    Attributes:
        strategy: The slug or id of the offending definition.
    """

    def __init__(self, message: str, *, strategy: str) -> None:
        self.strategy = strategy
        super().__init__(message)


class SignalStoreError(SetupRadarError):
    """Base exception for signal-store lookup and insert failures.

    Attributes:
        operation: The store operation that failed (e.g., "insert_signal").
    """

    def __init__(self, message: str, *, operation: str) -> None:
        self.operation = operation
        super().__init__(message)


class DuplicateSignalError(SignalStoreError):
    """Raised when a signal with the same idempotency key already exists.

    Attributes:
        bar_time_key: The key that collided.
    """

    def __init__(self, message: str, *, bar_time_key: str) -> None:
        self.bar_time_key = bar_time_key
        super().__init__(message, operation="insert_signal")
