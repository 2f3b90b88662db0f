"""
Error taxonomy for the notification service.

Store and validation errors surface to API callers. Adapter errors never
escape a dispatch: they are turned into failed delivery results.
"""


class NotifyError(Exception):
    """Base error. ``kind`` is the machine-readable tag sent to API clients."""

    kind = "notify_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidConfig(NotifyError):
    kind = "invalid_config"
    status_code = 422


class DuplicateConfig(NotifyError):
    kind = "duplicate_config"
    status_code = 409

    def __init__(self, name: str, channel_type: str):
        super().__init__(f"Channel config '{name}' of type '{channel_type}' already exists")
        self.name = name
        self.channel_type = channel_type


class NotFound(NotifyError):
    kind = "not_found"
    status_code = 404


class AdapterFailure(NotifyError):
    """Remote endpoint rejected the delivery or answered with garbage."""

    kind = "adapter_failure"
    status_code = 502

    def __init__(self, diagnostic: str, retryable: bool = False):
        super().__init__(diagnostic)
        self.diagnostic = diagnostic
        self.retryable = retryable


class DeliveryTimeout(AdapterFailure):
    kind = "timeout"

    def __init__(self, diagnostic: str = "timeout"):
        super().__init__(diagnostic, retryable=True)


class Cancelled(NotifyError):
    kind = "cancelled"
    status_code = 499

    def __init__(self, message: str = "cancelled"):
        super().__init__(message)
