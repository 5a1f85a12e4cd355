"""Error taxonomy shared by the core and the adapters.

Adapter errors are always reported per platform and never abort a fetch.
Configuration and channel errors escalate to the caller. Cancellation is not
an error and has no exception type here.
"""

from __future__ import annotations


class PlatformError(Exception):
    """Base class for failures raised inside a platform adapter.

    Request details are optional and only used for the structured error log.
    """

    error_type = "platform_error"

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class PlatformConnectionError(PlatformError):
    error_type = "network_error"


class AuthenticationError(PlatformError):
    error_type = "authentication_error"


class PlatformConfigurationError(PlatformError):
    error_type = "configuration_error"


class ApiError(PlatformError):
    error_type = "api_error"


class DataParseError(PlatformError):
    error_type = "json_parse_error"


class ConfigurationError(Exception):
    """Invalid or insufficient configuration, reported before any work starts."""


class NoConfiguredPlatformsError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("No configured platforms: add credentials for at least one platform")


class ProgressChannelClosedError(RuntimeError):
    """The progress consumer went away before the fetch finished."""


class DuplicatePlatformError(ValueError):
    def __init__(self, platform_id: str) -> None:
        super().__init__(f"Platform already registered: {platform_id}")
        self.platform_id = platform_id
