"""pyrelay pytest plugin for HTTP client mocking."""

from .mock import ClientMocker, Mock, client_mocker

__all__ = [  # noqa: RUF022
    "client_mocker",
    "ClientMocker",
    "Mock",
]
