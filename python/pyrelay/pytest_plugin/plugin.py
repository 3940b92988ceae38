import pytest

from .mock import client_mocker  # noqa: F401  load the client_mocker fixture


def pytest_configure(config: pytest.Config) -> None:
    """Configure the pytest plugin."""
    config.addinivalue_line(
        "markers",
        "pyrelay: mark test to use pyrelay HTTP client mocking"
    )
