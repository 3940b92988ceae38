"""Client classes and builders."""

from pyrelay.client.client import Client, ClientBuilder

__all__ = [
    "Client",
    "ClientBuilder",
]
