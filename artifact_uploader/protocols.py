"""
Protocols (Interfaces) for Dependency Inversion.

Use cases only talk to the network through ITransport, so any HTTP stack
(or a test fake) can be injected.
"""
from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class ITransport(Protocol):
    """Interface for the HTTP verbs used by the upload protocol."""

    async def get(self, url: str) -> Any:
        """GET request; returns a response exposing status_code/json()/text."""
        ...

    async def post(self, url: str, json: Dict[str, Any]) -> Any:
        """POST a JSON body."""
        ...

    async def put(self, url: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """PUT with an optional JSON body."""
        ...

    async def presigned_put(
        self,
        path: str,
        url: str,
        md5sum: Optional[str],
        content: Any,
    ) -> Any:
        """
        PUT file content to a presigned URL.

        Implementations must not send any ambient authorization headers.
        """
        ...
