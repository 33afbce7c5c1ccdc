"""Registry of OAuth clients.

Clients are created once at process start from configuration and never change
afterwards, so the registry always lives in process memory regardless of which
backend holds grants and tokens.
"""

import threading
from typing import Dict, Iterable, Optional

from .exceptions import DuplicateClient
from .models import Client
from ..shared.logger import log_info


class ClientRegistry:
    """Static lookup of registered clients."""

    def __init__(self, clients: Iterable[Client] = ()):
        self._clients: Dict[str, Client] = {}
        self._lock = threading.Lock()
        for client in clients:
            self.register(client)

    def register(self, client: Client) -> None:
        """Register a client.

        Raises:
            DuplicateClient: if the client_id is already registered
        """
        with self._lock:
            if client.client_id in self._clients:
                raise DuplicateClient(client.client_id)
            self._clients[client.client_id] = client
        log_info(
            "OAuth client registered",
            component="client_registry",
            client_id=client.client_id,
            redirect_uri=client.redirect_uri,
            scopes=sorted(client.scopes),
        )

    def lookup(self, client_id: Optional[str]) -> Optional[Client]:
        if not client_id:
            return None
        with self._lock:
            return self._clients.get(client_id)

    def validate_credentials(self, client_id: Optional[str], client_secret: Optional[str]) -> bool:
        client = self.lookup(client_id)
        return client is not None and client.check_client_secret(client_secret)

    def validate_redirect(self, client_id: Optional[str], redirect_uri: Optional[str]) -> bool:
        client = self.lookup(client_id)
        return client is not None and client.check_redirect_uri(redirect_uri)

    def count(self) -> int:
        with self._lock:
            return len(self._clients)
