from shared.clients.ClientManager import ClientManager
from shared.clients.docs.DocsClientInterface import DocsClientInterface


class DocsClientManager(ClientManager):
    """Selects the document source. The local filesystem unless DOCS_ENGINE says otherwise."""

    client_type = "docs"
    class_prefix = "DocsClient"
    default_engine = "filesystem"

    def get_client(self) -> DocsClientInterface:
        return self.client
