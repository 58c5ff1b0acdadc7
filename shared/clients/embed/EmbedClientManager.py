from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager(ClientManager):
    """Selects the embedding backend. Ollama unless EMBED_ENGINE says otherwise."""

    client_type = "embed"
    class_prefix = "EmbedClient"
    default_engine = "ollama"

    def get_client(self) -> EmbedClientInterface:
        return self.client
