from shared.clients.ClientManager import ClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager(ClientManager):
    """Selects the vector store backend. Qdrant unless RAG_ENGINE says otherwise."""

    client_type = "rag"
    class_prefix = "RAGClient"
    default_engine = "qdrant"

    def get_client(self) -> RAGClientInterface:
        return self.client
