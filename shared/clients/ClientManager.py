from typing import Any

from shared.helper.HelperConfig import HelperConfig


class ClientManager:
    """Picks the client engine from `<TYPE>_ENGINE` and instantiates it.

    The engine "qdrant" of client type "rag" resolves to the class
    `RAGClientQdrant` in `shared.clients.rag.qdrant.RAGClientQdrant`.
    """

    client_type: str = ""
    class_prefix: str = ""
    default_engine: str = ""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        engine = self.helper_config.get_string_val(f"{self.client_type.upper()}_ENGINE", default=self.default_engine)
        return engine.strip().lower()

    def _initialize_client(self) -> Any:
        """
        Raises:
            ValueError: If no client class exists for the configured engine.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}{engine.capitalize()}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.client_type.upper()} engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self.client_type.upper(), engine)
        return client

    def get_client(self) -> Any:
        return self.client
