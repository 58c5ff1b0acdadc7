from abc import ABC, abstractmethod
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document


class DocsClientInterface(ABC):
    """Read-only access to the document corpus.

    The indexing core never owns document storage. It enumerates paths,
    reads the current content of a path, and nothing else. Engine settings
    live under DOCS_<ENGINE>_<KEY>, e.g. DOCS_FILESYSTEM_ROOT_DIR.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_client_type(self) -> str:
        return "docs"

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        key = f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}"
        return self._helper_config.get_typed_val(key, val_type, default=default)

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Source engine, e.g. "filesystem"."""

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings checked at construction time. A missing key without default raises ValueError."""

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_list_paths(self) -> list[str]:
        """Enumerate the paths of all documents in the corpus, sorted.

        Raises:
            DocumentSourceError: If the corpus cannot be listed.
        """

    @abstractmethod
    async def do_read_document(self, path: str) -> Document:
        """Read the current content of a document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            DocumentSourceError: If the document cannot be read.
        """
