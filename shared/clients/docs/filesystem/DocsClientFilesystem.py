import asyncio
from pathlib import Path

from shared.clients.docs.DocsClientInterface import DocsClientInterface
from shared.errors import DocumentNotFoundError, DocumentSourceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document


class DocsClientFilesystem(DocsClientInterface):
    """Document source backed by a vault directory on the local filesystem.

    Paths are posix paths relative to the vault root, e.g. "projects/idea.md".
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._root_dir = Path(self.get_config_val("ROOT_DIR", default=None, val_type="string")).expanduser().resolve()
        extensions = self.get_config_val("EXTENSIONS", default=[".md"], val_type="list")
        self._extensions = {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions}

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Filesystem"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="ROOT_DIR", val_type="string", default=None),
            EnvConfig(env_key="EXTENSIONS", val_type="list", default=[".md"]),
        ]

    def _resolve_path(self, path: str) -> Path:
        """Map a vault path to an absolute file path inside the root directory.

        Raises:
            DocumentNotFoundError: If the path points outside the vault.
        """
        full_path = (self._root_dir / path).resolve()
        if not full_path.is_relative_to(self._root_dir):
            raise DocumentNotFoundError(f"Path '{path}' is outside the vault root.")
        return full_path

    def _is_document(self, file_path: Path) -> bool:
        return file_path.is_file() and file_path.suffix.lower() in self._extensions

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def _list_paths(self) -> list[str]:
        if not self._root_dir.is_dir():
            raise DocumentSourceError(f"Vault root '{self._root_dir}' is not a directory.")
        return sorted(
            file_path.relative_to(self._root_dir).as_posix()
            for file_path in self._root_dir.rglob("*")
            if self._is_document(file_path)
        )

    async def do_list_paths(self) -> list[str]:
        return await asyncio.to_thread(self._list_paths)

    def _read_document(self, path: str) -> Document:
        file_path = self._resolve_path(path)
        if not self._is_document(file_path):
            raise DocumentNotFoundError(f"Document '{path}' not found in vault.")
        try:
            content = file_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise DocumentNotFoundError(f"Document '{path}' not found in vault.") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentSourceError(f"Document '{path}' could not be read: {exc}") from exc
        return Document(path=path, content=content)

    async def do_read_document(self, path: str) -> Document:
        return await asyncio.to_thread(self._read_document, path)
