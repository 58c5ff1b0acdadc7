from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required for a env setting.

    Attributes:
        env_key (str): The key/name of the environment variable to read.
        val_type (str): The expected type of the environment variable's value. Supported types are "string", "number", "bool", and "list".
        default (str | int | bool | list | None): An optional default value if the environment variable is not set. If None, the variable is required and an error will be raised if it is not set.
    """

    env_key: str
    val_type: str
    default: str | int | bool | list | None = None


class IndexSettings(BaseModel):
    """
    Settings consumed by the indexing services. Built once at startup and passed
    into each service constructor.

    Attributes:
        query_limit (int): Maximum number of similar documents returned per query.
        score_threshold (float): Minimum similarity score for a result to be returned.
        concurrency (int): Maximum number of documents indexed in parallel during a bulk reindex.
        progress_every (int): Emit a progress notification after this many processed documents.
        skip_unchanged (bool): Skip embedding when the stored content hash matches.
        vector_size (int | None): Vector dimension of the collection. None means ask the embedding backend.
        distance (str): Distance metric of the collection ("cosine", "euclidean" or "dot").
    """

    query_limit: int = 5
    score_threshold: float = 0.70
    concurrency: int = 1
    progress_every: int = 10
    skip_unchanged: bool = False
    vector_size: int | None = None
    distance: str = "cosine"

    @classmethod
    def from_helper_config(cls, helper_config: HelperConfig) -> "IndexSettings":
        """Read all index settings from the environment.

        Args:
            helper_config (HelperConfig): The configuration helper.

        Returns:
            IndexSettings: The resolved settings.
        """
        defaults = cls()
        vector_size = helper_config.get_number_val("RAG_VECTOR_SIZE", default=0)
        return cls(
            query_limit=max(1, int(helper_config.get_number_val("INDEX_QUERY_LIMIT", default=defaults.query_limit))),
            score_threshold=float(helper_config.get_number_val("INDEX_SCORE_THRESHOLD", default=defaults.score_threshold)),
            concurrency=max(1, int(helper_config.get_number_val("INDEX_CONCURRENCY", default=defaults.concurrency))),
            progress_every=max(1, int(helper_config.get_number_val("INDEX_PROGRESS_EVERY", default=defaults.progress_every))),
            skip_unchanged=helper_config.get_bool_val("INDEX_SKIP_UNCHANGED", default=defaults.skip_unchanged),
            vector_size=int(vector_size) if vector_size else None,
            distance=helper_config.get_string_val("RAG_DISTANCE", default=defaults.distance).strip().lower(),
        )
