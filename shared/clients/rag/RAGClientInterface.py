from abc import abstractmethod
from typing import Any

import httpx
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.ClientInterface import ClientInterface
from shared.errors import StoreInitError, StoreQueryError, StoreWriteError
from shared.models.search import SearchHit

from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        """
        Returns the configured default collection name. E.g. "obsidian_notes"
        """
        pass

    def _resolve_collection(self, collection: str | None) -> str:
        return collection or self.get_collection_name()

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self, collection: str) -> str:
        """
        Returns the endpoint path used to check for and create a collection.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self, collection: str) -> str:
        """
        Returns the endpoint path for points upsert requests.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_point(self, collection: str, point_id: str) -> str:
        """
        Returns the endpoint path for fetching a single point.

        Args:
            collection (str): Collection name.
            point_id (str): Point ID.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/<id>")
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self, collection: str) -> str:
        """
        Returns the endpoint path for deleting points by ID.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/delete")
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self, collection: str) -> str:
        """
        Returns the endpoint path for nearest-neighbour search requests.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/search")
        """
        pass

    @abstractmethod
    def _get_endpoint_scroll(self, collection: str) -> str:
        """
        Returns the endpoint path for scroll requests.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/scroll")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        """
        Builds the backend-specific request payload to create a collection.

        Args:
            vector_size (int): Dimension of the vectors stored in the collection.
            distance (str): Generic metric name: "cosine", "euclidean" or "dot".

        Returns:
            dict: The payload for the create collection request.

        Raises:
            ValueError: If the distance metric is not supported.
        """
        pass

    @abstractmethod
    def get_upsert_payload(self, points: list[dict[str, Any]]) -> dict:
        """
        Builds the backend-specific request payload for a points upsert.

        Args:
            points (list[dict[str, Any]]): Points with "id", "vector" and "payload" keys.

        Returns:
            dict: The payload for the upsert request.
        """
        pass

    @abstractmethod
    def get_delete_payload(self, point_ids: list[str]) -> dict:
        """
        Builds the backend-specific request payload for a delete by point IDs.

        Args:
            point_ids (list[str]): The IDs of the points to delete.

        Returns:
            dict: The payload for the delete request.
        """
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], limit: int, score_threshold: float) -> dict:
        """
        Builds the backend-specific request payload for a nearest-neighbour search.

        Args:
            vector (list[float]): The query vector.
            limit (int): Maximum number of hits.
            score_threshold (float): Minimum score of returned hits.

        Returns:
            dict: The payload for the search request.
        """
        pass

    @abstractmethod
    def get_scroll_payload(self, with_payload: bool | list, limit: int, offset: str | int | None = None) -> dict:
        """
        Returns the payload for a scroll request over the whole collection.

        Args:
            with_payload (bool | list): Whether to include the payload, or which payload fields to include.
            limit (int): The maximum number of points per page.
            offset (str | int | None): Pagination cursor returned by the previous scroll page.

        Returns:
            dict: The payload for the scroll request.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        """
        Extracts ranked hits from a raw search response, in backend order.

        Args:
            raw_response (dict): The raw JSON response from the search endpoint.

        Returns:
            list[SearchHit]: The parsed hits.
        """
        pass

    @abstractmethod
    def extract_point_payload(self, raw_response: dict) -> dict:
        """
        Extracts the payload of a single point from a raw point response.

        Args:
            raw_response (dict): The raw JSON response from the point endpoint.

        Returns:
            dict: The point payload.
        """
        pass

    @abstractmethod
    def extract_scroll_content(self, raw_response: dict) -> dict:
        """
        Extracts the relevant content from a raw scroll response.

        Args:
            raw_response (dict): The raw JSON response from the scroll endpoint.

        Returns:
            dict: A dict with keys "result", "status", "time".
        """
        pass

    @abstractmethod
    def extract_next_page_offset(self, raw_response: dict) -> str | int | None:
        """
        Extracts the pagination cursor for the next scroll page from a raw response.

        Args:
            raw_response (dict): The raw JSON response from the scroll endpoint.

        Returns:
            str | int | None: The cursor for the next page, or None if this was the last page.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_ensure_collection(self, vector_size: int, distance: str = "cosine", collection: str | None = None) -> bool:
        """Create the collection if it does not exist yet. Idempotent.

        Args:
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors ("cosine", "euclidean", "dot").
            collection (str | None): Collection name, defaults to the configured collection.

        Returns:
            bool: True if the collection was created, False if it already existed.

        Raises:
            StoreInitError: If the existence check fails with anything other than "not found",
                or the collection cannot be created.
            ValueError: If the distance metric is not supported.
        """
        collection = self._resolve_collection(collection)
        endpoint = self._get_endpoint_collection(collection)
        create_payload = self.get_create_collection_payload(vector_size, distance)

        try:
            response = await self.do_request(method="GET", endpoint=endpoint)
        except httpx.HTTPError as exc:
            raise StoreInitError(f"Existence check for collection '{collection}' failed: {exc}") from exc

        if response.status_code == 200:
            self.logging.debug("Collection '%s' already exists.", collection)
            return False
        if response.status_code != 404:
            raise StoreInitError(
                f"Existence check for collection '{collection}' failed with status {response.status_code}.",
                status_code=response.status_code,
            )

        try:
            response = await self.do_request(method="PUT", json=create_payload, endpoint=endpoint)
        except httpx.HTTPError as exc:
            raise StoreInitError(f"Creating collection '{collection}' failed: {exc}") from exc
        if response.status_code >= 300:
            raise StoreInitError(
                f"Creating collection '{collection}' failed with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        self.logging.info(
            "Created collection '%s' on %s (size=%d, distance=%s).",
            collection, self.get_engine_name(), vector_size, distance,
        )
        return True

    async def do_upsert_point(self, point_id: str, vector: list[float], payload: dict[str, Any], collection: str | None = None) -> None:
        """Insert a point, or overwrite the point with the same ID.

        Args:
            point_id (str): The point ID.
            vector (list[float]): The embedding vector.
            payload (dict[str, Any]): Metadata stored alongside the vector.
            collection (str | None): Collection name, defaults to the configured collection.

        Raises:
            StoreWriteError: If the backend is unreachable or answers with a non-2xx status.
        """
        collection = self._resolve_collection(collection)
        body = self.get_upsert_payload([{"id": point_id, "vector": vector, "payload": payload}])
        try:
            response = await self.do_request(
                method="PUT",
                json=body,
                params={"wait": "true"},
                endpoint=self._get_endpoint_points(collection),
            )
        except httpx.HTTPError as exc:
            raise StoreWriteError(f"Upsert of point {point_id} failed: {exc}") from exc
        if response.status_code >= 300:
            raise StoreWriteError(
                f"Upsert of point {point_id} failed with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

    async def do_delete_point(self, point_id: str, collection: str | None = None) -> None:
        """Delete a point by ID. Deleting a point that does not exist is not an error.

        Args:
            point_id (str): The point ID.
            collection (str | None): Collection name, defaults to the configured collection.

        Raises:
            StoreWriteError: If the backend is unreachable or reports a genuine error.
        """
        collection = self._resolve_collection(collection)
        try:
            response = await self.do_request(
                method="POST",
                json=self.get_delete_payload([point_id]),
                params={"wait": "true"},
                endpoint=self._get_endpoint_delete_points(collection),
            )
        except httpx.HTTPError as exc:
            raise StoreWriteError(f"Delete of point {point_id} failed: {exc}") from exc
        if response.status_code == 404:
            # no collection means nothing to delete
            self.logging.debug("Delete of point %s: collection '%s' not found.", point_id, collection)
            return
        if response.status_code >= 300:
            raise StoreWriteError(
                f"Delete of point {point_id} failed with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

    async def do_search(self, vector: list[float], limit: int, score_threshold: float, collection: str | None = None) -> list[SearchHit]:
        """Run a nearest-neighbour search. Distance and ranking are computed by the backend.

        Args:
            vector (list[float]): The query vector.
            limit (int): Maximum number of hits.
            score_threshold (float): Minimum score of returned hits.
            collection (str | None): Collection name, defaults to the configured collection.

        Returns:
            list[SearchHit]: Hits in backend ranking order.

        Raises:
            StoreQueryError: If the backend is unreachable, answers with a non-2xx status
                or returns a malformed response.
        """
        collection = self._resolve_collection(collection)
        try:
            response = await self.do_request(
                method="POST",
                json=self.get_search_payload(vector, limit, score_threshold),
                endpoint=self._get_endpoint_search(collection),
            )
        except httpx.HTTPError as exc:
            raise StoreQueryError(f"Search in collection '{collection}' failed: {exc}") from exc
        if response.status_code >= 300:
            raise StoreQueryError(
                f"Search in collection '{collection}' failed with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            return self.extract_search_hits(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StoreQueryError(f"Malformed search response from {self.get_engine_name()}: {exc}") from exc

    async def do_fetch_point(self, point_id: str, collection: str | None = None) -> dict | None:
        """Fetch the payload of a single point.

        Args:
            point_id (str): The point ID.
            collection (str | None): Collection name, defaults to the configured collection.

        Returns:
            dict | None: The point payload, or None if the point does not exist.

        Raises:
            StoreQueryError: If the backend is unreachable or reports a genuine error.
        """
        collection = self._resolve_collection(collection)
        try:
            response = await self.do_request(method="GET", endpoint=self._get_endpoint_point(collection, point_id))
        except httpx.HTTPError as exc:
            raise StoreQueryError(f"Fetching point {point_id} failed: {exc}") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 300:
            raise StoreQueryError(
                f"Fetching point {point_id} failed with status {response.status_code}.",
                status_code=response.status_code,
            )
        try:
            return self.extract_point_payload(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StoreQueryError(f"Malformed point response from {self.get_engine_name()}: {exc}") from exc

    async def do_scroll(self, with_payload: bool | list, limit: int, offset: str | int | None = None, collection: str | None = None) -> ScrollResult:
        """Scroll a single page from a collection.

        To retrieve all points across an arbitrary number of pages use
        do_scroll_all() instead.

        Args:
            with_payload (bool | list): Whether to include the payload, or which payload fields to include.
            limit (int): The maximum number of results to return per page.
            offset (str | int | None): Pagination cursor from the previous page's next_page_offset.
            collection (str | None): Collection name, defaults to the configured collection.

        Returns:
            ScrollResult: One page of points, including next_page_offset
                          when further pages are available.

        Raises:
            StoreQueryError: If the scroll request fails.
        """
        collection = self._resolve_collection(collection)
        try:
            resp = await self.do_request(
                method="POST",
                json=self.get_scroll_payload(with_payload, limit, offset),
                endpoint=self._get_endpoint_scroll(collection),
            )
        except httpx.HTTPError as exc:
            raise StoreQueryError(f"Scroll of collection '{collection}' failed: {exc}") from exc
        if resp.status_code >= 300:
            raise StoreQueryError(
                f"Scroll of collection '{collection}' failed with status {resp.status_code}.",
                status_code=resp.status_code,
            )
        try:
            raw_response = resp.json()
            scroll_content = self.extract_scroll_content(raw_response=raw_response)
            return ScrollResult(
                result=scroll_content.get("result", []),
                status=scroll_content.get("status", "ok"),
                time=scroll_content.get("time", 0),
                next_page_offset=self.extract_next_page_offset(raw_response),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StoreQueryError(f"Malformed scroll response from {self.get_engine_name()}: {exc}") from exc

    async def do_scroll_all(self, with_payload: bool | list, page_size: int = 1000, collection: str | None = None) -> ScrollResult:
        """Scroll through ALL points of a collection, paginating automatically.

        Args:
            with_payload (bool | list): Whether to include the payload, or which fields.
            page_size (int): Number of points requested per page.
            collection (str | None): Collection name, defaults to the configured collection.

        Returns:
            ScrollResult: All points collected across all pages.
                          next_page_offset is always None on the returned result.
        """
        all_points: list[dict] = []
        offset: str | int | None = None
        page = 1
        while True:
            page_result = await self.do_scroll(
                with_payload=with_payload,
                limit=page_size,
                offset=offset,
                collection=collection,
            )
            all_points.extend(page_result.result)
            self.logging.debug(
                "Fetched points page %d from %s, total points so far: %d",
                page, self.get_engine_name(), len(all_points),
            )
            offset = page_result.next_page_offset
            if offset is None:
                break
            page += 1
        return ScrollResult(result=all_points, status="ok", time=0)
