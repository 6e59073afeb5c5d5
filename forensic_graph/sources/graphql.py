"""
GraphQL Data Source
===================

Fetches analysis data from the telemetry GraphQL endpoint.

Responsibility: transport only. Responses are returned as plain
mappings; the catalog layer validates their shape.
"""

from __future__ import annotations
from typing import Any, Dict, Mapping, Optional

import httpx

from ..contracts.base import MalformedPayloadError
from .base import AnalysisDataSource, DataAvailability, SourceUnavailableError


GET_AVAILABLE_DATA_RANGE = """
query GetDataAvailability {
    dataAvailability {
        startTime
        endTime
    }
}
"""

GET_ANALYSIS_DATA = """
query getAnalysisData ($start: Float, $end: Float) {
    analysisData (startTime: $start, endTime: $end) {
        ports {id portNumber hostName processes}
        endpoints {id hostName hostIp}
        processes {id name hostName}
        files {id path name type hostName}
        fileVersions {id timestamp target source fileSize action}
        networkActivities {id timestamp target source process protocol length}
    }
}
"""


class GraphQLDataSource(AnalysisDataSource):
    """
    httpx-backed client for the upstream GraphQL API.

    A client may be injected (e.g. with a mock transport); otherwise one
    is created per source and closed by `close()`.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None
    ):
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    def _execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Mapping[str, Any]:
        body: Dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = variables
        try:
            response = self._client.post(self._url, json=body)
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(f"GraphQL request to {self._url} failed: {exc}") from exc
        except ValueError as exc:
            raise MalformedPayloadError(f"GraphQL response is not JSON: {exc}") from exc

        if not isinstance(document, Mapping):
            raise MalformedPayloadError("GraphQL response must be an object")
        if document.get("errors"):
            raise SourceUnavailableError(f"GraphQL errors: {document['errors']}")
        data = document.get("data")
        if not isinstance(data, Mapping):
            raise MalformedPayloadError("GraphQL response has no data object")
        return data

    def data_availability(self) -> DataAvailability:
        data = self._execute(GET_AVAILABLE_DATA_RANGE)
        bounds = data.get("dataAvailability")
        if not isinstance(bounds, Mapping):
            raise MalformedPayloadError("dataAvailability missing from response")
        return DataAvailability(start_ms=int(bounds["startTime"]), end_ms=int(bounds["endTime"]))

    def analysis_data(self, start_ms: int, end_ms: int) -> Mapping[str, Any]:
        data = self._execute(GET_ANALYSIS_DATA, {"start": start_ms, "end": end_ms})
        payload = data.get("analysisData")
        if not isinstance(payload, Mapping):
            raise MalformedPayloadError("analysisData missing from response")
        return payload

    def close(self):
        if self._owns_client:
            self._client.close()
