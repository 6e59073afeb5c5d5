"""
Data Source Tests
=================

No network access: the GraphQL client runs over httpx.MockTransport.
"""

import json

import httpx
import pytest

from forensic_graph.contracts import MalformedPayloadError
from forensic_graph.sources import (
    DataAvailability, GraphQLDataSource, InMemoryDataSource, JsonFileDataSource,
    SourceUnavailableError
)
from tests.fixtures import standard_payload


class TestInMemoryDataSource:

    def test_availability_is_derived_from_events(self):
        source = InMemoryDataSource(standard_payload())
        assert source.data_availability() == DataAvailability(start_ms=1000, end_ms=125001)

    def test_events_are_restricted_to_the_range(self):
        source = InMemoryDataSource(standard_payload())
        payload = source.analysis_data(0, 60000)

        assert [r["id"] for r in payload["fileVersions"]] == ["fv1"]
        assert [r["id"] for r in payload["networkActivities"]] == ["na1"]
        assert len(payload["ports"]) == 3

    def test_rejects_non_objects(self):
        with pytest.raises(MalformedPayloadError):
            InMemoryDataSource([])


class TestJsonFileDataSource:

    def test_reads_dataset_file(self, tmp_path):
        path = tmp_path / "dataset.json"
        path.write_text(json.dumps({
            "dataAvailability": {"startTime": 0, "endTime": 180000},
            "analysisData": standard_payload(),
        }))

        source = JsonFileDataSource(path)

        assert source.data_availability() == DataAvailability(0, 180000)
        assert len(source.analysis_data(0, 180000)["fileVersions"]) == 3

    def test_bare_payload_file(self, tmp_path):
        path = tmp_path / "bare.json"
        path.write_text(json.dumps(standard_payload()))
        assert JsonFileDataSource(path).data_availability().start_ms == 1000

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceUnavailableError):
            JsonFileDataSource(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(MalformedPayloadError):
            JsonFileDataSource(path)


def _graphql_source(handler) -> GraphQLDataSource:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return GraphQLDataSource("http://upstream.test/graphql", client=client)


class TestGraphQLDataSource:

    def test_analysis_data_query(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            seen.update(body)
            return httpx.Response(200, json={"data": {"analysisData": standard_payload()}})

        payload = _graphql_source(handler).analysis_data(0, 180000)

        assert "getAnalysisData" in seen["query"]
        assert seen["variables"] == {"start": 0, "end": 180000}
        assert len(payload["ports"]) == 3

    def test_availability_query(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert "GetDataAvailability" in json.loads(request.content)["query"]
            return httpx.Response(200, json={"data": {"dataAvailability": {"startTime": 5, "endTime": 10}}})

        assert _graphql_source(handler).data_availability() == DataAvailability(5, 10)

    def test_http_error(self):
        source = _graphql_source(lambda request: httpx.Response(500))
        with pytest.raises(SourceUnavailableError):
            source.analysis_data(0, 1)

    def test_graphql_errors(self):
        source = _graphql_source(lambda request: httpx.Response(200, json={"errors": [{"message": "boom"}]}))
        with pytest.raises(SourceUnavailableError):
            source.data_availability()

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(SourceUnavailableError):
            _graphql_source(handler).analysis_data(0, 1)

    def test_missing_data(self):
        source = _graphql_source(lambda request: httpx.Response(200, json={"data": {}}))
        with pytest.raises(MalformedPayloadError):
            source.analysis_data(0, 1)
