from types import SimpleNamespace

import pytest
from elasticsearch import BadRequestError, ConnectionError as ESConnectionError, NotFoundError, SerializationError

from esmetrics.storage.es_backend import ElasticsearchBackend
from esmetrics.utils.exceptions import ConnectivityError, PercolationError, StorageError
from tests._helpers import make_api_error


class _Indices:
    def __init__(self) -> None:
        self.templates = {}
        self.put_calls = []
        self.raise_on_put = None
        self.raise_on_get = None

    def exists_template(self, name):
        return name in self.templates

    def get_template(self):
        if self.raise_on_get:
            raise self.raise_on_get
        return dict(self.templates)

    def put_template(self, name, create=False, **body):
        self.put_calls.append((name, create, body))
        if self.raise_on_put:
            raise self.raise_on_put
        self.templates[name] = body


class FakeClient:
    def __init__(self) -> None:
        self.indices = _Indices()
        self.bulk_response = None
        self.bulk_operations = None
        self.search_calls = []
        self.indexed = []
        self.bulk_error = None
        self.search_error = None
        self.matching_ids = ["q1", "q2"]
        self.closed = False

    def bulk(self, operations):
        if self.bulk_error:
            raise self.bulk_error
        self.bulk_operations = operations
        return SimpleNamespace(body=self.bulk_response)

    def index(self, index, id, document, refresh):
        self.indexed.append((index, id, document, refresh))

    def search(self, index, query, source, sort, from_, size):
        if self.search_error:
            raise self.search_error
        self.search_calls.append((index, query, source, sort, from_, size))
        page = self.matching_ids[from_:from_ + size]
        return {"hits": {"hits": [{"_id": qid} for qid in page]}}

    def close(self):
        self.closed = True


@pytest.fixture()
def client() -> FakeClient:
    return FakeClient()


def test_template_queries(client) -> None:
    client.indices.templates = {
        "metrics_template": {"index_patterns": ["esmetrics*"]},
        "legacy": {"template": "old-*"},
    }
    es = ElasticsearchBackend(client=client)
    assert es.template_exists("metrics_template")
    assert not es.template_exists("other")
    assert es.template_patterns() == {"metrics_template": ["esmetrics*"], "legacy": ["old-*"]}


def test_template_patterns_empty_cluster(client) -> None:
    client.indices.raise_on_get = make_api_error(404, "not found", cls=NotFoundError)
    assert ElasticsearchBackend(client=client).template_patterns() == {}


def test_create_template_is_create_only(client) -> None:
    es = ElasticsearchBackend(client=client)
    assert es.create_template("metrics_template", {"index_patterns": ["m*"], "order": 0}) is True
    name, create, body = client.indices.put_calls[0]
    assert (name, create, body["order"]) == ("metrics_template", True, 0)

    client.indices.raise_on_put = make_api_error(
        400, "index_template [metrics_template] already exists", cls=BadRequestError)
    assert es.create_template("metrics_template", {"index_patterns": ["m*"]}) is False

    client.indices.raise_on_put = make_api_error(400, "mapper_parsing_exception", cls=BadRequestError)
    with pytest.raises(BadRequestError):
        es.create_template("metrics_template", {"index_patterns": ["m*"]})


def test_bulk_index_parses_items_in_order(client) -> None:
    client.bulk_response = {
        "errors": True,
        "items": [
            {"index": {"_id": "1", "status": 201}},
            {"index": {"_id": "2", "status": 400, "error": {"type": "mapper_parsing_exception", "reason": "failed to parse [count]"}}},
            {"index": {"_id": "3", "status": 429, "error": {"type": "es_rejected_execution_exception"}}},
        ],
    }
    es = ElasticsearchBackend(client=client)
    items = es.bulk_index("esmetrics-2024-03", [{"name": "a"}, {"name": "b"}, {"name": "c"}])
    assert client.bulk_operations[:2] == [{"index": {"_index": "esmetrics-2024-03"}}, {"name": "a"}]
    assert len(client.bulk_operations) == 6
    assert [i.ok for i in items] == [True, False, False]
    assert items[1].error == "mapper_parsing_exception: failed to parse [count]"
    assert items[2].status == 429
    assert items[2].error == "es_rejected_execution_exception"


def test_bulk_index_without_documents_skips_request(client) -> None:
    assert ElasticsearchBackend(client=client).bulk_index("x", []) == []
    assert client.bulk_operations is None


def test_transport_errors_become_connectivity_errors(client) -> None:
    client.bulk_error = ESConnectionError("Connection refused")
    with pytest.raises(ConnectivityError) as exc_info:
        ElasticsearchBackend(client=client).bulk_index("x", [{"name": "a"}])
    assert isinstance(exc_info.value.__cause__, ESConnectionError)


def test_encoding_errors_are_not_connectivity_errors(client) -> None:
    client.bulk_error = SerializationError("Unable to serialize to NDJSON")
    with pytest.raises(StorageError) as exc_info:
        ElasticsearchBackend(client=client).bulk_index("x", [{"name": "a"}])
    assert not isinstance(exc_info.value, ConnectivityError)
    assert isinstance(exc_info.value.__cause__, SerializationError)


def test_standing_query_and_percolate(client) -> None:
    es = ElasticsearchBackend(client=client)
    es.put_standing_query("esmetrics-2024-03", "myName", {"match_all": {}})
    assert client.indexed == [("esmetrics-2024-03", "myName", {"query": {"match_all": {}}}, True)]
    doc = {"name": "prefix.foo", "count": 21}
    assert es.percolate("esmetrics-2024-03", doc, page_size=5) == ["q1", "q2"]
    (index, query, source, sort, from_, size), = client.search_calls
    assert query == {"percolate": {"field": "query", "document": doc}}
    assert (index, source, sort, from_, size) == ("esmetrics-2024-03", False, ["_doc"], 0, 5)


def test_percolate_pages_through_every_match(client) -> None:
    client.matching_ids = [f"alert-{i:03d}" for i in range(250)]
    ids = ElasticsearchBackend(client=client).percolate("esmetrics-2024-03", {"name": "a"}, page_size=100)
    assert ids == client.matching_ids
    assert [(c[4], c[5]) for c in client.search_calls] == [(0, 100), (100, 100), (200, 100)]


def test_percolate_full_last_page_needs_one_more_request(client) -> None:
    client.matching_ids = [f"alert-{i}" for i in range(4)]
    ids = ElasticsearchBackend(client=client).percolate("esmetrics-2024-03", {"name": "a"}, page_size=2)
    assert len(ids) == 4
    assert [c[4] for c in client.search_calls] == [0, 2, 4]


def test_close_only_owned_client(client) -> None:
    ElasticsearchBackend(client=client).close()
    assert client.closed is False


def test_client_built_from_hosts() -> None:
    es = ElasticsearchBackend(hosts=["http://localhost:9200"], timeout=3.0)
    assert es.timeout == 3.0
    es.close()
    with pytest.raises(ValueError):
        ElasticsearchBackend(hosts=[])


def test_percolate_http_error_becomes_percolation_error(client) -> None:
    client.search_error = make_api_error(400, "query_shard_exception")
    with pytest.raises(PercolationError):
        ElasticsearchBackend(client=client).percolate("esmetrics-2024-03", {"name": "a"})
