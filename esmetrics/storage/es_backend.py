"""
Elasticsearch backend for the esmetrics reporter.

Thin adapter over ``elasticsearch.Elasticsearch`` exposing only what the
reporting pipeline needs:
- template existence / listing / create-only install
- bulk indexing with one result per document
- percolate search and standing query registration

Transport failures (node unreachable, request timeout) are raised as
``ConnectivityError`` so the reporter can fail the cycle. A request body the
client cannot encode is a ``StorageError`` instead: no request was sent, so
the backend says nothing about reachability. HTTP level errors keep their
``elasticsearch.ApiError`` type and are handled per call site.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from elasticsearch import (
    ApiError,
    BadRequestError,
    Elasticsearch,
    NotFoundError,
    SerializationError,
    TransportError,
)

from ..utils.exceptions import ConnectivityError, PercolationError, StorageError

logger = logging.getLogger(__name__)

PERCOLATOR_FIELD = "query"


@dataclass(frozen=True)
class BulkItemResult:
    """Outcome of one document in a bulk request."""
    ok: bool
    status: int
    doc_id: str | None = None
    error: str | None = None


def _error_reason(error: Any) -> str:
    if isinstance(error, dict):
        reason = error.get("reason") or ""
        etype = error.get("type") or "error"
        return f"{etype}: {reason}" if reason else etype
    return str(error)


def _body(resp: Any) -> Any:
    # ObjectApiResponse wraps the decoded JSON in .body; plain dicts pass through
    return getattr(resp, "body", resp)


@contextmanager
def _transport_guard(operation: str):
    try:
        yield
    except SerializationError as e:
        # request body could not be encoded; nothing was sent
        raise StorageError(f"{operation} could not be encoded: {e}") from e
    except TransportError as e:
        raise ConnectivityError(f"{operation} failed: {e}") from e


class ElasticsearchBackend:
    """Elasticsearch capability used by the reporter."""

    def __init__(
        self,
        hosts: Sequence[str] = ("http://localhost:9200",),
        timeout: float = 10.0,
        client: Elasticsearch | None = None,
        **client_options: Any,
    ) -> None:
        """
        Args:
            hosts: Backend URLs
            timeout: Per request timeout in seconds
            client: Pre-built client (tests, shared connections); not closed by us
            client_options: Passed through to ``Elasticsearch`` (auth, TLS...)
        """
        self._owns_client = client is None
        if client is None:
            if not hosts:
                raise ValueError("At least one Elasticsearch host is required")
            client = Elasticsearch(hosts=list(hosts), request_timeout=timeout, **client_options)
        self.client = client
        self.timeout = timeout

    # --- templates -----------------------------------------------------
    def template_exists(self, name: str) -> bool:
        with _transport_guard("template existence check"):
            return bool(self.client.indices.exists_template(name=name))

    def template_patterns(self) -> dict[str, list[str]]:
        """Return ``{template name: index patterns}`` for all legacy templates."""
        with _transport_guard("template listing"):
            try:
                resp = self.client.indices.get_template()
            except NotFoundError:
                return {}
        out: dict[str, list[str]] = {}
        for tname, body in dict(_body(resp)).items():
            patterns = body.get("index_patterns") or body.get("template") or []
            if isinstance(patterns, str):
                patterns = [patterns]
            out[tname] = list(patterns)
        return out

    def create_template(self, name: str, body: dict[str, Any]) -> bool:
        """Install ``name`` only if absent.

        Returns False when another installer won the race (the backend refuses
        a create-only put for an existing name).
        """
        with _transport_guard("template install"):
            try:
                self.client.indices.put_template(name=name, create=True, **body)
            except BadRequestError as e:
                if "already exists" in str(e):
                    return False
                raise
        return True

    # --- documents -----------------------------------------------------
    def bulk_index(self, index: str, documents: Iterable[dict[str, Any]]) -> list[BulkItemResult]:
        """Index ``documents`` into ``index`` with one bulk request.

        Results are returned in submission order.
        """
        operations: list[dict[str, Any]] = []
        for doc in documents:
            operations.append({"index": {"_index": index}})
            operations.append(doc)
        if not operations:
            return []
        with _transport_guard("bulk request"):
            resp = self.client.bulk(operations=operations)
        results: list[BulkItemResult] = []
        for item in _body(resp).get("items", []):
            action = item.get("index") or next(iter(item.values()), {})
            status = int(action.get("status", 0))
            error = action.get("error")
            results.append(BulkItemResult(
                ok=error is None and 200 <= status < 300,
                status=status,
                doc_id=action.get("_id"),
                error=_error_reason(error) if error is not None else None,
            ))
        return results

    # --- percolation ---------------------------------------------------
    def put_standing_query(self, index: str, query_id: str, query: dict[str, Any]) -> None:
        with _transport_guard("standing query registration"):
            self.client.index(index=index, id=query_id, document={PERCOLATOR_FIELD: query}, refresh=True)

    def percolate(self, index: str, document: dict[str, Any], page_size: int = 100) -> list[str]:
        """Return ids of every standing query in ``index`` matching ``document``.

        Hits are fetched ``page_size`` at a time until a short page comes back,
        so the number of matches is not capped by one search response. Pages are
        sorted by ``_doc`` to keep offsets stable between requests.
        """
        query = {"percolate": {"field": PERCOLATOR_FIELD, "document": document}}
        page_size = max(1, int(page_size))
        ids: list[str] = []
        with _transport_guard("percolate request"):
            while True:
                try:
                    resp = self.client.search(
                        index=index,
                        query=query,
                        source=False,
                        sort=["_doc"],
                        from_=len(ids),
                        size=page_size,
                    )
                except ApiError as e:
                    raise PercolationError(f"percolate on {index} failed: {e}") from e
                hits = _body(resp).get("hits", {}).get("hits", [])
                ids.extend(hit["_id"] for hit in hits)
                if len(hits) < page_size:
                    return ids

    def close(self) -> None:
        if self._owns_client:
            try:
                self.client.close()
                logger.info("Elasticsearch client closed")
            except Exception as e:
                logger.error(f"Error closing Elasticsearch client: {e}")


__all__ = ["ApiError", "BulkItemResult", "ElasticsearchBackend", "PERCOLATOR_FIELD"]
