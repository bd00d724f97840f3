#!/usr/bin/env python3
"""
BulkDocumentWriter: turns MetricRecords into documents and submits them in
acknowledged bulk batches of at most ``bulk_size`` documents.

Delivery is at-most-once per cycle:
- every batch is attempted, even after earlier rejections
- rejected documents are reported in the WriteResult, never silently dropped
- nothing is buffered for the next cycle; a failed cycle's snapshot is simply
  superseded by the next one
- a connectivity failure aborts the remaining batches and propagates
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from itertools import islice
from typing import Any

from elasticsearch import ApiError

from ..error_handling import ErrorCategory, ErrorSeverity, get_error_handler
from ..utils.exceptions import PartialWriteError, StorageError
from .index_names import IndexTarget
from .records import MetricRecord

logger = logging.getLogger(__name__)

DEFAULT_BULK_SIZE = 2500


@dataclass(frozen=True)
class DocumentFailure:
    record: MetricRecord
    status: int
    reason: str


@dataclass
class WriteResult:
    index: str
    attempted: int = 0
    batches: int = 0
    accepted: list[MetricRecord] = field(default_factory=list)
    failures: list[DocumentFailure] = field(default_factory=list)

    @property
    def written(self) -> int:
        return len(self.accepted)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialWriteError(
                f"{len(self.failures)} of {self.attempted} documents rejected by {self.index}",
                self.failures,
            )


def _chunks(records: Iterable[MetricRecord], size: int) -> Iterator[list[MetricRecord]]:
    it = iter(records)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk


class BulkDocumentWriter:
    def __init__(self, backend: Any, bulk_size: int = DEFAULT_BULK_SIZE, additional_fields: Mapping[str, Any] | None = None) -> None:
        self.backend = backend
        self.bulk_size = max(1, int(bulk_size))
        self.additional_fields = dict(additional_fields or {})

    def write(self, records: Iterable[MetricRecord], target: IndexTarget) -> WriteResult:
        """Submit ``records`` to ``target``; returns after every batch is answered.

        Raises ConnectivityError (from the backend) when the backend cannot be
        reached; documents acknowledged before that stay persisted.
        """
        index = target.name
        result = WriteResult(index=index)
        for batch in _chunks(records, self.bulk_size):
            result.batches += 1
            result.attempted += len(batch)
            self._send(index, batch, result.batches, result)
        if result.failures:
            logger.warning("bulk write to %s: %d/%d documents rejected across %d batch(es)",
                           index, len(result.failures), result.attempted, result.batches)
        else:
            logger.debug("bulk write to %s: %d documents in %d batch(es)", index, result.written, result.batches)
        return result

    def _send(self, index: str, batch: list[MetricRecord], batch_no: int, result: WriteResult) -> None:
        docs = [r.to_document(self.additional_fields) for r in batch]
        try:
            items = self.backend.bulk_index(index, docs)
        except (ApiError, StorageError) as e:
            # whole request refused (e.g. 413 too large, 400 malformed) or not encodable: every document of this batch failed
            get_error_handler().handle_error(
                e,
                category=ErrorCategory.BULK_WRITE,
                severity=ErrorSeverity.MEDIUM,
                component="reporting.bulk_writer",
                function_name="write",
                message=f"Bulk batch {batch_no} rejected by {index}",
                context={"index": index, "batch": batch_no, "documents": len(batch)},
            )
            status = int(getattr(e, "status_code", 0) or 0)
            result.failures.extend(DocumentFailure(r, status, str(e)) for r in batch)
            return
        for i, record in enumerate(batch):
            if i >= len(items):
                result.failures.append(DocumentFailure(record, 0, "no acknowledgement in bulk response"))
                continue
            item = items[i]
            if item.ok:
                result.accepted.append(record)
            else:
                result.failures.append(DocumentFailure(record, item.status, item.error or "rejected"))


__all__ = ["BulkDocumentWriter", "DocumentFailure", "WriteResult", "DEFAULT_BULK_SIZE"]
