"""
JSON file adapter — reads extraction output from disk.

Implements LotSource and OrderSource for the JSON files the invoice
extraction step writes.

Usage:
    from caseledger.adapters import JsonFileSource

    source = JsonFileSource("data/case_lots.json")
    for record in source.iter_lots():
        ...

Accepted shapes:
    [{"itemCode": ..., "caseId": ..., ...}, ...]
    {"lots": [...]}                    # lot records (any other object is rejected)
    {"orders": [...]}                  # order records
    {"invoiceNumber": ..., "items": [...]}   # a single order
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator

from caseledger.exceptions import LedgerError
from caseledger.protocols.lots import LotRecord, OrderRecord

logger = logging.getLogger(__name__)


class JsonFileSource:
    """
    Reads lot and order records from one JSON file.

    Malformed records raise LedgerError; nothing is guessed.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> Any:
        with self.path.open(encoding='utf-8') as fh:
            return json.load(fh)

    def iter_lots(self) -> Iterator[LotRecord]:
        rows = self._load()
        if isinstance(rows, dict):
            if 'lots' not in rows:
                raise LedgerError(
                    'INVALID_LOT_RECORD',
                    'Expected a list of lot records or {"lots": [...]}',
                    path=str(self.path),
                )
            rows = rows['lots']
        count = 0
        for row in rows:
            yield LotRecord.from_dict(row)
            count += 1
        logger.debug("Read %d lot records from %s", count, self.path)

    def iter_orders(self) -> Iterator[OrderRecord]:
        payload = self._load()
        if isinstance(payload, dict):
            rows = payload['orders'] if 'orders' in payload else [payload]
        else:
            rows = payload
        for row in rows:
            yield OrderRecord.from_dict(row)
