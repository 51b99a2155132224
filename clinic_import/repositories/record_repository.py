"""
clinic_import/repositories/record_repository.py

Persistence contract used by the import core, plus an in-process implementation.
"""

from __future__ import annotations

import threading
import uuid
from copy import deepcopy
from typing import Any, Mapping, Protocol

from clinic_import.domain.bulk_import import EntityType

Record = dict[str, Any]


class RecordRepository(Protocol):
    """
    The only persistence shapes the import core calls.
    """

    def find_by_unique_field(
        self,
        entity_type: EntityType,
        field: str,
        value: Any,
        *,
        tenant_id: str | None = None,
    ) -> Record | None:
        ...

    def find_first(
        self,
        entity_type: EntityType,
        criteria: Mapping[str, Any],
        *,
        tenant_id: str | None = None,
        case_insensitive: tuple[str, ...] = (),
    ) -> Record | None:
        ...

    def create(self, entity_type: EntityType, fields: Mapping[str, Any]) -> Record:
        ...


class InMemoryRecordRepository:
    """
    Thread-safe dict-backed repository for tests and single-process tooling.
    """

    def __init__(self, seed: Mapping[EntityType, list[Mapping[str, Any]]] | None = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[EntityType, list[Record]] = {entity: [] for entity in EntityType}
        for entity_type, records in (seed or {}).items():
            for record in records:
                self._records[entity_type].append(self._with_id(record))

    def find_by_unique_field(
        self,
        entity_type: EntityType,
        field: str,
        value: Any,
        *,
        tenant_id: str | None = None,
    ) -> Record | None:
        return self.find_first(entity_type, {field: value}, tenant_id=tenant_id)

    def find_first(
        self,
        entity_type: EntityType,
        criteria: Mapping[str, Any],
        *,
        tenant_id: str | None = None,
        case_insensitive: tuple[str, ...] = (),
    ) -> Record | None:
        with self._lock:
            for record in self._records[entity_type]:
                if tenant_id is not None and record.get("tenant_id") != tenant_id:
                    continue
                if all(
                    _values_match(record.get(key), expected, key in case_insensitive)
                    for key, expected in criteria.items()
                ):
                    return deepcopy(record)
        return None

    def create(self, entity_type: EntityType, fields: Mapping[str, Any]) -> Record:
        record = self._with_id(fields)
        with self._lock:
            self._records[entity_type].append(record)
        return deepcopy(record)

    def all(self, entity_type: EntityType) -> list[Record]:
        with self._lock:
            return deepcopy(self._records[entity_type])

    @staticmethod
    def _with_id(fields: Mapping[str, Any]) -> Record:
        record = dict(fields)
        record.setdefault("id", str(uuid.uuid4()))
        return record


def _values_match(actual: Any, expected: Any, case_insensitive: bool) -> bool:
    if case_insensitive and isinstance(actual, str) and isinstance(expected, str):
        return actual.casefold() == expected.casefold()
    return actual == expected
