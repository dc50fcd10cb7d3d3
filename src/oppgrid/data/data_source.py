"""Data source abstraction for the opportunity grid.

Provides the abstract backend contract and a CSV-backed implementation
(opportunities.csv + accounts.csv in one directory).
"""

from __future__ import annotations

import csv
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from ..debug_trace import logger
from ..filters import ContainsFilter
from ..models.constants import (
    DEFAULT_STAGE_OPTIONS,
    FIELD_ACCOUNT_ID,
    FIELD_ACCOUNT_NAME,
    FIELD_ATTRS,
    FIELD_CLOSE_DATE,
    FIELD_ID,
    FIELD_IS_PRIVATE,
    FIELD_NAME,
    FIELD_STAGE_NAME,
)
from ..models.record import EditableFields, Record

# CSV column names (wire field names)
CSV_COLUMNS = list(FIELD_ATTRS.keys())

OPPORTUNITIES_FILE = "opportunities.csv"
ACCOUNTS_FILE = "accounts.csv"
STAGES_FILE = "stages.txt"

# Upper bound on lookup results returned by search_related
MAX_SEARCH_RESULTS = 20


class BackendError(Exception):
    """Failure reported by a data source.

    Attributes:
        body: Error payload; a dict with a 'message', or a list of such dicts
        status_text: Short status description (fallback message)
    """

    def __init__(
        self,
        message: str = "",
        body: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None,
        status_text: str = "",
    ):
        super().__init__(message or status_text)
        self.message = message
        self.body = body
        self.status_text = status_text


class DataSource(ABC):
    """Abstract base class for opportunity data sources."""

    @abstractmethod
    def list_records(self) -> list[Record]:
        """Load every opportunity record."""

    @abstractmethod
    def list_stage_options(self) -> list[str]:
        """Return the stage picklist values."""

    @abstractmethod
    def search_related(self, term: str) -> list[dict[str, Any]]:
        """Search accounts by name.

        Returns:
            List of {'Id': ..., 'Name': ...} dicts
        """

    @abstractmethod
    def update_batch(self, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        """Apply a batch of editable payloads.

        All-or-nothing: either every payload is applied or BackendError is
        raised and nothing changes.

        Returns:
            The updated records as stored
        """


class CsvDataSource(DataSource):
    """Data source backed by CSV files in a directory.

    Files:
        opportunities.csv: Id,Name,AccountId,AccountName,StageName,CloseDate,IsPrivate
        accounts.csv: Id,Name
        stages.txt: optional, one stage per line
    """

    def __init__(self, data_dir: str | Path):
        self._data_dir = Path(data_dir)
        self._search_filter = ContainsFilter()

    @property
    def opportunities_path(self) -> Path:
        return self._data_dir / OPPORTUNITIES_FILE

    @property
    def accounts_path(self) -> Path:
        return self._data_dir / ACCOUNTS_FILE

    def _read_csv(self, path: Path) -> list[dict[str, str]]:
        if not path.exists():
            raise BackendError(status_text=f"Data file not found: {path.name}")
        try:
            with open(path, newline="", encoding="utf-8") as csvfile:
                return list(csv.DictReader(csvfile))
        except (OSError, csv.Error) as e:
            raise BackendError(message=f"Could not read {path.name}: {e}") from e

    def _load_accounts(self) -> dict[str, str]:
        """Return account Id -> Name."""
        if not self.accounts_path.exists():
            return {}
        return {
            row[FIELD_ID].strip(): (row.get(FIELD_NAME) or "").strip()
            for row in self._read_csv(self.accounts_path)
            if (row.get(FIELD_ID) or "").strip()
        }

    def _write_records(self, records: Sequence[Record]) -> None:
        tmp_path = self.opportunities_path.with_suffix(".csv.tmp")
        with open(tmp_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for record in records:
                row = record.to_dict()
                row[FIELD_CLOSE_DATE] = record.close_date.isoformat() if record.close_date else ""
                row[FIELD_ACCOUNT_ID] = record.account_id or ""
                row[FIELD_IS_PRIVATE] = "1" if record.is_private else "0"
                writer.writerow(row)
        tmp_path.replace(self.opportunities_path)

    def list_records(self) -> list[Record]:
        records = []
        for line_no, row in enumerate(self._read_csv(self.opportunities_path), start=2):
            try:
                records.append(Record.from_dict(row))
            except ValueError as e:
                raise BackendError(
                    message=f"{OPPORTUNITIES_FILE} line {line_no}: {e}",
                ) from e
        logger.debug(f"Loaded {len(records)} records from {self.opportunities_path}")
        return records

    def list_stage_options(self) -> list[str]:
        stages_path = self._data_dir / STAGES_FILE
        if not stages_path.exists():
            return list(DEFAULT_STAGE_OPTIONS)
        with open(stages_path, encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]

    def search_related(self, term: str) -> list[dict[str, Any]]:
        accounts = self._load_accounts()
        names = self._search_filter.filter_matches(sorted(accounts.values()), term)
        by_name: dict[str, list[str]] = {}
        for account_id, name in accounts.items():
            by_name.setdefault(name, []).append(account_id)

        results: list[dict[str, Any]] = []
        for name in dict.fromkeys(names):
            for account_id in by_name[name]:
                results.append({FIELD_ID: account_id, FIELD_NAME: name})
        return results[:MAX_SEARCH_RESULTS]

    def _validate_payload(
        self,
        payload: Mapping[str, Any],
        existing: Mapping[str, Record],
        accounts: Mapping[str, str],
        stages: Sequence[str],
    ) -> list[str]:
        """Return error messages for one payload (empty when valid)."""
        record_id = payload.get(FIELD_ID)
        if record_id not in existing:
            return [f"Record {record_id!r} does not exist"]

        errors = []
        name = (payload.get(FIELD_NAME) or "").strip()
        if not name:
            errors.append(f"{record_id}: Name is required")
        account_id = payload.get(FIELD_ACCOUNT_ID)
        if account_id and account_id not in accounts:
            errors.append(f"{record_id}: Account {account_id!r} does not exist")
        stage = payload.get(FIELD_STAGE_NAME)
        if stage and stage not in stages:
            errors.append(f"{record_id}: Stage {stage!r} is not a valid stage")
        return errors

    def update_batch(self, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        existing = {record.id: record for record in self.list_records()}
        accounts = self._load_accounts()
        stages = self.list_stage_options()

        errors: list[str] = []
        for payload in records:
            errors.extend(self._validate_payload(payload, existing, accounts, stages))
        if errors:
            raise BackendError(
                body=[{"message": message} for message in errors],
                status_text="Bad Request",
            )

        updated: list[Record] = []
        for payload in records:
            fields = EditableFields.from_record(existing[payload[FIELD_ID]])
            for wire_name, value in payload.items():
                if wire_name in (FIELD_ID, FIELD_ACCOUNT_NAME) or wire_name not in FIELD_ATTRS:
                    continue
                fields.set_field(wire_name, value)
            # AccountName is denormalized from the account table, never trusted from the client
            fields.set_field(FIELD_ACCOUNT_NAME, accounts.get(fields.account_id or "", ""))
            record = Record(**vars(fields))
            existing[record.id] = record
            updated.append(record)

        try:
            self._write_records(list(existing.values()))
        except OSError as e:
            raise BackendError(message=f"Could not write {OPPORTUNITIES_FILE}: {e}") from e

        logger.debug(f"Updated {len(updated)} records in {self.opportunities_path}")
        return updated
