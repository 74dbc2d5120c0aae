"""Persistence for reports and moderation records."""

import copy
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

from .models import ModerationRecord, ModerationStatus, Report


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ModerationRepository(ABC):
    """Storage contract for reports and moderation cycles."""

    @abstractmethod
    async def get_current_record(self, target_id: UUID) -> ModerationRecord | None:
        """The record of the latest cycle of a target."""

    @abstractmethod
    async def list_records(self, target_id: UUID) -> list[ModerationRecord]:
        """All cycles of a target, newest first."""

    @abstractmethod
    async def save_record(
        self,
        record: ModerationRecord,
        previous_status: ModerationStatus | None = None,
    ) -> None:
        """Insert or overwrite a record; previous_status moves it between queues."""

    @abstractmethod
    async def list_records_by_status(
        self, status: ModerationStatus
    ) -> list[ModerationRecord]:
        """All records currently in a status, in no particular order."""

    @abstractmethod
    async def get_report(
        self, target_id: UUID, cycle: int, reporter_id: UUID
    ) -> Report | None:
        """A reporter's report in a cycle."""

    @abstractmethod
    async def list_reports(
        self, target_id: UUID, cycle: int | None = None
    ) -> list[Report]:
        """Reports on a target, one cycle or all, oldest cycle first."""

    @abstractmethod
    async def save_report(self, report: Report) -> None:
        """Insert or overwrite a report."""


class InMemoryModerationRepository(ModerationRepository):
    """Dict-backed repository. Returns and stores copies."""

    def __init__(self) -> None:
        self._records: dict[tuple[UUID, int], ModerationRecord] = {}
        self._reports: dict[tuple[UUID, int, UUID], Report] = {}

    async def get_current_record(self, target_id: UUID) -> ModerationRecord | None:
        records = await self.list_records(target_id)
        return records[0] if records else None

    async def list_records(self, target_id: UUID) -> list[ModerationRecord]:
        records = [r for (tid, _), r in self._records.items() if tid == target_id]
        records.sort(key=lambda r: r.cycle, reverse=True)
        return copy.deepcopy(records)

    async def save_record(
        self,
        record: ModerationRecord,
        previous_status: ModerationStatus | None = None,
    ) -> None:
        self._records[(record.target_id, record.cycle)] = copy.deepcopy(record)

    async def list_records_by_status(
        self, status: ModerationStatus
    ) -> list[ModerationRecord]:
        return copy.deepcopy([r for r in self._records.values() if r.status == status])

    async def get_report(
        self, target_id: UUID, cycle: int, reporter_id: UUID
    ) -> Report | None:
        report = self._reports.get((target_id, cycle, reporter_id))
        return copy.deepcopy(report) if report else None

    async def list_reports(
        self, target_id: UUID, cycle: int | None = None
    ) -> list[Report]:
        reports = [
            r
            for (tid, report_cycle, _), r in self._reports.items()
            if tid == target_id and (cycle is None or report_cycle == cycle)
        ]
        reports.sort(key=lambda r: (r.cycle, r.created_at))
        return copy.deepcopy(reports)

    async def save_report(self, report: Report) -> None:
        key = (report.target_id, report.cycle, report.reporter_id)
        self._reports[key] = copy.deepcopy(report)


class CassandraModerationRepository(ModerationRepository):
    """Report and moderation storage on Cassandra via cassandra-asyncio-driver."""

    _RECORD_COLUMNS = (
        "record_id, target_kind, report_count, reasons, severity, moderator_id, "
        "notes, target_author_id, opened_at, updated_at, decided_at"
    )

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        columns = self._RECORD_COLUMNS

        self._insert_record = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.moderation_records
            (target_id, cycle, status, {columns})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_record_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.moderation_records_by_status
            (status, target_id, cycle, {columns})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._delete_record_by_status = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.moderation_records_by_status
            WHERE status = ? AND target_id = ? AND cycle = ?
        """)

        self._get_current_record = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.moderation_records
            WHERE target_id = ?
            LIMIT 1
        """)

        self._get_records = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.moderation_records
            WHERE target_id = ?
        """)

        self._get_records_by_status = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.moderation_records_by_status
            WHERE status = ?
        """)

        self._insert_report = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.reports
            (target_id, cycle, reporter_id, report_id, target_kind, reason, details,
             status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_report = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports
            WHERE target_id = ? AND cycle = ? AND reporter_id = ?
        """)

        self._get_reports_by_cycle = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports
            WHERE target_id = ? AND cycle = ?
        """)

        self._get_reports = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports
            WHERE target_id = ?
        """)

    async def get_current_record(self, target_id: UUID) -> ModerationRecord | None:
        rows = await self.session.aexecute(self._get_current_record, [target_id])
        row = rows[0] if rows else None
        return ModerationRecord.from_row(row) if row else None

    async def list_records(self, target_id: UUID) -> list[ModerationRecord]:
        rows = await self.session.aexecute(self._get_records, [target_id])
        return [ModerationRecord.from_row(row) for row in rows]

    async def save_record(
        self,
        record: ModerationRecord,
        previous_status: ModerationStatus | None = None,
    ) -> None:
        values = [
            record.record_id,
            record.target_kind.value,
            record.report_count,
            [reason.value for reason in record.reasons],
            record.severity.value,
            record.moderator_id,
            record.notes,
            record.target_author_id,
            record.opened_at,
            record.updated_at,
            record.decided_at,
        ]
        await self.session.aexecute(
            self._insert_record,
            [record.target_id, record.cycle, record.status.value, *values],
        )
        if previous_status is not None and previous_status != record.status:
            await self.session.aexecute(
                self._delete_record_by_status,
                [previous_status.value, record.target_id, record.cycle],
            )
        await self.session.aexecute(
            self._insert_record_by_status,
            [record.status.value, record.target_id, record.cycle, *values],
        )

    async def list_records_by_status(
        self, status: ModerationStatus
    ) -> list[ModerationRecord]:
        rows = await self.session.aexecute(self._get_records_by_status, [status.value])
        return [ModerationRecord.from_row(row, status=status.value) for row in rows]

    async def get_report(
        self, target_id: UUID, cycle: int, reporter_id: UUID
    ) -> Report | None:
        rows = await self.session.aexecute(
            self._get_report, [target_id, cycle, reporter_id]
        )
        row = rows[0] if rows else None
        return Report.from_row(row) if row else None

    async def list_reports(
        self, target_id: UUID, cycle: int | None = None
    ) -> list[Report]:
        if cycle is None:
            rows = await self.session.aexecute(self._get_reports, [target_id])
        else:
            rows = await self.session.aexecute(
                self._get_reports_by_cycle, [target_id, cycle]
            )
        reports = [Report.from_row(row) for row in rows]
        reports.sort(key=lambda r: (r.cycle, r.created_at))
        return reports

    async def save_report(self, report: Report) -> None:
        await self.session.aexecute(
            self._insert_report,
            [
                report.target_id,
                report.cycle,
                report.reporter_id,
                report.report_id,
                report.target_kind.value,
                report.reason.value,
                report.details,
                report.status.value,
                report.created_at,
                report.updated_at,
            ],
        )
