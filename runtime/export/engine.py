"""Batch export engine — offset-paginated export of a validated query.

The loop is strictly sequential: one bounded query at a time, each batch
appended to the sink before the next query is issued.  Offset pagination
is only stable over an ordered result, so the base query must carry an
ORDER BY; that is checked here before anything runs.
"""

from __future__ import annotations

import time

from contracts.audit import AuditEntry, AuditEvent, AuditLogger, LogLevel
from contracts.errors import (
    ExecutionFailureError,
    OrderingRequiredError,
    RejectedInputError,
)
from contracts.executor import QueryExecutor
from contracts.export import ExportFormat, ExportJobState, ExportSummary, Sink
from contracts.security import SecurityPolicy
from runtime.export.formats import writer_for
from runtime.guard.limits import paginate, strip_pagination
from runtime.guard.statement import has_ordering, validate_statement


class BatchExportEngine:
    """Drives one export per ``run()`` call; holds no state between calls."""

    def __init__(
        self,
        policy: SecurityPolicy,
        logger: AuditLogger | None = None,
        *,
        request_id: str = "",
        app_name: str = "",
    ) -> None:
        self._policy = policy
        self._logger = logger
        self._request_id = request_id
        self._app_name = app_name

    def prepare(self, base_query: str) -> str:
        """Validate the base query and return it without LIMIT/OFFSET framing.

        Raises ``RejectedInputError`` or ``OrderingRequiredError``.
        """
        outcome = validate_statement(base_query, self._policy.allowed_statement_prefixes)
        if not outcome.accepted or outcome.normalized_statement is None:
            raise RejectedInputError(f"Invalid query: {outcome.reason}")
        if not has_ordering(outcome.normalized_statement):
            raise OrderingRequiredError()
        return strip_pagination(outcome.normalized_statement)

    def run(
        self,
        base_query: str,
        executor: QueryExecutor,
        sink: Sink,
        *,
        page_size: int,
        row_cap: int | None = None,
        fmt: ExportFormat | str = ExportFormat.JSONL,
    ) -> ExportSummary:
        statement = self.prepare(base_query)
        page_size = self._check_page_size(page_size)
        if row_cap is not None and row_cap < 1:
            raise RejectedInputError("max_rows must be a positive integer")

        state = ExportJobState(
            base_query=statement,
            page_size=page_size,
            output_format=ExportFormat(fmt),
            row_cap=row_cap,
        )
        writer = writer_for(state.output_format)
        started = time.monotonic()

        writer.begin(sink)
        while True:
            batch_limit = state.next_batch_limit()
            if batch_limit <= 0:
                break

            sql = paginate(state.base_query, batch_limit, state.offset)
            try:
                result = executor.query(sql)
            except Exception as exc:
                self._log(
                    AuditEvent.ERROR,
                    "Batch export failed",
                    LogLevel.ERROR,
                    error=str(exc),
                    batch=state.batches_written + 1,
                    total_rows=state.total_rows_written,
                )
                raise ExecutionFailureError(
                    str(exc),
                    sql,
                    batches_written=state.batches_written,
                    rows_written=state.total_rows_written,
                ) from exc

            rows = result.rows
            if not rows:
                break

            writer.write_batch(sink, rows)
            state.record_batch(len(rows))
            self._log(
                AuditEvent.EXPORT_BATCH,
                "Batch exported",
                LogLevel.INFO,
                batch=state.batches_written,
                rows=len(rows),
                total_rows=state.total_rows_written,
            )

            if len(rows) < batch_limit:
                break
            if state.cap_reached:
                break
        writer.finish(sink)

        duration_ms = int(round((time.monotonic() - started) * 1000))
        summary = ExportSummary(
            total_rows=state.total_rows_written,
            batch_count=state.batches_written,
            duration_ms=duration_ms,
            rows_per_second=(
                round(state.total_rows_written / (duration_ms / 1000)) if duration_ms else 0
            ),
            page_size=state.page_size,
            format=state.output_format,
        )
        self._log(
            AuditEvent.EXPORT_END,
            "Batch export completed",
            LogLevel.INFO,
            total_rows=summary.total_rows,
            batch_count=summary.batch_count,
            duration_ms=summary.duration_ms,
        )
        return summary

    # ── internal ────────────────────────────────────────────────────

    def _check_page_size(self, page_size: int) -> int:
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise RejectedInputError("batch_size must be a positive integer")
        if page_size > self._policy.max_row_limit:
            self._log(
                AuditEvent.EXPORT_BATCH,
                "Batch size clamped to max_row_limit",
                LogLevel.WARN,
                requested=page_size,
                max_row_limit=self._policy.max_row_limit,
            )
            return self._policy.max_row_limit
        return page_size

    def _log(self, event: AuditEvent, message: str, level: LogLevel, **detail: object) -> None:
        if self._logger is None:
            return
        self._logger.log(AuditEntry(
            request_id=self._request_id,
            event=event,
            level=level,
            app=self._app_name,
            message=message,
            detail=detail,
        ))
