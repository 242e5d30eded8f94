from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from app.core.errors import UnsupportedExportFormatError
from app.models.support import ExportOptions
from app.repositories.support_repository import SupportQueueRepository
from app.services.export_service import ExportService, filter_requests, render_csv


@pytest.fixture
def export_service(repository: SupportQueueRepository, data_dir: Path, clock: Any) -> ExportService:
    return ExportService(support_repository=repository, export_dir=data_dir / "exports", clock=clock)


@pytest.fixture
def seeded(repository: SupportQueueRepository, request_factory: Any) -> list[dict[str, Any]]:
    rows = [
        request_factory(0, created_at="2024-01-15T09:00:00.000Z", urgency="normal", topic="Billing"),
        request_factory(1, created_at="2024-02-01T00:00:00.000Z", urgency="urgent", topic="Login"),
        request_factory(2, created_at="2024-02-20T18:30:00.000Z", urgency="normal", topic="billing"),
        request_factory(3, created_at="2024-03-05T12:00:00.000Z", urgency="urgent", topic="Shipping"),
    ]
    repository.replace_all(rows)
    return rows


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_filter_by_urgency_keeps_only_matching_requests(seeded: list[dict[str, Any]]) -> None:
    result = filter_requests(seeded, ExportOptions(urgency="urgent"))

    assert [row["id"] for row in result] == ["req-0001", "req-0003"]


def test_date_range_is_inclusive_and_combines_with_urgency(seeded: list[dict[str, Any]]) -> None:
    options = ExportOptions(start=_utc(2024, 2, 1), end=_utc(2024, 3, 5, 12), urgency="urgent")

    result = filter_requests(seeded, options)

    assert [row["id"] for row in result] == ["req-0001", "req-0003"]


def test_single_date_bound_does_not_filter(seeded: list[dict[str, Any]]) -> None:
    result = filter_requests(seeded, ExportOptions(start=_utc(2024, 3, 1)))

    assert len(result) == 4


def test_json_export_includes_metadata_and_filters(
    export_service: ExportService,
    seeded: list[dict[str, Any]],
) -> None:
    result = export_service.export_requests(ExportOptions(format="json", urgency="normal", include_metadata=True))

    document = json.loads(Path(result.path).read_text(encoding="utf-8"))
    assert result.recordCount == 2
    assert result.fileSize == Path(result.path).stat().st_size
    assert document["metadata"] == {
        "exportDate": "2024-03-10T12:00:00.000Z",
        "totalRecords": 2,
        "format": "json",
        "version": "1.0",
        "filters": {"dateRange": None, "urgency": "normal"},
    }
    assert [row["id"] for row in document["data"]] == ["req-0000", "req-0002"]


def test_json_export_without_metadata_holds_only_data(
    export_service: ExportService,
    seeded: list[dict[str, Any]],
) -> None:
    result = export_service.export_requests(ExportOptions(format="json", include_metadata=False))

    document = json.loads(Path(result.path).read_text(encoding="utf-8"))
    assert list(document) == ["data"]
    assert document["data"] == seeded


def test_csv_export_has_header_plus_one_line_per_request(
    export_service: ExportService,
    repository: SupportQueueRepository,
    request_factory: Any,
) -> None:
    repository.replace_all(
        [
            request_factory(0, created_at="2024-03-01T10:00:00.000Z", name='Jo "JJ" Smith'),
            request_factory(1, created_at="2024-03-02T10:00:00.000Z", message="Line one, and a comma"),
        ]
    )

    result = export_service.export_requests(ExportOptions(format="csv"))

    lines = Path(result.path).read_text(encoding="utf-8").split("\n")
    assert result.filename.endswith(".csv")
    assert len(lines) == 3
    assert lines[0] == "ID,Name,Email,Topic,Message,Urgency,Created At"
    assert lines[1] == (
        'req-0000,"Jo ""JJ"" Smith",customer0@example.com,"Billing",'
        '"Please help me with my account settings.",normal,2024-03-01T10:00:00.000Z'
    )
    assert '"Line one, and a comma"' in lines[2]


def test_csv_export_of_no_matches_is_an_empty_file(
    export_service: ExportService,
    seeded: list[dict[str, Any]],
) -> None:
    options = ExportOptions(format="csv", start=_utc(2030, 1, 1), end=_utc(2030, 12, 31))

    result = export_service.export_requests(options)

    assert result.recordCount == 0
    assert result.fileSize == 0
    assert Path(result.path).read_bytes() == b""
    assert render_csv([]) == ""


def test_export_filename_describes_filters(export_service: ExportService, seeded: list[dict[str, Any]]) -> None:
    options = ExportOptions(format="json", start=_utc(2024, 1, 1), end=_utc(2024, 2, 29), urgency="urgent")

    result = export_service.export_requests(options)

    assert result.filename == (
        "support-requests-export-2024-03-10T12-00-00-000Z-2024-01-01-to-2024-02-29-urgent.json"
    )


def test_exports_in_the_same_instant_never_overwrite(
    export_service: ExportService,
    seeded: list[dict[str, Any]],
) -> None:
    first = export_service.export_requests(ExportOptions(format="json"))
    second = export_service.export_requests(ExportOptions(format="json"))

    assert first.filename != second.filename
    assert Path(first.path).exists()
    assert Path(second.path).exists()


def test_unsupported_format_is_rejected_before_writing(export_service: ExportService) -> None:
    with pytest.raises(UnsupportedExportFormatError):
        export_service.export_requests(ExportOptions(format="xml"))

    assert not export_service.export_dir.exists()


def test_stats_report_counts_range_topics_and_months(
    export_service: ExportService,
    repository: SupportQueueRepository,
    request_factory: Any,
) -> None:
    repository.replace_all(
        [
            request_factory(0, created_at="2024-03-10T12:00:00.000Z", urgency="normal", topic="Billing"),
            request_factory(1, created_at="2024-03-10T12:00:01.000Z", urgency="urgent", topic="Login"),
        ]
    )

    stats = export_service.generate_export_stats()

    assert stats == {
        "totalRequests": 2,
        "urgentRequests": 1,
        "normalRequests": 1,
        "dateRange": {"earliest": "2024-03-10T12:00:00.000Z", "latest": "2024-03-10T12:00:01.000Z"},
        "topTopics": [{"topic": "billing", "count": 1}, {"topic": "login", "count": 1}],
        "requestsByMonth": [{"month": "2024-03", "count": 2}],
    }


def test_stats_for_empty_queue_are_zeroed(export_service: ExportService) -> None:
    assert export_service.generate_export_stats() == {
        "totalRequests": 0,
        "urgentRequests": 0,
        "normalRequests": 0,
        "dateRange": {"earliest": None, "latest": None},
        "topTopics": [],
        "requestsByMonth": [],
    }


def test_stats_fold_topic_case_and_order_months(
    export_service: ExportService,
    seeded: list[dict[str, Any]],
) -> None:
    stats = export_service.generate_export_stats()

    assert stats["topTopics"][0] == {"topic": "billing", "count": 2}
    assert [entry["topic"] for entry in stats["topTopics"][1:]] == ["login", "shipping"]
    assert stats["requestsByMonth"] == [
        {"month": "2024-01", "count": 1},
        {"month": "2024-02", "count": 2},
        {"month": "2024-03", "count": 1},
    ]


def test_list_and_cleanup_exports_keep_newest(
    export_service: ExportService,
    seeded: list[dict[str, Any]],
    clock: Any,
) -> None:
    created = []
    for index in range(4):
        result = export_service.export_requests(ExportOptions(format="json"))
        created.append(result.filename)
        clock.advance(minutes=1)
    (export_service.export_dir / "unrelated.txt").write_text("x", encoding="utf-8")

    listed = export_service.list_exports()
    assert {info.filename for info in listed} == set(created)
    assert all(info.format == "json" for info in listed)

    cleanup = export_service.cleanup_old_exports(keep_count=1)

    assert cleanup.total == 4
    assert cleanup.deletedCount == 3
    assert len(export_service.list_exports()) == 1
    assert (export_service.export_dir / "unrelated.txt").exists()
