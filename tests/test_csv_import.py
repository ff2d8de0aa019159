"""
회원 CSV 가져오기 파이프라인 단위 테스트 (DB 없이 메모리 저장소 사용).
- 파싱(따옴표 안 쉼표, BOM, 필드 수 불일치), 검증 오류 메시지,
  중복 제거(파일 내 / 기존 회원, 대소문자 무시), 행 단위 저장 실패 격리,
  상태 전이 순서를 검증한다.
"""

from datetime import datetime, timezone

import pytest

from app.services.csv_import import (
    ALL_DUPLICATES,
    CsvFormatError,
    CsvRow,
    ImportState,
    ImportStateError,
    MemberImport,
    deduplicate,
    parse_csv,
    split_csv_line,
    validate_rows,
    write_rows,
)


class MemorySink:
    def __init__(self, existing=(), fail_on=()):
        self.existing = list(existing)
        self.fail_on = set(fail_on)
        self.saved = []
        self.actors = []
        self.lookups = 0

    def existing_emails(self):
        self.lookups += 1
        return list(self.existing)

    def add(self, row, actor):
        if row.email_key in self.fail_on:
            raise RuntimeError(f"cannot store {row.email_key}")
        self.saved.append(row)
        self.actors.append(actor)
        return row


def run_import(text, sink, **kwargs):
    job = MemberImport(**kwargs)
    job.parse(text)
    job.preview()
    return job, job.run(sink)


def test_split_keeps_commas_inside_quotes():
    assert split_csv_line('Jane, "Toronto, ON" ,x') == ["Jane", "Toronto, ON", "x"]
    assert split_csv_line("a,,b") == ["a", "", "b"]


def test_parse_strips_bom_and_numbers_rows_from_file_lines():
    text = "\ufeffname,email\nJane,jane@x.com\n\nJohn,john@x.com\n"
    parsed = parse_csv(text)
    assert parsed.header == ["name", "email"]
    assert [r.number for r in parsed.rows] == [2, 4]
    assert parsed.rows[0].get("Email") == "jane@x.com"


@pytest.mark.parametrize("text", ["", "name,email", "name,email\n\n  \n"])
def test_parse_needs_header_and_data(text):
    with pytest.raises(CsvFormatError) as exc:
        parse_csv(text)
    assert str(exc.value) == "CSV file must have at least a header row and one data row"


def test_ragged_rows_are_reported_and_dropped():
    text = "name,email\nJane,jane@x.com\nBroken\nJohn,john@x.com,extra\n"
    parsed = parse_csv(text)
    assert [r.get("name") for r in parsed.rows] == ["Jane"]
    assert parsed.errors == [
        "Row 3: Expected 2 fields but found 1",
        "Row 4: Expected 2 fields but found 3",
    ]

    silent = parse_csv(text, report_ragged=False)
    assert silent.errors == []
    assert len(silent.rows) == 1


def test_all_ragged_rows_is_format_error():
    with pytest.raises(CsvFormatError) as exc:
        parse_csv("name,email\nonly-one\n")
    assert str(exc.value) == "No valid data found in CSV file"


def test_validate_reports_missing_fields_and_bad_email():
    rows = [
        CsvRow(2, {"name": "", "email": "a@x.com"}),
        CsvRow(3, {"name": "Bob", "email": "not-an-email"}),
        CsvRow(4, {"name": "Cy", "email": "cy@x.com"}),
    ]
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    valid, errors = validate_rows(rows, now=now)
    assert errors == [
        "Row 2: Missing required fields (name or email)",
        "Row 3: Invalid email format (not-an-email)",
    ]
    assert [r.number for r in valid] == [4]
    assert valid[0].get("created_at") == now.isoformat()


def test_validate_keeps_supplied_created_at():
    row = CsvRow(2, {"name": "A", "email": "a@x.com", "created_at": "2023-01-01T00:00:00Z"})
    valid, _ = validate_rows([row])
    assert valid[0].get("created_at") == "2023-01-01T00:00:00Z"


def test_deduplicate_is_stable_and_case_insensitive():
    rows = [
        CsvRow(2, {"email": "A@x.com"}),
        CsvRow(3, {"email": "b@x.com"}),
        CsvRow(4, {"email": "a@X.com"}),
        CsvRow(5, {"email": "c@x.com"}),
    ]
    unique, duplicates = deduplicate(rows, ["C@X.COM"])
    assert [r.number for r in unique] == [2, 3]
    assert duplicates == 2


def test_deduplicate_checks_storage_even_for_unique_batch():
    unique, duplicates = deduplicate([CsvRow(2, {"email": "A@X.COM"})], ["a@x.com"])
    assert unique == []
    assert duplicates == 1


def test_write_failure_is_isolated_per_row():
    rows = [CsvRow(n, {"email": f"u{n}@x.com"}) for n in (2, 3, 4)]
    sink = MemorySink(fail_on={"u3@x.com"})
    progress = []
    success, errors = write_rows(rows, sink, on_progress=progress.append)
    assert success == 2
    assert errors == ["Row 2: cannot store u3@x.com"]
    assert [r.number for r in sink.saved] == [2, 4]
    assert progress[-1] == 1.0


def test_full_import_of_clean_file():
    text = "name,email,city_province\n" + "".join(
        f"Member {i},m{i}@x.com,Toronto\n" for i in range(5)
    )
    sink = MemorySink()
    job, result = run_import(text, sink)
    assert result.as_dict() == {"success": 5, "failed": 0, "duplicates": 0, "errors": []}
    assert job.state == ImportState.COMPLETED
    assert job.progress == 1.0
    assert sink.lookups == 1


def test_import_mixes_errors_duplicates_and_writes():
    text = (
        "name,email\n"
        "Ann,ann@x.com\n"
        ",missing@x.com\n"
        "Bob,bob@x.com\n"
        "Ann Again,ANN@x.com\n"
        "Old,old@x.com\n"
        "Bad,bad-email\n"
        "Broken\n"
    )
    sink = MemorySink(existing=["OLD@x.com"], fail_on={"bob@x.com"})
    _, result = run_import(text, sink)
    assert result.success == 1
    assert result.failed == 1
    assert result.duplicates == 2
    assert result.errors == [
        "Row 8: Expected 2 fields but found 1",
        "Row 3: Missing required fields (name or email)",
        "Row 7: Invalid email format (bad-email)",
        "Row 2: cannot store bob@x.com",
    ]
    assert [r.get("name") for r in sink.saved] == ["Ann"]


def test_import_with_no_valid_rows():
    sink = MemorySink()
    _, result = run_import("name,email\n,a@x.com\nB,nope\n", sink)
    assert result.success == 0
    assert result.failed == 2
    assert result.duplicates == 0
    assert len(result.errors) == 2
    assert sink.lookups == 0


def test_import_where_everything_is_duplicate():
    sink = MemorySink(existing=["a@x.com"])
    _, result = run_import("name,email\nA,A@x.com\nA2,a@x.com\n", sink)
    assert result.as_dict() == {
        "success": 0,
        "failed": 0,
        "duplicates": 2,
        "errors": [ALL_DUPLICATES],
    }
    assert sink.saved == []


def test_actor_is_passed_to_sink():
    sink = MemorySink()
    job = MemberImport()
    job.parse("name,email\nA,a@x.com\n")
    job.preview()
    marker = object()
    job.run(sink, actor=marker)
    assert sink.actors == [marker]


def test_preview_limits_rows():
    text = "name,email\n" + "".join(f"N{i},n{i}@x.com\n" for i in range(8))
    job = MemberImport(preview_rows=3)
    job.parse(text)
    assert [r.get("name") for r in job.preview()] == ["N0", "N1", "N2"]
    assert job.total_rows == 8
    assert job.state == ImportState.PREVIEWED


def test_run_requires_preview_and_is_not_reentrant():
    job = MemberImport()
    with pytest.raises(ImportStateError):
        job.run(MemorySink())

    job.parse("name,email\nA,a@x.com\n")
    with pytest.raises(ImportStateError):
        job.run(MemorySink())

    job.preview()
    job.run(MemorySink())
    with pytest.raises(ImportStateError):
        job.run(MemorySink())
    with pytest.raises(ImportStateError):
        job.parse("name,email\nA,a@x.com\n")
