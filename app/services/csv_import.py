"""
services/csv_import.py

회원 CSV 가져오기(import) 파이프라인.

업로드된 CSV 텍스트를 행 단위로 파싱하고,
필수 값/이메일 형식을 검증한 뒤,
같은 파일 안의 중복과 이미 저장된 회원과의 중복(이메일, 대소문자 무시)을 제거하고,
남은 행을 한 행씩 순서대로 저장한다.

처리 단계 (MemberImport 상태):
    IDLE → PARSED → PREVIEWED → VALIDATING → DEDUPLICATING → WRITING → COMPLETED

설계 원칙:
- 잘못된 행은 파이프라인을 멈추지 않고 "Row <n>: <사유>" 오류 항목으로만 남김
- 중복은 오류가 아닌 별도 집계(duplicates)
- 저장은 배치/병렬 없이 한 행씩, 한 행의 실패가 다른 행에 영향을 주지 않음
- 파이프라인 자체는 헤더만 있는 입력 등 복구 불가능한 입력에서만 중단 (CsvFormatError)
- 저장소 접근은 MemberSink 인터페이스로 분리 (DB 구현은 app.services.members.SqlMemberSink)

관련 파일:
- app.services.members     : SqlMemberSink, 헤더 → 컬럼 매핑
- app.routers.members      : 미리보기 / 가져오기 API
- app.core.config          : IMPORT_PREVIEW_ROWS / IMPORT_REPORT_RAGGED_ROWS

"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Protocol

from app.services.authz import Actor

LOGGER = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ALL_DUPLICATES = "All records are duplicates"


class CsvFormatError(ValueError):
    pass


class ImportStateError(RuntimeError):
    pass


class ImportState(str, Enum):
    IDLE = "idle"
    PARSED = "parsed"
    PREVIEWED = "previewed"
    VALIDATING = "validating"
    DEDUPLICATING = "deduplicating"
    WRITING = "writing"
    COMPLETED = "completed"


@dataclass
class CsvRow:
    number: int  # 파일 기준 행 번호 (헤더 = 1)
    fields: dict[str, str]

    def get(self, key: str) -> str:
        if key in self.fields:
            return self.fields[key]
        lowered = key.lower()
        for name, value in self.fields.items():
            if name.lower() == lowered:
                return value
        return ""

    def set(self, key: str, value: str) -> None:
        for name in self.fields:
            if name.lower() == key.lower():
                self.fields[name] = value
                return
        self.fields[key] = value

    @property
    def email_key(self) -> str:
        return self.get("email").lower()


@dataclass
class ParseOutcome:
    header: list[str]
    rows: list[CsvRow]
    errors: list[str] = field(default_factory=list)


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "failed": self.failed,
            "duplicates": self.duplicates,
            "errors": list(self.errors),
        }


class MemberSink(Protocol):
    def existing_emails(self) -> Iterable[str]: ...

    def add(self, row: CsvRow, actor: Optional[Actor]) -> Any: ...


ProgressCallback = Callable[[float], None]


"""
CSV 한 줄 분리

- 쉼표 기준으로 분리하되 큰따옴표 안의 쉼표는 유지
- 큰따옴표는 열고 닫는 표시로만 사용되고 값에서는 제거됨
  (RFC 4180의 "" 이스케이프는 따로 처리하지 않음)
- 각 필드는 앞뒤 공백 제거

"""

def split_csv_line(line: str) -> list[str]:
    values = []
    current = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    values.append("".join(current).strip())
    return values


def parse_csv(text: str, *, report_ragged: bool = True) -> ParseOutcome:
    lines = text.lstrip("\ufeff").split("\n")
    if sum(1 for line in lines if line.strip()) < 2:
        raise CsvFormatError("CSV file must have at least a header row and one data row")

    header_index = next(i for i, line in enumerate(lines) if line.strip())
    header = split_csv_line(lines[header_index].strip())

    rows = []
    errors = []
    for index in range(header_index + 1, len(lines)):
        line = lines[index].strip()
        if not line:
            continue

        number = index + 1
        values = split_csv_line(line)
        if len(values) != len(header):
            # 필드 수가 헤더와 다른 행은 파싱 결과에서 제외
            if report_ragged:
                errors.append(f"Row {number}: Expected {len(header)} fields but found {len(values)}")
            continue

        rows.append(CsvRow(number=number, fields=dict(zip(header, values))))

    if not rows:
        raise CsvFormatError("No valid data found in CSV file")

    return ParseOutcome(header=header, rows=rows, errors=errors)


"""
행 검증

- name, email 이 모두 비어 있지 않아야 함
- email 은 local@domain.tld 형태여야 함
- 오류는 파일 기준 행 번호로 기록 (첫 데이터 행 = Row 2)
- created_at 이 없으면 현재 시각(UTC, ISO-8601)으로 채움

"""

def validate_rows(rows: Iterable[CsvRow], *, now: Optional[datetime] = None) -> tuple[list[CsvRow], list[str]]:
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    valid = []
    errors = []
    for row in rows:
        name = row.get("name")
        email = row.get("email")
        if not name or not email:
            errors.append(f"Row {row.number}: Missing required fields (name or email)")
            continue
        if not EMAIL_RE.match(email):
            errors.append(f"Row {row.number}: Invalid email format ({email})")
            continue
        if not row.get("created_at"):
            row.set("created_at", stamp)
        valid.append(row)
    return valid, errors


"""
중복 제거

- 저장소의 기존 이메일 목록은 한 번만 조회 (대소문자 무시)
- 입력 순서대로 처음 나온 이메일만 남김 (안정 정렬, 순서 유지)
- 이후 같은 이메일, 또는 이미 저장된 이메일은 duplicates로 집계

"""

def deduplicate(rows: list[CsvRow], existing_emails: Iterable[str]) -> tuple[list[CsvRow], int]:
    existing = {email.lower() for email in existing_emails if email}
    seen = set()
    unique = []
    duplicates = 0
    for row in rows:
        key = row.email_key
        if key in existing or key in seen:
            duplicates += 1
            continue
        seen.add(key)
        unique.append(row)
    return unique, duplicates


def write_rows(
    rows: list[CsvRow],
    sink: MemberSink,
    *,
    actor: Optional[Actor] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> tuple[int, list[str]]:
    success = 0
    errors = []
    total = len(rows)
    for position, row in enumerate(rows, start=1):
        try:
            sink.add(row, actor)
            success += 1
        except Exception as e:
            # 한 행의 저장 실패는 기록만 하고 다음 행을 계속 저장
            LOGGER.warning("member import write failed at row %d (%s): %s", position, row.email_key, e)
            errors.append(f"Row {position}: {str(e) or 'Import failed'}")

        if on_progress is not None:
            on_progress(position / total)
    return success, errors


class MemberImport:
    """한 번의 업로드에 대한 가져오기 진행 상태. 요청마다 새로 만든다."""

    def __init__(self, *, report_ragged: bool = True, preview_rows: int = 5):
        self.report_ragged = report_ragged
        self.preview_rows = preview_rows
        self.state = ImportState.IDLE
        self.progress = 0.0
        self.parsed: Optional[ParseOutcome] = None
        self.result: Optional[ImportResult] = None

    def _expect(self, *states: ImportState) -> None:
        if self.state not in states:
            raise ImportStateError(f"Cannot do that while import is {self.state.value}")

    def parse(self, text: str) -> ParseOutcome:
        self._expect(ImportState.IDLE)
        self.parsed = parse_csv(text, report_ragged=self.report_ragged)
        self.state = ImportState.PARSED
        return self.parsed

    def preview(self) -> list[CsvRow]:
        self._expect(ImportState.PARSED, ImportState.PREVIEWED)
        self.state = ImportState.PREVIEWED
        return self.parsed.rows[: self.preview_rows]

    @property
    def total_rows(self) -> int:
        return len(self.parsed.rows) if self.parsed else 0

    def _report_progress(self, fraction: float, on_progress: Optional[ProgressCallback]) -> None:
        self.progress = fraction
        if on_progress is not None:
            on_progress(fraction)

    def run(
        self,
        sink: MemberSink,
        *,
        actor: Optional[Actor] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        self._expect(ImportState.PREVIEWED)

        self.state = ImportState.VALIDATING
        valid, validation_errors = validate_rows(self.parsed.rows)
        rejected = self.parsed.errors + validation_errors

        if not valid:
            return self._complete(ImportResult(failed=len(rejected), errors=rejected))

        self.state = ImportState.DEDUPLICATING
        unique, duplicates = deduplicate(valid, sink.existing_emails())

        if not unique:
            return self._complete(
                ImportResult(duplicates=len(valid), errors=rejected + [ALL_DUPLICATES])
            )

        self.state = ImportState.WRITING
        success, write_errors = write_rows(
            unique,
            sink,
            actor=actor,
            on_progress=lambda fraction: self._report_progress(fraction, on_progress),
        )

        return self._complete(
            ImportResult(
                success=success,
                failed=len(unique) - success,
                duplicates=duplicates,
                errors=rejected + write_errors,
            )
        )

    def _complete(self, result: ImportResult) -> ImportResult:
        self.state = ImportState.COMPLETED
        self.result = result
        LOGGER.info(
            "member import completed: success=%d failed=%d duplicates=%d errors=%d",
            result.success, result.failed, result.duplicates, len(result.errors),
        )
        return result
