"""
members.py

커뮤니티 회원(Member) 명부 API 모음.

주요 기능:
- 회원 목록 조회 (검색 / 정렬 / 페이지네이션)
- 회원 상세 조회, 수동 등록 / 수정 / 삭제
- 회원 목록 실시간 구독 (Server-Sent Events, 매번 전체 스냅샷 전달)
- 대시보드 통계
- 관리자용 CSV 가져오기 (미리보기 / 실행 / 템플릿 다운로드)
- 관리자용 CSV / Excel(xlsx) 내보내기

설계 원칙:
- 조회는 로그인한 계정이면 가능, 등록/수정/삭제는 admin 이상 role,
  통계는 canViewAnalytics, 가져오기/내보내기는 canManageUsers 권한 플래그 필요
- 가져오기의 행 단위 문제(형식 오류, 중복, 저장 실패)는 HTTP 오류가 아니라
  결과(errors)의 항목으로만 반환
- 회원 데이터가 바뀌면 전체 스냅샷을 구독자에게 발행

관련 파일:
- app.services.members     : 목록 조회 / SqlMemberSink / 스냅샷 발행
- app.services.csv_import  : 가져오기 파이프라인
- app.services.analytics   : 통계 계산

"""

import csv
import io
import asyncio
import json
import logging
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from openpyxl import Workbook
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response, StreamingResponse

from app.core.config import settings
from app.core.deps import (
    get_db,
    get_current_user,
    get_current_admin,
    get_analytics_viewer,
    get_user_manager,
)
from app.db.session import SessionLocal
from app.models.user import User
from app.models.admin_log import AdminAction
from app.schemas.member import (
    MemberCreateRequest,
    MemberUpdateRequest,
    SortDirection,
    ImportResultResponse,
    ImportPreviewResponse,
)
from app.services.admin_log import write_admin_log
from app.services.analytics import member_analytics
from app.services.authz import Actor
from app.services.csv_import import CsvFormatError, MemberImport
from app.services.members import (
    MEMBER_FIELDS,
    TEMPLATE_HEADER,
    SqlMemberSink,
    all_members,
    create_member,
    get_member,
    list_members,
    member_snapshot,
    page_count,
    publish_members,
    serialize_member,
    update_member,
)
from app.services.snapshots import LatestSnapshotSlot, member_snapshots

LOG = logging.getLogger(__name__)

router = APIRouter(prefix="/members", tags=["members"])
admin_router = APIRouter(prefix="/admin/members", tags=["admin-members"])

STREAM_KEEPALIVE_SECONDS = 15


def _get_member_or_404(db: Session, member_id: uuid.UUID):
    member = get_member(db, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")


"""
회원 목록 조회 API

- q        : 이름 / 이메일 / 전화번호 / 도시 / 직업 검색
- sort     : name, email, city_province, occupation, industry, age_group, created_at
- direction: asc / desc
- page, page_size (기본 20, 최대 MEMBERS_MAX_PAGE_SIZE)

"""
@router.get("")
def list_member_page(
    q: str | None = None,
    sort: str | None = None,
    direction: SortDirection = "asc",
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    size = min(page_size or settings.MEMBERS_PAGE_SIZE, settings.MEMBERS_MAX_PAGE_SIZE)
    try:
        members, total = list_members(db, q=q, sort=sort, direction=direction, page=page, page_size=size)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "data": [serialize_member(m) for m in members],
        "meta": {
            "page": page,
            "page_size": size,
            "total": total,
            "total_pages": page_count(total, size),
        },
    }


# 대시보드 통계 (차트 데이터)
@router.get("/analytics")
def analytics(
    db: Session = Depends(get_db),
    _: User = Depends(get_analytics_viewer),
):
    return {"data": member_analytics(all_members(db))}


def _sse(snapshot: list) -> str:
    return f"event: snapshot\ndata: {json.dumps(snapshot, ensure_ascii=False)}\n\n"


"""
회원 목록 실시간 구독 API (Server-Sent Events)

- 연결 직후 현재 전체 목록을 한 번 전송
- 이후 회원 데이터가 바뀔 때마다 전체 스냅샷을 다시 전송 (변경분 아님)
- 구독은 스트림이 시작될 때 생성되고, 스트림이 닫히거나 취소되면 해제
- 읽기 전에 여러 번 바뀌면 가장 최근 스냅샷만 전송
- 조회는 요청 세션이 아닌 별도 세션(SessionLocal)으로 수행

"""
def _load_snapshot() -> list:
    db = SessionLocal()
    try:
        return member_snapshot(db)
    finally:
        db.close()


async def _snapshot_events():
    slot = LatestSnapshotSlot(asyncio.get_running_loop())
    with member_snapshots.subscribe(slot):
        # 초기 목록은 반드시 구독 이후에 조회
        yield _sse(await run_in_threadpool(_load_snapshot))
        while True:
            try:
                snapshot = await slot.get(timeout=STREAM_KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield _sse(snapshot)


@router.get("/stream")
async def stream_members(_: User = Depends(get_current_user)):
    return StreamingResponse(_snapshot_events(), media_type="text/event-stream")


@router.get("/{member_id}")
def get_member_detail(
    member_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"data": serialize_member(_get_member_or_404(db, member_id))}


# 회원 수동 등록 (이메일 중복은 가져오기 때만 검사하므로 여기서는 허용)
@router.post("", status_code=201)
def create_member_entry(
    body: MemberCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    member = create_member(db, body.model_dump())
    _commit(db)
    db.refresh(member)
    publish_members(db)
    return {"data": serialize_member(member)}


@router.patch("/{member_id}")
def update_member_entry(
    member_id: uuid.UUID,
    body: MemberUpdateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    member = _get_member_or_404(db, member_id)
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items()
               if not (v is None and k in ("name", "email"))}
    if not changes:
        raise HTTPException(status_code=400, detail="No changes provided")

    update_member(member, changes)
    _commit(db)
    db.refresh(member)
    publish_members(db)
    return {"data": serialize_member(member)}


@router.delete("/{member_id}")
def delete_member_entry(
    member_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    member = _get_member_or_404(db, member_id)
    snapshot = serialize_member(member)
    db.delete(member)
    _commit(db)
    publish_members(db)
    return {"message": "Member deleted", "data": snapshot}


# ---------------------------------------------------------------------------
# 관리자: CSV 가져오기 / 내보내기
# ---------------------------------------------------------------------------

def _read_csv_upload(file: UploadFile) -> str:
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only .csv files are accepted")

    raw = file.file.read(settings.IMPORT_MAX_BYTES + 1)
    if len(raw) > settings.IMPORT_MAX_BYTES:
        raise HTTPException(status_code=413, detail="CSV file is too large")

    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")


def _new_import() -> MemberImport:
    return MemberImport(
        report_ragged=settings.IMPORT_REPORT_RAGGED_ROWS,
        preview_rows=settings.IMPORT_PREVIEW_ROWS,
    )


"""
CSV 가져오기 미리보기 API

- 파일을 파싱만 하고 저장하지 않음
- 앞의 IMPORT_PREVIEW_ROWS개 행과 전체 행 수, 파싱 단계 오류를 반환

"""
@admin_router.post("/import/preview", response_model=ImportPreviewResponse)
def preview_import(
    file: UploadFile = File(...),
    _: User = Depends(get_user_manager),
):
    text = _read_csv_upload(file)
    job = _new_import()
    try:
        parsed = job.parse(text)
    except CsvFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ImportPreviewResponse(
        header=parsed.header,
        rows=[row.fields for row in job.preview()],
        total_rows=job.total_rows,
        errors=parsed.errors,
    )


"""
CSV 가져오기 실행 API

- 미리보기를 확인한 뒤 같은 파일로 호출
- 전체 행 검증 → 중복 제거(파일 내 + 기존 회원) → 한 행씩 저장
- 결과: success / failed / duplicates / errors

"""
@admin_router.post("/import", response_model=ImportResultResponse)
def run_import(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_user_manager),
):
    text = _read_csv_upload(file)
    job = _new_import()
    try:
        job.parse(text)
    except CsvFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    job.preview()
    actor = Actor.of(current_admin)
    actor_id = actor.id
    sink = SqlMemberSink(db)
    try:
        result = job.run(
            sink,
            actor=actor,
            on_progress=lambda fraction: LOG.debug("member import progress %.0f%%", fraction * 100),
        )
    except Exception as e:
        db.rollback()
        LOG.exception("member import aborted")
        raise HTTPException(status_code=500, detail=f"Import failed: {type(e).__name__}")

    write_admin_log(
        db,
        actor_id=actor_id,
        action=AdminAction.IMPORT_MEMBERS,
        detail=(
            f"{file.filename}: success={result.success} failed={result.failed} "
            f"duplicates={result.duplicates}"
        ),
    )
    _commit(db)

    if sink.written:
        publish_members(db)
    return ImportResultResponse(**result.as_dict())


# 가져오기용 CSV 템플릿 (헤더 행만)
@admin_router.get("/import/template")
def import_template(_: User = Depends(get_user_manager)):
    output = io.StringIO()
    csv.writer(output).writerow(TEMPLATE_HEADER)
    return Response(
        content=output.getvalue(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="members_template.csv"'},
    )


"""
회원 명부 CSV 내보내기 API

- 가져오기 템플릿과 같은 헤더 순서
- UTF-8 BOM을 먼저 출력하여 Excel 호환

"""
@admin_router.get("/export")
def export_members_csv(
    db: Session = Depends(get_db),
    _: User = Depends(get_user_manager),
):
    members = [serialize_member(m) for m in all_members(db)]

    def generate():
        # Excel에서 UTF-8 CSV 한글 깨짐 방지를 위해 BOM 먼저 출력
        yield "\ufeff"

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(TEMPLATE_HEADER)
        yield output.getvalue()
        output.seek(0)
        output.truncate(0)

        for m in members:
            writer.writerow([m[name] or "" for name in TEMPLATE_HEADER])
            yield output.getvalue()
            output.seek(0)
            output.truncate(0)

    headers = {"Content-Disposition": 'attachment; filename="members.csv"'}
    return StreamingResponse(generate(), media_type="text/csv; charset=utf-8", headers=headers)


@admin_router.get("/export.xlsx")
def export_members_xlsx(
    db: Session = Depends(get_db),
    _: User = Depends(get_user_manager),
):
    wb = Workbook()
    ws = wb.active
    ws.title = "members"

    ws.append(TEMPLATE_HEADER)
    for member in all_members(db):
        data = serialize_member(member)
        ws.append([data[name] for name in MEMBER_FIELDS] + [data["created_at"]])

    buf = io.BytesIO()
    wb.save(buf)

    headers = {"Content-Disposition": 'attachment; filename="members.xlsx"'}
    return Response(
        content=buf.getvalue(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )
