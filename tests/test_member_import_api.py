"""
관리자 회원 CSV 가져오기 / 내보내기 API 통합 테스트.
- 미리보기(저장 없음), 가져오기 결과 집계, 기존 회원과의 중복,
  설문형 헤더 매핑, 템플릿 / CSV / xlsx 내보내기를 검증한다.
"""

import io

from openpyxl import load_workbook
from sqlalchemy import select

from app.models.admin_log import AdminActionLog, AdminAction
from app.models.member import Member
from app.models.user import Role
from tests.helpers import csv_upload, login_as

CLEAN_CSV = "name,email,city_province,occupation\n" + "".join(
    f'Member {i},member{i}@x.com,"Toronto, ON",Designer\n' for i in range(5)
)


def _members(db):
    db.expire_all()
    return list(db.scalars(select(Member).order_by(Member.email)).all())


def test_import_requires_manage_users(client, db_session):
    _, moderator = login_as(client, db_session, Role.MODERATOR)
    r = client.post("/admin/members/import", headers=moderator, files=csv_upload(CLEAN_CSV))
    assert r.status_code == 403


def test_preview_does_not_write(client, db_session):
    _, admin = login_as(client, db_session, Role.ADMIN)
    r = client.post("/admin/members/import/preview", headers=admin, files=csv_upload(CLEAN_CSV))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["header"] == ["name", "email", "city_province", "occupation"]
    assert body["total_rows"] == 5
    assert len(body["rows"]) == 5
    assert body["rows"][0]["city_province"] == "Toronto, ON"
    assert _members(db_session) == []


def test_import_clean_file(client, db_session):
    admin_account, admin = login_as(client, db_session, Role.ADMIN)
    admin_id = admin_account.id

    r = client.post("/admin/members/import", headers=admin, files=csv_upload(CLEAN_CSV))
    assert r.status_code == 200, r.text
    assert r.json() == {"success": 5, "failed": 0, "duplicates": 0, "errors": []}

    members = _members(db_session)
    assert len(members) == 5
    assert all(m.imported_by == admin_id for m in members)
    assert members[0].city_province == "Toronto, ON"

    log = db_session.scalar(select(AdminActionLog).where(AdminActionLog.action == AdminAction.IMPORT_MEMBERS))
    assert log is not None
    assert "success=5" in log.detail


def test_import_skips_existing_members_case_insensitively(client, db_session):
    _, admin = login_as(client, db_session, Role.ADMIN)
    client.post("/admin/members/import", headers=admin, files=csv_upload(CLEAN_CSV))

    again = "name,email\nRepeat,MEMBER0@X.COM\nFresh,fresh@x.com\nBad,nope\n"
    r = client.post("/admin/members/import", headers=admin, files=csv_upload(again))
    assert r.status_code == 200, r.text
    assert r.json() == {
        "success": 1,
        "failed": 0,
        "duplicates": 1,
        "errors": ["Row 4: Invalid email format (nope)"],
    }
    assert len(_members(db_session)) == 6


def test_import_all_duplicates(client, db_session):
    _, admin = login_as(client, db_session, Role.ADMIN)
    client.post("/admin/members/import", headers=admin, files=csv_upload(CLEAN_CSV))
    r = client.post("/admin/members/import", headers=admin, files=csv_upload(CLEAN_CSV))
    assert r.json() == {
        "success": 0,
        "failed": 0,
        "duplicates": 5,
        "errors": ["All records are duplicates"],
    }


def test_import_bad_created_at_is_row_error(client, db_session):
    _, admin = login_as(client, db_session, Role.ADMIN)
    text = "name,email,created_at\nA,a@x.com,yesterday\nB,b@x.com,2024-03-01T10:00:00Z\n"
    r = client.post("/admin/members/import", headers=admin, files=csv_upload(text))
    assert r.json() == {
        "success": 1,
        "failed": 1,
        "duplicates": 0,
        "errors": ["Row 1: Invalid created_at (yesterday)"],
    }
    [member] = _members(db_session)
    assert member.email == "b@x.com"


def test_import_maps_survey_headers(client, db_session):
    _, admin = login_as(client, db_session, Role.ADMIN)
    text = (
        "Name,Email,Did you follow us on Instagram? https://instagram.com/example,Occupation / Job Title?\n"
        "Jane,jane@x.com,Yes,Chef\n"
    )
    r = client.post("/admin/members/import", headers=admin, files=csv_upload(text))
    assert r.json()["success"] == 1
    [member] = _members(db_session)
    assert member.instagram_follow == "Yes"
    assert member.occupation == "Chef"


def test_import_rejects_unusable_files(client, db_session):
    _, admin = login_as(client, db_session, Role.ADMIN)

    header_only = client.post("/admin/members/import", headers=admin, files=csv_upload("name,email\n"))
    assert header_only.status_code == 400
    assert header_only.json()["detail"] == "CSV file must have at least a header row and one data row"

    wrong_type = client.post("/admin/members/import", headers=admin, files=csv_upload(CLEAN_CSV, "members.txt"))
    assert wrong_type.status_code == 400


def test_template_and_exports(client, db_session):
    _, admin = login_as(client, db_session, Role.ADMIN)
    client.post("/admin/members/import", headers=admin, files=csv_upload(CLEAN_CSV))

    template = client.get("/admin/members/import/template", headers=admin)
    assert template.status_code == 200
    assert template.text.strip().split(",")[:2] == ["name", "first_name"]
    assert template.text.strip().endswith("created_at")

    exported = client.get("/admin/members/export", headers=admin)
    assert exported.status_code == 200
    assert exported.content.startswith("\ufeff".encode("utf-8"))
    lines = exported.content.decode("utf-8-sig").strip().splitlines()
    assert len(lines) == 6
    assert '"Toronto, ON"' in lines[1]

    xlsx = client.get("/admin/members/export.xlsx", headers=admin)
    assert xlsx.status_code == 200
    ws = load_workbook(io.BytesIO(xlsx.content)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0][0] == "name"
    assert len(rows) == 6
