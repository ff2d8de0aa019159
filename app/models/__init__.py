# Base.metadata에 모든 테이블을 등록하기 위한 import
from app.models.user import User, Role, AccountStatus  # noqa: F401
from app.models.member import Member  # noqa: F401
from app.models.admin_log import AdminActionLog, AdminAction  # noqa: F401
