"""
목록 조회용 쿼리 빌더
쿼리스트링(신뢰할 수 없는 입력)을 검증된 TaskQuery로 변환한다.
build()는 예외를 던지지 않으며 해석할 수 없는 값은 무시하거나 기본값으로 대체한다.
"""
import math
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any, List, Mapping, Optional

from sqlalchemy import Select, case, or_

from taskhub.core.config import settings
from taskhub.models.enums import TaskStatus, TaskPriority, STATUS_RANK, PRIORITY_RANK
from taskhub.models.task import Task

DEFAULT_SORT_FIELD = "due_date"

# 쿼리스트링 정렬 키 -> Task 컬럼명 (camelCase, snake_case 모두 허용)
SORT_FIELDS = {
    "title": "title",
    "status": "status",
    "priority": "priority",
    "dueDate": "due_date",
    "due_date": "due_date",
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
}


@dataclass(frozen=True)
class TaskQuery:
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[str] = None
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    search: Optional[str] = None
    sort_by: str = DEFAULT_SORT_FIELD
    sort_desc: bool = False
    page: int = 1
    limit: int = 10

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit) if total > 0 else 0

    def conditions(self) -> list:
        clauses = []
        if self.status is not None:
            clauses.append(Task.status == self.status)
        if self.priority is not None:
            clauses.append(Task.priority == self.priority)
        if self.assigned_to is not None:
            clauses.append(Task.assigned_to == self.assigned_to)
        if self.due_from is not None:
            clauses.append(Task.due_date >= self.due_from)
        if self.due_to is not None:
            clauses.append(Task.due_date <= self.due_to)
        if self.search:
            pattern = f"%{escape_like(self.search)}%"
            clauses.append(or_(
                Task.title.ilike(pattern, escape="\\"),
                Task.description.ilike(pattern, escape="\\"),
            ))
        return clauses

    def ordering(self) -> list:
        if self.sort_by == "priority":
            key = case(PRIORITY_RANK, value=Task.priority)
        elif self.sort_by == "status":
            key = case(STATUS_RANK, value=Task.status)
        else:
            key = getattr(Task, self.sort_by)
        tiebreak = Task.task_id.desc() if self.sort_desc else Task.task_id.asc()
        return [key.desc() if self.sort_desc else key.asc(), tiebreak]

    def apply_filters(self, stmt: Select) -> Select:
        clauses = self.conditions()
        return stmt.where(*clauses) if clauses else stmt

    def apply(self, stmt: Select) -> Select:
        return self.apply_filters(stmt).order_by(*self.ordering()).offset(self.skip).limit(self.limit)


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _first(raw: Mapping[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _positive_int(value: Optional[str], default: int) -> int:
    try:
        number = int(value) if value is not None else default
    except ValueError:
        return default
    return number if number >= 1 else default


def _parse_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    # 날짜만 주어진 endDate는 그날 하루 전체를 포함
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed


def _enum_or_none(enum_cls, value: Optional[str]):
    try:
        return enum_cls(value) if value is not None else None
    except ValueError:
        return None


class TaskQueryBuilder:
    def __init__(self, default_limit: int = None, max_limit: int = None):
        self.default_limit = default_limit or settings.DEFAULT_PAGE_LIMIT
        self.max_limit = max_limit or settings.MAX_PAGE_LIMIT

    def build(self, raw: Mapping[str, Any]) -> TaskQuery:
        page = _positive_int(_first(raw, "page"), 1)
        limit = min(_positive_int(_first(raw, "limit"), self.default_limit), self.max_limit)

        sort_key = _first(raw, "sortBy")
        sort_by = SORT_FIELDS.get(sort_key, DEFAULT_SORT_FIELD) if sort_key else DEFAULT_SORT_FIELD
        sort_desc = (_first(raw, "sortDir") or "").lower() == "desc"

        return TaskQuery(
            status=_enum_or_none(TaskStatus, _first(raw, "status")),
            priority=_enum_or_none(TaskPriority, _first(raw, "priority")),
            assigned_to=_first(raw, "assignedTo"),
            due_from=_parse_date(_first(raw, "startDate")),
            due_to=_parse_date(_first(raw, "endDate"), end_of_day=True),
            search=_first(raw, "search"),
            sort_by=sort_by,
            sort_desc=sort_desc,
            page=page,
            limit=limit,
        )


def describe(query: TaskQuery) -> List[str]:
    """로그용 요약 (활성 필터 이름 목록)"""
    names = ["status", "priority", "assigned_to", "due_from", "due_to", "search"]
    return [name for name in names if getattr(query, name)]
