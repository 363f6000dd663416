"""
Typed filter vocabulary for campaign listings.

Raw request parameters are parsed exactly once, here. Anything that does
not parse (unknown keys, non-integer ids, unknown statuses, bad dates) is
dropped rather than raised.
"""
import re
from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional, Tuple

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.campaigns.models import CampaignStatus

PUBLIC_QUICK_FILTERS = (
    "active-only",
    "ending-soon",
    "newly-launched",
    "nearly-funded",
    "popular",
    "favorites",
    "recent",
    "completed",
)

OWNER_QUICK_FILTERS = (
    "active",
    "draft",
    "completed",
    "paused",
    "ending-soon",
    "needs-attention",
    "successful",
    "popular",
)

# Legacy dropdown values accepted in the ``status`` parameter
STATUS_ALIASES = ("ending-soon", "newly-launched", "nearly-funded")

ID_FIELDS = ("organization_id", "category_id")
DATE_FIELDS = ("created_at", "updated_at", "start_date", "end_date")

# Operator names accepted in date filter maps -> comparison
DATE_OPERATORS = {
    "before": "lt",
    "strictly_before": "lt",
    "after": "gt",
    "strictly_after": "gt",
    "gte": "gte",
    "from": "gte",
    "lte": "lte",
    "to": "lte",
    "eq": "day",
    "equals": "day",
}
EXACT_DAY = "day"

SORT_FIELDS = (
    "is_featured",
    "created_at",
    "updated_at",
    "start_date",
    "end_date",
    "current_amount",
    "goal_amount",
    "donations_count",
    "title",
)

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class StatusFilter:
    status: CampaignStatus


@dataclass(frozen=True)
class IdFilter:
    field: str
    value: int


@dataclass(frozen=True)
class TextFilter:
    term: str

    @property
    def is_exact_phrase(self) -> bool:
        return self.term.startswith("[") and "]" in self.term

    @property
    def index_term(self) -> str:
        if self.is_exact_phrase:
            return f'"{self.term}"'
        return self.term

    @property
    def store_term(self) -> str:
        if self.is_exact_phrase:
            return self.term.strip("[]").strip()
        return self.term


@dataclass(frozen=True)
class QuickFilter:
    tag: str


@dataclass(frozen=True)
class DateRangeFilter:
    field: str
    operator: str
    value: datetime


@dataclass(frozen=True)
class SortSpec:
    field: str = "created_at"
    direction: str = "desc"

    @classmethod
    def parse(cls, field=None, direction=None):
        if field not in SORT_FIELDS:
            return cls()
        direction = str(direction or "desc").lower()
        return cls(field, direction if direction in ("asc", "desc") else "desc")

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(frozen=True)
class FilterSet:
    conditions: Tuple = ()
    text: Optional[TextFilter] = None
    quick: Tuple[QuickFilter, ...] = ()
    show_deleted: bool = False
    owner_scoped: bool = False

    def has_quick(self, tag) -> bool:
        return any(q.tag == tag for q in self.quick)


def parse_moment(value):
    """Parse an ISO date or datetime into an aware datetime, or None."""
    if isinstance(value, datetime):
        moment = value
    else:
        if not isinstance(value, str) or not value.strip():
            return None
        value = value.strip()
        try:
            moment = parse_datetime(value)
            if moment is None:
                day = parse_date(value)
                moment = datetime.combine(day, time.min) if day else None
        except ValueError:
            return None
    if moment is None:
        return None
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    return moment


def _parse_int(value):
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_date_filter(name, value):
    if isinstance(value, dict):
        parsed = []
        for operator, operand in value.items():
            moment = parse_moment(operand)
            if moment is not None:
                parsed.append(DateRangeFilter(name, DATE_OPERATORS.get(operator, EXACT_DAY), moment))
        return parsed
    moment = parse_moment(value)
    return [DateRangeFilter(name, EXACT_DAY, moment)] if moment else []


def is_truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def parse_filters(raw, owner_scoped=False) -> FilterSet:
    """Build a FilterSet from a request-style mapping."""
    raw = raw or {}
    conditions = []
    quick = []
    allowed_quick = OWNER_QUICK_FILTERS if owner_scoped else PUBLIC_QUICK_FILTERS

    status = raw.get("status")
    if status:
        if not owner_scoped and status in STATUS_ALIASES:
            quick.append(QuickFilter(status))
        else:
            parsed = CampaignStatus.try_from(status)
            if parsed is not None:
                conditions.append(StatusFilter(parsed))

    for name in ID_FIELDS:
        value = _parse_int(raw.get(name))
        if value:
            conditions.append(IdFilter(name, value))

    tag = raw.get("filter")
    if tag in allowed_quick and QuickFilter(tag) not in quick:
        quick.append(QuickFilter(tag))

    for name in DATE_FIELDS:
        if raw.get(name) not in (None, ""):
            conditions.extend(_parse_date_filter(name, raw[name]))

    if owner_scoped:
        date_from = parse_moment(raw.get("date_from"))
        if date_from:
            conditions.append(DateRangeFilter("created_at", "gte", date_from))
        date_to = parse_moment(raw.get("date_to"))
        if date_to:
            conditions.append(DateRangeFilter("created_at", "lte", date_to))

    term = raw.get("search")
    text = TextFilter(term.strip()) if isinstance(term, str) and term.strip() else None

    return FilterSet(
        conditions=tuple(conditions),
        text=text,
        quick=tuple(quick),
        show_deleted=owner_scoped and is_truthy(raw.get("show_deleted", False)),
        owner_scoped=owner_scoped,
    )


_BRACKETED = re.compile(r"^(?P<name>\w+)\[(?P<operator>\w+)\]$")


def filters_from_query_params(params) -> dict:
    """Flatten a QueryDict into a filter mapping; ``created_at[gte]=...`` becomes a nested operator map."""
    raw = {}
    for key in params.keys():
        value = params.get(key)
        match = _BRACKETED.match(key)
        if match:
            nested = raw.setdefault(match.group("name"), {})
            if isinstance(nested, dict):
                nested[match.group("operator")] = value
        else:
            raw[key] = value
    return raw
