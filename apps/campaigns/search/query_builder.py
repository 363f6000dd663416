from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Tuple

from django.db.models import Case, F, FloatField, Q, Value, When
from django.db.models.functions import Cast, Coalesce
from django.utils import timezone

from apps.campaigns.models import CampaignStatus
from .context import SystemClock
from .filters import DateRangeFilter, EXACT_DAY, IdFilter, SortSpec, StatusFilter

ENDING_SOON_DAYS = 7
NEWLY_LAUNCHED_DAYS = 30
RECENT_DAYS = 7
NEEDS_ATTENTION_DAYS = 7
NEARLY_FUNDED_MIN = 70
NEARLY_FUNDED_MAX = 100

_STORE_LOOKUPS = {"lt": "lt", "gt": "gt", "gte": "gte", "lte": "lte"}
_INDEX_OPERATORS = {"lt": "<", "gt": ">", "gte": ">=", "lte": "<="}


def format_index_value(value):
    """Render a literal for the index filter language. Dates become unix seconds."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return str(int(value.timestamp()))
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return str(value)


@dataclass(frozen=True)
class IndexQuery:
    term: str = ""
    filters: Tuple[str, ...] = ()
    sort: Tuple[str, ...] = ("created_at:desc",)
    page: int = 1
    hits_per_page: int = 15

    @property
    def filter_expression(self) -> str:
        return " AND ".join(self.filters)

    def as_payload(self) -> dict:
        payload = {
            "q": self.term,
            "sort": list(self.sort),
            "page": self.page,
            "hitsPerPage": self.hits_per_page,
            "attributesToRetrieve": ["id"],
        }
        if self.filters:
            payload["filter"] = self.filter_expression
        return payload


@dataclass(frozen=True)
class StorePredicate:
    q: Q = field(default_factory=Q)
    annotations: dict = field(default_factory=dict)
    ordering: Tuple[str, ...] = ("-created_at",)

    def apply(self, queryset):
        if self.annotations:
            queryset = queryset.annotate(**self.annotations)
        return queryset.filter(self.q).order_by(*self.ordering)


@dataclass(frozen=True)
class TranslatedQuery:
    index: IndexQuery
    store: StorePredicate
    sort: SortSpec
    # Set when the result is known to be empty without asking any backend
    always_empty: bool = False


class IndexFilterBuilder:
    def __init__(self):
        self.filters = []

    def add(self, field_name, operator, value):
        self.filters.append(f"{field_name} {operator} {format_index_value(value)}")
        return self

    def add_in(self, field_name, values):
        listed = ",".join(str(v) for v in sorted(values))
        self.filters.append(f"{field_name} IN [{listed}]")
        return self

    def add_expression(self, expression):
        self.filters.append(expression)
        return self

    def build(self) -> tuple:
        return tuple(self.filters)


class StorePredicateBuilder:
    def __init__(self):
        self.conditions = []
        self.annotations = {}

    def add(self, condition):
        self.conditions.append(condition)
        return self

    def annotate(self, **annotations):
        self.annotations.update(annotations)
        return self

    def build(self, ordering) -> StorePredicate:
        combined = Q()
        for condition in self.conditions:
            combined &= condition
        return StorePredicate(q=combined, annotations=dict(self.annotations), ordering=tuple(ordering))


def effective_goal_percentage():
    """Precomputed goal_percentage, or current/goal*100 where it was never filled in."""
    computed = Case(
        When(goal_amount__gt=0, then=Cast("current_amount", FloatField()) * Value(100.0) / Cast("goal_amount", FloatField())),
        default=Value(0.0),
        output_field=FloatField(),
    )
    return Coalesce(Cast("goal_percentage", FloatField()), computed, output_field=FloatField())


def index_sort(sort: SortSpec) -> tuple:
    if sort.field == "is_featured":
        return ("is_featured:desc", "created_at:desc")
    return (f"{sort.field}:{sort.direction}",)


def store_ordering(sort: SortSpec) -> tuple:
    if sort.field == "is_featured":
        return ("-is_featured", "-created_at")
    prefix = "-" if sort.descending else ""
    return (f"{prefix}{sort.field}",)


def _day_bounds(moment):
    start = timezone.localtime(moment).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


class FilterTranslator:
    """
    Turns a FilterSet into an index query and an equivalent store predicate.

    Both dialects are built side by side so the two paths cannot drift.
    """

    def __init__(self, clock=None):
        self.clock = clock or SystemClock()

    def translate(self, filters, sort=None, page=1, page_size=15, actor=None, owner_id=None) -> TranslatedQuery:
        now = self.clock.now()
        sort = sort or SortSpec()
        index = IndexFilterBuilder()
        store = StorePredicateBuilder()
        always_empty = False

        if owner_id is not None:
            index.add("user_id", "=", int(owner_id))
            store.add(Q(owner_id=owner_id))

        for condition in filters.conditions:
            self._apply_condition(condition, index, store)

        for quick in filters.quick:
            if quick.tag == "favorites":
                bookmarked = actor.bookmarked_ids if actor is not None and actor.is_authenticated else frozenset()
                if not bookmarked:
                    always_empty = True
                    continue
                index.add_in("id", bookmarked)
                store.add(Q(pk__in=sorted(bookmarked)))
                continue

            rules = self.OWNER_RULES if filters.owner_scoped else self.PUBLIC_RULES
            rule = rules.get(quick.tag)
            if rule is None:
                continue
            override = getattr(self, rule)(index, store, now)
            if override is not None:
                sort = override

        term = ""
        if filters.text is not None:
            term = filters.text.index_term
            if filters.owner_scoped and not term.startswith('"') and len(term.split()) > 2:
                term = f'"{term}"'
            needle = filters.text.store_term
            store.add(Q(title__icontains=needle) | Q(description__icontains=needle))

        return TranslatedQuery(
            index=IndexQuery(
                term=term,
                filters=index.build(),
                sort=index_sort(sort),
                page=max(1, int(page)),
                hits_per_page=max(1, int(page_size)),
            ),
            store=store.build(store_ordering(sort)),
            sort=sort,
            always_empty=always_empty,
        )

    def _apply_condition(self, condition, index, store):
        if isinstance(condition, StatusFilter):
            self._status(index, store, condition.status)
        elif isinstance(condition, IdFilter):
            index.add(condition.field, "=", condition.value)
            store.add(Q(**{condition.field: condition.value}))
        elif isinstance(condition, DateRangeFilter):
            self._date(index, store, condition)

    def _status(self, index, store, status):
        index.add("status", "=", status.value)
        store.add(Q(status=status.value))

    def _date(self, index, store, condition):
        if condition.operator == EXACT_DAY:
            start, end = _day_bounds(condition.value)
            index.add(condition.field, ">=", start).add(condition.field, "<", end)
            store.add(Q(**{f"{condition.field}__date": start.date()}))
            return
        index.add(condition.field, _INDEX_OPERATORS[condition.operator], condition.value)
        store.add(Q(**{f"{condition.field}__{_STORE_LOOKUPS[condition.operator]}": condition.value}))

    # Public quick filters

    def _active_only(self, index, store, now):
        self._status(index, store, CampaignStatus.ACTIVE)
        index.add("start_date", "<=", now).add("end_date", ">", now)
        store.add(Q(start_date__lte=now, end_date__gt=now))

    def _ending_soon(self, index, store, now):
        horizon = now + timedelta(days=ENDING_SOON_DAYS)
        self._status(index, store, CampaignStatus.ACTIVE)
        index.add("end_date", ">", now).add("end_date", "<=", horizon)
        store.add(Q(end_date__gt=now, end_date__lte=horizon))
        return SortSpec("end_date", "asc")

    def _newly_launched(self, index, store, now):
        since = now - timedelta(days=NEWLY_LAUNCHED_DAYS)
        index.add("created_at", ">=", since)
        store.add(Q(created_at__gte=since))
        self._status(index, store, CampaignStatus.ACTIVE)

    def _nearly_funded(self, index, store, now):
        self._status(index, store, CampaignStatus.ACTIVE)
        index.add("goal_percentage", ">=", NEARLY_FUNDED_MIN).add("goal_percentage", "<", NEARLY_FUNDED_MAX)
        store.annotate(effective_goal_percentage=effective_goal_percentage())
        store.add(Q(effective_goal_percentage__gte=NEARLY_FUNDED_MIN, effective_goal_percentage__lt=NEARLY_FUNDED_MAX))

    def _popular(self, index, store, now):
        self._status(index, store, CampaignStatus.ACTIVE)
        return SortSpec("donations_count", "desc")

    def _recent(self, index, store, now):
        since = now - timedelta(days=RECENT_DAYS)
        self._status(index, store, CampaignStatus.ACTIVE)
        index.add("created_at", ">=", since)
        store.add(Q(created_at__gte=since))

    def _completed(self, index, store, now):
        self._status(index, store, CampaignStatus.COMPLETED)

    # Owner quick filters

    def _owner_active(self, index, store, now):
        self._status(index, store, CampaignStatus.ACTIVE)
        index.add("end_date", ">", now)
        store.add(Q(end_date__gt=now))

    def _owner_ending_soon(self, index, store, now):
        _, horizon = _day_bounds(now + timedelta(days=ENDING_SOON_DAYS))
        self._status(index, store, CampaignStatus.ACTIVE)
        index.add("start_date", "<=", now).add("end_date", ">", now).add("end_date", "<", horizon)
        store.add(Q(start_date__lte=now, end_date__gt=now, end_date__lt=horizon))
        return SortSpec("end_date", "asc")

    def _draft(self, index, store, now):
        self._status(index, store, CampaignStatus.DRAFT)

    def _paused(self, index, store, now):
        self._status(index, store, CampaignStatus.PAUSED)

    def _needs_attention(self, index, store, now):
        deadline = now + timedelta(days=NEEDS_ATTENTION_DAYS)
        stale = now - timedelta(days=NEEDS_ATTENTION_DAYS)
        self._status(index, store, CampaignStatus.ACTIVE)
        index.add_expression(
            f"(end_date <= {format_index_value(deadline)} OR "
            f"(created_at <= {format_index_value(stale)} AND donations_count = 0))"
        )
        store.add(Q(end_date__lte=deadline) | Q(created_at__lte=stale, donations_count=0))

    def _successful(self, index, store, now):
        self._status(index, store, CampaignStatus.COMPLETED)
        index.add("goal_percentage", ">=", NEARLY_FUNDED_MAX)
        store.add(Q(current_amount__gte=F("goal_amount")))

    PUBLIC_RULES = {
        "active-only": "_active_only",
        "ending-soon": "_ending_soon",
        "newly-launched": "_newly_launched",
        "nearly-funded": "_nearly_funded",
        "popular": "_popular",
        "recent": "_recent",
        "completed": "_completed",
    }

    OWNER_RULES = {
        "active": "_owner_active",
        "draft": "_draft",
        "completed": "_completed",
        "paused": "_paused",
        "ending-soon": "_owner_ending_soon",
        "needs-attention": "_needs_attention",
        "successful": "_successful",
        "popular": "_popular",
    }
