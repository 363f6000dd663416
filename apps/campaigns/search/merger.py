from .filters import SortSpec
from .results import Page

# Sort keys that are meaningful across both sources once merged
MERGE_SORT_FIELDS = ("created_at", "donations_count", "updated_at")


def order_by_ids(ids, records) -> list:
    """Arrange ``records`` in the order of ``ids``; ids with no record are dropped."""
    by_id = {record.pk: record for record in records}
    return [by_id[record_id] for record_id in ids if record_id in by_id]


def merge_results(federated_ids, resolved, fallback=(), sort=None, page=1, page_size=15) -> Page:
    """
    Merge index hits with store-only records into one manually paginated page.

    ``resolved`` holds the records fetched for ``federated_ids`` in any order;
    the index order is restored here. Fallback records already returned by
    the index are dropped.
    """
    federated_ids = list(federated_ids)
    federated = set(federated_ids)

    merged = order_by_ids(federated_ids, resolved)
    merged.extend(record for record in fallback if record.pk not in federated)

    seen = set()
    unique = []
    for record in merged:
        if record.pk in seen:
            continue
        seen.add(record.pk)
        unique.append(record)

    sort = sort or SortSpec()
    if sort.field in MERGE_SORT_FIELDS:
        unique.sort(key=lambda record: getattr(record, sort.field), reverse=sort.descending)

    page = max(1, int(page))
    start = (page - 1) * page_size
    return Page(items=unique[start:start + page_size], total=len(unique), page=page, page_size=page_size)
