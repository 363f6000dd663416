from .client import DatabaseSearchClient, SearchIndexClient, get_search_client
from .context import ActorContext, Clock, FrozenClock, SystemClock
from .filters import FilterSet, SortSpec, parse_filters
from .merger import merge_results
from .query_builder import FilterTranslator, IndexQuery, StorePredicate, TranslatedQuery
from .results import DegradedReason, Page, SearchOutcome

__all__ = [
    'ActorContext', 'Clock', 'DatabaseSearchClient', 'DegradedReason', 'FilterSet',
    'FilterTranslator', 'FrozenClock', 'IndexQuery', 'Page', 'SearchIndexClient',
    'SearchOutcome', 'SortSpec', 'StorePredicate', 'SystemClock', 'TranslatedQuery',
    'get_search_client', 'merge_results', 'parse_filters',
]
