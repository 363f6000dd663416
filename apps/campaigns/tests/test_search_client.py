from unittest import mock
import requests
from django.core.cache import cache
from django.test import TestCase

from apps.campaigns.circuit_breaker import CircuitBreaker, CircuitState
from apps.campaigns.search import DegradedReason, IndexQuery
from apps.campaigns.search.client import DatabaseSearchClient, SearchIndexClient


def response(payload):
    resp = mock.Mock()
    resp.raise_for_status.return_value = None
    resp.json.return_value = payload
    return resp


class SearchIndexClientTest(TestCase):
    def setUp(self):
        cache.clear()
        self.session = mock.Mock()
        self.breaker = CircuitBreaker('test_index', failure_threshold=2, recovery_timeout=60)
        self.client = SearchIndexClient(
            url='http://search.local/', api_key='secret', index_uid='campaigns',
            timeout=2, session=self.session, breaker=self.breaker,
        )
        self.query = IndexQuery(term='water', filters=('status = "active"',), page=2, hits_per_page=10)

    def test_hits_come_back_in_index_order(self):
        self.session.request.side_effect = [
            response({'numberOfDocuments': 40}),
            response({'hits': [{'id': 7}, {'id': '3'}, {'title': 'no id'}, {'id': 12}], 'totalHits': 23}),
        ]

        outcome = self.client.execute(self.query)

        self.assertEqual(outcome.ids, (7, 3, 12))
        self.assertEqual(outcome.total, 23)
        self.assertFalse(outcome.degraded)

    def test_request_shape(self):
        self.session.request.side_effect = [
            response({'numberOfDocuments': 1}),
            response({'hits': [], 'totalHits': 0}),
        ]

        self.client.execute(self.query)

        stats_call, search_call = self.session.request.call_args_list
        self.assertEqual(stats_call.args, ('GET', 'http://search.local/indexes/campaigns/stats'))
        self.assertEqual(search_call.args, ('POST', 'http://search.local/indexes/campaigns/search'))
        self.assertEqual(search_call.kwargs['headers']['Authorization'], 'Bearer secret')
        self.assertEqual(search_call.kwargs['timeout'], 2)
        payload = search_call.kwargs['json']
        self.assertEqual(payload['q'], 'water')
        self.assertEqual(payload['filter'], 'status = "active"')
        self.assertEqual(payload['attributesToRetrieve'], ['id'])
        self.assertEqual((payload['page'], payload['hitsPerPage']), (2, 10))

    def test_estimated_total_used_when_exact_total_missing(self):
        self.session.request.side_effect = [
            response({'numberOfDocuments': 5}),
            response({'hits': [{'id': 1}], 'estimatedTotalHits': 90}),
        ]
        self.assertEqual(self.client.execute(self.query).total, 90)

    def test_empty_index_skips_the_query(self):
        self.session.request.return_value = response({'numberOfDocuments': 0})

        outcome = self.client.execute(self.query)

        self.assertEqual(outcome.degraded_reason, DegradedReason.INDEX_EMPTY)
        self.assertEqual(outcome.ids, ())
        self.assertEqual(self.session.request.call_count, 1)

    def test_unreachable_index_degrades(self):
        self.session.request.side_effect = requests.ConnectionError('refused')

        with self.assertLogs('apps.campaigns.search.client', level='WARNING'):
            outcome = self.client.execute(self.query)

        self.assertEqual(outcome.degraded_reason, DegradedReason.INDEX_UNREACHABLE)
        self.assertEqual(outcome.total, 0)

    def test_failed_query_degrades_and_logs_context(self):
        self.session.request.side_effect = [
            response({'numberOfDocuments': 3}),
            requests.Timeout('slow'),
        ]

        with self.assertLogs('apps.campaigns.search.client', level='WARNING') as logs:
            outcome = self.client.execute(self.query)

        self.assertEqual(outcome.degraded_reason, DegradedReason.QUERY_FAILED)
        record = logs.records[0]
        self.assertEqual(record.term, 'water')
        self.assertEqual(record.filter, 'status = "active"')

    def test_search_body_that_is_not_an_object_degrades(self):
        self.session.request.side_effect = [
            response({'numberOfDocuments': 3}),
            response([{'id': 1}]),
        ]

        with self.assertLogs('apps.campaigns.search.client', level='WARNING'):
            outcome = self.client.execute(self.query)

        self.assertEqual(outcome.degraded_reason, DegradedReason.QUERY_FAILED)
        self.assertEqual(self.breaker.status()['failure_count'], 1)

    def test_stats_body_that_is_not_an_object_degrades(self):
        self.session.request.return_value = response(['oops'])

        with self.assertLogs('apps.campaigns.search.client', level='WARNING'):
            outcome = self.client.execute(self.query)

        self.assertEqual(outcome.degraded_reason, DegradedReason.INDEX_UNREACHABLE)
        self.assertEqual(self.session.request.call_count, 1)

    def test_non_numeric_total_degrades_and_counts_as_failure(self):
        self.session.request.side_effect = [
            response({'numberOfDocuments': 3}),
            response({'hits': [], 'totalHits': 'n/a'}),
        ]

        with self.assertLogs('apps.campaigns.search.client', level='WARNING'):
            outcome = self.client.execute(self.query)

        self.assertEqual(outcome.degraded_reason, DegradedReason.QUERY_FAILED)
        self.assertEqual(outcome.ids, ())
        self.assertEqual(self.breaker.status()['failure_count'], 1)

    def test_hits_that_are_not_a_list_degrade(self):
        self.session.request.side_effect = [
            response({'numberOfDocuments': 3}),
            response({'hits': {'id': 1}, 'totalHits': 1}),
        ]

        with self.assertLogs('apps.campaigns.search.client', level='WARNING'):
            outcome = self.client.execute(self.query)

        self.assertEqual(outcome.degraded_reason, DegradedReason.QUERY_FAILED)

    def test_open_circuit_short_circuits(self):
        self.breaker.record_failure('one')
        self.breaker.record_failure('two')

        outcome = self.client.execute(self.query)

        self.assertEqual(outcome.degraded_reason, DegradedReason.CIRCUIT_OPEN)
        self.session.request.assert_not_called()

    def test_search_builds_query(self):
        self.session.request.side_effect = [
            response({'numberOfDocuments': 3}),
            response({'hits': [{'id': 4}], 'totalHits': 1}),
        ]

        outcome = self.client.search('[exact words]', filters=['category_id = 2'], page=1, page_size=5)

        self.assertEqual(outcome.ids, (4,))
        payload = self.session.request.call_args.kwargs['json']
        self.assertEqual(payload['sort'], ['created_at:desc'])
        self.assertEqual(payload['hitsPerPage'], 5)


class CircuitBreakerTest(TestCase):
    def setUp(self):
        cache.clear()
        self.now = [1000.0]
        self.breaker = CircuitBreaker('probe', failure_threshold=2, recovery_timeout=30, clock=lambda: self.now[0])

    def test_opens_after_threshold_and_half_opens_after_recovery(self):
        self.breaker.record_failure()
        self.assertTrue(self.breaker.allow_request())
        self.breaker.record_failure()
        self.assertFalse(self.breaker.allow_request())

        self.now[0] += 31
        self.assertTrue(self.breaker.allow_request())
        self.assertEqual(self.breaker.status()['state'], CircuitState.HALF_OPEN.value)

        self.breaker.record_success()
        self.assertEqual(self.breaker.status()['state'], CircuitState.CLOSED.value)

    def test_failed_probe_reopens(self):
        self.breaker.record_failure()
        self.breaker.record_failure()
        self.now[0] += 31
        self.breaker.allow_request()

        self.breaker.record_failure()

        self.assertEqual(self.breaker.status()['state'], CircuitState.OPEN.value)
        self.assertFalse(self.breaker.allow_request())


class DatabaseSearchClientTest(TestCase):
    def test_reports_bypass(self):
        outcome = DatabaseSearchClient().execute(IndexQuery())
        self.assertEqual(outcome.degraded_reason, DegradedReason.BYPASSED)
