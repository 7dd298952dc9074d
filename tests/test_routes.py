"""
HTTP API tests through the Flask test client.
"""

import json
import threading

from region_ai import ResolverError
from webapp import create_app
from fakes import FakeResolver, RecordingMediaClient, make_engine


class TestRoutes:

    def setup_method(self):
        self.engine = make_engine(FakeResolver(fail_kind="network"))
        self.media = RecordingMediaClient()
        self.app = create_app(engine=self.engine, media_client=self.media)
        self.client = self.app.test_client()

    def test_health(self):
        assert self.client.get('/api/health').get_json() == {'status': 'ok'}

    # ---- resolver endpoint ----

    def test_region_lookup_requires_period(self):
        assert self.client.get('/api/region-lookup').status_code == 400

    def test_region_lookup_unconfigured(self, monkeypatch):
        monkeypatch.delenv('ANTHROPIC_API_KEY', raising=False)
        assert self.client.get('/api/region-lookup?period=Silk+Road').status_code == 503

    def test_region_lookup_upstream_error(self, monkeypatch):
        def failing_lookup(*args, **kwargs):
            raise ResolverError('network', 'boom')
        monkeypatch.setattr('routes.lookup_period', failing_lookup)
        assert self.client.get('/api/region-lookup?period=Silk+Road').status_code == 502

    # ---- inference ----

    def test_infer(self):
        response = self.client.post('/api/regions/infer', json={'era': 'Viking Age', 'startYear': 793,
                                                                 'endYear': '1066'})
        data = response.get_json()
        assert response.status_code == 200
        assert data['source'] == 'hardcoded'
        assert data['countries'] == ['NO', 'SE', 'DK', 'IS', 'GB', 'IE']
        assert 'inferredAt' in data

    def test_infer_fallback_is_200(self):
        data = self.client.post('/api/regions/infer', json={'era': 'Zorblax Epoch'}).get_json()
        assert data['source'] == 'fallback'
        assert data['countries'] == []

    def test_infer_validation(self):
        assert self.client.post('/api/regions/infer', json={}).status_code == 400
        bad_year = self.client.post('/api/regions/infer', json={'era': 'Gaul', 'startYear': 'soon'})
        assert bad_year.status_code == 400

    def test_manual_override(self):
        response = self.client.post('/api/regions/override', json={'period': 'Zorblax Epoch',
                                                                   'countries': 'fr de'})
        assert response.get_json()['source'] == 'manual'
        data = self.client.post('/api/regions/infer', json={'era': 'Zorblax Epoch'}).get_json()
        assert data['source'] == 'custom'
        assert data['countries'] == ['FR', 'DE']

    def test_manual_override_validation(self):
        response = self.client.post('/api/regions/override', json={'period': 'Gaul', 'countries': []})
        assert response.status_code == 400
        assert 'error' in response.get_json()

    # ---- admin ----

    def test_custom_crud(self):
        put = self.client.put('/api/regions/custom/Edo/Tokugawa', json={'countries': ['jp']})
        assert put.status_code == 200
        assert put.get_json()['countries'] == ['JP']

        assert self.client.get('/api/regions/custom/Edo/Tokugawa').get_json()['countries'] == ['JP']
        assert self.client.delete('/api/regions/custom/Edo/Tokugawa').status_code == 200
        assert self.client.get('/api/regions/custom/Edo/Tokugawa').status_code == 404

    def test_clear_requires_confirmation(self):
        self.client.put('/api/regions/custom/Gaul', json={'countries': ['FR']})
        assert self.client.delete('/api/regions/custom').status_code == 400
        assert len(self.engine.overrides) == 1

        response = self.client.delete('/api/regions/custom?confirm=true')
        assert response.get_json() == {'success': True, 'cleared': 1}
        assert self.client.delete('/api/regions/cache').status_code == 400

    def test_list_and_stats(self):
        rows = self.client.get('/api/regions?source=static').get_json()
        assert {r['source'] for r in rows} == {'static'}
        assert self.client.get('/api/regions?source=bogus').status_code == 400
        assert self.client.get('/api/regions/stats').get_json()['static'] == 5

    def test_conflicts_and_suggest(self):
        data = self.client.get('/api/regions/conflicts?period=viking%20age').get_json()
        assert data['conflicts'] == [{'source': 'static', 'period': 'Viking Age'}]
        data = self.client.get('/api/regions/suggest?period=Viking%20Ag').get_json()
        assert 'Viking Age' in data['suggestions']
        assert self.client.get('/api/regions/conflicts').status_code == 400

    def test_import_export(self):
        payload = json.dumps([{'period': 'Silk Road', 'countries': ['cn', 'kz', 'uz']}])
        response = self.client.post('/api/regions/import', data=payload, content_type='application/json')
        assert response.get_json()['imported'] == 1

        exported = self.client.get('/api/regions/export')
        assert json.loads(exported.get_data(as_text=True))[0]['countries'] == ['CN', 'KZ', 'UZ']

        csv = self.client.get('/api/regions/export?format=csv')
        assert csv.mimetype == 'text/csv'
        assert self.client.get('/api/regions/export?format=xml').status_code == 400

    def test_import_rejects_invalid(self):
        response = self.client.post('/api/regions/import', data='{oops', content_type='application/json')
        assert response.status_code == 400
        assert len(self.engine.overrides) == 0

    # ---- batch ----

    def test_batch_lifecycle(self):
        response = self.client.post('/api/regions/batch', json={'start': False, 'items': [
            {'mediaId': 'm1', 'timePeriod': 'Roman Empire'},
            {'mediaId': 'm2', 'timePeriod': 'Zorblax Epoch'},
        ]})
        assert response.status_code == 202
        run_id = response.get_json()['id']

        run = self.app.extensions['timeline']['batches'].get(run_id)
        run.delay_seconds = 0
        run.run()

        data = self.client.get(f'/api/regions/batch/{run_id}').get_json()
        assert data['summary']['done'] == 1
        assert data['summary']['error'] == 1

        applied = self.client.post(f'/api/regions/batch/{run_id}/apply', json={'mediaIds': ['m1']})
        assert applied.get_json() == {'applied': ['m1'], 'failed': []}
        assert list(self.media.updates) == ['m1']

        assert self.client.post(f'/api/regions/batch/{run_id}/cancel').status_code == 200

    def test_batch_validation(self):
        assert self.client.post('/api/regions/batch', json={'items': []}).status_code == 400
        missing_id = self.client.post('/api/regions/batch', json={'items': [{'timePeriod': 'Gaul'}]})
        assert missing_id.status_code == 400
        assert self.client.get('/api/regions/batch/nope').status_code == 404

    def create_deferred_batch(self, *periods):
        items = [{'mediaId': f'm{n}', 'timePeriod': p} for n, p in enumerate(periods, 1)]
        response = self.client.post('/api/regions/batch', json={'start': False, 'items': items})
        run_id = response.get_json()['id']
        return run_id, self.app.extensions['timeline']['batches'].get(run_id)

    def test_batch_start_deferred(self):
        run_id, run = self.create_deferred_batch('Roman Empire', 'Zorblax Epoch')
        run.sleep = lambda s: None

        response = self.client.post(f'/api/regions/batch/{run_id}/start')
        assert response.status_code == 202
        run.join(5)

        data = self.client.get(f'/api/regions/batch/{run_id}').get_json()
        assert data['status'] == 'completed'
        assert data['summary']['done'] == 1
        assert data['summary']['error'] == 1

    def test_batch_resume_after_cancel(self):
        run_id, run = self.create_deferred_batch('Roman Empire', 'British Empire', 'Ancient Greece')
        run.sleep = lambda s: run.cancel()

        self.client.post(f'/api/regions/batch/{run_id}/start')
        run.join(5)
        data = self.client.get(f'/api/regions/batch/{run_id}').get_json()
        assert data['status'] == 'cancelled'
        assert data['summary']['done'] == 1
        assert data['summary']['pending'] == 2

        run.sleep = lambda s: None
        assert self.client.post(f'/api/regions/batch/{run_id}/start').status_code == 202
        run.join(5)
        data = self.client.get(f'/api/regions/batch/{run_id}').get_json()
        assert data['status'] == 'completed'
        assert data['summary']['done'] == 3

    def test_batch_start_while_running(self):
        gate = threading.Event()
        run_id, run = self.create_deferred_batch('Roman Empire', 'British Empire')
        run.sleep = lambda s: gate.wait(5)

        assert self.client.post(f'/api/regions/batch/{run_id}/start').status_code == 202
        try:
            response = self.client.post(f'/api/regions/batch/{run_id}/start')
            assert response.status_code == 409
            assert response.get_json() == {'error': 'Batch already running'}
        finally:
            gate.set()
            run.join(5)
        assert self.client.post('/api/regions/batch/nope/start').status_code == 404

    # ---- input types ----

    def test_infer_rejects_non_string_era(self):
        for era in (42, ['Gaul'], {'name': 'Gaul'}, '   '):
            response = self.client.post('/api/regions/infer', json={'era': era})
            assert response.status_code == 400
            assert 'error' in response.get_json()

    def test_override_rejects_wrong_types(self):
        bad_codes = self.client.post('/api/regions/override', json={'period': 'Gaul', 'countries': 5})
        assert bad_codes.status_code == 400
        bad_period = self.client.post('/api/regions/override', json={'period': 7, 'countries': ['FR']})
        assert bad_period.status_code == 400
        assert len(self.engine.overrides) == 0

    def test_custom_put_rejects_wrong_types(self):
        response = self.client.put('/api/regions/custom/Gaul', json={'countries': {'FR': True}})
        assert response.status_code == 400
        assert len(self.engine.overrides) == 0


class TestAppFactory:

    def test_importing_factory_does_not_monkey_patch(self):
        from gevent import monkey
        import webapp
        assert webapp.create_app is create_app
        assert not monkey.is_module_patched('socket')
        assert not monkey.is_module_patched('threading')
