import pytest
from app import create_app
import os
import tempfile


@pytest.fixture
def app():
    # Create a temporary file to isolate the database for each test
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app({
        'TESTING': True,
        'DATABASE': db_path,
        'SECRET_KEY': 'dev-key-for-testing',
        'WTF_CSRF_ENABLED': False,
    })
    yield app

    # Cleanup
    os.close(db_fd)
    for suffix in ('', '-wal', '-shm'):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


def create_lettuce(client, **extra):
    payload = {
        'crop_id': 'lettuce',
        'variety_id': 'little-gem',
        'sowing_date': '2024-04-01',
        'succession_interval': 14,
        'succession_count': 3,
    }
    payload.update(extra)
    rv = client.post('/plans/sowing', json=payload)
    assert rv.status_code == 201
    return rv.get_json()['plan']


def test_index(client):
    rv = client.get('/')
    assert rv.status_code == 200
    assert rv.get_json()['plans'] == 0


def test_csrf_token_endpoint(client):
    rv = client.get('/api/csrf-token')
    assert rv.status_code == 200
    assert 'csrf_token' in rv.get_json()


def test_settings_page(client):
    rv = client.get('/settings/')
    assert rv.status_code == 200
    assert rv.get_json()['date_format'] == 'dd/MM/yyyy'


def test_settings_update_and_validation(client):
    rv = client.post('/settings/', json={'date_format': 'yyyy-MM-dd', 'last_spring_frost': '2024-04-15'})
    assert rv.status_code == 200
    assert rv.get_json()['last_spring_frost'] == '2024-04-15'

    assert client.post('/settings/', json={'date_format': 'dd.MM.yy'}).status_code == 400
    assert client.post('/settings/', json={'theme': 'dark'}).status_code == 400


def test_varieties(client):
    rv = client.get('/settings/varieties?crop_id=cabbage')
    assert [v['variety_id'] for v in rv.get_json()] == ['january-king']


class TestPlanRoutes:

    def test_create_and_list(self, client):
        plan = create_lettuce(client)
        assert plan['type'] == 'sowing'

        rv = client.get('/plans/?month=2024-04&type=sowing')
        assert [p['id'] for p in rv.get_json()] == [plan['id']]
        assert client.get('/plans/?month=2024-05').get_json() == []
        assert client.get('/plans/?month=April').status_code == 400

    def test_create_out_of_window(self, client):
        rv = client.post('/plans/sowing', json={
            'crop_id': 'cabbage', 'variety_id': 'january-king', 'sowing_date': '2024-09-01',
        })
        assert rv.status_code == 400
        assert 'April' in rv.get_json()['error']

    def test_form_encoded_skip_sowing(self, client):
        rv = client.post('/plans/sowing', data={
            'crop_id': 'cabbage', 'variety_id': 'january-king', 'date': '2024-05-01',
            'skip_sowing_date': 'on',
        })
        assert rv.status_code == 201
        assert rv.get_json()['plan']['sowing_date'] == '2024-03-27'

    def test_generations(self, client):
        plan = create_lettuce(client)
        rv = client.get(f"/plans/{plan['id']}/generations")
        generations = rv.get_json()['generations']
        assert [g['sowing_date'] for g in generations] == ['2024-04-01', '2024-04-15', '2024-04-29']

    def test_task_plan(self, client):
        rv = client.post('/plans/task', json={'task_name': 'Weeding', 'start_date': '2024-04-05',
                                              'succession_interval': 7, 'succession_count': 2})
        assert rv.status_code == 201
        assert client.get('/plans/?type=task').get_json()[0]['task_name'] == 'Weeding'

    def test_edit_and_delete(self, client):
        plan = create_lettuce(client)
        rv = client.post(f"/plans/{plan['id']}/edit", json={'succession_count': 5})
        assert rv.get_json()['plan']['succession_count'] == 5

        assert client.post(f"/plans/{plan['id']}/delete").status_code == 200
        assert client.get(f"/plans/{plan['id']}").status_code == 404
        assert client.post(f"/plans/{plan['id']}/delete").status_code == 404

    def test_status_flow(self, client):
        plan = create_lettuce(client)
        rv = client.post(f"/plans/{plan['id']}/damage", json={'report_date': '2024-04-29', 'damage_type': 'pests'})
        assert rv.status_code == 200
        assert rv.get_json()['plan']['estimated_harvest_date'] == '2024-06-03'

        rv = client.post(f"/plans/{plan['id']}/harvest", json={'harvest_date': '2024-06-04'})
        assert rv.get_json()['plan']['status'] == 'harvested'

        rv = client.post(f"/plans/{plan['id']}/loss", json={'report_date': '2024-06-05', 'loss_type': 'frost'})
        assert rv.status_code == 400

    def test_unknown_plan_status(self, client):
        rv = client.post('/plans/nope/harvest', json={'harvest_date': '2024-06-04'})
        assert rv.status_code == 404

    def test_plans_survive_restart(self, app, client):
        plan = create_lettuce(client)
        restarted = create_app({
            'TESTING': True,
            'DATABASE': app.config['DATABASE'],
            'WTF_CSRF_ENABLED': False,
        })
        assert restarted.extensions['planning'].get_plan(plan['id']) is not None


def test_tracking(client):
    create_lettuce(client, succession_count=1)
    create_lettuce(client, crop_id='cabbage', variety_id='january-king', sowing_date='2024-04-20')

    rv = client.get('/tracking/?date=2024-05-01&stages=all&group_id=brassicas')
    body = rv.get_json()
    assert [row['crop_id'] for row in body['plans']] == ['cabbage']
    assert body['plans'][0]['stage'] == 'sowing'

    rv = client.get('/tracking/?date=2024-05-01&stages=growing')
    assert [row['crop_id'] for row in rv.get_json()['plans']] == ['lettuce']

    assert client.get('/tracking/?stages=sprouting').status_code == 400


def test_calendar(client):
    create_lettuce(client)
    rv = client.get('/calendar/2024/4?date=2024-04-10')
    body = rv.get_json()

    assert [e['date'] for e in body['events']] == ['2024-04-01', '2024-04-15', '2024-04-29', '2024-04-29']
    assert body['events'][0]['display_date'] == '01/04/2024'
    assert body['frost_dates'] == ['2024-04-01']
    assert body['frost_warnings'] is None

    assert client.get('/calendar/2024/13').status_code == 400


def test_calendar_frost_dates(client):
    assert client.get('/calendar/2025/11').get_json()['frost_dates'] == ['2025-11-01']


def test_export(client):
    assert client.get('/export/schedule').status_code == 404

    create_lettuce(client)
    rv = client.get('/export/schedule')
    assert rv.status_code == 200
    assert rv.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class TestMalformedRequests:

    @pytest.mark.parametrize("url", ['/plans/sowing', '/plans/task', '/settings/'])
    def test_json_body_must_be_object(self, client, url):
        rv = client.post(url, json=[1])
        assert rv.status_code == 400
        assert rv.get_json()['error'] == "Request body must be a JSON object."

    def test_json_scalar_body(self, client):
        rv = client.post('/plans/sowing', json="lettuce")
        assert rv.status_code == 400

    def test_oversized_succession_rejected(self, client):
        create_lettuce(client, succession_count=1)
        rv = client.post('/plans/sowing', json={
            'crop_id': 'lettuce', 'variety_id': 'little-gem', 'sowing_date': '2024-04-01',
            'succession_interval': 10000, 'succession_count': 400,
        })
        assert rv.status_code == 400
        assert len(client.get('/plans/').get_json()) == 1
        assert client.get('/calendar/2024/4').status_code == 200

    def test_edit_into_oversized_succession_rejected(self, client):
        plan = create_lettuce(client)
        rv = client.post(f"/plans/{plan['id']}/edit",
                         json={'succession_interval': 10000, 'succession_count': 400})
        assert rv.status_code == 400
        assert client.get(f"/plans/{plan['id']}").get_json()['succession_count'] == 3

    def test_damage_past_calendar_end(self, client):
        plan = create_lettuce(client)
        client.post(f"/plans/{plan['id']}/harvest-estimate", json={'estimated_harvest_date': '9999-06-01'})
        rv = client.post(f"/plans/{plan['id']}/damage", json={'report_date': '2024-05-01', 'damage_type': 'frost'})
        assert rv.status_code == 400
        assert rv.get_json()['error'] == "The extended harvest date is out of range."


def test_calendar_year_bounds(client):
    assert client.get('/calendar/0/4').status_code == 400
    assert client.get('/calendar/10000/1').status_code == 400
    assert client.get('/calendar/9999/12').status_code == 200


def test_calendar_day(client):
    plan = create_lettuce(client)
    rv = client.get('/calendar/2024/4/29')
    assert rv.status_code == 200
    assert rv.get_json() == {
        'date': '2024-04-29',
        'events': [{'plan_id': plan['id'], 'kind': 'transplant', 'label': 'Little Gem'}],
    }

    assert client.get('/calendar/2024/4/2').get_json()['events'] == []
    assert client.get('/calendar/2024/2/30').status_code == 400
