import json

import pytest

from snipe_sync.handlers import AccessorySyncService
from snipe_sync.webhook import create_app


def make_client(config, snipe, jira):
    service = AccessorySyncService(config, inventory=snipe, tracker=jira)
    app = create_app(config, service=service)
    app.testing = True
    return app.test_client()


@pytest.fixture
def client(config, snipe, jira):
    return make_client(config, snipe, jira)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_accessory_webhook_returns_plain_text(client, snipe):
    snipe.add_accessory('Headset', location_id=1, quantity=2)
    payload = {
        'reporterEmail': 'a@x.com',
        'customfield_11213': 'Vilnius HQ',
        'customfield_11337': 'Vinted UAB',
        'customfield_11745': 'Stock Accessory',
        'customfield_11720': 'Headset',
    }

    response = client.post("/webhooks/accessories", data=json.dumps(payload),
                           content_type="application/json")

    assert response.status_code == 200
    assert response.content_type == "text/plain; charset=utf-8"
    assert response.get_data(as_text=True).startswith("Processing Summary:")


def test_checked_out_webhook(client):
    response = client.post("/webhooks/accessories/checked-out", data=json.dumps({'reporterEmail': 'a@x.com'}))

    assert json.loads(response.get_data(as_text=True))['Action'] == 'No Checked Out Accessories Found'


def test_field_sync_task(env, config, snipe, jira):
    env.setenv('CUSTOM_FIELD_CATEGORIES', '{"11726": "Mouse"}')
    client = make_client(config, snipe, jira)

    response = client.post("/tasks/sync-fields")

    assert response.status_code == 200
    assert json.loads(response.get_data(as_text=True)) == [
        {'synchronized': "Added 0 new options and removed 0 obsolete options."}
    ]


def test_shared_secret_is_enforced(env, config, snipe, jira):
    env.setenv('WEBHOOK_SHARED_SECRET', 's3cret')
    client = make_client(config, snipe, jira)
    body = json.dumps({'reporterEmail': 'a@x.com'})

    rejected = client.post("/webhooks/accessories/checked-out", data=body)
    accepted = client.post("/webhooks/accessories/checked-out", data=body,
                           headers={'X-Webhook-Secret': 's3cret'})

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert snipe.calls_named('search_users') == [('a@x.com',)]
    assert client.get("/health").status_code == 200
