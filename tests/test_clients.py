import json
from unittest.mock import MagicMock

import pytest
import requests

from snipe_sync.errors import JiraAPIError, SnipeITAPIError
from snipe_sync.jira_client import JiraClient
from snipe_sync.snipeit_client import SnipeITClient


def make_response(status_code=200, body=None, text=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = "Reason"
    if body is None:
        response.json.side_effect = ValueError("no json")
        response.text = text or ""
        response.content = (text or "").encode()
    else:
        response.json.return_value = body
        response.text = json.dumps(body)
        response.content = response.text.encode()
    return response


def make_session(*responses):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return session


def request_kwargs(session, index=0):
    return session.request.call_args_list[index].kwargs


ACCESSORY_ROW = {
    'id': 1, 'name': 'Mouse', 'qty': 2, 'remaining_qty': 1,
    'category': {'id': 7, 'name': 'Mouse'}, 'company': {'id': 3}, 'location': {'id': 1},
}


# ===== Snipe-IT =====

def test_snipeit_session_carries_bearer_token(config):
    session = make_session()
    SnipeITClient(config, session=session)

    assert session.headers['Authorization'] == 'Bearer snipe-token-123456'
    assert session.headers['Accept'] == 'application/json'


def test_accessory_listing_follows_pagination(config, env):
    env.setenv('SNIPE_IT_PAGE_SIZE', '2')
    session = make_session(
        make_response(body={'total': 3, 'rows': [ACCESSORY_ROW, dict(ACCESSORY_ROW, id=2)]}),
        make_response(body={'total': 3, 'rows': [dict(ACCESSORY_ROW, id=3)]}),
    )

    accessories = SnipeITClient(config, session=session).list_accessories()

    assert [accessory.id for accessory in accessories] == [1, 2, 3]
    assert request_kwargs(session, 0)['params'] == {'limit': 2, 'offset': 0}
    assert request_kwargs(session, 1)['params'] == {'limit': 2, 'offset': 2}
    assert request_kwargs(session, 0)['url'] == 'https://snipe.test/api/v1/accessories'


def test_non_2xx_raises_snipeit_error(config):
    session = make_session(make_response(404, body={'status': 'error', 'messages': 'Not found'}))

    with pytest.raises(SnipeITAPIError) as excinfo:
        SnipeITClient(config, session=session).list_checked_out(5)

    assert excinfo.value.status_code == 404
    assert excinfo.value.message == 'Not found'


def test_transport_failure_raises_snipeit_error(config):
    session = make_session()
    session.request.side_effect = requests.exceptions.ConnectionError("down")

    with pytest.raises(SnipeITAPIError):
        SnipeITClient(config, session=session).search_users('a@x.com')


def test_validation_error_with_200_is_a_failed_result(config):
    session = make_session(make_response(body={'status': 'error', 'messages': {'qty': ['too low']}}))

    result = SnipeITClient(config, session=session).update_accessory_quantity(1, 0)

    assert not result.ok
    assert result.error_message == 'qty: too low'
    assert request_kwargs(session)['method'] == 'PATCH'
    assert request_kwargs(session)['json'] == {'qty': 0}


def test_checkout_posts_user_assignment(config):
    session = make_session(make_response(body={'status': 'success', 'payload': {'id': 1}}))

    result = SnipeITClient(config, session=session).checkout_accessory(1, 42, "Checked out by Jira: ITS-1")

    assert result.ok
    assert request_kwargs(session)['url'].endswith('/accessories/1/checkout')
    assert request_kwargs(session)['json'] == {
        'assigned_to': 42, 'checkout_to_type': 'user', 'note': "Checked out by Jira: ITS-1"
    }


def test_checkin_uses_assignment_pivot(config):
    session = make_session(make_response(body={'status': 'success', 'payload': {}}))

    SnipeITClient(config, session=session).checkin_accessory(9001)

    assert request_kwargs(session)['url'].endswith('/accessories/9001/checkin')


def test_create_without_company_is_refused_locally(config):
    session = make_session()

    result = SnipeITClient(config, session=session).create_accessory('Mouse', 1, 7, 1, None)

    assert not result.ok
    session.request.assert_not_called()


def test_checked_out_rows_become_assignments(config):
    session = make_session(make_response(body={'total': 1, 'rows': [
        {'assigned_pivot_id': 9001, 'id': 42, 'username': 'a@x.com', 'note': 'n'}
    ]}))

    assignments = SnipeITClient(config, session=session).list_checked_out(5)

    assert assignments[0].assigned_pivot_id == 9001
    assert assignments[0].accessory_id == 5
    assert assignments[0].username == 'a@x.com'


def test_locations_are_mapped_by_name(config):
    session = make_session(make_response(body={'total': 2, 'rows': [
        {'id': 1, 'name': 'Vilnius HQ'}, {'id': 2, 'name': 'Berlin'}
    ]}))

    assert SnipeITClient(config, session=session).list_locations() == {'Vilnius HQ': 1, 'Berlin': 2}
    assert request_kwargs(session)['params']['sort'] == 'created_at'


def test_connection_check_reports_failure(config):
    session = make_session(make_response(401, body={'error': 'Unauthorized'}))

    assert SnipeITClient(config, session=session).test_connection() is False


# ===== Jira =====

def test_jira_session_uses_basic_auth(config):
    session = make_session()
    client = JiraClient(config, session=session)

    assert session.auth == ('bot@example.com', 'jira-token-123456')
    assert client.base_url == 'https://jira.test/rest/api/3'


def test_field_contexts_use_customfield_path(config):
    session = make_session(make_response(body={'values': [{'id': '10100'}]}))

    contexts = JiraClient(config, session=session).fetch_field_contexts('11720')

    assert contexts == [{'id': '10100'}]
    assert request_kwargs(session)['url'].endswith('/field/customfield_11720/context')


def test_field_options_follow_paging(config):
    session = make_session(
        make_response(body={'values': [{'id': 1, 'value': 'A'}], 'isLast': False}),
        make_response(body={'values': [{'id': 2, 'value': 'B'}], 'isLast': True}),
    )

    options = JiraClient(config, session=session).fetch_field_options('11720', '10100')

    assert [(option.id, option.value) for option in options] == [('1', 'A'), ('2', 'B')]
    assert request_kwargs(session, 1)['params'] == {'startAt': 1}


def test_add_options_is_a_single_call(config):
    session = make_session(make_response(body={'options': [{'id': 3, 'value': 'A'}, {'id': 4, 'value': 'B'}]}))

    created = JiraClient(config, session=session).add_field_options('11720', '10100', ['A', 'B'])

    assert session.request.call_count == 1
    assert request_kwargs(session)['json'] == {
        'options': [{'value': 'A', 'disabled': False}, {'value': 'B', 'disabled': False}]
    }
    assert [option.id for option in created] == ['3', '4']


def test_delete_option_accepts_empty_response(config):
    session = make_session(make_response(204))

    assert JiraClient(config, session=session).delete_field_option('11720', '10100', '3') is None
    assert request_kwargs(session)['method'] == 'DELETE'
    assert request_kwargs(session)['url'].endswith('/field/customfield_11720/context/10100/option/3')


def test_jira_error_messages_are_collected(config):
    session = make_session(make_response(400, body={'errorMessages': ['Bad'], 'errors': {'value': 'dup'}}))

    with pytest.raises(JiraAPIError) as excinfo:
        JiraClient(config, session=session).add_field_options('11720', '10100', ['A'])

    assert excinfo.value.message == 'Bad; value: dup'
    assert excinfo.value.status_code == 400


def test_comment_body_is_one_paragraph_per_line(config):
    session = make_session(make_response(201, body={'id': '1'}))

    JiraClient(config, session=session).add_comment('ITS-1', "Processing Summary:\n\n- [INFO] done\n")

    body = request_kwargs(session)['json']['body']
    assert request_kwargs(session)['url'].endswith('/issue/ITS-1/comment')
    assert body['type'] == 'doc'
    assert [p['content'][0]['text'] for p in body['content']] == ["Processing Summary:", "- [INFO] done"]


def test_replace_options_is_a_bulk_put(config):
    session = make_session(make_response(body={'options': [{'id': 3, 'value': 'A', 'disabled': True}]}))

    updated = JiraClient(config, session=session).replace_field_options(
        '11720', '10100', [{'id': '3', 'value': 'A', 'disabled': True}]
    )

    assert request_kwargs(session)['method'] == 'PUT'
    assert updated[0].disabled is True


def test_detail_lookup_searches_every_page(config, env):
    env.setenv('SNIPE_IT_PAGE_SIZE', '1')
    session = make_session(
        make_response(body={'total': 2, 'rows': [dict(ACCESSORY_ROW, id=1, name='Widget', location={'id': 2})]}),
        make_response(body={'total': 2, 'rows': [dict(ACCESSORY_ROW, id=2, name='widget ', location={'id': 1})]}),
    )

    accessory = SnipeITClient(config, session=session).find_accessory_details(' Widget', 1)

    assert accessory.id == 2
    assert request_kwargs(session, 0)['params'] == {'search': 'Widget', 'limit': 1, 'offset': 0}
    assert request_kwargs(session, 1)['params'] == {'search': 'Widget', 'limit': 1, 'offset': 1}
