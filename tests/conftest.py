"""
Pytest configuration and shared fixtures: config, simulated Snipe-IT, recording Jira.
"""
import itertools
import logging

import pytest

from snipe_sync.config import Config
from snipe_sync.errors import JiraAPIError
from snipe_sync.matching import first_match, normalized_match
from snipe_sync.models import Accessory, ApiResult, CheckoutAssignment, CustomFieldOption, SnipeUser

MUTATING_CALLS = {
    'create_accessory', 'update_accessory_quantity', 'checkout_accessory',
    'checkin_accessory', 'create_location', 'create_company',
}

BASE_ENV = {
    'SNIPE_IT_BASE_URL': 'https://snipe.test/api/v1',
    'SNIPE_IT_TOKEN': 'snipe-token-123456',
    'JIRA_BASE_URL': 'https://jira.test',
    'JIRA_EMAIL': 'bot@example.com',
    'JIRA_API_TOKEN': 'jira-token-123456',
}


@pytest.fixture
def env(monkeypatch):
    for key, value in BASE_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ('CUSTOM_FIELD_CATEGORIES', 'JIRA_POST_SUMMARY_COMMENT', 'WEBHOOK_SHARED_SECRET',
                'JIRA_LOCATION_FIELD', 'JIRA_COMPANY_FIELD', 'JIRA_ACCESSORY_TYPE_FIELD'):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def config(env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return Config(env_file=str(env_file))


class FakeSnipeIT:
    """In-memory Snipe-IT with the gateway surface the core uses; records every call."""

    def __init__(self):
        self.accessories = {}
        self.assignments = {}
        self.users = []
        self.locations = {}
        self.companies = {}
        self.calls = []
        self.fail = {}
        self._ids = itertools.count(100)
        self._pivots = itertools.count(9000)

    # seeding

    def add_user(self, user_id, email, username=None, name=None):
        user = SnipeUser(id=user_id, email=email, username=username or email, name=name or email)
        self.users.append(user)
        return user

    def add_accessory(self, name, location_id, quantity, category_id=7, category_name='Headphones',
                      company_id=3, accessory_id=None):
        accessory_id = accessory_id or next(self._ids)
        self.accessories[accessory_id] = {
            'id': accessory_id, 'name': name, 'category_id': category_id,
            'category_name': category_name, 'company_id': company_id,
            'location_id': location_id, 'qty': quantity,
        }
        self.assignments[accessory_id] = []
        return accessory_id

    def assign(self, accessory_id, user):
        pivot = next(self._pivots)
        self.assignments[accessory_id].append(
            {'pivot': pivot, 'user_id': user.id, 'username': user.username, 'note': ''}
        )
        return pivot

    # helpers

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail:
            error = self.fail[name]
            if isinstance(error, Exception):
                raise error
            return ApiResult.failure(error)
        return None

    def _view(self, accessory_id):
        row = self.accessories[accessory_id]
        return Accessory(
            id=row['id'], name=row['name'], category_id=row['category_id'],
            category_name=row['category_name'], company_id=row['company_id'],
            location_id=row['location_id'], quantity=row['qty'],
            remaining_quantity=row['qty'] - len(self.assignments[accessory_id])
        )

    def calls_named(self, name):
        return [args for call, args in self.calls if call == name]

    def mutating_calls(self):
        return [call for call in self.calls if call[0] in MUTATING_CALLS]

    def view(self, accessory_id):
        return self._view(accessory_id)

    def find_id(self, name, location_id):
        for accessory_id, row in self.accessories.items():
            if row['name'] == name and row['location_id'] == location_id:
                return accessory_id
        return None

    # gateway surface

    def list_accessories(self):
        self._record('list_accessories')
        return [self._view(accessory_id) for accessory_id in self.accessories]

    def search_accessories(self, name):
        self._record('search_accessories', name)
        needle = name.strip().lower()
        return [self._view(i) for i, row in self.accessories.items() if needle in row['name'].lower()]

    def find_accessory_details(self, name, location_id):
        failure = self._record('find_accessory_details', name, location_id)
        if failure is not None:
            return None
        needle = name.strip().lower()
        candidates = [self._view(i) for i, row in self.accessories.items() if needle in row['name'].lower()]
        return first_match(candidates, name, location_id, strategy=normalized_match)

    def create_accessory(self, name, quantity, category_id, location_id, company_id):
        failure = self._record('create_accessory', name, quantity, category_id, location_id, company_id)
        if failure is not None:
            return failure
        if not company_id or not category_id:
            return ApiResult.failure("missing company or category")
        accessory_id = self.add_accessory(name, location_id, quantity, category_id=category_id,
                                          company_id=company_id)
        return ApiResult(status='success', payload={'id': accessory_id, 'name': name})

    def update_accessory_quantity(self, accessory_id, quantity):
        failure = self._record('update_accessory_quantity', accessory_id, quantity)
        if failure is not None:
            return failure
        if quantity < len(self.assignments[accessory_id]):
            return ApiResult.failure({'qty': ['The qty must be at least the checked out count.']})
        self.accessories[accessory_id]['qty'] = quantity
        return ApiResult(status='success', payload={'id': accessory_id, 'qty': quantity})

    def checkout_accessory(self, accessory_id, user_id, note):
        failure = self._record('checkout_accessory', accessory_id, user_id, note)
        if failure is not None:
            return failure
        if self._view(accessory_id).remaining_quantity <= 0:
            return ApiResult.failure("Not enough accessories available")
        user = next(u for u in self.users if u.id == user_id)
        pivot = self.assign(accessory_id, user)
        self.assignments[accessory_id][-1]['note'] = note
        return ApiResult(status='success', payload={'id': accessory_id, 'assigned_pivot_id': pivot})

    def checkin_accessory(self, assigned_pivot_id):
        failure = self._record('checkin_accessory', assigned_pivot_id)
        if failure is not None:
            return failure
        for rows in self.assignments.values():
            for row in rows:
                if row['pivot'] == assigned_pivot_id:
                    rows.remove(row)
                    return ApiResult(status='success', payload={})
        return ApiResult.failure("Assignment not found")

    def list_checked_out(self, accessory_id):
        self._record('list_checked_out', accessory_id)
        return [
            CheckoutAssignment(assigned_pivot_id=row['pivot'], accessory_id=accessory_id,
                               user_id=row['user_id'], username=row['username'], note=row['note'])
            for row in self.assignments[accessory_id]
        ]

    def list_user_accessories(self, user_id):
        self._record('list_user_accessories', user_id)
        return [
            {'id': accessory_id, 'name': self.accessories[accessory_id]['name'], 'assigned_pivot_id': row['pivot']}
            for accessory_id, rows in self.assignments.items()
            for row in rows if row['user_id'] == user_id
        ]

    def search_users(self, query):
        self._record('search_users', query)
        return [u for u in self.users if query.lower() in (u.email + u.username + u.name).lower()]

    def list_locations(self):
        self._record('list_locations')
        return dict(self.locations)

    def list_companies(self):
        self._record('list_companies')
        return dict(self.companies)

    def create_location(self, name):
        failure = self._record('create_location', name)
        if failure is not None:
            return failure
        location_id = next(self._ids)
        self.locations[name] = location_id
        return ApiResult(status='success', payload={'id': location_id, 'name': name})

    def create_company(self, name):
        failure = self._record('create_company', name)
        if failure is not None:
            return failure
        company_id = next(self._ids)
        self.companies[name] = company_id
        return ApiResult(status='success', payload={'id': company_id, 'name': name})


class FakeJira:
    """Recording tracker gateway with one context per field."""

    def __init__(self, options=None):
        self.options = {str(k): list(v) for k, v in (options or {}).items()}
        self.calls = []
        self.fail_fields = set()
        self.comments = []

    def fetch_field_contexts(self, field_id):
        self.calls.append(('fetch_field_contexts', field_id))
        if str(field_id) in self.fail_fields:
            raise JiraAPIError("boom", status_code=500)
        return [{'id': f"ctx-{field_id}"}, {'id': 'ignored'}]

    def fetch_field_options(self, field_id, context_id):
        self.calls.append(('fetch_field_options', field_id, context_id))
        return list(self.options.get(str(field_id), []))

    def add_field_options(self, field_id, context_id, values):
        self.calls.append(('add_field_options', field_id, context_id, list(values)))
        return [CustomFieldOption(id=f"new-{value}", value=value) for value in values]

    def delete_field_option(self, field_id, context_id, option_id):
        self.calls.append(('delete_field_option', field_id, context_id, option_id))

    def add_comment(self, issue_key, text):
        self.comments.append((issue_key, text))
        return {'id': '1'}

    def calls_named(self, name):
        return [call[1:] for call in self.calls if call[0] == name]


@pytest.fixture
def snipe():
    fake = FakeSnipeIT()
    fake.locations = {'Vilnius HQ': 1, 'Berlin': 2}
    fake.companies = {'Vinted UAB': 3}
    fake.add_user(42, 'a@x.com', username='a@x.com', name='Alex')
    return fake


@pytest.fixture
def jira():
    return FakeJira()


@pytest.fixture(autouse=True)
def _package_logger_level():
    logging.getLogger('snipe_sync').setLevel(logging.DEBUG)
    yield
    logging.getLogger('snipe_sync').setLevel(logging.NOTSET)
