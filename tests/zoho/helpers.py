"""Shared utilities for Zoho tests."""

import json
import re
from urllib.parse import urlparse

import httpx

from app.zoho.lookups import related_zoho_id

API_PATH_RE = re.compile(r'^/crm/v2/(?P<module>[A-Za-z_]+)(?:/(?P<extra>[^/]+))?$')
CRITERIA_RE = re.compile(r'^\((?P<field>\w+):equals:(?P<value>.+)\)$')


class FakeZoho:
    """
    An in memory Zoho. Records are stored flat, exactly as Zoho returns them.

    reject: (module, method) -> (code, message, details) for record level rejections
    errors: (module, method) -> status code for whole request failures
    """

    def __init__(self):
        self.db = {'Accounts': {}, 'Contacts': {}, 'Deals': {}, 'Tasks': {}}
        self.requests: list[httpx.Request] = []
        self.auth_calls = 0
        self.reject = {}
        self.errors = {}
        self._next_id = 4150868000000417001

    def add(self, module: str, **record) -> dict:
        record.setdefault('id', self.new_id())
        self.db[module][record['id']] = record
        return record

    def new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    @property
    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith('/crm/')]

    def last_body(self) -> dict:
        return json.loads(self.api_requests[-1].content)

    def _write(self, module: str, method: str, body: dict) -> httpx.Response:
        if (module, method) in self.reject:
            code, message, details = self.reject[(module, method)]
            return httpx.Response(
                400, json={'data': [{'code': code, 'details': details, 'message': message, 'status': 'error'}]}
            )
        results = []
        for record in body['data']:
            if method == 'PUT':
                if record['id'] not in self.db[module]:
                    error = {'code': 'INVALID_DATA', 'details': {'id': record['id']}, 'message': 'invalid id'}
                    results.append({**error, 'status': 'error'})
                    continue
                self.db[module][record['id']].update(record)
                message = 'record updated'
            else:
                record = {'id': self.new_id(), **record}
                self.db[module][record['id']] = record
                message = 'record added'
            results.append(
                {'code': 'SUCCESS', 'details': {'id': record['id']}, 'message': message, 'status': 'success'}
            )
        return httpx.Response(201 if method == 'POST' else 200, json={'data': results})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = urlparse(str(request.url))
        if url.path == '/oauth/v2/token':
            self.auth_calls += 1
            return httpx.Response(200, json={'access_token': f'token-{self.auth_calls}', 'expires_in': 3600})

        match = API_PATH_RE.match(url.path)
        assert match, f'Unexpected url {request.url}'
        module, extra = match.group('module'), match.group('extra')
        if (module, request.method) in self.errors:
            status_code = self.errors[(module, request.method)]
            return httpx.Response(status_code, json={'code': 'INTERNAL_ERROR', 'message': 'Something went wrong'})

        if request.method in ('POST', 'PUT'):
            return self._write(module, request.method, json.loads(request.content))

        if extra == 'search':
            criteria = CRITERIA_RE.match(request.url.params['criteria'])
            field, value = criteria.group('field'), criteria.group('value')
            records = [r for r in self.db[module].values() if related_zoho_id(r.get(field)) == value]
        elif extra:
            records = [self.db[module][extra]] if extra in self.db[module] else []
        else:
            records = list(self.db[module].values())
        if not records:
            return httpx.Response(204)
        return httpx.Response(200, json={'data': records, 'info': {'count': len(records), 'more_records': False}})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)
