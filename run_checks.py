"""
Smoke check against the in-memory database and the mock OTP provider.

    USE_MOCK_DB=true OTP_PROVIDER=mock JWT_SECRET=local-dev python run_checks.py
"""

import os

os.environ.setdefault("USE_MOCK_DB", "true")
os.environ.setdefault("OTP_PROVIDER", "mock")
os.environ.setdefault("JWT_SECRET", "local-dev-secret")

from fastapi.testclient import TestClient  # noqa: E402

from app.core.settings import settings  # noqa: E402
from app.main import app  # noqa: E402

client = TestClient(app)
api = settings.API_PREFIX

print('ROOT:')
print(client.get('/').json())

print('\nHEALTH:')
print(client.get(f'{api}/health').json())

print('\nDB HEALTH:')
resp = client.get(f'{api}/health/db')
print(resp.status_code, resp.json())

print('\nLOGIN:')
mobile = '919876543210'
print(client.post(f'{api}/auth/send-otp', json={'mobile': mobile, 'email': 'demo@example.com'}).json())
resp = client.post(f'{api}/auth/verify-otp', json={'mobile': mobile, 'otp': settings.MOCK_OTP_CODE})
body = resp.json()
print(resp.status_code, body.get('data', {}).get('message'), 'new user:', body.get('data', {}).get('isNewUser'))

print('\nSEARCH:')
resp = client.get(f'{api}/worker/search', params={'category': 'plumbing', 'limit': 5})
print(resp.status_code, resp.json().get('data', {}).get('pagination'))
