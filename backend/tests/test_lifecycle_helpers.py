"""Reusable test helpers for authenticated calls and status transitions.

Patterns unified:
 - Auth header creation straight from a JWT identity (bypassing /login) or through /login.
 - Creation + transition sequencing with assertion helpers.
"""
from __future__ import annotations
from typing import Dict, Optional
from flask_jwt_extended import create_access_token
from tests.test_utils_seed import ensure_user, PASSWORD

# ---------- Generic Auth Helpers ---------- #

def jwt_headers(user_id: int) -> Dict[str, str]:
    """Needs an application context; capabilities come from the stored role, not the token."""
    token = create_access_token(identity=str(user_id))
    return {'Authorization': f'Bearer {token}'}


def login_headers(client, username: str, password: str = PASSWORD) -> Dict[str, str]:
    resp = client.post('/api/auth/login', json={'username': username, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}


def user_headers(role: str = 'admin', **fields):
    """Seed a user with the given role; returns (user, headers)."""
    user = ensure_user(role=role, **fields)
    return user, jwt_headers(user.id)

# ---------- Assertion Helpers ---------- #

def assert_transition(client, url: str, headers: Dict[str, str], expected_status: int, payload: Optional[dict] = None,
                      expected_body_key: str = 'status', expected_body_value: Optional[str] = None):
    resp = client.post(url, json=payload or {}, headers=headers)
    assert resp.status_code == expected_status, resp.get_json()
    if expected_status < 400 and expected_body_value is not None:
        assert resp.get_json()[expected_body_key] == expected_body_value
    return resp


def create_resource_and_assert(client, url: str, payload: dict, headers: Dict[str, str],
                               expected_status_field: str = 'status', expected_initial_status: Optional[str] = None):
    resp = client.post(url, json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    if expected_initial_status:
        assert body[expected_status_field] == expected_initial_status
    return body


__all__ = ['jwt_headers', 'login_headers', 'user_headers', 'assert_transition', 'create_resource_and_assert']
