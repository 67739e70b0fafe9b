"""
Clients for the two hosted identity providers.

PasswordAuthClient talks to a GoTrue-compatible REST API (email/password).
PhoneAuthClient talks to the Identity Toolkit REST API (phone one-time codes).

Both return plain dicts so the results can live in the Flask session.
"""

import logging

import requests

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = 'https://identitytoolkit.googleapis.com/v1'


class AuthProviderError(Exception):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response):
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body.get('error'), dict):
        return body['error'].get('message') or f"HTTP {response.status_code}"
    for key in ('error_description', 'msg', 'message', 'error'):
        if body.get(key):
            return body[key]
    return f"HTTP {response.status_code}"


def _password_user(data):
    return {
        'id': data['id'],
        'email': data.get('email'),
        'email_confirmed_at': data.get('email_confirmed_at'),
        'created_at': data.get('created_at'),
        'user_metadata': data.get('user_metadata') or {},
    }


class PasswordAuthClient:

    def __init__(self, base_url, api_key, timeout=10):
        self.base_url = base_url.rstrip('/') + '/auth/v1'
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(config['SUPABASE_URL'], config['SUPABASE_ANON_KEY'],
                   timeout=config.get('AUTH_TIMEOUT', 10))

    def _post(self, path, payload, params=None, access_token=None):
        headers = {'apikey': self.api_key, 'Content-Type': 'application/json'}
        if access_token:
            headers['Authorization'] = f"Bearer {access_token}"
        try:
            response = requests.post(self.base_url + path, json=payload, params=params,
                                     headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Password auth request to %s failed: %s", path, e)
            raise AuthProviderError("Could not reach the authentication service")
        if not response.ok:
            message = _error_message(response)
            logger.warning("Password auth %s returned %s: %s", path, response.status_code, message)
            raise AuthProviderError(message, response.status_code)
        if not response.content:
            return {}
        return response.json()

    def sign_up(self, email, password, phone=None, redirect_to=None):
        """Register a new account. Returns the created user."""
        params = {'redirect_to': redirect_to} if redirect_to else None
        data = self._post('/signup', {
            'email': email,
            'password': password,
            'data': {'phone': phone} if phone else {},
        }, params=params)
        # With email confirmation on the reply is the bare user, otherwise a session.
        return _password_user(data.get('user') or data)

    def sign_in(self, email, password):
        """Returns (user, tokens)."""
        data = self._post('/token', {'email': email, 'password': password},
                          params={'grant_type': 'password'})
        tokens = {
            'access_token': data['access_token'],
            'refresh_token': data.get('refresh_token'),
            'expires_in': data.get('expires_in'),
        }
        return _password_user(data['user']), tokens

    def send_password_reset(self, email, redirect_to=None):
        params = {'redirect_to': redirect_to} if redirect_to else None
        self._post('/recover', {'email': email}, params=params)

    def sign_out(self, access_token):
        self._post('/logout', None, access_token=access_token)


class PhoneAuthClient:

    def __init__(self, api_key, timeout=10, base_url=IDENTITY_TOOLKIT_URL):
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url

    @classmethod
    def from_config(cls, config):
        return cls(config['FIREBASE_API_KEY'], timeout=config.get('AUTH_TIMEOUT', 10))

    def _post(self, method, payload):
        url = f"{self.base_url}/accounts:{method}"
        try:
            response = requests.post(url, params={'key': self.api_key}, json=payload,
                                     timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Phone auth %s failed: %s", method, e)
            raise AuthProviderError("Could not reach the phone authentication service")
        if not response.ok:
            message = _error_message(response)
            logger.warning("Phone auth %s returned %s: %s", method, response.status_code, message)
            raise AuthProviderError(message, response.status_code)
        return response.json()

    def send_code(self, phone_number, recaptcha_token=None):
        """Text a one-time code to phone_number. Returns the session info to verify against."""
        payload = {'phoneNumber': phone_number}
        if recaptcha_token:
            payload['recaptchaToken'] = recaptcha_token
        return self._post('sendVerificationCode', payload)['sessionInfo']

    def verify_code(self, session_info, code):
        data = self._post('signInWithPhoneNumber', {'sessionInfo': session_info, 'code': code})
        user = {
            'uid': data['localId'],
            'phone_number': data.get('phoneNumber'),
            'email': None,
            'display_name': None,
            'photo_url': None,
            'is_new_user': bool(data.get('isNewUser')),
        }
        tokens = {'id_token': data['idToken'], 'refresh_token': data.get('refreshToken')}
        return user, tokens

    def lookup(self, id_token):
        users = self._post('lookup', {'idToken': id_token}).get('users') or []
        if not users:
            return {}
        account = users[0]
        return {
            'email': account.get('email'),
            'display_name': account.get('displayName'),
            'photo_url': account.get('photoUrl'),
        }
