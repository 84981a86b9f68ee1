import types
import requests
import pytest

import utilities.llm as llm


class _Resp:
    """
    Minimal response stub used to simulate requests.Response in tests.
    - raise_for_status() raises HTTPError for non-2xx statuses and attaches a
      lightweight .response object so the production code can read status/text.
    - json() returns the provided payload to mimic .json() behavior.
    """
    def __init__(self, status_code=200, json_payload=None, text=""):
        self.status_code = status_code
        self._json = json_payload if json_payload is not None else {}
        self.text = text or str(self._json)

    def raise_for_status(self):
        if not (200 <= self.status_code < 300):
            http_err = requests.exceptions.HTTPError()
            http_err.response = types.SimpleNamespace(status_code=self.status_code, text=self.text)
            raise http_err

    def json(self):
        return self._json


def _text_payload(text):
    return {'candidates': [{'content': {'parts': [{'text': text}]}}]}


def test_call_gemini_api_success(monkeypatch):
    """
    A well-formed candidates/content/parts/text payload yields the stripped text,
    and the key and model end up in the endpoint URL.
    """
    seen = {}

    def _post(url, headers=None, json=None, timeout=0):
        seen['url'] = url
        seen['json'] = json
        return _Resp(200, _text_payload('  Hello world \n'))

    monkeypatch.setattr(llm.requests, 'post', _post)
    monkeypatch.setattr(llm.time, 'sleep', lambda s: None)

    out = llm.call_gemini_api('prompt', api_key='abc', model='gemini-test')
    assert out == 'Hello world'
    assert seen['url'].endswith('/gemini-test:generateContent?key=abc')
    assert 'generationConfig' not in seen['json']


def test_call_gemini_api_json_mode(monkeypatch):
    seen = {}

    def _post(url, headers=None, json=None, timeout=0):
        seen['json'] = json
        seen['timeout'] = timeout
        return _Resp(200, _text_payload('{"questions": []}'))

    monkeypatch.setattr(llm.requests, 'post', _post)
    llm.call_gemini_api('prompt', api_key='abc', json_mode=True, timeout=7)
    assert seen['json']['generationConfig']['responseMimeType'] == 'application/json'
    assert seen['json']['contents'][0]['parts'][0]['text'] == 'prompt'
    assert seen['timeout'] == 7


def test_call_gemini_api_without_key_makes_no_request(monkeypatch):
    def _post(*args, **kwargs):
        raise AssertionError('no request expected')

    monkeypatch.setattr(llm.requests, 'post', _post)
    out = llm.call_gemini_api('prompt', api_key=None)
    assert out.startswith('Error:')


def test_call_gemini_api_429_then_success(monkeypatch):
    """
    If the first call returns HTTP 429 (rate limit), the function should back off
    and retry. On the next successful response it should return the text.
    """
    calls = {'n': 0}

    def _post(url, headers=None, json=None, timeout=0):
        if calls['n'] == 0:
            calls['n'] += 1
            return _Resp(429, text='rate limited')
        return _Resp(200, _text_payload('Recovered'))

    monkeypatch.setattr(llm.requests, 'post', _post)
    monkeypatch.setattr(llm.time, 'sleep', lambda s: None)

    out = llm.call_gemini_api('prompt', api_key='abc', retries=3, backoff_factor=1)
    assert out == 'Recovered'
    assert calls['n'] == 1  # first call was 429 (incremented once)


def test_call_gemini_api_malformed_payload(monkeypatch):
    """
    If the payload is missing expected keys (e.g., 'candidates'), the function
    should return a descriptive error string rather than crashing.
    """
    def _post(url, headers=None, json=None, timeout=0):
        return _Resp(200, {'foo': 'bar'}, text='{}')

    monkeypatch.setattr(llm.requests, 'post', _post)
    out = llm.call_gemini_api('prompt', api_key='abc')
    assert out.startswith('Error: Unexpected API response format:')


def test_call_gemini_api_http_error_non_retry(monkeypatch):
    """
    For non-retryable HTTP errors (e.g., 400), the function should return an
    error string including the status code.
    """
    calls = {'n': 0}

    def _post(url, headers=None, json=None, timeout=0):
        calls['n'] += 1
        return _Resp(400, text='bad request')

    monkeypatch.setattr(llm.requests, 'post', _post)
    out = llm.call_gemini_api('prompt', api_key='abc', retries=3)
    assert 'status 400' in out
    assert calls['n'] == 1


@pytest.mark.parametrize('retries', [1, 2])
def test_call_gemini_api_network_error_retries_then_fail(monkeypatch, retries):
    """
    For network-level exceptions (RequestException), the function should retry
    up to the configured limit and then return an error string.
    """
    calls = {'n': 0}

    def _post(url, headers=None, json=None, timeout=0):
        calls['n'] += 1
        raise requests.RequestException('net down')

    monkeypatch.setattr(llm.requests, 'post', _post)
    monkeypatch.setattr(llm.time, 'sleep', lambda s: None)

    out = llm.call_gemini_api('prompt', api_key='abc', retries=retries, backoff_factor=1)
    assert out.startswith('Error: Request failed:')
    assert calls['n'] == retries
