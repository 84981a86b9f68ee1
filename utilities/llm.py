import logging
import time
import requests
from typing import Optional

from config import gemini_api_url

logger = logging.getLogger(__name__)


def _build_request(prompt: str, json_mode: bool = False):
    """Build request headers and JSON payload for the LLM endpoint.

    The payload matches the structure expected by Google/Gemini-style APIs:
    {
      "contents": [ { "parts": [ { "text": <prompt> } ] } ]
    }

    With `json_mode` the model is asked to answer with a JSON document
    (`generationConfig.responseMimeType`), which is what question generation
    parses.

    Args:
        prompt: The prompt to send to the model.
        json_mode: Request an `application/json` response body.

    Returns:
        A tuple of (headers, data) ready to pass to requests.post.
    """
    headers = {'Content-Type': 'application/json'}
    data = {'contents': [{'parts': [{'text': prompt}]}]}
    if json_mode:
        data['generationConfig'] = {
            'responseMimeType': 'application/json',
            'temperature': 0.8,
        }
    return headers, data


def _extract_text(response_json: dict) -> Optional[str]:
    """Extract plain text from a Gemini-style response JSON.

    Expected shape (minimal):
    {
      "candidates": [
        { "content": { "parts": [ { "text": "..." } ] } }
      ]
    }

    Returns None if any of the expected keys/arrays are missing or empty.
    """
    candidates = response_json.get('candidates') or []
    if not candidates:
        return None
    candidate = candidates[0]
    content = candidate.get('content') or {}
    parts = content.get('parts') or []
    if not parts:
        return None
    text = parts[0].get('text')
    return text.strip() if isinstance(text, str) else None


def _backoff_sleep(attempt: int, backoff_factor: int) -> None:
    """Sleep using exponential backoff based on the attempt number.

    The wait time is computed as `backoff_factor ** attempt`.
    """
    wait_time = max(0, backoff_factor ** attempt)
    if wait_time:
        logger.warning("Rate limit exceeded. Retrying in %s seconds...", wait_time)
        time.sleep(wait_time)


def call_gemini_api(prompt: str, api_key: str, model: str = 'gemini-1.5-flash',
                    retries: int = 3, backoff_factor: int = 2, timeout: int = 120,
                    json_mode: bool = False) -> str:
    """Call the LLM API with simple retry and response parsing.

    Behavior:
    - Builds request via `_build_request()`.
    - Attempts up to `retries` times.
      * On HTTP 429, sleeps with `_backoff_sleep()` then retries.
      * On other HTTP errors, returns an error string including status code.
      * On network errors (RequestException), retries until attempts exhausted.
    - On 2xx, parses JSON and extracts text via `_extract_text()`.
      * If text is missing or payload shape is unexpected, returns a descriptive error.

    Args:
        prompt: Prompt to send to the model.
        api_key: Provider key; without one the call is not attempted.
        model: Gemini model name used to build the endpoint URL.
        retries: Max attempts (default 3). Each iteration performs one POST.
        backoff_factor: Base for exponential backoff (default 2).
        timeout: Per-request timeout in seconds.
        json_mode: Ask the model for a JSON response body.

    Returns:
        On success: Extracted text string.
        On failure: Error string prefixed with "Error:" describing the issue.
    """
    if not api_key:
        return "Error: GEMINI_API_KEY is not configured"

    url = gemini_api_url(api_key, model)
    headers, data = _build_request(prompt, json_mode=json_mode)
    attempts = max(1, retries)

    for attempt in range(attempts):
        try:
            resp = requests.post(url, headers=headers, json=data, timeout=timeout)
            resp.raise_for_status()

            payload = resp.json()
            text = _extract_text(payload)
            if text:
                return text
            return f"Error: Unexpected API response format: {resp.text}"

        except requests.exceptions.HTTPError as e:
            status = getattr(e.response, 'status_code', None)
            if status == 429 and attempt < attempts - 1:
                _backoff_sleep(attempt, backoff_factor)
                continue
            # Non-retryable HTTP error or no attempts left
            error_text = getattr(e.response, 'text', '')
            return f"Error: API request failed with status {status}: {error_text}"

        except requests.RequestException as e:
            # Network or other request error; only retry if attempts left
            if attempt < attempts - 1:
                _backoff_sleep(attempt, backoff_factor)
                continue
            return f"Error: Request failed: {str(e)}"

        except ValueError as e:
            # Body was not JSON
            return f"Error: Unexpected API response format: {e}"

    return "Error: Exhausted retries without a successful response"
