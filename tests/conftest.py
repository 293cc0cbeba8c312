import json
from typing import Any, List

import pytest
import requests
from pydantic import SecretStr

from gemini_exchange.config import Credentials
from gemini_exchange.services.gemini import GeminiAPI
from gemini_exchange.services.pagination import FixedDelayRateLimiter


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, text: str = None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self, **kwargs):
        return json.loads(self.text, **kwargs)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests.Session, answering queued responses in order"""

    def __init__(self, *responses: FakeResponse):
        self.responses: List[FakeResponse] = list(responses)
        self.calls: List[dict] = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        return self.responses.pop(0)


@pytest.fixture
def credentials():
    return Credentials(public_key=SecretStr("account-key"), private_key=SecretStr("secret-key"))


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_api(credentials, sleeps):
    def factory(*responses, with_credentials=True, page_limit=100):
        session = FakeSession(*responses)
        api = GeminiAPI(
            credentials=credentials if with_credentials else None,
            base_url="https://api.gemini.com/v1",
            session=session,
            timeout=5,
            page_limit=page_limit,
            rate_limiter=FixedDelayRateLimiter(1.0, sleep=sleeps.append),
            client_order_id_prefix="test_"
        )
        return api, session
    return factory
