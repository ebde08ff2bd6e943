"""Shared fixtures for the Cosmetica API client tests."""

import json
from typing import Any, Dict, Iterator

import httpx
import pytest
import respx

from cosmetica_api import CosmeticaConfig, ServiceContext, set_default_context


BOOTSTRAP_URL = "http://cosmetica.cc/getapi"

GETAPI_PAYLOAD: Dict[str, Any] = {
    "api": "https://svc.example",
    "auth-api": "https://id.example",
    "website": "https://web.example",
    "message": "welcome",
}

PLAYER_ID = "4566e69f-c907-48ee-8d71-d7ba5aa00d20"


@pytest.fixture(autouse=True)
def reset_default_context() -> Iterator[None]:
    set_default_context(None)
    yield
    set_default_context(None)


@pytest.fixture
def getapi_body() -> str:
    return json.dumps(GETAPI_PAYLOAD)


@pytest.fixture
def api_mock() -> Iterator[respx.MockRouter]:
    """respx router with a live bootstrap discovery route named ``getapi``."""
    with respx.mock(assert_all_called=False) as router:
        router.get(BOOTSTRAP_URL, name="getapi").mock(
            return_value=httpx.Response(200, json=GETAPI_PAYLOAD)
        )
        yield router


@pytest.fixture
def context(api_mock: respx.MockRouter) -> ServiceContext:
    return ServiceContext(CosmeticaConfig(bootstrap_url=BOOTSTRAP_URL))
