import dataclasses
from datetime import datetime, timezone

import aiohttp
import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from fakes import FakeGitHub
from year_in_code.config import Settings
from year_in_code.models import ContributionWindow
from year_in_code.queries import Queries

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def github():
    fake = FakeGitHub()
    server = TestServer(fake.app())
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def session():
    async with aiohttp.ClientSession() as s:
        yield s


@pytest.fixture
def settings(github: FakeGitHub) -> Settings:
    defaults = Settings()
    return dataclasses.replace(
        defaults,
        api_base=github.base_url,
        graphql_url=f"{github.base_url}/graphql",
        request_timeout=5.0,
        deadline=30.0,
        accepted_retry_delay=0.0,
        authenticated=dataclasses.replace(defaults.authenticated, batch_delay=0.0),
        public=dataclasses.replace(defaults.public, batch_delay=0.0),
    )


@pytest.fixture
def window() -> ContributionWindow:
    return ContributionWindow.trailing_year(NOW)


@pytest_asyncio.fixture
async def queries(session: aiohttp.ClientSession, settings: Settings) -> Queries:
    return Queries(session, "tok-alice", settings)


@pytest_asyncio.fixture
async def public_queries(session: aiohttp.ClientSession, settings: Settings) -> Queries:
    return Queries(session, None, settings)
