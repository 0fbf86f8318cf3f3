# conftest.py
import logging
import pytest
import pytest_asyncio
import structlog
from httpx import AsyncClient, ASGITransport
from structlog.testing import LogCapture
from accesslog.models.context import Context, Request, Response


class ErrorRecorder:
    def __init__(self):
        self.errors = []

    async def __call__(self, exc, ctx):
        self.errors.append(exc)


@pytest.fixture
def log_capture():
    return LogCapture()


@pytest.fixture
def sink(log_capture):
    return structlog.wrap_logger(
        structlog.ReturnLogger(),
        processors=[log_capture],
        wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    )


@pytest.fixture
def error_recorder():
    return ErrorRecorder()


@pytest.fixture
def make_context(error_recorder):
    def _make(status=0, size=0, request_headers=None, response_headers=None, **request_fields):
        fields = {
            "host": "example.com",
            "method": "GET",
            "request_uri": "/items?page=2",
            "user_agent": "pytest-agent",
            "remote_addr": "10.0.0.7:51234",
        }
        fields.update(request_fields)
        return Context(
            Request(headers=request_headers or {}, **fields),
            Response(status=status, size=size, headers=response_headers or {}),
            error_handler=error_recorder,
        )

    return _make


@pytest_asyncio.fixture
async def make_client():
    clients = []

    async def _make(app):
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
