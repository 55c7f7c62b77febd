"""Shared fixtures: an in-process moto server standing in for SQS and DynamoDB."""

from typing import AsyncGenerator, Generator

import httpx
import pytest

from infrastructure.aws_resources import create_events_table, create_queues
from sitepulse.config import settings
from sitepulse.repositories.base import AwsClients, open_aws_clients

MOTO_HOST = "127.0.0.1"
MOTO_PORT = 5117


@pytest.fixture(scope="session")
def moto_endpoint() -> Generator[str, None, None]:
    """
    Run moto in server mode for the whole test session.

    aiobotocore talks to it over HTTP like it would to LocalStack.
    """
    from moto.server import ThreadedMotoServer

    server = ThreadedMotoServer(ip_address=MOTO_HOST, port=MOTO_PORT, verbose=False)
    server.start()
    yield f"http://{MOTO_HOST}:{MOTO_PORT}"
    server.stop()


@pytest.fixture
async def aws(moto_endpoint: str, monkeypatch) -> AsyncGenerator[AwsClients, None]:
    """
    Fresh events table and queues for each test.

    Points settings at the moto server and yields open clients.
    """
    httpx.post(f"{moto_endpoint}/moto-api/reset")

    monkeypatch.setattr(settings, "aws_endpoint_url", moto_endpoint)
    monkeypatch.setattr(settings, "aws_region", "us-east-1")
    monkeypatch.setattr(settings, "aws_access_key_id", "testing")
    monkeypatch.setattr(settings, "aws_secret_access_key", "testing")
    monkeypatch.setattr(settings, "aws_session_token", None)

    async with open_aws_clients() as clients:
        await create_events_table(clients.dynamodb, settings.dynamodb_table_events)
        await create_queues(
            clients.sqs,
            settings.sqs_queue_name,
            settings.sqs_dead_letter_queue_name,
            settings.worker_visibility_timeout_seconds,
        )
        yield clients


@pytest.fixture
def page_view() -> dict:
    """Valid ingestion payload for a page view."""
    return {
        "site_id": "s1",
        "event_type": "page_view",
        "path": "/a",
        "user_id": "u1",
        "timestamp": "2024-01-01T10:00:00Z",
    }
