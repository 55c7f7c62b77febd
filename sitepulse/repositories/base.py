"""Shared AWS client configuration and the base DynamoDB repository."""

from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from sitepulse.config import settings
from sitepulse.exceptions import PersistenceError
from sitepulse.logging.config import get_logger

logger = get_logger(__name__)

# Errors raised by aioboto3 calls when the service rejects or cannot be reached
AWS_ERRORS = (ClientError, BotoCoreError)


def get_aws_config() -> dict[str, Any]:
    """
    Build boto3 client parameters based on environment.

    For AWS Lambda with IAM roles, returns minimal config (region only).
    For LocalStack or moto, includes endpoint_url and explicit credentials.

    Returns:
        Dictionary of boto3 client parameters
    """
    config: dict[str, Any] = {"region_name": settings.aws_region}

    if settings.aws_endpoint_url:
        config["endpoint_url"] = settings.aws_endpoint_url
        logger.info(f"AWS config: Using endpoint_url={settings.aws_endpoint_url}")

    if settings.aws_access_key_id:
        config["aws_access_key_id"] = settings.aws_access_key_id
    if settings.aws_secret_access_key:
        config["aws_secret_access_key"] = settings.aws_secret_access_key
    # Lambda hands out temporary credentials, which need the session token too
    if settings.aws_session_token:
        config["aws_session_token"] = settings.aws_session_token

    if "aws_access_key_id" not in config:
        logger.info("AWS config: Using default credential chain")

    return config


@dataclass
class AwsClients:
    """Process-scoped AWS handles shared by request handlers and the worker."""

    sqs: Any
    dynamodb: Any


@asynccontextmanager
async def open_aws_clients() -> AsyncIterator[AwsClients]:
    """
    Open the SQS client and DynamoDB resource for the lifetime of a process.

    Both are closed when the context exits, including on error.
    """
    session = aioboto3.Session()
    config = get_aws_config()
    async with AsyncExitStack() as stack:
        sqs = await stack.enter_async_context(session.client("sqs", **config))
        dynamodb = await stack.enter_async_context(
            session.resource("dynamodb", **config)
        )
        logger.info("AWS clients opened")
        try:
            yield AwsClients(sqs=sqs, dynamodb=dynamodb)
        finally:
            logger.info("AWS clients closing")


class BaseRepository:
    """
    Base repository providing common DynamoDB operations.

    Repositories receive an already opened aioboto3 DynamoDB resource and
    resolve their table lazily on first use.
    """

    def __init__(self, dynamodb: Any, table_name: str) -> None:
        """
        Initialize repository with a DynamoDB resource and table name.

        Args:
            dynamodb: Open aioboto3 DynamoDB service resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb
        self.table_name = table_name
        self._table: Any = None

    async def table(self) -> Any:
        """Return the aioboto3 Table resource for this repository."""
        if self._table is None:
            self._table = await self.dynamodb.Table(self.table_name)
        return self._table

    async def put_item(self, item: dict[str, Any]) -> None:
        """
        Put item into DynamoDB table.

        Args:
            item: Dictionary representing the item to store

        Raises:
            PersistenceError: If DynamoDB rejects the write
        """
        table = await self.table()
        try:
            await table.put_item(Item=item)
        except AWS_ERRORS as e:
            raise PersistenceError(
                f"Failed to write item to {self.table_name}: {e}"
            ) from e

    async def get_item(self, key: dict[str, Any]) -> dict[str, Any] | None:
        """
        Get item from DynamoDB table by key.

        Args:
            key: Dictionary with partition key and optionally sort key

        Returns:
            Item dictionary or None if not found
        """
        table = await self.table()
        response = await table.get_item(Key=key)
        return response.get("Item")

    async def query_all(self, **query_params: Any) -> list[dict[str, Any]]:
        """
        Run a query and follow LastEvaluatedKey until exhausted.

        Returns:
            One response dict per page
        """
        table = await self.table()
        pages = []
        while True:
            response = await table.query(**query_params)
            pages.append(response)
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return pages
            query_params["ExclusiveStartKey"] = last_key
