"""Script to create the DynamoDB table and SQS queues for LocalStack or AWS."""

import asyncio
from typing import Any

import aioboto3
from botocore.exceptions import ClientError

from sitepulse.repositories.stats_repository import SITE_TIMESTAMP_INDEX


async def create_events_table(dynamodb: Any, table_name: str) -> None:
    """
    Create the events table with the site/timestamp GSI.

    Items are keyed by event_id (the queue job id); the GSI serves the
    per-site time window queries behind GET /stats.

    Args:
        dynamodb: DynamoDB resource
        table_name: Name of the events table
    """
    try:
        table = await dynamodb.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "event_id", "KeyType": "HASH"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "event_id", "AttributeType": "S"},
                {"AttributeName": "site_id", "AttributeType": "S"},
                {"AttributeName": "timestamp", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": SITE_TIMESTAMP_INDEX,
                    "KeySchema": [
                        {"AttributeName": "site_id", "KeyType": "HASH"},
                        {"AttributeName": "timestamp", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        await table.wait_until_exists()
        print(f"✓ Created table: {table_name}")
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            print(f"→ Table already exists: {table_name}")
        else:
            raise


async def create_queues(
    sqs: Any, queue_name: str, dead_letter_queue_name: str, visibility_timeout: int
) -> None:
    """
    Create the event queue and its dead-letter queue.

    CreateQueue is idempotent for identical attributes.

    Args:
        sqs: SQS client
        queue_name: Main queue name
        dead_letter_queue_name: Dead-letter queue name
        visibility_timeout: Default lease in seconds
    """
    await sqs.create_queue(
        QueueName=dead_letter_queue_name,
        Attributes={"MessageRetentionPeriod": str(14 * 24 * 60 * 60)},
    )
    print(f"✓ Queue ready: {dead_letter_queue_name}")

    await sqs.create_queue(
        QueueName=queue_name,
        Attributes={"VisibilityTimeout": str(visibility_timeout)},
    )
    print(f"✓ Queue ready: {queue_name}")


async def main() -> None:
    """Create all required AWS resources."""
    from sitepulse.config import settings
    from sitepulse.repositories.base import get_aws_config

    print("Creating AWS resources...")
    print(f"Region: {settings.aws_region}")
    print(f"Endpoint: {settings.aws_endpoint_url or 'AWS'}")
    print()

    session = aioboto3.Session()
    config = get_aws_config()
    async with session.resource("dynamodb", **config) as dynamodb:
        await create_events_table(dynamodb, settings.dynamodb_table_events)

    async with session.client("sqs", **config) as sqs:
        await create_queues(
            sqs,
            settings.sqs_queue_name,
            settings.sqs_dead_letter_queue_name,
            settings.worker_visibility_timeout_seconds,
        )

    print()
    print("✓ All resources created successfully!")


if __name__ == "__main__":
    asyncio.run(main())
