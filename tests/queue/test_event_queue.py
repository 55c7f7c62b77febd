"""Tests for EventQueue against a moto SQS server."""

import json

import pytest

from sitepulse.config import settings
from sitepulse.exceptions import QueueUnavailableError
from sitepulse.models.event import EventRecord
from sitepulse.queue.event_queue import EventQueue


@pytest.fixture
def queue(aws) -> EventQueue:
    return EventQueue(aws.sqs)


@pytest.fixture
def record(page_view) -> EventRecord:
    return EventRecord(**page_view)


async def queue_url(aws, name: str) -> str:
    return (await aws.sqs.get_queue_url(QueueName=name))["QueueUrl"]


@pytest.mark.asyncio
async def test_enqueue_then_claim(queue, record):
    job_id = await queue.enqueue(record)

    jobs = await queue.claim(max_jobs=10)

    assert len(jobs) == 1
    job = jobs[0]
    assert job.job_id == job_id
    assert job.record == record
    assert job.attempts == 1
    assert job.receipt_handle
    assert job.enqueued_at.endswith("Z")


@pytest.mark.asyncio
async def test_claimed_job_is_leased(queue, record):
    """A claimed job is not handed to a second consumer."""
    await queue.enqueue(record)

    first = await queue.claim(max_jobs=10)
    second = await queue.claim(max_jobs=10)

    assert len(first) == 1
    assert second == []


@pytest.mark.asyncio
async def test_release_makes_job_claimable_again(queue, record):
    await queue.enqueue(record)
    [job] = await queue.claim()

    await queue.release(job, delay_seconds=0)
    [again] = await queue.claim()

    assert again.job_id == job.job_id
    assert again.attempts == 2


@pytest.mark.asyncio
async def test_acknowledge_removes_job(aws, queue, record):
    await queue.enqueue(record)
    [job] = await queue.claim()

    await queue.acknowledge(job)

    url = await queue_url(aws, settings.sqs_queue_name)
    attributes = (
        await aws.sqs.get_queue_attributes(
            QueueUrl=url,
            AttributeNames=[
                "ApproximateNumberOfMessages",
                "ApproximateNumberOfMessagesNotVisible",
            ],
        )
    )["Attributes"]
    assert attributes["ApproximateNumberOfMessages"] == "0"
    assert attributes["ApproximateNumberOfMessagesNotVisible"] == "0"


@pytest.mark.asyncio
async def test_claim_on_empty_queue(queue):
    assert await queue.claim(max_jobs=5, wait_seconds=0) == []


@pytest.mark.asyncio
async def test_dead_letter_keeps_job_and_reason(queue, record):
    job_id = await queue.enqueue(record)
    [job] = await queue.claim()

    await queue.dead_letter(job, "Unparsable event timestamp: 'x'")

    assert await queue.claim() == []
    [parked] = await queue.list_dead_letters()
    assert parked["job_id"] == job_id
    assert parked["record"]["site_id"] == "s1"
    assert parked["failure"]["reason"] == "Unparsable event timestamp: 'x'"
    assert parked["failure"]["attempts"] == 1


@pytest.mark.asyncio
async def test_list_dead_letters_does_not_consume(queue, record):
    await queue.enqueue(record)
    [job] = await queue.claim()
    await queue.dead_letter(job, "boom")

    assert len(await queue.list_dead_letters()) == 1
    assert len(await queue.list_dead_letters()) == 1


@pytest.mark.asyncio
async def test_redrive_returns_job_under_same_id(queue, record):
    job_id = await queue.enqueue(record)
    [job] = await queue.claim()
    await queue.dead_letter(job, "boom")

    moved = await queue.redrive_dead_letters()

    assert moved == 1
    [redriven] = await queue.claim()
    assert redriven.job_id == job_id
    assert redriven.record == record


@pytest.mark.asyncio
async def test_undecodable_message_is_dead_lettered(aws, queue):
    url = await queue_url(aws, settings.sqs_queue_name)
    await aws.sqs.send_message(QueueUrl=url, MessageBody="not a job")

    assert await queue.claim() == []

    [parked] = await queue.list_dead_letters()
    assert parked["raw_body"] == "not a job"
    assert parked["failure"]["reason"] == "undecodable job envelope"


@pytest.mark.asyncio
async def test_redrive_skips_raw_payloads(aws, queue):
    url = await queue_url(aws, settings.sqs_queue_name)
    await aws.sqs.send_message(QueueUrl=url, MessageBody=json.dumps({"nope": 1}))
    await queue.claim()

    assert await queue.redrive_dead_letters() == 0


@pytest.mark.asyncio
async def test_enqueue_to_missing_queue_is_unavailable(aws, record):
    """An unreachable queue never yields a job id."""
    queue = EventQueue(aws.sqs, queue_name="does-not-exist")

    with pytest.raises(QueueUnavailableError):
        await queue.enqueue(record)


@pytest.mark.asyncio
async def test_claim_from_missing_queue_is_unavailable(aws):
    queue = EventQueue(aws.sqs, queue_name="does-not-exist")

    with pytest.raises(QueueUnavailableError):
        await queue.claim()


@pytest.mark.asyncio
async def test_claim_keeps_valid_jobs_when_parking_fails(aws, queue, record):
    """A garbage message that cannot be parked does not cost the rest of the batch."""
    job_id = await queue.enqueue(record)
    url = await queue_url(aws, settings.sqs_queue_name)
    await aws.sqs.send_message(QueueUrl=url, MessageBody="not a job")
    no_dlq = EventQueue(aws.sqs, dead_letter_queue_name="does-not-exist")

    jobs = await no_dlq.claim(max_jobs=10)

    assert [job.job_id for job in jobs] == [job_id]
