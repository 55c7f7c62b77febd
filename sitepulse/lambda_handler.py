"""Lambda entry point for the ingestion and stats API.

Mangum runs the FastAPI lifespan on cold start, which opens the SQS and
DynamoDB clients reused by warm invocations. The event worker is not run
here; deploy ``sitepulse-worker`` separately or leave ``RUN_WORKER_IN_API``
off.
"""

from mangum import Mangum

from sitepulse.main import app

handler = Mangum(app, lifespan="auto", api_gateway_base_path="/v1")


def lambda_handler(event: dict, context: object) -> dict:
    """Translate an API Gateway event into an ASGI request and back."""
    return handler(event, context)
