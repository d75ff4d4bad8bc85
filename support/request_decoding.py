"""
Decoding of the two status update request shapes into a StatusUpdateRequest.
"""
from pydantic import ValidationError

from contracts.job_schemas import BatchMessagePost, MessagePost, StatusUpdateRequest
from support.errors import DecodeError


def _validation_message(error: ValidationError) -> str:
    """Flatten pydantic errors into one line, e.g. ``State: Field required``."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "body"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


def _decode(model, body: bytes):
    if not body or not body.strip():
        raise DecodeError("request body is empty")
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise DecodeError(_validation_message(e)) from e


def decode_single_update(job_id: str, body: bytes) -> StatusUpdateRequest:
    """
    Decode the body of ``POST /{uuid}/status``.

    :param job_id: Job identifier taken from the URL path (already pattern-checked by the route).
    :param body: Raw request body.
    :raises DecodeError: If the body is not a JSON object with the required fields.
    """
    post = _decode(MessagePost, body)
    return StatusUpdateRequest(
        job_id=job_id,
        hostname=post.hostname,
        message=post.message,
        state_string=post.state,
    )


def decode_batch_update(body: bytes) -> StatusUpdateRequest:
    """
    Decode the body of ``POST /status/batch``, which carries the job id as ``job_uuid``.

    :raises DecodeError: If the body is not a JSON object with the required fields.
    """
    post = _decode(BatchMessagePost, body)
    return StatusUpdateRequest(
        job_id=post.job_uuid,
        hostname=post.hostname,
        message=post.message,
        state_string=post.state,
    )
