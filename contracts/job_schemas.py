"""
Job status schemas
------------------
Pydantic models for the status update request bodies accepted over HTTP and for
the canonical update message published on the exchange.

Wire names follow what job-execution agents and exchange consumers already
speak (``Hostname``/``Message``/``State`` in, ``jobReference``/``invocationID``
out), so the Python attribute names are mapped through aliases.
"""
import time

from pydantic import BaseModel, ConfigDict, Field, model_validator

from contracts.job_states import JobState


class MessagePost(BaseModel):
    """
    Body of ``POST /{uuid}/status``. The job id comes from the URL path.
    """
    model_config = ConfigDict(extra="ignore")

    hostname: str
    message: str
    state: str

    @model_validator(mode="before")
    @classmethod
    def _fold_key_case(cls, data):
        # Agents send "Hostname", "hostname" or "HOSTNAME"; a later spelling wins
        if isinstance(data, dict):
            return {key.lower() if isinstance(key, str) else key: value for key, value in data.items()}
        return data


class BatchMessagePost(MessagePost):
    """
    Body of ``POST /status/batch``. The job id travels in the body.
    """
    job_uuid: str = Field(min_length=1)


class StatusUpdateRequest(BaseModel):
    """Normalized request produced by both body shapes."""
    model_config = ConfigDict(frozen=True)

    job_id: str
    hostname: str
    message: str
    state_string: str


class JobReference(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    invocation_id: str = Field(alias="invocationID")


class UpdateMessage(BaseModel):
    """
    Canonical job status update sent to the exchange and echoed to the caller.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    job: JobReference = Field(alias="jobReference")
    state: JobState
    message: str
    sender: str
    sent_on: int = Field(
        default_factory=lambda: int(time.time() * 1000), alias="sentOn"
    )  # epoch milliseconds
    version: int = 0

    @classmethod
    def build(cls, state: JobState, job_id: str, hostname: str, message: str) -> "UpdateMessage":
        return cls(
            job=JobReference(invocation_id=job_id),
            state=state,
            message=message,
            sender=hostname,
        )

    def to_wire(self) -> dict:
        """JSON-compatible dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")
