"""
Status Views
------------
Defines the StatusViewsManager and the endpoints job-execution agents use to
report job state transitions.

Endpoints:
    - POST /{uuid}/status: Job id from the path, {Hostname, Message, State} in the body
    - POST /status/batch: {job_uuid, Hostname, Message, State} in the body

Both respond 200 with the published update message, or 400 with
{"error": "..."} when the body cannot be decoded, the state is unknown, or the
update could not be published.
"""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette import status as H
from starlette.convertors import Convertor, register_url_convertor

from contracts.job_schemas import StatusUpdateRequest
from contracts.job_states import normalize_state
from needs.INeedJobUpdatePublisher import INeedJobUpdatePublisherInterface
from support.constants import APP_NAME, JOB_UUID_PATTERN
from support.request_decoding import decode_batch_update, decode_single_update


logger = logging.getLogger(APP_NAME)


class JobUUIDConvertor(Convertor):
    """Path convertor that only matches lowercase 8-4-4-4-12 hex job ids."""
    regex = JOB_UUID_PATTERN

    def convert(self, value: str) -> str:
        return value

    def to_string(self, value: str) -> str:
        return value


# Paths with a job id outside the pattern do not match the route at all (404).
register_url_convertor("job_uuid", JobUUIDConvertor())


class StatusViewsManager(INeedJobUpdatePublisherInterface):
    """
    Registers the status update endpoints on the provided router.

    The JobUpdatePublisher is injected after construction (see ResolveNeedsManager),
    once the application has connected it to the broker.
    """

    def __init__(self, router: APIRouter):
        self.router = router
        self.register_views()

    async def record_update(self, update_request: StatusUpdateRequest) -> JSONResponse:
        """
        Map the reported state and hand the update to the publisher.

        :raises UnknownStateError: If the state string is not recognized.
        :raises PublisherError: If the update could not be published.
        """
        state = normalize_state(update_request.state_string)

        publisher = self.job_update_publisher
        if publisher is None:
            raise RuntimeError("job update publisher has not been initialized")

        update_message = await publisher.update(
            state,
            update_request.job_id,
            update_request.hostname,
            update_request.message,
        )
        return JSONResponse(status_code=H.HTTP_200_OK, content=update_message.to_wire())

    def register_views(self):
        """
        Register status endpoints on the router.
        Endpoints:
            - POST /status/batch
            - POST /{uuid}/status
        """

        # POST @ http://127.0.0.1:60000/status/batch
        @self.router.post("/status/batch", summary="Report a job status update by body job id")
        async def post_batch_update(request: Request) -> JSONResponse:
            """
            Records a status update whose job id is given as `job_uuid` in the body.
            """
            update_request = decode_batch_update(await request.body())
            return await self.record_update(update_request)

        # POST @ http://127.0.0.1:60000/{uuid}/status
        @self.router.post("/{uuid:job_uuid}/status", summary="Report a job status update")
        async def post_update(uuid: str, request: Request) -> JSONResponse:
            """
            Records a status update for the job identified in the path.

            Args:
                uuid (str): Job invocation id
                request (Request): Raw request; the JSON body is decoded here so that
                    malformed bodies are reported as 400 {"error": ...}
            """
            update_request = decode_single_update(uuid, await request.body())
            return await self.record_update(update_request)
