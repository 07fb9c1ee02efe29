from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from leadcapture.core.exceptions import BadRequestError, PayloadTooLargeError
from leadcapture.schemas.lead import LeadAccepted, LeadError
from leadcapture.services.lead_intake import LeadIntake

router = APIRouter(tags=["leads"])

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def get_intake(request: Request) -> LeadIntake:
    return request.app.state.intake


async def read_submission(request: Request) -> Dict[str, Any]:
    """Read the body under the size ceiling and decode it as a JSON object or a form (urlencoded or multipart)."""
    max_bytes = request.app.state.settings.max_body_bytes

    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLargeError(details={"content_length": int(declared), "limit": max_bytes})

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise PayloadTooLargeError(details={"received": len(body), "limit": max_bytes})

    if not body.strip():
        return {}

    if request.headers.get("content-type", "").startswith(FORM_CONTENT_TYPES):
        return await read_form(request, bytes(body))

    try:
        payload = json.loads(bytes(body))
    except ValueError as e:
        raise BadRequestError(code="invalid_json", details={"error": str(e)})
    if not isinstance(payload, dict):
        raise BadRequestError(code="invalid_json", details={"error": "body is not an object"})
    return payload


async def read_form(request: Request, body: bytes) -> Dict[str, Any]:
    """Parse an already-read form body with Starlette's form parser. File parts are ignored."""

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    try:
        async with Request(request.scope, receive).form() as form:
            return {
                key: value
                for key, value in form.multi_items()
                if not isinstance(value, UploadFile)
            }
    except (MultiPartException, HTTPException) as e:
        raise BadRequestError(code="invalid_form", details={"error": str(e)})


@router.post(
    "/api/lead",
    response_model=LeadAccepted,
    response_model_exclude_none=True,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": LeadError},
        413: {"model": LeadError},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": LeadError},
    },
    summary="Submit a lead from the landing page form",
)
async def submit_lead(
    submission: Dict[str, Any] = Depends(read_submission),
    intake: LeadIntake = Depends(get_intake),
):
    result = await intake.submit(submission)
    if not result.accepted:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=LeadError(error=result.validation.error).model_dump(),
        )
    return LeadAccepted()
