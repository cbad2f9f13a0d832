# state_routes.py
"""
Blob publishing and the global-state pointer.

Pattern for writers: publish the new state blob -> POST /api/state/update
with its CID. Readers: GET /api/state/latest -> fetch the CID from a gateway.
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

import config
from errors import PinningServiceError, RewardsError
from pointer_store import PointerStore
from wallets import get_pointer_store

logger = logging.getLogger(__name__)
router = APIRouter(tags=["state"])


def _http_error(e: RewardsError) -> HTTPException:
    status = e.http_status
    if isinstance(e, PinningServiceError) and e.status_code:
        status = e.status_code
    return HTTPException(status, e.message)


class PointerUpdateRequest(BaseModel):
    latest: Optional[str] = None
    name: Optional[str] = None


@router.post("/api/state/update")
def update_pointer(body: PointerUpdateRequest, store: PointerStore = Depends(get_pointer_store)):
    if not body.latest:
        raise HTTPException(400, "Missing latest CID")
    name = body.name or config.STATE_POINTER_NAME
    try:
        pointer_cid = store.set_pointer(name, body.latest)
    except RewardsError as e:
        logger.warning("Pointer update failed: %s", e.message)
        raise _http_error(e)
    return {"pointerBlobId": pointer_cid}


@router.get("/api/state/latest")
def latest_pointer(name: Optional[str] = None, store: PointerStore = Depends(get_pointer_store)):
    try:
        record = store.get_pointer_record(name or config.STATE_POINTER_NAME)
    except RewardsError as e:
        logger.warning("Pointer read failed: %s", e.message)
        raise _http_error(e)
    if record is None:
        return {"cid": None}
    return {
        "cid": record.latest_content_id,
        "pointerBlobId": record.pointer_blob_id,
        "updatedAt": record.updated_at,
    }


@router.post("/api/pinata/upload")
async def upload(request: Request, store: PointerStore = Depends(get_pointer_store)):
    content_type = request.headers.get("content-type", "")
    try:
        if "multipart/form-data" in content_type:
            form = await request.form()
            file = form.get("file")
            doc = form.get("json")

            if file is not None and hasattr(file, "read"):
                data = await file.read()
                filename = file.filename or "upload.bin"
                cid = await run_in_threadpool(store.publish_blob, data, None, filename)
                return {"cid": cid}

            if isinstance(doc, str):
                cid = await run_in_threadpool(store.publish_json, _parse_json(doc))
                return {"cid": cid}

            raise HTTPException(400, "No file or json provided")

        # raw JSON body
        body = await request.body()
        if body:
            cid = await run_in_threadpool(store.publish_json, _parse_json(body))
            return {"cid": cid}

        raise HTTPException(415, "Unsupported content type")
    except RewardsError as e:
        logger.warning("Upload failed: %s", e.message)
        raise _http_error(e)


def _parse_json(raw):
    try:
        return json.loads(raw)
    except ValueError as e:
        raise HTTPException(400, f"Invalid JSON: {e}")


@router.get("/api/pinata/list")
def list_pins(store: PointerStore = Depends(get_pointer_store)):
    try:
        return {"cids": store.list_blobs()}
    except RewardsError as e:
        raise _http_error(e)
