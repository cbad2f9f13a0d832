# pointer_store.py
"""
"Latest state" pointer on top of an immutable, content-addressed store.

Blobs are pinned through the Pinata API and read back through an IPFS
gateway. Because a CID is derived from the bytes, nothing can be
updated in place; instead a small JSON record

    {"latest": "<cid>", "updatedAt": "<iso8601>"}

is pinned with metadata name == pointer name, and the most recently
pinned record with that name is the current one.

set_pointer is NOT compare-and-swap: two concurrent writers both
succeed and the later pin wins at read time. Writers that need
linearizable updates must go through advance() (one process) or an
external lock.
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import requests

from errors import BackendUnavailable, MissingCredential, PinningServiceError, PublishFailed
from models import PointerRecord

logger = logging.getLogger(__name__)

IPFS_SCHEME = "ipfs://"


def strip_ipfs_scheme(cid: str) -> str:
    cid = cid.strip()
    if cid.startswith(IPFS_SCHEME):
        return cid[len(IPFS_SCHEME):]
    return cid


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PointerStore:
    def __init__(
        self,
        jwt: str,
        api_url: str = "https://api.pinata.cloud",
        gateway_url: str = "https://ipfs.io",
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self._jwt = jwt
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._name_locks: Dict[str, threading.Lock] = {}
        self._name_locks_guard = threading.Lock()

    # ────────────────────────────────────────────────────────
    # HTTP helpers
    # ────────────────────────────────────────────────────────

    def _auth_headers(self) -> Dict[str, str]:
        if not self._jwt:
            raise MissingCredential("Missing PINATA_JWT")
        return {"Authorization": f"Bearer {self._jwt}"}

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise BackendUnavailable(f"Pinning service unreachable: {e}")

    def _pin(self, path: str, **kwargs) -> str:
        resp = self._request("POST", f"{self.api_url}{path}", **kwargs)
        if not resp.ok:
            raise PublishFailed(resp.text, status_code=resp.status_code)
        try:
            return resp.json()["IpfsHash"]
        except (ValueError, KeyError, TypeError):
            raise PublishFailed(f"Unexpected pin response: {resp.text}", status_code=resp.status_code)

    def _pin_list(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        resp = self._request(
            "GET", f"{self.api_url}/data/pinList",
            params=params, headers=self._auth_headers(),
        )
        if not resp.ok:
            raise PinningServiceError(resp.text, status_code=resp.status_code)
        try:
            rows = resp.json().get("rows")
        except (ValueError, AttributeError):
            raise PinningServiceError(f"Unexpected pinList response: {resp.text}", status_code=resp.status_code)
        return rows if isinstance(rows, list) else []

    # ────────────────────────────────────────────────────────
    # Blobs
    # ────────────────────────────────────────────────────────

    def publish_blob(
        self, data: bytes, name: Optional[str] = None, filename: str = "upload.bin"
    ) -> str:
        headers = self._auth_headers()
        form = {}
        if name:
            form["pinataMetadata"] = json.dumps({"name": name})
        cid = self._pin(
            "/pinning/pinFileToIPFS",
            headers=headers,
            files={"file": (filename, data)},
            data=form,
        )
        logger.info("Pinned blob: cid=%s bytes=%d", cid, len(data))
        return cid

    def publish_json(self, document: Any, name: Optional[str] = None) -> str:
        headers = self._auth_headers()
        body: Dict[str, Any] = {"pinataContent": document}
        if name:
            body["pinataMetadata"] = {"name": name}
        cid = self._pin("/pinning/pinJSONToIPFS", headers=headers, json=body)
        logger.info("Pinned JSON: cid=%s name=%s", cid, name)
        return cid

    def fetch_blob(self, cid: str) -> bytes:
        resp = self._request("GET", f"{self.gateway_url}/ipfs/{strip_ipfs_scheme(cid)}")
        if not resp.ok:
            raise PinningServiceError(
                f"Gateway returned {resp.status_code} for {cid}", status_code=resp.status_code
            )
        return resp.content

    def list_blobs(self, limit: int = 100) -> List[str]:
        rows = self._pin_list({
            "status": "pinned",
            "pageLimit": str(limit),
            "includeCount": "false",
        })
        return [r["ipfs_pin_hash"] for r in rows if isinstance(r, dict) and r.get("ipfs_pin_hash")]

    # ────────────────────────────────────────────────────────
    # Pointer
    # ────────────────────────────────────────────────────────

    def set_pointer(self, name: str, content_id: str) -> str:
        """Pin a new pointer record for ``name``; returns the record's own CID."""
        content_id = strip_ipfs_scheme(content_id)
        record = {"latest": content_id, "updatedAt": _now_iso()}
        pointer_cid = self.publish_json(record, name=name)
        logger.info("Pointer %s -> %s (record %s)", name, content_id, pointer_cid)
        return pointer_cid

    def get_pointer_record(self, name: str) -> Optional[PointerRecord]:
        rows = self._pin_list({
            "status": "pinned",
            "metadata[name]": name,
            "pageLimit": "1",
            "order": "DESC",
        })
        first = rows[0] if rows else None
        pointer_cid = first.get("ipfs_pin_hash") if isinstance(first, dict) else None
        if not pointer_cid:
            return None

        # a missing or garbled record reads the same as "no state yet"
        try:
            doc = json.loads(self.fetch_blob(pointer_cid))
        except (PinningServiceError, BackendUnavailable, ValueError) as e:
            logger.warning("Pointer record %s unreadable: %s", pointer_cid, e)
            return None

        latest = doc.get("latest") if isinstance(doc, dict) else None
        if not latest or not isinstance(latest, str):
            return None
        return PointerRecord(
            name=name,
            latest_content_id=latest,
            updated_at=doc.get("updatedAt"),
            pointer_blob_id=pointer_cid,
        )

    def get_pointer(self, name: str) -> Optional[str]:
        record = self.get_pointer_record(name)
        return record.latest_content_id if record else None

    def _name_lock(self, name: str) -> threading.Lock:
        with self._name_locks_guard:
            if name not in self._name_locks:
                self._name_locks[name] = threading.Lock()
            return self._name_locks[name]

    def advance(
        self,
        name: str,
        build_next: Callable[[Optional[str]], Union[bytes, Any]],
    ) -> Tuple[str, str]:
        """
        Serialized read -> build -> publish -> set_pointer for one name.

        ``build_next`` receives the current CID (or None) and returns the
        next state, either raw bytes or a JSON-serializable document.
        Returns (content_cid, pointer_cid). Only serializes writers in
        this process.
        """
        with self._name_lock(name):
            current = self.get_pointer(name)
            nxt = build_next(current)
            if isinstance(nxt, (bytes, bytearray)):
                content_cid = self.publish_blob(bytes(nxt))
            else:
                content_cid = self.publish_json(nxt)
            pointer_cid = self.set_pointer(name, content_cid)
            return content_cid, pointer_cid
