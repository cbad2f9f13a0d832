"""
Shared test doubles: an in-memory ledger and an in-memory Pinata.
Nothing here touches the network.
"""
import hashlib
import json
from urllib.parse import urlparse

import pytest

from models import ChainKind, PayoutConfig, SettlementResult
from pointer_store import PointerStore

XRPL_ADDRESS = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
EVM_ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

TEST_POLICIES = {
    ChainKind.NATIVE: PayoutConfig(
        units_per_point=10_000, max_units_per_claim=1_000_000, min_units_per_claim=1_000
    ),
    ChainKind.EVM: PayoutConfig(
        units_per_point=10**16, max_units_per_claim=10**18, min_units_per_claim=10**14
    ),
}


class FakeLedger:
    def __init__(self, chain, balance=10**30, result=None, address="custodial"):
        self.chain = chain.value
        self.balance = balance
        self.result = result
        self._address = address
        self.balance_calls = 0
        self.payments = []

    @property
    def account_address(self):
        return self._address

    def check_balance(self):
        self.balance_calls += 1
        return self.balance

    def submit_payment(self, to, units, memo=None):
        self.payments.append((to, units, memo))
        if self.result is not None:
            return self.result
        return SettlementResult.settled(f"tx-{len(self.payments)}", units)


class FakeResponse:
    def __init__(self, status_code=200, body=None, content=None):
        self.status_code = status_code
        self._body = body
        if content is None:
            content = json.dumps(body).encode() if body is not None else b""
        self.content = content

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    @property
    def text(self):
        return self.content.decode("utf-8", "replace")

    def json(self):
        return json.loads(self.content)


def _cid(data: bytes) -> str:
    return "bafy" + hashlib.sha256(data).hexdigest()[:40]


class FakePinata:
    """Just enough of pinFileToIPFS / pinJSONToIPFS / pinList / gateway."""

    def __init__(self):
        self.blobs = {}
        self.pins = []   # (cid, name) in pin order
        self.calls = []
        self.fail_pins_with = None

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, kwargs))
        path = urlparse(url).path

        if path == "/pinning/pinJSONToIPFS":
            if self.fail_pins_with:
                return FakeResponse(self.fail_pins_with[0], content=self.fail_pins_with[1].encode())
            body = kwargs["json"]
            data = json.dumps(body["pinataContent"], sort_keys=True).encode()
            name = (body.get("pinataMetadata") or {}).get("name")
            return self._pin(data, name)

        if path == "/pinning/pinFileToIPFS":
            if self.fail_pins_with:
                return FakeResponse(self.fail_pins_with[0], content=self.fail_pins_with[1].encode())
            _, data = kwargs["files"]["file"]
            meta = kwargs.get("data", {}).get("pinataMetadata")
            name = json.loads(meta)["name"] if meta else None
            return self._pin(data, name)

        if path == "/data/pinList":
            params = kwargs.get("params", {})
            rows = [
                {"ipfs_pin_hash": cid, "metadata": {"name": name}}
                for cid, name in reversed(self.pins)
                if "metadata[name]" not in params or name == params["metadata[name]"]
            ]
            limit = int(params.get("pageLimit", 10))
            return FakeResponse(200, {"rows": rows[:limit]})

        if path.startswith("/ipfs/"):
            cid = path[len("/ipfs/"):]
            if cid not in self.blobs:
                return FakeResponse(404, content=b"not found")
            return FakeResponse(200, content=self.blobs[cid])

        return FakeResponse(404, content=b"unknown route")

    def _pin(self, data, name):
        cid = _cid(data)
        self.blobs[cid] = data
        self.pins.append((cid, name))
        return FakeResponse(200, {"IpfsHash": cid})

    def put_raw_pin(self, name, content: bytes):
        return self._pin(content, name).json()["IpfsHash"]


@pytest.fixture
def pinata():
    return FakePinata()


@pytest.fixture
def store(pinata):
    return PointerStore(
        "test-jwt",
        api_url="https://api.pinata.test",
        gateway_url="https://gateway.test",
        session=pinata,
    )
