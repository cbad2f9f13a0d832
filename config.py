# config.py
from dotenv import load_dotenv
import os

from models import ChainKind, PayoutConfig

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return int(raw)


# ------------------------------------------------------------
# Native ledger (XRPL)
# ------------------------------------------------------------
XRPL_RPC_URL = os.getenv("XRPL_RPC_URL", "wss://s.altnet.rippletest.net:51233")
XRPL_WALLET_SEED = os.getenv("XRPL_WALLET_SEED", "")

XRPL_DROPS_PER_POINT = _int_env("XRPL_DROPS_PER_POINT", 10_000)       # 0.01 XRP
XRPL_MAX_DROPS_PER_TX = _int_env("XRPL_MAX_DROPS_PER_TX", 1_000_000)  # 1 XRP
XRPL_MIN_DROPS = _int_env("XRPL_MIN_DROPS", 1_000)

# ------------------------------------------------------------
# EVM sidechain
# ------------------------------------------------------------
EVM_RPC_URL = (
    os.getenv("EVM_RPC_URL")
    or os.getenv("RIPPLE_EVM_RPC_URL")
    or "https://rpc.testnet.xrplevm.org/"
)
EVM_PRIVATE_KEY = os.getenv("EVM_DEPLOYER_PRIVATE_KEY", "")

# Must be explicit. An empty value disables EVM claims.
EVM_CHAIN_ID = os.getenv("EVM_CHAIN_ID", "").strip()

EVM_WEI_PER_POINT = _int_env("EVM_WEI_PER_POINT", 10**16)   # 0.01 (18 decimals)
EVM_MAX_WEI_PER_TX = _int_env("EVM_MAX_WEI_PER_TX", 10**18)
EVM_MIN_WEI = _int_env("EVM_MIN_WEI", 10**14)

EVM_RECEIPT_TIMEOUT = _int_env("EVM_RECEIPT_TIMEOUT", 120)  # seconds

PAYOUT_POLICIES = {
    ChainKind.NATIVE: PayoutConfig(
        units_per_point=XRPL_DROPS_PER_POINT,
        max_units_per_claim=XRPL_MAX_DROPS_PER_TX,
        min_units_per_claim=XRPL_MIN_DROPS,
    ),
    ChainKind.EVM: PayoutConfig(
        units_per_point=EVM_WEI_PER_POINT,
        max_units_per_claim=EVM_MAX_WEI_PER_TX,
        min_units_per_claim=EVM_MIN_WEI,
    ),
}

# ------------------------------------------------------------
# Pinning service / state pointer
# ------------------------------------------------------------
PINATA_JWT = os.getenv("PINATA_JWT", "")
PINATA_API_URL = os.getenv("PINATA_API_URL", "https://api.pinata.cloud").rstrip("/")
PINATA_GATEWAY_URL = os.getenv("PINATA_GATEWAY_URL", "https://ipfs.io").rstrip("/")

STATE_POINTER_NAME = os.getenv("STATE_POINTER_NAME", "kleo-global-state-pointer")

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))  # seconds

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

print("Config loaded:")
print("  XRPL_RPC_URL:", XRPL_RPC_URL[:48])
print("  EVM_RPC_URL:", EVM_RPC_URL[:48])
print("  EVM_CHAIN_ID:", EVM_CHAIN_ID or "(unset, EVM claims disabled)")
print("  STATE_POINTER_NAME:", STATE_POINTER_NAME)
