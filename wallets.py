# wallets.py
"""
Process-scoped custodial accounts and the services built on them.

Built lazily on first use and cached for the life of the process, so a
missing EVM key only disables EVM claims instead of the whole app.
"""
import logging
import threading

from eth_account import Account
from xrpl.wallet import Wallet

import config
from chain.evm_ledger import EvmLedgerClient, make_web3
from chain.native_ledger import NativeLedgerClient
from claim_service import ClaimService
from errors import ConfigurationError
from models import ChainKind
from pointer_store import PointerStore

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_ledgers = {}
_claim_service = None
_pointer_store = None


def _build_native() -> NativeLedgerClient:
    if not config.XRPL_WALLET_SEED:
        raise ConfigurationError("Missing server XRPL_WALLET_SEED")
    try:
        wallet = Wallet.from_seed(config.XRPL_WALLET_SEED)
    except Exception as e:
        raise ConfigurationError(f"XRPL_WALLET_SEED is not a valid seed: {e}")
    logger.info("Native custodial account: %s", wallet.classic_address)
    return NativeLedgerClient(config.XRPL_RPC_URL, wallet)


def _build_evm() -> EvmLedgerClient:
    if not config.EVM_PRIVATE_KEY:
        raise ConfigurationError("Missing EVM_DEPLOYER_PRIVATE_KEY")
    if not config.EVM_CHAIN_ID:
        raise ConfigurationError("EVM_CHAIN_ID must be set explicitly")
    try:
        chain_id = int(config.EVM_CHAIN_ID)
        account = Account.from_key(config.EVM_PRIVATE_KEY)
    except Exception as e:
        raise ConfigurationError(f"Invalid EVM configuration: {e}")
    logger.info("EVM custodial account: %s (chain %d)", account.address, chain_id)
    return EvmLedgerClient(
        make_web3(config.EVM_RPC_URL),
        account,
        chain_id,
        receipt_timeout=config.EVM_RECEIPT_TIMEOUT,
    )


_BUILDERS = {
    ChainKind.NATIVE: _build_native,
    ChainKind.EVM: _build_evm,
}


def get_ledger(chain: ChainKind):
    with _lock:
        if chain not in _ledgers:
            _ledgers[chain] = _BUILDERS[chain]()
        return _ledgers[chain]


def get_claim_service() -> ClaimService:
    global _claim_service
    if _claim_service is None:
        _claim_service = ClaimService(get_ledger, config.PAYOUT_POLICIES)
    return _claim_service


def get_pointer_store() -> PointerStore:
    global _pointer_store
    if _pointer_store is None:
        _pointer_store = PointerStore(
            config.PINATA_JWT,
            api_url=config.PINATA_API_URL,
            gateway_url=config.PINATA_GATEWAY_URL,
            timeout=config.HTTP_TIMEOUT,
        )
    return _pointer_store
