"""
Runtime configuration read from the environment (.env is loaded by the entry points).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

VIP_LIST_HEADER = "Name,RollNumber,WalletAddress"

# Written by ensure_exists() when the insider list is missing on first run
DEFAULT_VIP_LIST = (
    f"{VIP_LIST_HEADER}\n"
    "Pranay,02717711623,0x1234567890\n"
    "Sidharth,02217711623,0x9876543210\n"
)

DEFAULT_INSIDER_LIST_PATH = Path(__file__).resolve().parent.parent / "data" / "insiderLists.csv"

IPFS_GATEWAY = "https://ipfs.io/ipfs/"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass
class Settings:
    port: int = 5001
    cors_origin: str = "*"
    firebase_service_account_path: Optional[str] = None
    insider_list_path: Path = DEFAULT_INSIDER_LIST_PATH
    vip_list_bootstrap: bool = True
    vip_watch_interval: float = 1.0
    vip_check_max_requests: int = 10
    vip_check_window_seconds: int = 60
    eth_rpc_url: Optional[str] = None
    contract_address: Optional[str] = None
    contract_abi_path: Optional[str] = None
    ticket_nft_address: Optional[str] = None
    ledger_timeout: float = 5.0
    tx_confirmation_timeout: float = 120.0
    wallet_private_key: Optional[str] = None
    api_url: str = "http://localhost:5001"
    ipfs_gateway: str = IPFS_GATEWAY

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            port=int(os.getenv("PORT", "5001")),
            cors_origin=os.getenv("CORS_ORIGIN", "*"),
            firebase_service_account_path=_env_str("FIREBASE_SERVICE_ACCOUNT_PATH"),
            insider_list_path=Path(os.getenv("INSIDER_LIST_PATH") or DEFAULT_INSIDER_LIST_PATH),
            vip_list_bootstrap=_env_bool("VIP_LIST_BOOTSTRAP", True),
            vip_watch_interval=float(os.getenv("VIP_WATCH_INTERVAL_SECONDS", "1.0")),
            vip_check_max_requests=int(os.getenv("VIP_CHECK_MAX_REQUESTS", "10")),
            vip_check_window_seconds=int(os.getenv("VIP_CHECK_WINDOW_SECONDS", "60")),
            eth_rpc_url=_env_str("ETH_RPC_URL"),
            contract_address=_env_str("CONTRACT_ADDRESS"),
            contract_abi_path=_env_str("CONTRACT_ABI_PATH"),
            ticket_nft_address=_env_str("TICKET_NFT_ADDRESS"),
            ledger_timeout=float(os.getenv("LEDGER_TIMEOUT_SECONDS", "5")),
            tx_confirmation_timeout=float(os.getenv("TX_CONFIRMATION_TIMEOUT_SECONDS", "120")),
            wallet_private_key=_env_str("WALLET_PRIVATE_KEY"),
            api_url=os.getenv("BLOCKFEST_API_URL", "http://localhost:5001").rstrip("/"),
            ipfs_gateway=os.getenv("IPFS_GATEWAY", IPFS_GATEWAY),
        )

    @property
    def ledger_configured(self) -> bool:
        return bool(self.eth_rpc_url and self.contract_address)
