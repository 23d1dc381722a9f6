"""
Ledger access over web3: read-only views of the EventManager/TicketNFT
contracts and signed buyTicket/sellTicketBack submissions.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception, Web3RPCError

from ..config import Settings
from ..errors import LedgerError, LedgerRejected, LedgerTimeout
from ..models import EventDetails, EventPrices, TicketData, TransactionResult

logger = logging.getLogger(__name__)


def _fn(name: str, inputs=(), outputs=(), mutability: str = "view") -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t, "internalType": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t, "internalType": t} for t in outputs],
        "stateMutability": mutability,
    }


# Subset of the EventManager ABI this backend calls
EVENT_MANAGER_ABI = [
    _fn("eventActive", outputs=["bool"]),
    _fn("maxTickets", outputs=["uint256"]),
    _fn("ticketCount", outputs=["uint256"]),
    _fn("ticketPriceInsider", outputs=["uint256"]),
    _fn("ticketPriceOutsider", outputs=["uint256"]),
    _fn("issuedTickets", inputs=[("", "uint256")], outputs=["uint256"]),
    _fn("getOwnedTickets", inputs=[("user", "address")], outputs=["uint256[]"]),
    _fn("ticketNFT", outputs=["address"]),
    _fn("buyTicket", inputs=[("tokenURI", "string"), ("qrHash", "string"), ("outsider", "bool")],
        mutability="payable"),
    _fn("sellTicketBack", inputs=[("tokenId", "uint256")], mutability="nonpayable"),
]

TICKET_NFT_ABI = [
    _fn("tokenURI", inputs=[("tokenId", "uint256")], outputs=["string"]),
    _fn("ownerOf", inputs=[("tokenId", "uint256")], outputs=["address"]),
    _fn("getQRHash", inputs=[("tokenId", "uint256")], outputs=["string"]),
]


def load_abi(path: str) -> List[Dict[str, Any]]:
    """Load a contract ABI file; accepts a bare array or a Hardhat/Truffle artifact with an .abi key"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LedgerError(f"Cannot read contract ABI from {path}: {e}") from e

    if isinstance(data, list):
        abi = data
    elif isinstance(data, dict) and isinstance(data.get("abi"), list):
        logger.info("ABI found in .abi property")
        abi = data["abi"]
    else:
        raise LedgerError("Invalid ABI format: expected an array or an object with an 'abi' array")

    logger.info(f"ABI contains {len(abi)} definitions")
    return abi


def revert_reason(error: Exception) -> str:
    """Raw revert text as supplied by the node"""
    message = getattr(error, "message", None)
    if message:
        return str(message)
    return str(error) or "Unknown error"


def format_ether(wei: int) -> str:
    return str(Web3.from_wei(wei, "ether"))


def parse_ether(amount: str) -> int:
    try:
        return Web3.to_wei(Decimal(str(amount)), "ether")
    except (InvalidOperation, ValueError) as e:
        raise LedgerError(f"Invalid ether amount: {amount}") from e


def checksum(address: str) -> str:
    try:
        return Web3.to_checksum_address(address)
    except (ValueError, TypeError) as e:
        raise LedgerError(f"Invalid wallet address: {address}") from e


class LedgerReader:
    """Point-in-time snapshot reads; no consistency across separate calls"""

    def __init__(self, rpc_url: str = None, contract_address: str = None,
                 abi: Optional[List[Dict[str, Any]]] = None,
                 ticket_nft_address: Optional[str] = None,
                 timeout: float = 5.0, web3: Optional[Web3] = None):
        if web3 is None:
            if not rpc_url:
                raise LedgerError("ETH_RPC_URL is not configured")
            web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        if not contract_address:
            raise LedgerError("CONTRACT_ADDRESS is not configured")

        self.w3 = web3
        self.timeout = timeout
        self.event_manager = self.w3.eth.contract(address=checksum(contract_address),
                                                  abi=abi or EVENT_MANAGER_ABI)
        self._ticket_nft_address = ticket_nft_address
        self._ticket_nft = None
        logger.info(f"Ledger reader initialized for contract {contract_address}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "LedgerReader":
        abi = load_abi(settings.contract_abi_path) if settings.contract_abi_path else None
        return cls(
            rpc_url=settings.eth_rpc_url,
            contract_address=settings.contract_address,
            abi=abi,
            ticket_nft_address=settings.ticket_nft_address,
            timeout=settings.ledger_timeout,
        )

    def _call(self, description: str, contract_function) -> Any:
        try:
            return contract_function.call()
        except requests.exceptions.Timeout as e:
            raise LedgerTimeout(f"Timed out after {self.timeout}s reading {description}") from e
        except ContractLogicError as e:
            raise LedgerError(f"{description} reverted: {revert_reason(e)}") from e
        except (Web3Exception, requests.exceptions.RequestException) as e:
            raise LedgerError(f"Failed to read {description}: {e}") from e

    @property
    def ticket_nft(self):
        if self._ticket_nft is None:
            address = self._ticket_nft_address
            if not address:
                address = self._call("ticketNFT", self.event_manager.functions.ticketNFT())
            self._ticket_nft = self.w3.eth.contract(address=checksum(address), abi=TICKET_NFT_ABI)
        return self._ticket_nft

    # -------- reads --------

    def is_event_active(self) -> bool:
        return bool(self._call("eventActive", self.event_manager.functions.eventActive()))

    def get_prices(self) -> EventPrices:
        functions = self.event_manager.functions
        insider = self._call("ticketPriceInsider", functions.ticketPriceInsider())
        outsider = self._call("ticketPriceOutsider", functions.ticketPriceOutsider())
        return EventPrices(insider=format_ether(insider), outsider=format_ether(outsider))

    def get_event_details(self) -> EventDetails:
        functions = self.event_manager.functions
        return EventDetails(
            is_active=self.is_event_active(),
            max_tickets=int(self._call("maxTickets", functions.maxTickets())),
            current_tickets=int(self._call("ticketCount", functions.ticketCount())),
            prices=self.get_prices(),
        )

    def get_owned_ticket_ids(self, wallet_address: str) -> List[int]:
        owned = self._call("getOwnedTickets",
                           self.event_manager.functions.getOwnedTickets(checksum(wallet_address)))
        return [int(token_id) for token_id in owned]

    def get_issued_ticket_ids(self) -> List[int]:
        functions = self.event_manager.functions
        count = int(self._call("ticketCount", functions.ticketCount()))
        return [int(self._call(f"issuedTickets({i})", functions.issuedTickets(i))) for i in range(count)]

    def get_ticket_metadata_uri(self, ticket_id: int) -> str:
        return self._call(f"tokenURI({ticket_id})", self.ticket_nft.functions.tokenURI(ticket_id))

    def get_qr_hash(self, ticket_id: int) -> str:
        return self._call(f"getQRHash({ticket_id})", self.ticket_nft.functions.getQRHash(ticket_id))

    def get_all_ticket_data(self) -> List[TicketData]:
        """Owner, token URI and QR hash for every issued ticket; unreadable tickets are skipped"""
        token_ids = self.get_issued_ticket_ids()
        if not token_ids:
            logger.info("No tickets found")
            return []

        logger.info(f"Found {len(token_ids)} token IDs. Fetching details...")
        tickets = []
        for token_id in token_ids:
            try:
                owner = self._call(f"ownerOf({token_id})", self.ticket_nft.functions.ownerOf(token_id))
                tickets.append(TicketData(
                    token_id=token_id,
                    owner=owner,
                    token_uri=self.get_ticket_metadata_uri(token_id),
                    qr_hash=self.get_qr_hash(token_id),
                ))
            except LedgerTimeout:
                raise
            except LedgerError as e:
                # Burned or resold tokens can fail ownerOf
                logger.warning(f"Could not fetch details for token ID {token_id}: {e}")

        logger.info(f"Successfully fetched data for {len(tickets)} tickets")
        return tickets


class TransactionHandle:
    """A submitted transaction whose outcome is decided on the ledger"""

    def __init__(self, web3: Web3, tx_hash: str, confirmation_timeout: float = 120.0):
        self.w3 = web3
        self.tx_hash = tx_hash
        self.confirmation_timeout = confirmation_timeout

    def wait(self, timeout: Optional[float] = None) -> TransactionResult:
        """
        Block until the receipt is mined.

        Raises:
            LedgerRejected: the transaction was mined and reverted
            LedgerTimeout: no receipt within the bound; outcome unknown
        """
        timeout = timeout or self.confirmation_timeout
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(self.tx_hash, timeout=timeout)
        except (TimeExhausted, requests.exceptions.Timeout) as e:
            raise LedgerTimeout(
                f"Transaction {self.tx_hash} not confirmed within {timeout}s; "
                f"it may still succeed or fail on-chain",
                tx_hash=self.tx_hash,
            ) from e

        if receipt["status"] != 1:
            raise LedgerRejected("transaction reverted on-chain", tx_hash=self.tx_hash)

        logger.info(f"Transaction confirmed: {self.tx_hash}")
        return TransactionResult(tx_hash=self.tx_hash, block_number=receipt["blockNumber"])


class LedgerWriter:
    """Signs and sends EventManager transactions from a single wallet key"""

    def __init__(self, reader: LedgerReader, private_key: str, confirmation_timeout: float = 120.0):
        if not private_key:
            raise LedgerError("WALLET_PRIVATE_KEY is not configured")
        self.reader = reader
        self.w3 = reader.w3
        self.account = self.w3.eth.account.from_key(private_key)
        self.confirmation_timeout = confirmation_timeout

    @property
    def address(self) -> str:
        return self.account.address

    def _send(self, description: str, contract_function, value: int = 0) -> TransactionHandle:
        try:
            tx = contract_function.build_transaction({
                "from": self.account.address,
                "value": value,
                "nonce": self.w3.eth.get_transaction_count(self.account.address),
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed.raw_transaction))
        except ContractLogicError as e:
            raise LedgerRejected(revert_reason(e)) from e
        except Web3RPCError as e:
            raise LedgerRejected(revert_reason(e)) from e
        except requests.exceptions.Timeout as e:
            raise LedgerTimeout(f"Timed out submitting {description}; check the wallet before retrying") from e
        except (Web3Exception, requests.exceptions.RequestException) as e:
            raise LedgerError(f"Failed to submit {description}: {e}") from e

        logger.info(f"{description} submitted: {tx_hash}")
        return TransactionHandle(self.w3, tx_hash, self.confirmation_timeout)

    def submit_purchase(self, token_uri: str, qr_token: str, outsider_flag: bool, value: str) -> TransactionHandle:
        logger.info(f"Calling buyTicket with URI: {token_uri}, QR: {qr_token}, "
                    f"Outsider: {outsider_flag}, Value: {value} ETH")
        function = self.reader.event_manager.functions.buyTicket(token_uri, qr_token, outsider_flag)
        return self._send("buyTicket", function, value=parse_ether(value))

    def submit_resale(self, ticket_id: int) -> TransactionHandle:
        function = self.reader.event_manager.functions.sellTicketBack(ticket_id)
        return self._send(f"sellTicketBack({ticket_id})", function)
