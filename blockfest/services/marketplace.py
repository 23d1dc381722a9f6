"""
Marketplace client: the buyer-side purchase flow.

Each purchase attempt starts from scratch: VIP status comes from the backend,
event state, prices and ownership are re-read from the ledger, the gate runs,
and only then is a transaction signed. Nothing here retries.
"""

import logging
from typing import List, Optional, Union

import requests

from ..errors import LedgerError, VIPServiceError
from ..models import PurchaseIntent, TicketListing, TransactionResult, VIPStatus
from .ledger import LedgerReader, LedgerWriter, TransactionHandle
from .metadata import MetadataService
from .purchase_gate import check_eligibility, make_qr_token, resolve_price, submission_from_intent

logger = logging.getLogger(__name__)


class MarketplaceClient:
    def __init__(self, api_url: str, id_token: Optional[str], ledger: LedgerReader,
                 writer: Optional[LedgerWriter] = None,
                 metadata: Optional[MetadataService] = None,
                 timeout: float = 5.0,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip("/")
        self.id_token = id_token
        self.ledger = ledger
        self.writer = writer
        self.metadata = metadata or MetadataService()
        self.timeout = timeout
        self.session = session or requests.Session()

    # -------- VIP verification --------

    def check_vip(self, name: str, roll_number: str, wallet_address: str) -> VIPStatus:
        """Ask the backend whether (name, roll, wallet) is on the insider list"""
        headers = {"Authorization": f"Bearer {self.id_token}"} if self.id_token else {}
        payload = {"name": name, "rollNumber": roll_number, "walletAddress": wallet_address}
        try:
            response = self.session.post(f"{self.api_url}/api/check-vip", json=payload,
                                         headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise VIPServiceError(f"VIP check timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise VIPServiceError(f"VIP check failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200:
            detail = body.get("detail", body) if isinstance(body, dict) else {}
            message = detail.get("message") if isinstance(detail, dict) else None
            raise VIPServiceError(message or f"VIP check failed with HTTP {response.status_code}",
                                  status_code=response.status_code)

        return VIPStatus(
            is_vip=bool(body.get("isVIP")),
            wallet_address=body.get("walletAddress"),
            message=body.get("message"),
        )

    # -------- purchase / resale --------

    def _require_writer(self) -> LedgerWriter:
        if self.writer is None:
            raise LedgerError("No wallet key configured; cannot submit transactions")
        return self.writer

    def buy_ticket(self, ticket_id: int, vip: VIPStatus, quoted_price: Optional[str] = None,
                   wait: bool = True) -> Union[TransactionResult, TransactionHandle]:
        """
        Run the purchase gate against fresh ledger reads and submit buyTicket.

        Args:
            ticket_id: ticket being bought
            vip: VIP check result for this attempt
            quoted_price: price the buyer was shown; defaults to the tier price read now
            wait: block for the receipt instead of returning the handle
        """
        writer = self._require_writer()
        wallet = writer.address
        if vip.is_vip and vip.wallet_address and vip.wallet_address.lower() != wallet.lower():
            logger.warning(f"VIP wallet {vip.wallet_address} differs from signing wallet {wallet}")

        event_is_active = self.ledger.is_event_active()
        prices = self.ledger.get_prices()
        owned = self.ledger.get_owned_ticket_ids(wallet)
        check_eligibility(wallet, vip.is_vip, owned, event_is_active)

        intent = PurchaseIntent(
            ticket_id=ticket_id,
            token_uri=self.ledger.get_ticket_metadata_uri(ticket_id),
            requester_wallet=wallet,
            is_vip=vip.is_vip,
            quoted_price=quoted_price if quoted_price is not None else resolve_price(vip.is_vip, prices),
            qr_token=make_qr_token(ticket_id),
        )
        submission = submission_from_intent(intent, prices)
        logger.info(f"Buying ticket {ticket_id} for {wallet} (VIP: {vip.is_vip}, price: {submission.value} ETH)")

        handle = writer.submit_purchase(submission.token_uri, submission.qr_token,
                                        submission.outsider_flag, submission.value)
        return handle.wait() if wait else handle

    def resell_ticket(self, ticket_id: int, wait: bool = True) -> Union[TransactionResult, TransactionHandle]:
        handle = self._require_writer().submit_resale(ticket_id)
        return handle.wait() if wait else handle

    # -------- listings --------

    def list_available_tickets(self, is_vip: bool, with_metadata: bool = True) -> List[TicketListing]:
        price = resolve_price(is_vip, self.ledger.get_prices())
        return [self._listing(ticket_id, price, with_metadata)
                for ticket_id in self.ledger.get_issued_ticket_ids()]

    def owned_tickets(self, wallet_address: str, with_metadata: bool = True) -> List[TicketListing]:
        price = self.ledger.get_prices().outsider
        return [self._listing(ticket_id, price, with_metadata)
                for ticket_id in self.ledger.get_owned_ticket_ids(wallet_address)]

    def _listing(self, ticket_id: int, price: Optional[str], with_metadata: bool) -> TicketListing:
        try:
            uri = self.ledger.get_ticket_metadata_uri(ticket_id)
        except LedgerError as e:
            logger.error(f"Error getting token URI for {ticket_id}: {e}")
            uri = None
        metadata = self.metadata.fetch(uri) if (with_metadata and uri) else None
        return TicketListing(ticket_id=ticket_id, token_uri=uri, price=price, metadata=metadata)
