"""
Pre-flight checks run before a ticket purchase is sent to the ledger.

These checks only stop attempts the ledger would refuse anyway; the ledger
stays the source of truth and may still reject a submission that passes.
"""

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from ..errors import AlreadyOwnsTicket, EventInactive, MissingField, PriceMismatch
from ..models import EventPrices, PurchaseIntent, PurchaseSubmission, Ticket

logger = logging.getLogger(__name__)


def resolve_price(is_vip: bool, event_prices: EventPrices) -> Optional[str]:
    """Insider price for VIPs, outsider price for everyone else"""
    return event_prices.insider if is_vip else event_prices.outsider


def same_amount(quoted, price) -> bool:
    """Numeric comparison of two ether amounts; an unparseable amount never matches"""
    try:
        return Decimal(str(quoted).strip()) == Decimal(str(price).strip())
    except InvalidOperation:
        return False


def check_eligibility(wallet_address: str, is_vip: bool,
                      owned_ticket_ids: Sequence[int], event_is_active: bool) -> None:
    """
    Raise if this wallet may not buy right now.

    Event state is checked before ownership. Only VIPs are capped at one
    ticket; outsiders have no client-side cap.
    """
    if not event_is_active:
        raise EventInactive()
    if is_vip and owned_ticket_ids:
        logger.warning(f"Wallet {wallet_address} already owns tickets {list(owned_ticket_ids)} as VIP")
        raise AlreadyOwnsTicket()


def build_purchase_submission(ticket: Ticket, is_vip: bool, event_prices: EventPrices,
                              qr_token: Optional[str],
                              quoted_price: Optional[str] = None) -> PurchaseSubmission:
    """
    Assemble the buyTicket parameters.

    Args:
        ticket: the ticket being bought
        is_vip: result of the VIP check for this attempt
        event_prices: prices read from the ledger for this attempt
        qr_token: QR payload to register with the ticket
        quoted_price: price shown to the user, if any; must match the tier price

    Returns:
        PurchaseSubmission ready for LedgerWriter.submit_purchase
    """
    if not ticket.token_uri:
        raise MissingField("tokenURI")
    if not qr_token:
        raise MissingField("qrToken")

    price = resolve_price(is_vip, event_prices)
    if not price:
        raise MissingField("price")

    if quoted_price is not None and not same_amount(quoted_price, price):
        raise PriceMismatch(str(quoted_price), str(price), is_vip)

    return PurchaseSubmission(
        token_uri=ticket.token_uri,
        qr_token=qr_token,
        outsider_flag=not is_vip,
        value=str(price),
    )


def submission_from_intent(intent: PurchaseIntent, event_prices: EventPrices) -> PurchaseSubmission:
    """Validate a full purchase intent against fresh prices"""
    if intent.quoted_price is None:
        raise MissingField("quotedPrice")
    ticket = Ticket(ticket_id=intent.ticket_id, token_uri=intent.token_uri)
    return build_purchase_submission(
        ticket,
        intent.is_vip,
        event_prices,
        intent.qr_token,
        quoted_price=intent.quoted_price,
    )


def make_qr_token(ticket_id: int) -> str:
    return f"qr-{ticket_id}-{int(time.time() * 1000)}"
