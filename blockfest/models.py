"""
Data models and schemas for the ticketing backend.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class VIPRecord:
    """One row of the insider list"""
    name: str
    roll_number: str
    wallet_address: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "rollNumber": self.roll_number,
            "walletAddress": self.wallet_address,
        }


@dataclass
class SkippedRow:
    line_number: int
    line: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"line": self.line_number, "content": self.line, "reason": self.reason}


@dataclass
class LoadReport:
    """Outcome of one successful VIP list load"""
    entries: int
    loaded_at: float
    skipped: List[SkippedRow] = field(default_factory=list)


@dataclass
class Identity:
    """Decoded Firebase ID token"""
    uid: str
    email: Optional[str] = None
    admin: bool = False

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        return cls(
            uid=claims.get("uid") or claims.get("sub", ""),
            email=claims.get("email"),
            admin=claims.get("admin") is True,
        )


@dataclass
class EventPrices:
    """Ticket prices in ether, kept as decimal strings"""
    insider: Optional[str]
    outsider: Optional[str]


@dataclass
class EventDetails:
    is_active: bool
    max_tickets: int
    current_tickets: int
    prices: EventPrices


@dataclass
class Ticket:
    """A ticket offered for purchase"""
    ticket_id: int
    token_uri: Optional[str]


@dataclass
class TicketData:
    """Admin view of an issued ticket"""
    token_id: int
    owner: str
    token_uri: Optional[str] = None
    qr_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokenId": self.token_id,
            "owner": self.owner,
            "tokenURI": self.token_uri,
            "qrHash": self.qr_hash or "N/A",
        }


@dataclass
class TicketListing:
    ticket_id: int
    token_uri: Optional[str]
    price: Optional[str]
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class PurchaseIntent:
    """A single purchase attempt; never persisted"""
    ticket_id: int
    token_uri: Optional[str]
    requester_wallet: str
    is_vip: bool
    quoted_price: Optional[str]
    qr_token: str


@dataclass
class PurchaseSubmission:
    """Parameters handed to the ledger's buyTicket call"""
    token_uri: str
    qr_token: str
    outsider_flag: bool
    value: str


@dataclass
class VIPStatus:
    is_vip: bool
    wallet_address: Optional[str] = None
    message: Optional[str] = None


@dataclass
class TransactionResult:
    tx_hash: str
    block_number: Optional[int] = None


# JSON Schema for ERC-721 token metadata served from tokenURI
TICKET_METADATA_SCHEMA = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {
            "type": "string",
            "minLength": 1,
            "description": "Ticket or event name shown on the card"
        },
        "description": {
            "type": ["string", "null"],
            "description": "Free text description of the event"
        },
        "image": {
            "type": ["string", "null"],
            "description": "Image URI, ipfs:// or https://"
        },
        "attributes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "trait_type": {"type": "string"},
                    "value": {"type": ["string", "number", "boolean"]}
                }
            }
        }
    }
}
