"""
Exception hierarchy shared by the registry, the purchase gate and the ledger adapters.
"""


class BlockFestError(Exception):
    """Base class for all BlockFest errors"""


# VIP registry

class SourceUnavailable(BlockFestError):
    """The VIP list backing file could not be read"""


class CacheUnavailable(BlockFestError):
    """A lookup was attempted while the VIP cache holds no valid snapshot"""


# Purchase gate

class GateError(BlockFestError):
    """A purchase attempt was stopped before reaching the ledger"""


class EventInactive(GateError):
    def __init__(self, message: str = "Event is not active. Ticket purchase is disabled."):
        super().__init__(message)


class AlreadyOwnsTicket(GateError):
    def __init__(self, message: str = "You already own a ticket. Insiders can only buy one ticket."):
        super().__init__(message)


class MissingField(GateError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required purchase field: {field}")


class PriceMismatch(GateError):
    def __init__(self, quoted: str, expected: str, is_vip: bool):
        self.quoted = quoted
        self.expected = expected
        self.is_vip = is_vip
        tier = "insider" if is_vip else "outsider"
        super().__init__(f"Quoted price {quoted} does not match the {tier} price {expected}")


# Ledger

class LedgerError(BlockFestError):
    """The ledger could not be reached or returned an unusable answer"""


class LedgerRejected(LedgerError):
    """A submission reached the ledger and was refused"""

    def __init__(self, reason: str, tx_hash: str = None):
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(f"Revert reason: {reason}")


class LedgerTimeout(LedgerError):
    """No answer within the bound; the transaction outcome is unknown"""

    def __init__(self, message: str, tx_hash: str = None):
        self.tx_hash = tx_hash
        super().__init__(message)


# Authentication

class AuthError(BlockFestError):
    pass


class InvalidCredential(AuthError):
    pass


class ExpiredCredential(AuthError):
    pass


class AuthUnavailable(AuthError):
    """Firebase Admin is not configured on this server"""


class VIPServiceError(BlockFestError):
    """The VIP check endpoint could not give an answer"""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)
