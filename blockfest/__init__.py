"""
BlockFest ticketing backend

VIP allowlist verification, purchase pre-flight checks and ledger access for
NFT event tickets.
"""

__version__ = "1.0.0"
