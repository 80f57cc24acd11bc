"""
Input validation utilities for the Soulbound Token Registry.

Provides reusable validators for Algorand addresses. Every wallet that reaches
the registry service passes through validate_algorand_address first.
"""
from algosdk import encoding

from domain.constants import ZERO_ADDRESS
from domain.errors import InvalidAddressError


def validate_algorand_address(address: str, field: str | None = None) -> str:
    """
    Validate an Algorand address format and checksum.

    Args:
        address: Algorand wallet address string
        field: Optional parameter name, included in the error message

    Returns:
        The validated address (unchanged)

    Raises:
        InvalidAddressError (HTTP 400) if the address is invalid
    """
    if not address:
        raise InvalidAddressError("Wallet address is required", field=field)

    if len(address) != 58:
        raise InvalidAddressError(
            f"Invalid Algorand address: expected 58 characters, got {len(address)}",
            field=field,
        )

    if not encoding.is_valid_address(address):
        raise InvalidAddressError(
            f"Invalid Algorand address checksum: {address[:12]}...",
            field=field,
        )

    return address


def validate_recipient_address(address: str, field: str | None = None) -> str:
    """Like validate_algorand_address, but also rejects the zero address."""
    validate_algorand_address(address, field=field)
    if address == ZERO_ADDRESS:
        raise InvalidAddressError("The zero address is not a valid recipient", field=field)
    return address

