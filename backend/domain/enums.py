"""
Domain enums (minimal set used for clarity in services).
"""

from enum import Enum


class RegistryEventType(str, Enum):
    BOUND = "BOUND"
    UNBOUND = "UNBOUND"
    TRANSFER = "TRANSFER"
    APPROVAL = "APPROVAL"
    APPROVAL_FOR_ALL = "APPROVAL_FOR_ALL"
    ADMIN_TRANSFERRED = "ADMIN_TRANSFERRED"
