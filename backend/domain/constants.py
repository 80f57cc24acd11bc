"""
Domain constants used across services/routers.
"""

# Algorand zero address (32 zero bytes + checksum). A token bound to it is
# transferable; an admin set to it has renounced the registry.
ZERO_ADDRESS = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAY5HFKQ"

# Singleton registry row
REGISTRY_STATE_ID = 1

# First token ID handed out by mint()
FIRST_TOKEN_ID = 0
