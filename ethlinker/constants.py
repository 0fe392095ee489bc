# Library placeholders occupy one address worth of hex characters
ADDRESS_LENGTH = 20
PLACEHOLDER_LENGTH = 2 * ADDRESS_LENGTH
PLACEHOLDER_PREFIX = "__"
PLACEHOLDER_FILL = "_"
# Compilers keep this many characters of the library name, the slot ends in "__"
PLACEHOLDER_NAME_LENGTH = PLACEHOLDER_LENGTH - 2 * len(PLACEHOLDER_PREFIX)

# Legacy and EIP-155 offsets for the signature's v value
V_OFFSET_LEGACY = 27
V_OFFSET_EIP155 = 35

# Deployment defaults
DEFAULT_GAS_LIMIT = 5_500_000
DEFAULT_GAS_PRICE_GWEI = 5
