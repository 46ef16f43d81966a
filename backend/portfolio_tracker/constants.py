"""
Application Constants

Centralized constants for Coinbase endpoints, token claims, TTLs and paging.
"""

# Coinbase v2 API
COINBASE_API_HOST = "api.coinbase.com"
ACCOUNTS_PATH = "/v2/accounts"
TRANSACTIONS_PATH = "/v2/accounts/{account_id}/transactions"
SPOT_PRICE_PATH = "/v2/prices/{base}-{quote}/spot"

# CDP JWT
JWT_ISSUER = "cdp"  # Coinbase Developer Platform
JWT_ALGORITHM = "ES256"  # ECDSA with P-256 curve and SHA-256
JWT_LIFETIME_SECONDS = 120  # Expires in 2 minutes
JWT_NONCE_BYTES = 16

# Request executor
REQUEST_TIMEOUT = 30.0
MAX_RETRIES = 3
BODY_EXCERPT_LENGTH = 200

# Portfolio
DEFAULT_QUOTE_CURRENCY = "USD"
DEFAULT_ANCHOR_CURRENCY = "BTC"
APY_NOT_AVAILABLE = "N/A"
DEFAULT_APY_VALUES = {"", "0", "0%", "0.0%", "0.00%"}

# Cache TTLs (in seconds)
PORTFOLIO_CACHE_TTL = 300  # 5 minutes

# Pagination
ACCOUNTS_PAGE_LIMIT = 100
MAX_ACCOUNT_PAGES = 10  # Safety limit to prevent infinite loops
TRANSACTIONS_PAGE_LIMIT = 100
MAX_TRANSACTION_PAGES = 100
TRANSACTION_PAGE_DELAY = 0.5  # Seconds between transaction pages (rate limit)

# Transaction types that move net invested
BUY_TYPE = "buy"
SELL_TYPE = "sell"

# Upstream statuses that mean "this account's history cannot be read"
INVESTED_UNKNOWN_STATUSES = {401, 403, 404}
