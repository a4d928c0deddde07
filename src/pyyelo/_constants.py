"""Internal constants shared across the library."""

BASE_URL = "https://api.yelo.shop"
USER_AGENT = "pyyelo/1"

# ------------------------------------------------------------------
# Durable storage keys (shared namespace with the web client)
# ------------------------------------------------------------------

CART_KEY = "yelo-cart"
WISHLIST_KEY = "yelo-wishlist"
WARDROBE_ITEMS_KEY = "yelo-wardrobe-items"
WARDROBE_LOOKS_KEY = "yelo-wardrobe-looks"
PURCHASED_ITEMS_KEY = "yelo-purchased-items"
RECENT_SEARCHES_KEY = "yelo_recent_searches"
READ_NOTIFICATIONS_KEY = "yelo_read_notifications"
TOKEN_KEY = "yelo_token"
BACKEND_USER_KEY = "yelo_backend_user"
SNAPSHOT_KEY_PREFIX = "yelo_snapshot_"

# ------------------------------------------------------------------
# Collection defaults
# ------------------------------------------------------------------

DEFAULT_SIZE = "M"
DEFAULT_COLOR = "White"
DEFAULT_ITEM_NAME = "Item"

MAX_RECENT_SEARCHES = 10

# ------------------------------------------------------------------
# Listing / progressive fetch defaults
# ------------------------------------------------------------------

DEFAULT_BATCH_SIZE = 6
#: Delay between revealed items in progressive mode (seconds).
PROGRESSIVE_REVEAL_DELAY = 0.1
#: Delay before the notification latch is released (seconds).
NOTIFICATION_RESET_DELAY = 0.1
