from __future__ import annotations

OPEN_TICKET_BUTTON_ID = "ticket:open"
OPEN_TICKET_MODAL_ID = "ticket:open:modal"
CLOSE_TICKET_BUTTON_ID = "ticket:close"
CLOSE_TICKET_MODAL_ID = "ticket:close:modal"

COLOR_PANEL = 0xFF6B35
COLOR_SUCCESS = 0x00FF00
COLOR_ERROR = 0xFF0000
COLOR_CLOSING = 0xFFA500
COLOR_LOG = 0xFF6B6B

DEFAULT_EMBED_BORDER = "#202225"

TOPIC_MAX_LENGTH = 1024
CHANNEL_NAME_MAX_LENGTH = 100

STALE_CLEANUP_REASON = "Automatic cleanup - inactive ticket"
