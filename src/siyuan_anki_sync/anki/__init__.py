"""AnkiConnect client and the synced note type."""

from .client import AnkiClient
from .schema import CARD_TEMPLATE, DECK_SEPARATOR, MODEL_CSS, MODEL_FIELDS

__all__ = [
    "CARD_TEMPLATE",
    "DECK_SEPARATOR",
    "MODEL_CSS",
    "MODEL_FIELDS",
    "AnkiClient",
]
