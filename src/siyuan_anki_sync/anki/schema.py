"""Fixed Anki note type used for synced flashcards.

The field order matters: the first field is Anki's sort field and the card
template refers to fields by name, so the list is created once and never
reordered.
"""

MODEL_FIELDS: tuple[str, ...] = (
    "front",
    "back",
    "id",
    "parent_id",
    "root_id",
    "box",
    "deck",
    "type",
    "subtype",
    "created",
    "updated",
)

CARD_TEMPLATE: dict[str, str] = {
    "Name": "Card 1",
    "Front": "{{front}}",
    "Back": "{{FrontSide}}\n\n<hr id=answer>\n\n{{back}}",
}

MODEL_CSS = """.card {
    font-family: arial;
    font-size: 20px;
    text-align: left;
    color: black;
    background-color: white;
}
"""

DECK_SEPARATOR = "::"


def is_deck_prefix(ancestor: str, deck: str) -> bool:
    """Return True if ``ancestor`` is a strict ancestor deck of ``deck``.

    "A::B" is an ancestor of "A::B::C" but not of "A::BC".
    """
    return deck.startswith(ancestor + DECK_SEPARATOR)


def is_in_subtree(root: str, deck: str) -> bool:
    """Return True if ``deck`` is ``root`` itself or one of its descendants."""
    return deck == root or is_deck_prefix(root, deck)
