"""Color theme and styling for the TUI."""

from vocabmaster.core.annotation import SegmentKind
from vocabmaster.core.models import MasteryStatus

# Urwid palette for the application
# Format: (name, foreground, background)

PALETTE = [
    # Mastery status
    ("learned", "light green", ""),
    ("learning", "yellow", ""),
    ("new", "white", ""),

    # Lyric highlights
    ("plain", "white", ""),
    ("pending", "black", "yellow"),
    ("known_word", "light green,bold", ""),
    ("related", "light cyan", ""),
    ("selected", "standout", ""),

    # Cursor (current word) - underline variants
    ("cursor", "white,underline", ""),
    ("cursor_pending", "black,underline", "yellow"),
    ("cursor_known_word", "light green,underline", ""),
    ("cursor_related", "light cyan,underline", ""),
    ("cursor_selected", "standout,underline", ""),

    # UI elements
    ("header", "white", "dark blue"),
    ("footer", "white", "dark gray"),
    ("tab_active", "white,bold", "dark blue"),
    ("tab_inactive", "light gray", "dark gray"),

    # List items
    ("list_item", "white", ""),
    ("list_item_focus", "white,bold", "dark cyan"),

    # Content
    ("content_title", "white,bold", ""),

    # Status/info
    ("info", "light cyan", ""),
    ("success", "light green", ""),
    ("warning", "yellow", ""),
    ("error", "light red", ""),

    # Practice
    ("card_word", "white,bold", ""),
    ("card_answer", "light green", ""),
    ("card_hint", "dark gray", ""),
    ("option", "white", ""),
    ("option_correct", "black", "dark green"),
    ("option_wrong", "white", "dark red"),

    # Dialog
    ("dialog", "white", "dark gray"),
    ("dialog_title", "white,bold", "dark blue"),
    ("button", "white", "dark gray"),
    ("button_focus", "white,bold", "dark blue"),
]

STATUS_ATTRS = {
    MasteryStatus.LEARNED: "learned",
    MasteryStatus.LEARNING: "learning",
    MasteryStatus.NEW: "new",
}

SEGMENT_ATTRS = {
    SegmentKind.PLAIN: "plain",
    SegmentKind.SELECTED: "pending",
    SegmentKind.KNOWN: "known_word",
    SegmentKind.RELATED: "related",
}


def get_status_attr(status: MasteryStatus) -> str:
    """Get attribute name for a mastery status."""
    return STATUS_ATTRS.get(status, "new")


def get_segment_attr(kind: SegmentKind, is_cursor: bool = False, is_selected: bool = False) -> str:
    """Get attribute name for a lyric word, with cursor and selection."""
    if is_selected:
        return "cursor_selected" if is_cursor else "selected"
    attr = SEGMENT_ATTRS.get(kind, "plain")
    if not is_cursor:
        return attr
    return "cursor" if attr == "plain" else f"cursor_{attr}"
