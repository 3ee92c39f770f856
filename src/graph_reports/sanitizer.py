import re

FOOTER_PHRASES = ("Reply in Microsoft Planner",)

# Any tag other than an opening or closing hyperlink tag.
_NON_LINK_TAG = re.compile(r"<(?!/?a[\s>])/?[a-z!][^>]*>", re.IGNORECASE)
_LINE_BREAKS = "\r\n"


def strip_markup(text: str) -> str:
    return _NON_LINK_TAG.sub("", text)


def truncate_at_footer(text: str) -> str:
    positions = [text.find(phrase) for phrase in FOOTER_PHRASES]
    found = [pos for pos in positions if pos >= 0]
    if not found:
        return text
    return text[: min(found)]


def sanitize_comment(text: str | None) -> str:
    """Clean a Planner comment body for export.

    Tags are stripped (hyperlinks kept), everything from the Planner reply
    footer onwards is dropped, and surrounding line breaks collapse to a single
    trailing newline.
    """
    cleaned = truncate_at_footer(strip_markup(text or ""))
    return cleaned.strip(_LINE_BREAKS) + "\n"
