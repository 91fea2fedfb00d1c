# =============================================================================
# lib/sanitize.py - Input Sanitization
# =============================================================================
# Field-level sanitizers and validators used at the request boundary:
# - strip_control_chars / clean_text: generic text hygiene
# - sanitize_html: allow-list HTML sanitizer for stories, bios, admin notes
# - sanitize_name / sanitize_display_name / sanitize_bio: profile fields
# - validate_username / validate_email
#
# Sanitizers return cleaned values; validators return bools. Neither raises,
# the caller decides which field errors to report.
# =============================================================================

import html
import re
from html.parser import HTMLParser

CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
# Keeps \t, \n and \r for multi-line fields
CONTROL_CHARS_MULTILINE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

NAME_DISALLOWED_RE = re.compile(r"[^a-zA-Z\s'-]")
DISPLAY_NAME_DISALLOWED_RE = re.compile(r"[^a-zA-Z0-9\s'.-]")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
JAVASCRIPT_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
EVENT_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)

MAX_INPUT_LENGTH = 10_000
MAX_NAME_LENGTH = 50
MAX_DISPLAY_NAME_LENGTH = 100
MAX_BIO_LENGTH = 1000
MAX_EMAIL_LENGTH = 254
MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 30


# =============================================================================
# Text Hygiene
# =============================================================================

def strip_control_chars(value: str, keep_newlines: bool = False) -> str:
    """Remove ASCII control characters (optionally keeping tab/newline)."""
    pattern = CONTROL_CHARS_MULTILINE_RE if keep_newlines else CONTROL_CHARS_RE
    return pattern.sub("", value)


def clean_text(value: str | None, max_length: int, keep_newlines: bool = False) -> str:
    """Trim, strip control characters and truncate."""
    if not value or not isinstance(value, str):
        return ""
    return strip_control_chars(value, keep_newlines=keep_newlines).strip()[:max_length]


# =============================================================================
# HTML Sanitizer
# =============================================================================

ALLOWED_TAGS = frozenset({
    "p", "br", "strong", "em", "u", "s", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "blockquote", "a", "img", "div", "span", "table", "thead",
    "tbody", "tr", "td", "th", "hr", "pre", "code",
})
VOID_TAGS = frozenset({"br", "hr", "img"})
ALLOWED_ATTRS = frozenset({
    "href", "title", "alt", "src", "width", "height", "class", "id",
    "target", "rel", "colspan", "rowspan",
})
URI_ATTRS = frozenset({"href", "src"})
SAFE_URI_SCHEMES = ("http:", "https:", "mailto:", "tel:")
# Content of these elements is dropped along with the tags
DROP_CONTENT_TAGS = frozenset({"script", "style", "iframe", "object", "embed", "template", "noscript"})


def _is_safe_uri(value: str) -> bool:
    compact = strip_control_chars(value).strip().replace(" ", "").lower()
    if ":" not in compact.split("/", 1)[0]:
        # Relative URL, no scheme
        return True
    return compact.startswith(SAFE_URI_SCHEMES)


class _AllowListHTMLParser(HTMLParser):
    """Rebuilds markup keeping only allow-listed tags and attributes."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self.open_tags: list[str] = []
        self._drop_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in DROP_CONTENT_TAGS:
            self._drop_depth += 1
            return
        if self._drop_depth or tag not in ALLOWED_TAGS:
            return

        kept = []
        for name, value in attrs:
            if name not in ALLOWED_ATTRS or value is None:
                continue
            if name in URI_ATTRS and not _is_safe_uri(value):
                continue
            kept.append(f' {name}="{html.escape(value, quote=True)}"')

        self.parts.append(f"<{tag}{''.join(kept)}>")
        if tag not in VOID_TAGS:
            self.open_tags.append(tag)

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)
        if tag in self.open_tags and tag not in VOID_TAGS:
            self.handle_endtag(tag)

    def handle_endtag(self, tag):
        if tag in DROP_CONTENT_TAGS:
            self._drop_depth = max(self._drop_depth - 1, 0)
            return
        if self._drop_depth or tag not in self.open_tags:
            return
        # Close anything left open inside this element
        while self.open_tags:
            open_tag = self.open_tags.pop()
            self.parts.append(f"</{open_tag}>")
            if open_tag == tag:
                break

    def handle_data(self, data):
        if not self._drop_depth:
            self.parts.append(html.escape(data, quote=False))

    def result(self) -> str:
        self.close()
        while self.open_tags:
            self.parts.append(f"</{self.open_tags.pop()}>")
        return "".join(self.parts)


def sanitize_html(value: str | None) -> str:
    """
    Sanitize HTML, keeping a small allow-list of formatting tags.

    Scripts, event-handler attributes and non-http(s) links are removed.
    Text content of unknown tags is kept (escaped).

    Example:
        sanitize_html('<p onclick="x()">Hi<script>alert(1)</script></p>')
        # '<p>Hi</p>'
    """
    if not value or not isinstance(value, str):
        return ""
    parser = _AllowListHTMLParser()
    parser.feed(value)
    return parser.result()


# =============================================================================
# Profile Fields
# =============================================================================

def sanitize_name(value: str | None) -> str:
    """First/last name: letters, spaces, hyphens and apostrophes, max 50."""
    cleaned = clean_text(value, max_length=MAX_INPUT_LENGTH)
    return NAME_DISALLOWED_RE.sub("", cleaned)[:MAX_NAME_LENGTH].strip()


def sanitize_display_name(value: str | None) -> str:
    """Display name: letters, digits, spaces and ' . -, max 100."""
    cleaned = clean_text(value, max_length=MAX_INPUT_LENGTH)
    return DISPLAY_NAME_DISALLOWED_RE.sub("", cleaned)[:MAX_DISPLAY_NAME_LENGTH].strip()


def sanitize_bio(value: str | None) -> str:
    """Bio: control characters and script vectors removed, HTML sanitized, max 1000."""
    if not value or not isinstance(value, str):
        return ""
    cleaned = strip_control_chars(value, keep_newlines=True)
    cleaned = JAVASCRIPT_SCHEME_RE.sub("", cleaned)
    cleaned = EVENT_HANDLER_RE.sub("", cleaned)
    return sanitize_html(cleaned).strip()[:MAX_BIO_LENGTH]


def validate_username(value: str | None) -> bool:
    """
    Usernames are 3-30 characters of letters, digits and hyphens, and must
    start and end with a letter or digit.

    The raw (trimmed) value is checked; nothing is stripped first, so
    "jane_doe" is rejected rather than silently becoming "janedoe".
    """
    if not value or not isinstance(value, str):
        return False
    candidate = value.strip()
    if not MIN_USERNAME_LENGTH <= len(candidate) <= MAX_USERNAME_LENGTH:
        return False
    return USERNAME_RE.match(candidate) is not None


def normalize_email(value: str | None) -> str:
    return clean_text(value, max_length=MAX_EMAIL_LENGTH + 1).lower()


def validate_email(value: str | None) -> bool:
    """Basic shape check: something@something.tld, at most 254 characters."""
    if not value or not isinstance(value, str):
        return False
    candidate = value.strip().lower()
    if len(candidate) > MAX_EMAIL_LENGTH:
        return False
    return EMAIL_RE.match(candidate) is not None
