# funnel_builder/domain/blocks.py
from __future__ import annotations

import time
import uuid
from copy import deepcopy
from typing import Any, Collection, Dict, List, Literal, NotRequired, TypedDict, Union

BlockType = Literal[
    "text",
    "image",
    "button",
    "form",
    "video",
    "code",
    "map",
    "testimonial",
    "calendar",
    "ecommerce",
    "team",
    "chart",
    "audio",
    "countdown",
    "social",
    "spacer",
    "container",
    "grid",
    "tabs",
    "accordion",
]

BLOCK_TYPES: tuple[str, ...] = (
    "text",
    "image",
    "button",
    "form",
    "video",
    "code",
    "map",
    "testimonial",
    "calendar",
    "ecommerce",
    "team",
    "chart",
    "audio",
    "countdown",
    "social",
    "spacer",
    "container",
    "grid",
    "tabs",
    "accordion",
)

CONTAINER_TYPES = frozenset({"container", "grid", "tabs", "accordion"})


# -------------------------------------------------
# Per-type content payloads
# -------------------------------------------------
class TextContent(TypedDict, total=False):
    text: str
    fontSize: str
    fontWeight: str
    textAlign: str
    color: str


class ImageContent(TypedDict, total=False):
    src: str
    alt: str
    width: str
    objectFit: str


class ButtonContent(TypedDict, total=False):
    text: str
    url: str
    variant: str
    size: str
    fullWidth: bool


class FormField(TypedDict):
    type: str
    label: str
    required: bool


class FormContent(TypedDict, total=False):
    title: str
    fields: List[FormField]
    buttonText: str


class VideoContent(TypedDict, total=False):
    src: str
    poster: str
    autoplay: bool
    controls: bool


class CodeContent(TypedDict, total=False):
    code: str
    language: str


class MapContent(TypedDict, total=False):
    address: str
    zoom: int
    height: str


class TestimonialContent(TypedDict, total=False):
    quote: str
    author: str
    position: str
    avatar: str
    rating: int


class CalendarContent(TypedDict, total=False):
    type: str
    calendarId: str
    timeSlots: List[str]


class EcommerceContent(TypedDict, total=False):
    name: str
    price: str
    image: str
    description: str
    buyUrl: str


class TeamMember(TypedDict):
    name: str
    position: str
    photo: str
    bio: str


class TeamContent(TypedDict, total=False):
    members: List[TeamMember]


class ChartContent(TypedDict, total=False):
    type: str
    data: List[Any]
    title: str


class AudioContent(TypedDict, total=False):
    src: str
    title: str
    autoplay: bool
    controls: bool


class CountdownContent(TypedDict, total=False):
    targetDate: str
    title: str
    showDays: bool
    showHours: bool
    showMinutes: bool
    showSeconds: bool


class SocialContent(TypedDict, total=False):
    platforms: List[str]
    style: str


class SpacerContent(TypedDict, total=False):
    height: str


class ContainerContent(TypedDict, total=False):
    title: str
    labels: List[str]
    columns: int
    gap: str


BlockContent = Union[
    TextContent,
    ImageContent,
    ButtonContent,
    FormContent,
    VideoContent,
    CodeContent,
    MapContent,
    TestimonialContent,
    CalendarContent,
    EcommerceContent,
    TeamContent,
    ChartContent,
    AudioContent,
    CountdownContent,
    SocialContent,
    SpacerContent,
    ContainerContent,
]


# -------------------------------------------------
# Shared envelope
# -------------------------------------------------
class BlockSettings(TypedDict):
    padding: str
    margin: str
    backgroundColor: str
    borderRadius: str
    animation: NotRequired[str]


class Block(TypedDict):
    id: str
    type: str
    content: Dict[str, Any]
    settings: BlockSettings
    children: NotRequired[List["Block"]]


DEFAULT_BLOCK_SETTINGS: BlockSettings = {
    "padding": "16px",
    "margin": "0 0 16px 0",
    "backgroundColor": "transparent",
    "borderRadius": "0px",
}

# Content every block type starts with when dropped from the library.
DEFAULT_BLOCK_CONTENT: Dict[str, BlockContent] = {
    "text": {
        "text": "Enter your text here",
        "fontSize": "16px",
        "fontWeight": "normal",
        "textAlign": "left",
        "color": "#1f2937",
    },
    "image": {
        "src": "https://via.placeholder.com/400x300",
        "alt": "Image",
        "width": "100%",
        "objectFit": "cover",
    },
    "button": {
        "text": "Click Me",
        "url": "#",
        "variant": "primary",
        "size": "medium",
        "fullWidth": False,
    },
    "form": {
        "title": "Contact Us",
        "fields": [
            {"type": "text", "label": "Name", "required": True},
            {"type": "email", "label": "Email", "required": True},
            {"type": "textarea", "label": "Message", "required": False},
        ],
        "buttonText": "Submit",
    },
    "video": {"src": "", "poster": "", "autoplay": False, "controls": True},
    "code": {"code": "<div>Hello World</div>", "language": "html"},
    "map": {"address": "New York, NY", "zoom": 12, "height": "300px"},
    "testimonial": {
        "quote": "This service is amazing! Highly recommended.",
        "author": "John Doe",
        "position": "CEO, Company Inc.",
        "avatar": "",
        "rating": 5,
    },
    "calendar": {"type": "booking", "calendarId": "", "timeSlots": []},
    "ecommerce": {
        "name": "Product Name",
        "price": "$99.99",
        "image": "https://via.placeholder.com/300x300",
        "description": "Product description here",
        "buyUrl": "#",
    },
    "team": {
        "members": [
            {
                "name": "Team Member",
                "position": "Position",
                "photo": "https://via.placeholder.com/200x200",
                "bio": "Short bio here",
            }
        ]
    },
    "chart": {"type": "bar", "data": [], "title": "Chart Title"},
    "audio": {"src": "", "title": "Audio Title", "autoplay": False, "controls": True},
    "countdown": {
        "targetDate": "",
        "title": "Event Countdown",
        "showDays": True,
        "showHours": True,
        "showMinutes": True,
        "showSeconds": True,
    },
    "social": {
        "platforms": ["facebook", "twitter", "linkedin", "instagram"],
        "style": "buttons",
    },
    "spacer": {"height": "50px"},
    "container": {"title": "Container"},
    "grid": {"title": "Grid Layout", "columns": 3, "gap": "16px"},
    "tabs": {"title": "Tabs", "labels": ["Tab 1", "Tab 2"]},
    "accordion": {"title": "Accordion", "labels": ["Section 1"]},
}


def new_id(prefix: str, taken: Collection[str] = ()) -> str:
    """
    Generate a document-local id: <prefix>-<epoch millis>-<random suffix>.

    Ids only need to be unique within one funnel; `taken` lets callers
    exclude ids already present in the tree.
    """
    while True:
        candidate = f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
        if candidate not in taken:
            return candidate


def is_block_type(value: Any) -> bool:
    return value in BLOCK_TYPES


def create_block(
    block_type: str,
    content: Dict[str, Any] | None = None,
    settings: Dict[str, Any] | None = None,
    *,
    block_id: str | None = None,
) -> Block:
    """
    Instantiate a library block with defaults merged with overrides.

    Raises ValueError for an unknown block type.
    """
    if not is_block_type(block_type):
        raise ValueError(f"Unknown block type: {block_type}")

    block: Block = {
        "id": block_id or new_id("block"),
        "type": block_type,
        "content": {**deepcopy(DEFAULT_BLOCK_CONTENT.get(block_type, {})), **(content or {})},
        "settings": {**DEFAULT_BLOCK_SETTINGS, **(settings or {})},  # type: ignore[typeddict-item]
    }

    if block_type in CONTAINER_TYPES:
        block["children"] = []

    return block
