"""
Content schemas and data models
Fetched page documents and the typed units the structurer produces from them
"""
from typing import List, Dict, Any, Optional, Protocol
from pydantic import BaseModel, ConfigDict, Field


class Heading(BaseModel):
    level: int = Field(ge=1, le=6)
    text: str
    id: Optional[str] = None


class ContentList(BaseModel):
    """An ordered (ol) or unordered (ul) list"""
    type: str = Field(default="ul", description="ul or ol")
    items: List[str] = Field(default_factory=list)


class Link(BaseModel):
    url: str
    text: str
    is_internal: bool = False


class Image(BaseModel):
    src: str
    alt: str = ""
    title: str = ""


class PageMetadata(BaseModel):
    author: str = ""
    keywords: str = ""
    published_time: str = ""
    modified_time: str = ""


class ContentDocument(BaseModel):
    """
    Structured page content as returned by a content fetcher.
    """
    url: str
    title: str = ""
    description: str = ""
    headings: List[Heading] = Field(default_factory=list)
    paragraphs: List[str] = Field(default_factory=list)
    lists: List[ContentList] = Field(default_factory=list)
    links: List[Link] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    metadata: PageMetadata = Field(default_factory=PageMetadata)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://docs.example.com",
                "title": "Example Docs",
                "description": "Product documentation",
                "headings": [{"level": 1, "text": "Pricing", "id": "pricing"}],
                "paragraphs": ["Plans start at ten dollars per month for small teams."],
                "lists": [{"type": "ul", "items": ["Free tier", "Pro tier"]}],
                "links": [{"url": "https://docs.example.com/faq", "text": "Read the FAQ", "is_internal": True}],
                "images": [],
                "metadata": {"author": "Docs Team"}
            }
        }
    )

    def text_for_embedding(self) -> str:
        """
        Flatten the document into one text block: title, description,
        markdown-style headings, paragraphs, then list items.
        """
        parts: List[str] = []
        if self.title:
            parts.append(f"Title: {self.title}")
        if self.description:
            parts.append(f"Description: {self.description}")
        parts.extend(f"{'#' * heading.level} {heading.text}" for heading in self.headings)
        parts.extend(self.paragraphs)
        for content_list in self.lists:
            parts.extend(f"- {item}" for item in content_list.items)
        return "\n\n".join(parts)


class ContentUnit(BaseModel):
    """
    One typed fragment of a page. Immutable once created.
    """
    type: str = Field(description="heading, paragraph, list or link")
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    context: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class StructuredContent(BaseModel):
    """
    Content units bucketed by semantic role.
    Bucket names double as vector namespace suffixes.
    """
    main_content: List[ContentUnit] = Field(default_factory=list, serialization_alias="mainContent")
    navigation: List[ContentUnit] = Field(default_factory=list)
    interactive: List[ContentUnit] = Field(default_factory=list)
    informational: List[ContentUnit] = Field(default_factory=list)

    def buckets(self) -> Dict[str, List[ContentUnit]]:
        """Buckets keyed by content type, in a fixed order"""
        return {
            "mainContent": self.main_content,
            "navigation": self.navigation,
            "interactive": self.interactive,
            "informational": self.informational,
        }


class FetchFailure(BaseModel):
    url: str
    error: str


class FetchOptions(BaseModel):
    max_pages: int = 10
    include_images: bool = False
    include_links: bool = True
    timeout_seconds: float = 30.0
    wait_for_selector: Optional[str] = None


class ContentFetcher(Protocol):
    """Turns a URL into a structured content document"""

    async def fetch(self, url: str, options: Optional[FetchOptions] = None) -> ContentDocument:
        ...


CONTENT_TYPES = ("mainContent", "navigation", "interactive", "informational")


__all__ = [
    "Heading",
    "ContentList",
    "Link",
    "Image",
    "PageMetadata",
    "ContentDocument",
    "ContentUnit",
    "StructuredContent",
    "FetchFailure",
    "FetchOptions",
    "ContentFetcher",
    "CONTENT_TYPES",
]
