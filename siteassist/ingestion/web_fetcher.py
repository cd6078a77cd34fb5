"""
HTML Content Fetcher
Downloads a page with aiohttp and extracts structured content with BeautifulSoup
"""
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse
import logging
import re

import aiohttp
from bs4 import BeautifulSoup, Tag

from siteassist.core.config import get_settings
from siteassist.core.errors import IngestionError
from siteassist.ingestion.content import (
    ContentDocument,
    ContentFetcher,
    ContentList,
    FetchFailure,
    FetchOptions,
    Heading,
    Image,
    Link,
    PageMetadata,
)

settings = get_settings()
logger = logging.getLogger(__name__)

# First match wins
MAIN_CONTENT_SELECTORS = [
    "main",
    "article",
    '[role="main"]',
    ".content",
    "#content",
    ".main-content",
    "body",
]

MIN_PARAGRAPH_CHARS = 20

USER_AGENT = (
    "Mozilla/5.0 (compatible; SiteAssistBot/1.0; +https://github.com/siteassist)"
)


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace"""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def _meta(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    return clean_text(tag.get("content"))


def _main_content(soup: BeautifulSoup) -> Tag:
    for selector in MAIN_CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            return element
    return soup


def parse_html(html: str, url: str, options: Optional[FetchOptions] = None) -> ContentDocument:
    """
    Extract a content document from raw HTML.

    Args:
        html: Page markup
        url: Final URL of the page, used to resolve relative links
        options: Controls link and image extraction

    Returns:
        ContentDocument with headings, paragraphs, lists, links and images
    """
    options = options or FetchOptions()
    soup = BeautifulSoup(html, "html.parser")

    # Scripts and styles never carry page content
    for element in soup(["script", "style", "noscript"]):
        element.decompose()

    root = _main_content(soup)
    hostname = urlparse(url).hostname or ""

    headings: List[Heading] = []
    for element in root.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]):
        text = clean_text(element.get_text(" "))
        if text:
            headings.append(Heading(
                level=int(element.name[1]),
                text=text,
                id=element.get("id") or None,
            ))

    paragraphs = [
        text
        for text in (clean_text(p.get_text(" ")) for p in root.find_all("p"))
        if len(text) > MIN_PARAGRAPH_CHARS
    ]

    lists: List[ContentList] = []
    for element in root.find_all(["ul", "ol"]):
        items = [clean_text(li.get_text(" ")) for li in element.find_all("li")]
        items = [item for item in items if item]
        if items:
            lists.append(ContentList(type=element.name, items=items))

    links: List[Link] = []
    if options.include_links:
        for element in root.find_all("a", href=True):
            href = element["href"].strip()
            text = clean_text(element.get_text(" "))
            if not href or not text or href.lower().startswith("javascript:"):
                continue
            absolute = urljoin(url, href)
            links.append(Link(
                url=absolute,
                text=text,
                is_internal=bool(hostname) and hostname in absolute,
            ))

    images: List[Image] = []
    if options.include_images:
        for element in root.find_all("img", src=True):
            images.append(Image(
                src=urljoin(url, element["src"]),
                alt=element.get("alt") or "",
                title=element.get("title") or "",
            ))

    title_tag = soup.find("title")

    return ContentDocument(
        url=url,
        title=clean_text(title_tag.get_text()) if title_tag else "",
        description=_meta(soup, name="description"),
        headings=headings,
        paragraphs=paragraphs,
        lists=lists,
        links=links,
        images=images,
        metadata=PageMetadata(
            author=_meta(soup, name="author"),
            keywords=_meta(soup, name="keywords"),
            published_time=_meta(soup, property="article:published_time"),
            modified_time=_meta(soup, property="article:modified_time"),
        ),
    )


class HtmlContentFetcher:
    """
    Fetches a single page over HTTP.
    Does not execute scripts, so client-rendered pages yield little content.
    """

    def __init__(self, user_agent: str = USER_AGENT):
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml",
        }

    async def fetch(self, url: str, options: Optional[FetchOptions] = None) -> ContentDocument:
        """
        Fetch and parse a page.

        Raises:
            IngestionError: network failure or non-200 response
        """
        options = options or FetchOptions(timeout_seconds=settings.FETCH_TIMEOUT_SECONDS)
        timeout = aiohttp.ClientTimeout(total=options.timeout_seconds)

        logger.info(f"Fetching {url}")

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=self._headers, allow_redirects=True) as response:
                    if response.status != 200:
                        raise IngestionError(
                            f"Failed to fetch {url}: HTTP {response.status}",
                            details={"url": url, "status": response.status},
                        )
                    html = await response.text()
                    final_url = str(response.url)
        except IngestionError:
            raise
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error(f"Failed to fetch {url}: {type(e).__name__}: {e}")
            raise IngestionError(f"Failed to fetch {url}: {e}", details={"url": url}) from e

        document = parse_html(html, final_url, options)

        logger.info(
            f"Fetched {final_url}: {len(document.paragraphs)} paragraphs, "
            f"{len(document.headings)} headings"
        )
        return document


async def fetch_many(
    fetcher: ContentFetcher,
    urls: List[str],
    options: Optional[FetchOptions] = None
) -> Tuple[List[ContentDocument], List[FetchFailure]]:
    """
    Fetch pages one after another. A failed page is recorded and skipped.
    """
    documents: List[ContentDocument] = []
    failures: List[FetchFailure] = []

    for url in urls:
        try:
            documents.append(await fetcher.fetch(url, options))
        except Exception as e:
            logger.warning(f"Batch fetch failed for {url}: {type(e).__name__}: {e}")
            failures.append(FetchFailure(url=url, error=getattr(e, "message", None) or str(e)))

    logger.info(f"Batch fetch finished: {len(documents)} ok, {len(failures)} failed")
    return documents, failures


__all__ = ["HtmlContentFetcher", "parse_html", "clean_text", "fetch_many"]
