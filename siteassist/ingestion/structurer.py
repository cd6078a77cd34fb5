"""
Content Structurer
Buckets a fetched page's units by semantic role
"""
import logging

from siteassist.ingestion.content import ContentDocument, ContentUnit, StructuredContent

logger = logging.getLogger(__name__)

# Headings at or above this level also count as navigation
NAVIGATION_MAX_LEVEL = 2
# Link text must be longer than this to be kept
MIN_LINK_TEXT_CHARS = 3


class ContentStructurer:
    """
    Pure classification of content units into navigation, main content,
    interactive and informational buckets.
    Deterministic and order-preserving within each bucket.
    """

    @staticmethod
    def structure(document: ContentDocument) -> StructuredContent:
        structured = StructuredContent()

        for heading in document.headings:
            if heading.level <= NAVIGATION_MAX_LEVEL:
                structured.navigation.append(ContentUnit(
                    type="heading",
                    content=heading.text,
                    metadata={"level": heading.level, "id": heading.id},
                    context=f"Main section: {heading.text}",
                ))

            structured.main_content.append(ContentUnit(
                type="heading",
                content=heading.text,
                metadata={"level": heading.level, "id": heading.id},
            ))

        for index, paragraph in enumerate(document.paragraphs):
            structured.informational.append(ContentUnit(
                type="paragraph",
                content=paragraph,
                metadata={"index": index, "length": len(paragraph)},
            ))
            structured.main_content.append(ContentUnit(
                type="paragraph",
                content=paragraph,
                metadata={"index": index},
            ))

        for index, content_list in enumerate(document.lists):
            structured.informational.append(ContentUnit(
                type="list",
                content=f"{content_list.type.upper()} LIST: {'; '.join(content_list.items)}",
                metadata={
                    "listType": content_list.type,
                    "itemCount": len(content_list.items),
                    "index": index,
                },
            ))

        for index, link in enumerate(document.links):
            if link.text and len(link.text) > MIN_LINK_TEXT_CHARS:
                structured.interactive.append(ContentUnit(
                    type="link",
                    content=f"Link: {link.text} ({link.url})",
                    metadata={
                        "url": link.url,
                        "isInternal": link.is_internal,
                        "index": index,
                    },
                ))

        logger.debug(
            f"Structured {document.url}: "
            + ", ".join(f"{name}={len(units)}" for name, units in structured.buckets().items())
        )

        return structured


__all__ = ["ContentStructurer"]
