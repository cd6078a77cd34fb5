"""
Unit tests for content structuring.
"""
from siteassist.ingestion.content import ContentDocument
from siteassist.ingestion.structurer import ContentStructurer

from helpers import sample_document


def _contents(units):
    return [unit.content for unit in units]


class TestHeadings:
    """Test heading placement."""

    def test_top_level_heading_in_navigation_and_main_content(self):
        """h1 lands in both buckets, h3 only in main content."""
        document = ContentDocument.model_validate({
            "url": "https://example.com",
            "headings": [
                {"level": 1, "text": "Pricing"},
                {"level": 3, "text": "FAQ"},
            ],
        })

        structured = ContentStructurer.structure(document)

        assert _contents(structured.navigation) == ["Pricing"]
        assert _contents(structured.main_content) == ["Pricing", "FAQ"]
        assert structured.navigation[0].context == "Main section: Pricing"
        assert structured.main_content[1].metadata == {"level": 3, "id": None}

    def test_h2_counts_as_navigation(self):
        """Level 2 is the deepest navigation heading."""
        document = ContentDocument.model_validate({
            "url": "https://example.com",
            "headings": [{"level": 2, "text": "Plans", "id": "plans"}],
        })

        structured = ContentStructurer.structure(document)

        assert structured.navigation[0].metadata == {"level": 2, "id": "plans"}


class TestBodyContent:
    """Test paragraphs, lists and links."""

    def test_paragraphs_in_informational_and_main_content(self):
        """Paragraphs are duplicated with different metadata."""
        structured = ContentStructurer.structure(sample_document())

        informational = [u for u in structured.informational if u.type == "paragraph"]
        main = [u for u in structured.main_content if u.type == "paragraph"]

        assert len(informational) == 2
        assert len(main) == 2
        assert informational[1].metadata == {
            "index": 1,
            "length": len(sample_document().paragraphs[1]),
        }
        assert main[0].metadata == {"index": 0}

    def test_list_formatting(self):
        """Lists are flattened with their type as a label."""
        document = ContentDocument.model_validate({
            "url": "https://example.com",
            "lists": [{"type": "ol", "items": ["Sign up", "Verify email"]}],
        })

        structured = ContentStructurer.structure(document)

        unit = structured.informational[0]
        assert unit.type == "list"
        assert unit.content == "OL LIST: Sign up; Verify email"
        assert unit.metadata == {"listType": "ol", "itemCount": 2, "index": 0}

    def test_short_link_text_dropped(self):
        """Links need more than three characters of text."""
        document = ContentDocument.model_validate({
            "url": "https://example.com",
            "links": [
                {"url": "https://example.com/a", "text": "Go"},
                {"url": "https://example.com/b", "text": "Docs"},
                {"url": "https://other.test", "text": "Partner site", "is_internal": False},
            ],
        })

        structured = ContentStructurer.structure(document)

        assert _contents(structured.interactive) == [
            "Link: Docs (https://example.com/b)",
            "Link: Partner site (https://other.test)",
        ]
        assert structured.interactive[0].metadata["index"] == 1
        assert structured.interactive[1].metadata["isInternal"] is False

    def test_empty_document(self):
        """An empty page yields four empty buckets."""
        structured = ContentStructurer.structure(ContentDocument(url="https://example.com"))

        assert list(structured.buckets()) == ["mainContent", "navigation", "interactive", "informational"]
        assert all(units == [] for units in structured.buckets().values())

    def test_structuring_is_deterministic(self):
        """The same document always produces the same buckets."""
        document = sample_document()
        assert ContentStructurer.structure(document) == ContentStructurer.structure(document)
