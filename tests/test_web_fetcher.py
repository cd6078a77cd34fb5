"""
Unit tests for HTML parsing and batch fetching.
"""
from siteassist.ingestion.content import FetchOptions
from siteassist.ingestion.web_fetcher import clean_text, fetch_many, parse_html

from helpers import FailingForFetcher, run, sample_document


PAGE = """
<html>
<head>
  <title>  Example   Docs </title>
  <meta name="description" content="Product documentation">
  <meta name="author" content="Docs Team">
  <meta property="article:published_time" content="2026-01-01">
  <script>var tracking = "ignore me please, this is long enough";</script>
</head>
<body>
  <nav><p>Navigation paragraph outside the main element</p></nav>
  <main>
    <h1 id="pricing">Pricing</h1>
    <h3>FAQ</h3>
    <p>Plans start at ten dollars per month for small teams.</p>
    <p>Too short.</p>
    <ul><li>Free tier</li><li> Pro   tier </li><li></li></ul>
    <a href="/faq">Read the FAQ</a>
    <a href="https://partner.test/page">Partner</a>
    <a href="javascript:void(0)">Open menu</a>
    <img src="/logo.png" alt="Logo">
  </main>
</body>
</html>
"""


class TestParseHtml:
    """Test extraction from raw markup."""

    def test_metadata(self):
        document = parse_html(PAGE, "https://docs.example.com/pricing")

        assert document.title == "Example Docs"
        assert document.description == "Product documentation"
        assert document.metadata.author == "Docs Team"
        assert document.metadata.published_time == "2026-01-01"

    def test_main_element_scopes_content(self):
        """Content outside <main> is ignored."""
        document = parse_html(PAGE, "https://docs.example.com/pricing")

        assert [(h.level, h.text, h.id) for h in document.headings] == [
            (1, "Pricing", "pricing"),
            (3, "FAQ", None),
        ]
        assert document.paragraphs == ["Plans start at ten dollars per month for small teams."]
        assert document.lists[0].type == "ul"
        assert document.lists[0].items == ["Free tier", "Pro tier"]

    def test_links_resolved_and_classified(self):
        """Relative links are resolved; javascript links are skipped."""
        document = parse_html(PAGE, "https://docs.example.com/pricing")

        assert [(l.url, l.text, l.is_internal) for l in document.links] == [
            ("https://docs.example.com/faq", "Read the FAQ", True),
            ("https://partner.test/page", "Partner", False),
        ]

    def test_images_only_when_requested(self):
        without = parse_html(PAGE, "https://docs.example.com/pricing")
        with_images = parse_html(
            PAGE, "https://docs.example.com/pricing", FetchOptions(include_images=True)
        )

        assert without.images == []
        assert with_images.images[0].src == "https://docs.example.com/logo.png"
        assert with_images.images[0].alt == "Logo"

    def test_links_can_be_disabled(self):
        document = parse_html(
            PAGE, "https://docs.example.com/pricing", FetchOptions(include_links=False)
        )
        assert document.links == []

    def test_body_fallback(self):
        """Pages without a main element use the body."""
        document = parse_html(
            "<html><body><p>A paragraph long enough to be kept around.</p></body></html>",
            "https://example.com",
        )
        assert document.paragraphs == ["A paragraph long enough to be kept around."]
        assert document.title == ""


def test_clean_text():
    assert clean_text("  a \n\t b  ") == "a b"
    assert clean_text(None) == ""


def test_text_for_embedding():
    document = parse_html(PAGE, "https://docs.example.com/")

    assert document.text_for_embedding() == "\n\n".join([
        "Title: Example Docs",
        "Description: Product documentation",
        "# Pricing",
        "### FAQ",
        "Plans start at ten dollars per month for small teams.",
        "- Free tier",
        "- Pro tier",
    ])


class TestFetchMany:
    """Test sequential batch fetching."""

    def test_failures_recorded_and_skipped(self):
        fetcher = FailingForFetcher(sample_document(), failing="broken")
        urls = ["https://a.test/one", "https://a.test/broken", "https://a.test/two"]

        documents, failures = run(fetch_many(fetcher, urls))

        assert fetcher.requests == urls
        assert [d.url for d in documents] == ["https://a.test/one", "https://a.test/two"]
        assert [(f.url, f.error) for f in failures] == [
            ("https://a.test/broken", "Failed to fetch https://a.test/broken: HTTP 404"),
        ]
