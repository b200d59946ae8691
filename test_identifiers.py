"""
identifier normalization tests.

run with: pytest test_identifiers.py -v
"""

import pytest

from refgraph.core.identifiers import extract_id, is_doi_key, normalize_id, parse_doi


class TestExtractId:
    """openalex url stripping."""

    def test_bare_id_passes_through(self):
        assert extract_id("W2741809807") == "W2741809807"

    @pytest.mark.parametrize("url", [
        "https://openalex.org/W2741809807",
        "http://openalex.org/W2741809807",
        "https://api.openalex.org/works/W2741809807",
        "https://openalex.org/W2741809807/",
        "openalex.org/W2741809807",
        "api.openalex.org/works/W2741809807",
    ])
    def test_url_forms(self, url):
        assert extract_id(url) == "W2741809807"

    def test_empty(self):
        assert extract_id(None) == ""
        assert extract_id("") == ""


class TestParseDoi:
    """DOI recognition."""

    @pytest.mark.parametrize("value", [
        "10.1038/s41586-021-03819-2",
        "https://doi.org/10.1038/s41586-021-03819-2",
        "http://dx.doi.org/10.1038/s41586-021-03819-2",
        "doi.org/10.1038/s41586-021-03819-2",
        "doi:10.1038/s41586-021-03819-2",
        "  10.1038/s41586-021-03819-2  ",
    ])
    def test_doi_forms(self, value):
        assert parse_doi(value) == "10.1038/s41586-021-03819-2"

    @pytest.mark.parametrize("value", ["W2741809807", "", None, "10.12/too-short-prefix"])
    def test_not_a_doi(self, value):
        assert parse_doi(value) is None


class TestNormalizeId:
    """canonical keys."""

    def test_bare_and_url_agree(self):
        assert normalize_id("W123") == normalize_id("https://openalex.org/W123") == "W123"

    def test_url_without_scheme(self):
        assert normalize_id("openalex.org/W123") == "W123"
        assert normalize_id("https://explore.openalex.org/works/W123") == "W123"

    def test_doi_becomes_resolution_url(self):
        key = normalize_id("doi:10.1234/abc.def")
        assert key == "https://doi.org/10.1234/abc.def"
        assert is_doi_key(key)
        assert not is_doi_key("W123")

    @pytest.mark.parametrize("value", [
        "W123",
        "https://openalex.org/W123",
        "10.1234/abc.def",
        "https://dx.doi.org/10.1234/abc.def",
        "A5023888391",
        "openalex.org/W123",
    ])
    def test_idempotent(self, value):
        once = normalize_id(value)
        assert normalize_id(once) == once

    @pytest.mark.parametrize("value", [None, "", "   ", "not an id", "https://example.com/W1"])
    def test_invalid_gives_empty(self, value):
        assert normalize_id(value) == ""

    def test_whitespace_trimmed(self):
        assert normalize_id("  W42\n") == "W42"
