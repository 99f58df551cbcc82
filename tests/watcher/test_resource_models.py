"""
Unit tests for resource and page models.
"""

import pytest
from pydantic import ValidationError

from watcher.models import FetchedPage, ResourceRecord


class TestResourceRecord:
    """Test cases for ResourceRecord model."""

    def test_new_record_has_no_baseline(self, sample_record):
        assert sample_record.snapshot is None
        assert sample_record.has_baseline is False
        assert sample_record.has_unacknowledged_change is False
        assert sample_record.last_change_at is None
        assert sample_record.added_at.tzinfo is not None

    def test_ids_are_unique(self):
        first = ResourceRecord(url="https://example.com/a")
        second = ResourceRecord(url="https://example.com/a")

        assert first.id != second.id

    def test_host(self, sample_record):
        assert sample_record.host == "example.com"

    def test_invalid_url_rejected(self):
        with pytest.raises(ValidationError):
            ResourceRecord(url="not a url")

        with pytest.raises(ValidationError):
            ResourceRecord(url="ftp://example.com/file")

    def test_acknowledge(self, sample_record):
        sample_record.has_unacknowledged_change = True

        assert sample_record.acknowledge() is True
        assert sample_record.has_unacknowledged_change is False
        assert sample_record.acknowledge() is False


class TestFetchedPage:
    """Test cases for FetchedPage model."""

    def test_defaults(self):
        page = FetchedPage(url="https://example.com/a", content=b"ok")

        assert page.status_code == 200
        assert page.content_type is None
        assert page.fetched_at is not None
