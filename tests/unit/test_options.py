"""
Unit tests for call options.
"""

import pytest

from pgqueue.errors import InvalidNamespaceError
from pgqueue.options import (
    ListOptions,
    ScopeOptions,
    with_limit,
    with_namespace,
    with_offset,
)


class TestListOptions:
    """Tests for ListOptions folding."""

    def test_defaults(self):
        """Test defaults when no options are given."""
        options = ListOptions.build()

        assert options.namespace == ""
        assert options.limit == 100
        assert options.offset == 0

    def test_client_defaults(self):
        """Test that client defaults seed the fold."""
        options = ListOptions.build(namespace="emails", limit=20)

        assert options.namespace == "emails"
        assert options.limit == 20

    def test_options_applied_in_order(self):
        """Test that later options override earlier ones."""
        options = ListOptions.build(
            with_namespace("a"),
            with_limit(5),
            with_offset(10),
            with_namespace("b"),
        )

        assert options.namespace == "b"
        assert options.limit == 5
        assert options.offset == 10

    def test_zero_limit_means_default(self):
        """Test that a zero limit falls back to the default."""
        options = ListOptions.build(with_limit(0))
        assert options.limit == 100

    def test_negative_values_rejected(self):
        """Test that negative limit and offset are rejected."""
        with pytest.raises(ValueError):
            ListOptions.build(with_limit(-1))
        with pytest.raises(ValueError):
            ListOptions.build(with_offset(-1))

    def test_invalid_namespace(self):
        """Test that non-ASCII namespaces are rejected."""
        with pytest.raises(InvalidNamespaceError) as exc_info:
            ListOptions.build(with_namespace("日本国"))

        assert str(exc_info.value) == "namespace '日本国' contains non-ASCII characters"
        assert exc_info.value.namespace == "日本国"


class TestScopeOptions:
    """Tests for ScopeOptions folding."""

    def test_namespace(self):
        """Test namespace option."""
        assert ScopeOptions.build(with_namespace("baz")).namespace == "baz"
        assert ScopeOptions.build(namespace="dflt").namespace == "dflt"
        assert ScopeOptions.build(with_namespace(""), namespace="dflt").namespace == ""

    def test_list_only_option_rejected(self):
        """Test that list-only options cannot scope an operation."""
        with pytest.raises(TypeError):
            ScopeOptions.build(with_limit(10))

    def test_invalid_namespace(self):
        """Test that invalid namespaces raise a ValueError subclass."""
        with pytest.raises(ValueError):
            ScopeOptions.build(with_namespace("naïve"))
