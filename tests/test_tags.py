"""Tests for tag fingerprints."""

import hashlib
from dataclasses import dataclass

from edgepurge import EdgePurgeSettings, Fingerprinter
from edgepurge.tags import entity_key, match, model_name


@dataclass
class Post:
    __tablename__ = "posts"

    id: int | None = None


@dataclass
class Author:
    id: int | None = None


def sha1(value: str) -> str:
    return hashlib.sha1(value.encode()).hexdigest()


class TestMakeEdgeTag:
    """Tests for fingerprint generation."""

    def test_format_example(self) -> None:
        """Test environment and sha1 substitution."""
        settings = EdgePurgeSettings(environment="prod", tag_format="%environment%-%sha1%")
        fingerprinter = Fingerprinter(settings)
        assert fingerprinter.make_edge_tag({"post"}) == "prod-" + sha1("post")

    def test_order_independent(self, settings: EdgePurgeSettings) -> None:
        """Test that equal sets give equal fingerprints."""
        fingerprinter = Fingerprinter(settings)
        assert fingerprinter.make_edge_tag(["b", "a", "c"]) == fingerprinter.make_edge_tag(
            ["c", "b", "a"]
        )

    def test_duplicates_ignored(self, settings: EdgePurgeSettings) -> None:
        """Test that duplicates do not change the fingerprint."""
        fingerprinter = Fingerprinter(settings)
        assert fingerprinter.make_edge_tag(["a", "a", "b"]) == fingerprinter.make_edge_tag(
            ["a", "b"]
        )

    def test_joins_sorted_tags(self, settings: EdgePurgeSettings) -> None:
        """Test the hashed payload is the sorted tags joined by comma-space."""
        fingerprinter = Fingerprinter(settings)
        assert fingerprinter.make_edge_tag(["b", "a"]) == "test-" + sha1("a, b")

    def test_different_sets_differ(self, settings: EdgePurgeSettings) -> None:
        fingerprinter = Fingerprinter(settings)
        assert fingerprinter.make_edge_tag(["a"]) != fingerprinter.make_edge_tag(["b"])


class TestTagScope:
    """Tests for request-scoped tag collection."""

    def test_add_tag_records_model_name(self, settings: EdgePurgeSettings) -> None:
        fingerprinter = Fingerprinter(settings)
        with fingerprinter.scope() as tags:
            tags.add_tag(Post(id=1))
            assert tags.get_tags() == [model_name(Post(id=1))]

    def test_entity_without_id_is_skipped(self, settings: EdgePurgeSettings) -> None:
        """Test that unsaved entities produce no tag."""
        fingerprinter = Fingerprinter(settings)
        with fingerprinter.scope() as tags:
            tags.add_tag(Post())
            assert tags.get_tags() == []

    def test_repeated_entity_is_named_once(self, settings: EdgePurgeSettings) -> None:
        """Test that the naming strategy runs once per (table, id)."""
        calls = []

        def naming(entity: object) -> str:
            calls.append(entity)
            return "post"

        fingerprinter = Fingerprinter(settings, naming=naming)
        with fingerprinter.scope() as tags:
            for _ in range(5):
                tags.add_tag(Post(id=1))
            tags.add_tag(Post(id=2))
            assert tags.get_tags() == ["post"]
        assert len(calls) == 2

    def test_disabled_records_nothing(self) -> None:
        settings = EdgePurgeSettings(enabled=False)
        fingerprinter = Fingerprinter(settings)
        with fingerprinter.scope() as tags:
            tags.add_tag(Post(id=1))
            assert tags.get_tags() == []

    def test_excluded_tags_filtered(self) -> None:
        """Test that exclusion patterns remove matching tags."""
        settings = EdgePurgeSettings(excluded_tags=["audit.*"])
        names = {1: "audit.Log", 2: "blog.Post"}
        fingerprinter = Fingerprinter(settings, naming=lambda e: names[e.id])
        with fingerprinter.scope() as tags:
            tags.add_tag(Post(id=1))
            tags.add_tag(Post(id=2))
            assert tags.get_tags() == ["blog.Post"]

    def test_scopes_are_independent(self, settings: EdgePurgeSettings) -> None:
        """Test that a new unit of work starts with an empty seen-set."""
        fingerprinter = Fingerprinter(settings, naming=lambda e: "post")
        with fingerprinter.scope() as tags:
            tags.add_tag(Post(id=1))
        assert tags.get_tags() == []

        with fingerprinter.scope() as tags:
            tags.add_tag(Post(id=1))
            assert tags.get_tags() == ["post"]

    def test_make_edge_tag_from_scope(self, settings: EdgePurgeSettings) -> None:
        fingerprinter = Fingerprinter(settings, naming=lambda e: "post")
        with fingerprinter.scope() as tags:
            tags.add_tag(Post(id=1))
            assert tags.make_edge_tag() == "test-" + sha1("post")


class TestStrategies:
    """Tests for the default naming and identity strategies."""

    def test_model_name_is_qualified(self) -> None:
        assert model_name(Post(id=1)).endswith("test_tags.Post")

    def test_entity_key_uses_tablename(self) -> None:
        assert entity_key(Post(id=3)) == ("posts", 3)

    def test_entity_key_falls_back_to_class_name(self) -> None:
        assert entity_key(Author(id=3)) == ("Author", 3)

    def test_entity_key_none_without_id(self) -> None:
        assert entity_key(Author()) is None

    def test_match_wildcards(self) -> None:
        assert match("app.models.*", "app.models.Post")
        assert not match("app.models.*", "app.views.Post")
        assert match("*Log", "audit.Log")
