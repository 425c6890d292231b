"""Tests for concept graph construction and queries."""

import threading
from unittest.mock import patch

import pytest
from sqlalchemy import Select, false, func, select

from pensive.database import SessionLocal
from pensive.models.concept import Concept
from pensive.models.relationship import Relationship
from pensive.schemas.analysis import EntityMention
from pensive.services.graph.builder import ConceptGraphBuilder, normalize_entities
from pensive.services.graph.query import ConceptGraphQuery, aggregate_strength, frequency_threshold

from conftest import USER_ID, make_content


def mentions(*names, entity_type="technology"):
    return [EntityMention(name=name, type=entity_type) for name in names]


def ingest(db, content, *names):
    result = ConceptGraphBuilder(db).ingest(content.user_id, content.id, mentions(*names))
    db.commit()
    return result


def concept_by_name(db, name, user_id=USER_ID):
    concept = db.execute(
        select(Concept).where(Concept.user_id == user_id, Concept.name == name)
    ).scalar_one()
    db.commit()
    return concept


class TestNormalizeEntities:
    """Tests for normalize_entities."""

    def test_trims_dedupes_lowercases_type_and_caps(self):
        entities = [
            {"name": " AI ", "type": "Technology"},
            {"name": "AI", "type": "technology"},
            {"name": "", "type": "person"},
            {"name": "Ada Lovelace"},
            {"name": "Paris", "type": "place"},
        ]
        assert normalize_entities(entities, limit=2) == [("AI", "technology"), ("Ada Lovelace", "concept")]


class TestConceptGraphBuilder:
    """Tests for ConceptGraphBuilder.ingest."""

    def test_frequency_counts_content_items(self, db):
        first = make_content(db, "A")
        second = make_content(db, "B")

        ingest(db, first, "AI", "Robotics")
        ingest(db, second, "AI")

        assert concept_by_name(db, "AI").frequency == 2
        assert concept_by_name(db, "Robotics").frequency == 1

    def test_repeated_mention_in_one_item_counts_once(self, db):
        content = make_content(db, "A")
        result = ingest(db, content, "AI", "AI", "AI")

        assert result.concepts_created == 1
        assert concept_by_name(db, "AI").frequency == 1

    def test_same_name_with_another_type_is_another_concept(self, db):
        content = make_content(db, "A")
        builder = ConceptGraphBuilder(db)
        builder.ingest(USER_ID, content.id, [
            EntityMention(name="Mercury", type="place"),
            EntityMention(name="Mercury", type="person"),
        ])
        db.commit()

        count = len(db.execute(select(Concept).where(Concept.name == "Mercury")).scalars().all())
        db.commit()
        assert count == 2

    def test_pairs_get_directed_relationships(self, db):
        content = make_content(db, "A")
        result = ingest(db, content, "AI", "Robotics", "Ethics")

        assert result.relationships_created == 6
        rows = db.execute(select(Relationship)).scalars().all()
        db.commit()
        assert {row.strength for row in rows} == {0.5}
        assert {row.content_id for row in rows} == {content.id}
        assert {row.type for row in rows} == {"RELATES_TO"}

    def test_single_entity_creates_no_relationships(self, db):
        content = make_content(db, "A")
        result = ingest(db, content, "AI")
        assert result.relationships_created == 0

    def test_reingesting_same_item_strengthens_its_edges(self, db):
        content = make_content(db, "A")
        ingest(db, content, "AI", "Robotics")
        result = ingest(db, content, "AI", "Robotics")

        assert result.relationships_strengthened == 2
        strengths = db.execute(select(Relationship.strength)).scalars().all()
        db.commit()
        assert strengths == [pytest.approx(0.6), pytest.approx(0.6)]

    def test_users_do_not_share_concepts(self, db):
        mine = make_content(db, "A")
        theirs = make_content(db, "A", user_id="user-2")
        ingest(db, mine, "AI")
        ingest(db, theirs, "AI")

        assert concept_by_name(db, "AI").frequency == 1
        assert concept_by_name(db, "AI", user_id="user-2").frequency == 1

    def test_rows_written_after_the_batched_read_are_reused(self, db):
        content = make_content(db, "A")
        ingest(db, content, "AI", "Robotics")
        real_execute = db.execute

        def stale_reads(statement, *args, **kwargs):
            # Hide what another job wrote between the batched reads and the inserts.
            if isinstance(statement, Select) and len(statement.selected_columns) == 3:
                statement = statement.where(false())
            return real_execute(statement, *args, **kwargs)

        with patch.object(db, "execute", side_effect=stale_reads):
            result = ConceptGraphBuilder(db).ingest(
                USER_ID, content.id, mentions("AI", "Robotics", "Ethics")
            )
        db.commit()

        assert result.concepts_incremented == 2
        assert result.concepts_created == 1
        assert result.relationships_strengthened == 2
        assert result.relationships_created == 4
        assert concept_by_name(db, "AI").frequency == 2
        assert concept_by_name(db, "Ethics").frequency == 1
        ai = concept_by_name(db, "AI")
        robotics = concept_by_name(db, "Robotics")
        edge = db.execute(
            select(Relationship).where(
                Relationship.from_concept_id == ai.id,
                Relationship.to_concept_id == robotics.id,
            )
        ).scalar_one()
        db.commit()
        assert edge.strength == pytest.approx(0.6)

    def test_concurrent_ingests_never_lose_increments(self, db):
        contents = [make_content(db, f"Item {i}") for i in range(6)]
        errors = []
        lock = threading.Lock()

        def worker(content_id):
            session = SessionLocal()
            try:
                ConceptGraphBuilder(session).ingest(USER_ID, content_id, mentions("AI", "Robotics"))
                session.commit()
            except Exception as exc:
                session.rollback()
                with lock:
                    errors.append(exc)
            finally:
                session.close()

        threads = [threading.Thread(target=worker, args=(content.id,)) for content in contents]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert errors == []
        assert concept_by_name(db, "AI").frequency == len(contents)
        assert concept_by_name(db, "Robotics").frequency == len(contents)
        edges = db.execute(select(func.count(Relationship.id))).scalar()
        db.commit()
        assert edges == 2 * len(contents)


class TestStrengthAndThreshold:
    """Tests for the pure helpers behind the concept map."""

    def test_frequency_threshold(self):
        assert frequency_threshold(0, 10) == 1
        assert frequency_threshold(50, 10) == 5
        assert frequency_threshold(100, 10) == 10
        assert frequency_threshold(250, 10) == 10
        assert frequency_threshold(-5, 10) == 1

    def test_aggregate_strength(self):
        assert aggregate_strength([]) == 0.0
        assert aggregate_strength([0.5]) == 0.5
        assert aggregate_strength([0.5, 0.5, 0.5]) == pytest.approx(0.7)
        assert aggregate_strength([0.6, 0.5]) == pytest.approx(0.7)


class TestConceptMap:
    """Tests for ConceptGraphQuery.concept_map."""

    def _build(self, db):
        contents = [make_content(db, title) for title in ("A", "B", "C")]
        ingest(db, contents[0], "AI", "Machine Learning", "Ethics")
        ingest(db, contents[1], "AI", "Machine Learning")
        ingest(db, contents[2], "AI", "OpenAI")
        return contents

    def test_empty_graph(self, db):
        concept_map = ConceptGraphQuery(db).concept_map(USER_ID)
        assert concept_map.nodes == []
        assert concept_map.edges == []
        assert concept_map.max_frequency == 0

    def test_full_map_and_edge_strength(self, db):
        contents = self._build(db)
        ai = concept_by_name(db, "AI")
        ml = concept_by_name(db, "Machine Learning")

        concept_map = ConceptGraphQuery(db).concept_map(USER_ID, abstraction_level=0)

        assert concept_map.max_frequency == 3
        assert concept_map.min_frequency == 1
        assert [node.label for node in concept_map.nodes][0] == "AI"
        assert {node.label for node in concept_map.nodes} == {"AI", "Machine Learning", "Ethics", "OpenAI"}
        ai_node = next(node for node in concept_map.nodes if node.label == "AI")
        assert ai_node.density == 100.0

        edge = next(e for e in concept_map.edges if e.source == ai.id and e.target == ml.id)
        assert edge.strength == pytest.approx(0.6)
        assert edge.content_ids == sorted([contents[0].id, contents[1].id])

    def test_abstraction_level_hides_rare_concepts(self, db):
        self._build(db)

        concept_map = ConceptGraphQuery(db).concept_map(USER_ID, abstraction_level=60)

        assert concept_map.min_frequency == 1
        labels = {node.label for node in concept_map.nodes}
        assert labels == {"AI", "Machine Learning", "Ethics", "OpenAI"}

        concept_map = ConceptGraphQuery(db).concept_map(USER_ID, abstraction_level=67)
        assert concept_map.min_frequency == 2
        assert {node.label for node in concept_map.nodes} == {"AI", "Machine Learning"}
        assert all(
            edge.source in {n.id for n in concept_map.nodes} and edge.target in {n.id for n in concept_map.nodes}
            for edge in concept_map.edges
        )

    def test_search_is_case_insensitive_substring(self, db):
        self._build(db)

        concept_map = ConceptGraphQuery(db).concept_map(USER_ID, search_query="machine")
        assert [node.label for node in concept_map.nodes] == ["Machine Learning"]
        assert concept_map.edges == []

        concept_map = ConceptGraphQuery(db).concept_map(USER_ID, search_query="ai")
        assert {node.label for node in concept_map.nodes} == {"AI", "OpenAI"}
        assert len(concept_map.edges) == 2

    def test_search_treats_wildcards_literally(self, db):
        self._build(db)
        concept_map = ConceptGraphQuery(db).concept_map(USER_ID, search_query="%")
        assert concept_map.nodes == []


class TestRelatedConcepts:
    """Tests for ConceptGraphQuery.related_concepts."""

    def test_neighbors_most_frequent_first(self, db):
        contents = [make_content(db, title) for title in ("A", "B")]
        ingest(db, contents[0], "AI", "Machine Learning", "Ethics")
        ingest(db, contents[1], "AI", "Machine Learning")
        ai = concept_by_name(db, "AI")

        related = ConceptGraphQuery(db).related_concepts(USER_ID, ai.id)

        assert [concept.name for concept in related] == ["Machine Learning", "Ethics"]

    def test_unknown_concept(self, db):
        content = make_content(db, "A", user_id="user-2")
        ingest(db, content, "AI")
        theirs = concept_by_name(db, "AI", user_id="user-2")

        with pytest.raises(LookupError):
            ConceptGraphQuery(db).related_concepts(USER_ID, theirs.id)
