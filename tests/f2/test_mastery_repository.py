"""Tests for mastery_progress repository functions (F2)."""

from mastery.db.mastery_repository import (
    MasteryRecord,
    get_mastery,
    get_scores_by_concept_name,
    list_progress,
    upsert_attempt,
)


def _concept_id(resolver, name):
    return resolver.resolve(name).id


class TestUpsertAttempt:
    """Tests for upsert_attempt."""

    def test_first_attempt_creates_record(self, database, resolver):
        concept_id = _concept_id(resolver, "html-basics")

        with database.transaction() as conn:
            record = upsert_attempt(conn, "ana", concept_id, 816, success=True)

        assert record.mastery == 816
        assert record.attempts == 1
        assert record.successes == 1
        assert record.last_attempt_at is not None
        assert record.concept_name == "html-basics"

    def test_counters_increment(self, database, resolver):
        concept_id = _concept_id(resolver, "html-basics")

        with database.transaction() as conn:
            upsert_attempt(conn, "ana", concept_id, 816, success=True)
            upsert_attempt(conn, "ana", concept_id, 800, success=False)
            record = upsert_attempt(conn, "ana", concept_id, 816, success=True)

        assert record.attempts == 3
        assert record.successes == 2
        assert record.mastery == 816

    def test_get_missing_returns_none(self, database, resolver):
        concept_id = _concept_id(resolver, "html-basics")
        with database.connect() as conn:
            assert get_mastery(conn, "nobody", concept_id) is None


class TestListProgress:
    """Tests for list_progress and score lookups."""

    def test_sorted_by_mastery_descending(self, database, resolver):
        low = _concept_id(resolver, "css-styling")
        high = _concept_id(resolver, "html-basics")

        with database.transaction() as conn:
            upsert_attempt(conn, "ana", low, 784, success=False)
            upsert_attempt(conn, "ana", high, 816, success=True)
            upsert_attempt(conn, "ben", high, 784, success=False)

        with database.connect() as conn:
            records = list_progress(conn, "ana")
            scores = get_scores_by_concept_name(conn, "ana")

        assert [r.concept_name for r in records] == ["html-basics", "css-styling"]
        assert scores == {"html-basics": 816, "css-styling": 784}

    def test_unknown_learner_empty(self, database):
        with database.connect() as conn:
            assert list_progress(conn, "nobody") == []


class TestSuccessRate:
    """Tests for MasteryRecord.success_rate."""

    def _record(self, attempts, successes):
        return MasteryRecord("ana", 1, "x", 800, attempts, successes, None)

    def test_zero_attempts(self):
        assert self._record(0, 0).success_rate == "0.0"

    def test_one_decimal(self):
        assert self._record(3, 2).success_rate == "66.7"
        assert self._record(4, 4).success_rate == "100.0"
        assert self._record(8, 1).success_rate == "12.5"

    def test_halves_round_up(self):
        assert self._record(400, 1).success_rate == "0.3"
        assert self._record(2000, 1).success_rate == "0.1"
        assert self._record(8, 3).success_rate == "37.5"
