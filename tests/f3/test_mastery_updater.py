"""Tests for mastery update orchestration (F3)."""

import threading

import pytest

from mastery.core.mastery_updater import RETRY_MESSAGE, MasteryUpdater
from mastery.db.database import StoreUnavailableError
from mastery.db.tasks_repository import get_passed_task_ids
from mastery.utils.validators import InvalidInputError, NotFoundError


def _count(database, table):
    with database.connect() as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


class TestApply:
    """Tests for MasteryUpdater.apply."""

    def test_first_pass_from_default(self, updater):
        report = updater.apply("ana", ["html-basics"], "pass")

        assert report.ok
        assert len(report.updates) == 1
        update = report.updates[0]
        assert update.concept == "html-basics"
        assert update.old_mastery == 800
        assert update.new_mastery == 816
        assert update.change == 16

    def test_first_fail_from_default(self, updater):
        update = updater.apply("ana", ["html-basics"], "fail").updates[0]

        assert update.new_mastery == 784
        assert update.change == -16

    def test_updates_every_tag_in_order(self, updater):
        report = updater.apply("ana", ["css-styling", "html-basics"], "pass")

        assert [u.concept for u in report.updates] == ["css-styling", "html-basics"]
        assert all(u.new_mastery == 816 for u in report.updates)

    def test_duplicate_tags_counted_once(self, updater):
        report = updater.apply("ana", ["loops", "loops", "arrays"], "pass")

        assert [u.concept for u in report.updates] == ["loops", "arrays"]
        records = {r.concept_name: r for r in updater.progress("ana")}
        assert records["loops"].attempts == 1

    def test_unseen_tag_creates_concept(self, updater, resolver):
        updater.apply("ana", ["recursion"], "pass")

        names = [c.name for c in resolver.all_concepts()]
        assert names == ["recursion"]

    def test_repeated_failures_stop_at_floor(self, updater):
        for _ in range(20):
            report = updater.apply("ana", ["loops"], "fail")

        assert report.updates[0].new_mastery == 600
        assert report.updates[0].change == 0
        assert updater.progress("ana")[0].mastery == 600

    def test_learners_are_independent(self, updater):
        updater.apply("ana", ["loops"], "pass")
        updater.apply("ben", ["loops"], "fail")

        assert updater.progress("ana")[0].mastery == 816
        assert updater.progress("ben")[0].mastery == 784

    def test_counters_track_attempts(self, updater):
        outcomes = ["pass", "fail", "pass", "pass", "fail"]
        for outcome in outcomes:
            updater.apply("ana", ["loops"], outcome)

        record = updater.progress("ana")[0]
        assert record.attempts == 5
        assert record.successes == 3
        assert record.success_rate == "60.0"


class TestValidation:
    """Rejected requests change nothing."""

    @pytest.mark.parametrize(
        "learner_id,tags,result,field",
        [
            (None, ["loops"], "pass", "learnerId"),
            ("", ["loops"], "pass", "learnerId"),
            ("ana", None, "pass", "tags"),
            ("ana", [], "pass", "tags"),
            ("ana", "loops", "pass", "tags"),
            ("ana", ["loops", ""], "pass", "tags[1]"),
            ("ana", ["loops"], None, "result"),
            ("ana", ["loops"], "passed", "result"),
            ("ana", ["loops"], "PASS", "result"),
        ],
    )
    def test_invalid_request_rejected(self, updater, database, learner_id, tags, result, field):
        with pytest.raises(InvalidInputError) as exc_info:
            updater.apply(learner_id, tags, result)

        assert exc_info.value.field == field
        assert _count(database, "concepts") == 0
        assert _count(database, "mastery_progress") == 0

    def test_unknown_task_rejected_before_writes(self, updater, database):
        with pytest.raises(NotFoundError):
            updater.apply("ana", ["loops"], "pass", task_id="missing")

        assert _count(database, "mastery_progress") == 0

    def test_progress_requires_learner(self, updater):
        with pytest.raises(InvalidInputError):
            updater.progress("")


class TestTaskResults:
    """Attempts linked to catalog tasks."""

    def test_pass_marks_task_passed(self, updater, catalog, database):
        catalog.add_task("loops-1", "Loop it", 1, ["loops"])

        report = updater.apply("ana", ["loops"], "pass", task_id="loops-1")

        assert report.ok
        assert report.task_recorded is True
        with database.connect() as conn:
            assert get_passed_task_ids(conn, "ana") == {"loops-1"}

    def test_later_fail_keeps_task_passed(self, updater, catalog, database):
        catalog.add_task("loops-1", "Loop it", 1, ["loops"])

        updater.apply("ana", ["loops"], "pass", task_id="loops-1")
        updater.apply("ana", ["loops"], "fail", task_id="loops-1")

        with database.connect() as conn:
            assert get_passed_task_ids(conn, "ana") == {"loops-1"}
            row = conn.execute(
                "SELECT attempts FROM task_results WHERE learner_id = 'ana'"
            ).fetchone()
        assert row["attempts"] == 2

    def test_fail_does_not_mark_passed(self, updater, catalog, database):
        catalog.add_task("loops-1", "Loop it", 1, ["loops"])

        updater.apply("ana", ["loops"], "fail", task_id="loops-1")

        with database.connect() as conn:
            assert get_passed_task_ids(conn, "ana") == set()


class TestPartialFailure:
    """A store failure on one concept keeps the others."""

    def test_failed_tag_reported_and_others_committed(self, updater, monkeypatch):
        original = MasteryUpdater._apply_one

        def flaky(self, learner_id, tag, success):
            if tag == "arrays":
                raise StoreUnavailableError("database is locked")
            return original(self, learner_id, tag, success)

        monkeypatch.setattr(MasteryUpdater, "_apply_one", flaky)

        report = updater.apply("ana", ["loops", "arrays"], "pass")

        assert not report.ok
        assert [u.concept for u in report.updates] == ["loops"]
        assert [(f.concept, f.reason) for f in report.failures] == [("arrays", RETRY_MESSAGE)]
        assert [r.concept_name for r in updater.progress("ana")] == ["loops"]

    def test_closed_store_fails_every_tag(self, updater, database):
        database.close()

        report = updater.apply("ana", ["loops", "arrays"], "pass")

        assert report.updates == []
        assert [f.concept for f in report.failures] == ["loops", "arrays"]


class TestConcurrency:
    """Simultaneous updates of the same record."""

    def test_no_lost_updates(self, updater):
        n_threads = 16
        barrier = threading.Barrier(n_threads)
        errors: list[Exception] = []
        lock = threading.Lock()

        def worker():
            try:
                barrier.wait()
                report = updater.apply("ana", ["loops"], "pass")
                assert report.ok
            except Exception as e:  # collected and asserted below
                with lock:
                    errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        record = updater.progress("ana")[0]
        assert record.attempts == n_threads
        assert record.successes == n_threads
        # Each pass adds exactly 16, so serialized updates sum up
        assert record.mastery == 800 + 16 * n_threads

    def test_mixed_outcomes_keep_counters_consistent(self, updater):
        outcomes = ["pass", "fail"] * 6
        barrier = threading.Barrier(len(outcomes))

        def worker(outcome):
            barrier.wait()
            updater.apply("ana", ["loops", "arrays"], outcome)

        threads = [threading.Thread(target=worker, args=(o,)) for o in outcomes]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for record in updater.progress("ana"):
            assert record.attempts == len(outcomes)
            assert record.successes == len(outcomes) // 2
            assert 600 <= record.mastery <= 1800


class TestProgress:
    """Tests for MasteryUpdater.progress."""

    def test_unknown_learner_empty(self, updater):
        assert updater.progress("nobody") == []

    def test_highest_mastery_first(self, updater):
        updater.apply("ana", ["css-styling"], "fail")
        updater.apply("ana", ["html-basics"], "pass")
        updater.apply("ana", ["javascript-basics"], "pass")
        updater.apply("ana", ["javascript-basics"], "pass")

        names = [r.concept_name for r in updater.progress("ana")]
        assert names == ["javascript-basics", "html-basics", "css-styling"]

    def test_ties_ordered_by_name(self, updater):
        updater.apply("ana", ["zeta", "alpha"], "pass")

        assert [r.concept_name for r in updater.progress("ana")] == ["alpha", "zeta"]
