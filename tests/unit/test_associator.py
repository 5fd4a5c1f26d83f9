"""Unit tests for task-to-requirement auto-association."""

from datetime import datetime

from taskscope.layers.layer3_association import TaskAssociator
from taskscope.models import RequirementBaseline


class TestAssociate:
    def test_one_already_associated(self, classifier, sample_baseline, sample_tasks):
        existing = sample_tasks[2].ensure_extension()
        existing.matched_requirement_ids = [sample_baseline.requirements[4].id]
        existing.association_confidence = 0.9
        existing.associated_baseline_hash = sample_baseline.metadata.prd_source_hash

        associator = TaskAssociator(classifier)
        first = associator.associate(sample_tasks, sample_baseline)

        assert first.result.total_tasks == 3
        assert 1 <= first.result.associated_tasks <= 3
        assert first.result.associated_tasks - 1 <= 2
        assert sample_tasks[2] not in first.changed_tasks

        second = associator.associate(sample_tasks, sample_baseline)
        assert second.result.associated_tasks == first.result.associated_tasks
        assert second.result.newly_associated == 0
        assert second.changed_tasks == []

    def test_in_scope_task_gets_requirement_ids(self, classifier, sample_baseline, sample_tasks):
        outcome = TaskAssociator(classifier).associate(sample_tasks, sample_baseline, now=datetime(2024, 1, 2))
        task = sample_tasks[0]
        assert task in outcome.changed_tasks
        ext = task.scope_extension
        assert ext.matched_requirement_ids[0] == sample_baseline.requirements[0].id
        assert ext.associated_baseline_hash == sample_baseline.metadata.prd_source_hash
        assert ext.associated_at == datetime(2024, 1, 2)
        assert 0.0 < ext.association_confidence <= 1.0

    def test_unrelated_task_is_left_alone(self, classifier, sample_baseline, sample_tasks):
        TaskAssociator(classifier).associate(sample_tasks, sample_baseline)
        assert sample_tasks[1].matched_requirement_ids == []

    def test_weaker_match_does_not_replace_existing(self, classifier, sample_baseline, sample_tasks):
        task = sample_tasks[0]
        ext = task.ensure_extension()
        ext.matched_requirement_ids = ["REQ-999-manual"]
        ext.association_confidence = 1.0
        ext.associated_baseline_hash = "old-hash"

        outcome = TaskAssociator(classifier).associate([task], sample_baseline)
        assert outcome.changed_tasks == []
        assert task.matched_requirement_ids == ["REQ-999-manual"]

    def test_no_baseline(self, classifier, sample_tasks):
        outcome = TaskAssociator(classifier).associate(sample_tasks, RequirementBaseline())
        assert outcome.result.newly_associated == 0
        assert outcome.changed_tasks == []


class TestPruneStale:
    def test_removes_unknown_requirement_ids(self, classifier, sample_baseline, sample_tasks):
        task = sample_tasks[0]
        ext = task.ensure_extension()
        ext.matched_requirement_ids = [sample_baseline.requirements[0].id, "REQ-999-gone00"]

        changed = TaskAssociator(classifier).prune_stale(sample_tasks, sample_baseline)
        assert changed == [task]
        assert task.matched_requirement_ids == [sample_baseline.requirements[0].id]

    def test_clears_association_when_nothing_left(self, classifier, sample_baseline, sample_tasks):
        task = sample_tasks[0]
        ext = task.ensure_extension()
        ext.matched_requirement_ids = ["REQ-999-gone00"]
        ext.association_confidence = 0.8
        ext.associated_baseline_hash = "old"

        TaskAssociator(classifier).prune_stale([task], sample_baseline)
        assert ext.matched_requirement_ids == []
        assert ext.association_confidence == 0.0
        assert ext.associated_baseline_hash is None
