"""Unit tests for the scope classifier.

Covers the in-scope and out-of-scope scenarios, the no-baseline skip,
determinism, confidence bounds and change impact analysis.
"""

from datetime import datetime

from taskscope.layers.layer2_classification import ScopeClassifier, task_text
from taskscope.models import RequirementBaseline, RiskLevel, ScopeOperation, TaskContent


FIXED_TIME = datetime(2024, 1, 1, 12, 0, 0)


class TestScenarios:
    def test_task_creation_is_in_scope(self, classifier, sample_baseline, in_scope_content):
        result = classifier.check(in_scope_content, sample_baseline)
        assert result.in_scope is True
        assert result.risk_level == RiskLevel.LOW
        assert result.matched_requirement_ids
        assert result.matched_requirement_ids[0] == sample_baseline.requirements[0].id
        assert result.best_similarity >= classifier.high_threshold
        assert sample_baseline.requirements[0].id in result.reasoning

    def test_login_system_is_out_of_scope(self, classifier, sample_baseline, out_of_scope_content):
        result = classifier.check(out_of_scope_content, sample_baseline)
        assert result.in_scope is False
        assert result.risk_level == RiskLevel.HIGH
        assert result.confidence == 1.0
        assert result.matched_requirement_ids == []
        assert "authentication" in result.novel_categories
        assert "不需要用户认证系统" in result.reasoning

    def test_matched_ids_are_capped(self, sample_baseline, in_scope_content):
        classifier = ScopeClassifier(low_threshold=0.01, high_threshold=0.5, max_matches=2)
        result = classifier.check(in_scope_content, sample_baseline)
        assert len(result.matched_requirement_ids) <= 2


class TestEdgeCases:
    def test_no_baseline_skips_check(self, classifier, in_scope_content):
        result = classifier.check(in_scope_content, None)
        assert result.skip_check is True
        assert result.in_scope is True
        assert result.confidence == 0.0
        assert result.matched_requirement_ids == []

    def test_empty_baseline_skips_check(self, classifier, in_scope_content):
        result = classifier.check(in_scope_content, RequirementBaseline())
        assert result.skip_check is True

    def test_weak_match_without_novel_category_is_medium(self, classifier, sample_baseline):
        task = TaskContent(title="整理文档", description="更新README说明")
        result = classifier.check(task, sample_baseline)
        assert result.in_scope is True
        assert result.risk_level == RiskLevel.MEDIUM
        assert result.novel_categories == []

    def test_operation_is_recorded(self, classifier, sample_baseline, in_scope_content):
        result = classifier.check(in_scope_content, sample_baseline, ScopeOperation.UPDATE)
        assert result.operation == ScopeOperation.UPDATE

    def test_task_text_joins_fields(self):
        assert task_text(TaskContent(title="a", description="b", details="c")) == "a b c"
        assert task_text(TaskContent(title="a", details="c")) == "a c"


class TestProperties:
    def test_deterministic(self, classifier, sample_baseline, out_of_scope_content):
        first = classifier.check(out_of_scope_content, sample_baseline, checked_at=FIXED_TIME)
        second = classifier.check(out_of_scope_content, sample_baseline, checked_at=FIXED_TIME)
        assert first == second

    def test_confidence_bounds(self, classifier, sample_baseline, in_scope_content, out_of_scope_content):
        for content in (in_scope_content, out_of_scope_content):
            result = classifier.check(content, sample_baseline)
            assert 0.0 <= result.confidence <= 1.0

    def test_scores_sorted_descending(self, classifier, sample_baseline, in_scope_content):
        scores = [m.similarity for m in classifier.score_all(in_scope_content, sample_baseline)]
        assert scores == sorted(scores, reverse=True)


class TestChangeImpact:
    def test_scope_change_is_detected(self, classifier, sample_baseline, in_scope_content, out_of_scope_content):
        impact = classifier.check_change_impact(in_scope_content, out_of_scope_content, sample_baseline)
        assert impact.scope_changed is True
        assert impact.risk_increased is True
        assert impact.change_analysis["titleChanged"] is True
        assert impact.original.in_scope is True
        assert impact.modified.in_scope is False

    def test_unchanged_content_has_no_impact(self, classifier, sample_baseline, in_scope_content):
        impact = classifier.check_change_impact(in_scope_content, in_scope_content, sample_baseline)
        assert impact.scope_changed is False
        assert impact.risk_increased is False
        assert impact.confidence_changed is False


class TestScopeReport:
    def test_report_counts_and_recommendations(self, classifier, sample_baseline, in_scope_content, out_of_scope_content):
        results = [
            classifier.check(in_scope_content, sample_baseline),
            classifier.check(out_of_scope_content, sample_baseline),
        ]
        report = classifier.build_scope_report(results, low_confidence=0.6)
        assert report["summary"]["totalTasks"] == 2
        assert report["summary"]["inScope"] == 1
        assert report["summary"]["outOfScope"] == 1
        assert report["summary"]["scopeCompliance"] == 50.0
        types = {r["type"] for r in report["recommendations"]}
        assert {"scope_violation", "high_risk"} <= types

    def test_empty_report(self, classifier):
        report = classifier.build_scope_report([], low_confidence=0.6)
        assert report["summary"]["scopeCompliance"] == 100.0
        assert report["recommendations"] == []
