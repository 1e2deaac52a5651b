"""
Tests for the threshold-based fallback templates.
"""

import pytest

from device_insights.orchestration import fallback


class TestFallbackTemplates:
    """Tests for threshold-based fallback content."""

    @pytest.mark.parametrize("level, expected", [
        (10, "running low"),
        (19.9, "running low"),
        (20, "moderate"),
        (49, "moderate"),
        (50, "looks good"),
    ])
    def test_battery_thresholds(self, level, expected):
        advice = fallback.fallback_battery_advice({"battery": {"level": level}})

        assert expected in advice

    def test_battery_unknown(self):
        assert "not available" in fallback.fallback_battery_advice({"battery": {"level": None}})

    def test_performance_high_memory(self):
        tips = fallback.fallback_performance_tips({"memory": {"used_percentage": 85}})

        assert "High memory usage" in tips

    def test_performance_normal_memory(self):
        tips = fallback.fallback_performance_tips({"memory": {"used_percentage": 80}})

        assert "looks good" in tips

    def test_basic_recommendations_thresholds(self):
        recommendations = fallback.basic_recommendations({
            "memory": {"used_percentage": 81},
            "storage": {"used_percentage": 91},
            "battery": {"level": 5},
        })

        assert recommendations == [
            "High memory usage - consider closing unused apps",
            "Low storage space - clean up old files and apps",
            "Low battery - enable power saving mode",
        ]

    def test_basic_recommendations_never_empty(self, sample_fields):
        assert fallback.basic_recommendations(sample_fields) == ["Your device is running optimally"]

    def test_query_response_battery(self, sample_fields):
        answer = fallback.fallback_query_response(["battery"], sample_fields)

        assert answer == "Your battery is at 42% and not charging."

    def test_query_response_cpu_checked_first(self, sample_fields):
        answer = fallback.fallback_query_response(["memory", "cpu"], sample_fields)

        assert answer.startswith("Your CPU is running at 12.5%")

    def test_query_response_summary_without_topics(self, sample_fields):
        answer = fallback.fallback_query_response([], sample_fields)

        assert answer == "Your Linux device: Battery 42%, Memory 50%, Storage 50%, CPU 12.5%."

    def test_insights_mentions_platform(self, sample_fields):
        assert "Linux" in fallback.fallback_insights(sample_fields)
