"""
Tests for the interview tools.

Interview dates are placed relative to the real current time, a day or more
away, so the scheduled/completed split does not depend on when tests run.
"""

import json
import time

import pytest

from models.interview import parse_iso_to_ms
from tools.interviews import lever_get_interview_insights, lever_manage_interview
from conftest import opportunity, paged, reply

DAY_MS = 24 * 60 * 60 * 1000


def now_ms():
    return int(time.time() * 1000)


def interview(interview_id, offset_days, **fields):
    data = {
        "id": interview_id,
        "subject": f"Interview {interview_id}",
        "date": now_ms() + offset_days * DAY_MS,
        "duration": 45,
        "panel": "panel-1",
        "interviewers": [{"id": "u-1", "name": "Jane Roe", "email": "jane@example.com"}],
        "feedbackForms": [],
    }
    data.update(fields)
    return data


PANELS = [{"id": "panel-1", "note": "Onsite loop", "externallyManaged": False}]


def candidate_routes(api, opportunity_id, interviews, panels=PANELS):
    api.add("GET", f"/opportunities/{opportunity_id}/interviews", paged(interviews))
    api.add("GET", f"/opportunities/{opportunity_id}/panels", paged(panels))


class TestInterviewInsightsSingleCandidate:
    """Tests for lever_get_interview_insights with an opportunity_id."""

    @pytest.mark.asyncio
    async def test_dashboard_defaults_to_all_time(self, lever_api):
        """Test the dashboard summary over every interview of the candidate."""
        candidate_routes(lever_api, "opp-1", [
            interview("i-1", 2),
            interview("i-2", -30, feedbackForms=["form-1"]),
            interview("i-3", -2, canceledAt=now_ms() - 3 * DAY_MS),
        ])

        result = await lever_get_interview_insights({"opportunity_id": "opp-1"})

        assert result["view_type"] == "dashboard"
        assert result["data"]["summary"] == {
            "total_interviews": 3,
            "upcoming_count": 1,
            "completed_count": 1,
            "cancelled_count": 1,
            "total_panels": 1,
        }
        assert result["metadata"]["time_scope"] == "all"
        assert result["metadata"]["candidates_searched"] == 1
        assert "candidates_skipped" not in result["metadata"]

    @pytest.mark.asyncio
    async def test_needs_feedback_filter(self, lever_api):
        """Test that needs_feedback keeps completed interviews without forms."""
        candidate_routes(lever_api, "opp-1", [
            interview("i-1", -1),
            interview("i-2", -3, feedbackForms=["form-1"]),
            interview("i-3", 1),
        ])

        result = await lever_get_interview_insights({
            "opportunity_id": "opp-1",
            "status_filter": "needs_feedback",
            "view_type": "detailed",
        })

        assert [i["id"] for i in result["data"]["interviews"]] == ["i-1"]

    @pytest.mark.asyncio
    async def test_detailed_view_with_interviewer_filter(self, lever_api):
        """Test interviewer filtering and panel context in the detailed view."""
        candidate_routes(lever_api, "opp-1", [
            interview("i-1", 1),
            interview("i-2", 2, interviewers=[{"id": "u-2", "email": "john@example.com"}]),
        ])

        result = await lever_get_interview_insights({
            "opportunity_id": "opp-1",
            "interviewer_email": "JANE@example.com",
            "view_type": "detailed",
            "include_panel_context": True,
        })

        interviews = result["data"]["interviews"]
        assert [i["id"] for i in interviews] == ["i-1"]
        assert interviews[0]["status"] == "scheduled"
        assert interviews[0]["panel_context"]["panel_note"] == "Onsite loop"

    @pytest.mark.asyncio
    async def test_limit_keeps_earliest(self, lever_api):
        """Test that the limit keeps the earliest interviews and reports the total."""
        candidate_routes(lever_api, "opp-1", [interview(f"i-{d}", d) for d in (5, 1, 3)])

        result = await lever_get_interview_insights({
            "opportunity_id": "opp-1",
            "view_type": "detailed",
            "limit": 2,
        })

        assert [i["id"] for i in result["data"]["interviews"]] == ["i-1", "i-3"]
        assert result["metadata"]["total_count"] == 3
        assert result["metadata"]["returned_count"] == 2

    @pytest.mark.asyncio
    async def test_custom_window(self, lever_api):
        """Test that a custom window excludes interviews outside it."""
        candidate_routes(lever_api, "opp-1", [
            interview("i-old", 0, date=parse_iso_to_ms("2023-06-01T10:00:00Z")),
            interview("i-in", 0, date=parse_iso_to_ms("2024-01-10T10:00:00Z")),
        ])

        result = await lever_get_interview_insights({
            "opportunity_id": "opp-1",
            "time_scope": "custom",
            "date_from": "2024-01-01",
            "date_to": "2024-01-31",
            "view_type": "detailed",
        })

        assert [i["id"] for i in result["data"]["interviews"]] == ["i-in"]

    @pytest.mark.asyncio
    async def test_failure_for_single_candidate_is_an_error(self, lever_api):
        """Test that an unreadable candidate is reported rather than skipped."""
        result = await lever_get_interview_insights({"opportunity_id": "missing"})

        assert result["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_custom_scope_requires_a_date(self, lever_api):
        """Test that custom without dates is rejected."""
        result = await lever_get_interview_insights({"opportunity_id": "opp-1", "time_scope": "custom"})

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "custom" in result["error"]["message"]


class TestInterviewInsightsFanOut:
    """Tests for lever_get_interview_insights across candidates."""

    @pytest.mark.asyncio
    async def test_posting_candidates_with_a_skip(self, lever_api):
        """Test that a failing candidate is skipped and counted."""
        lever_api.add("GET", "/opportunities", paged([opportunity(i) for i in range(3)]))
        candidate_routes(lever_api, "opp-0", [interview("a", 1)])
        lever_api.add("GET", "/opportunities/opp-1/interviews", reply(403, {"message": "forbidden"}))
        candidate_routes(lever_api, "opp-2", [interview("b", -1)])

        result = await lever_get_interview_insights({"posting_id": "p-1", "time_scope": "all"})

        assert result["metadata"]["candidates_searched"] == 3
        assert result["metadata"]["candidates_skipped"] == 1
        assert result["data"]["summary"]["total_interviews"] == 2
        params = lever_api.calls("GET", "/opportunities")[0].url.params
        assert params["posting_id"] == "p-1"
        assert params["limit"] == "100"

    @pytest.mark.asyncio
    async def test_at_most_25_candidates(self, lever_api):
        """Test that the fan-out examines at most 25 candidates in one call."""
        lever_api.add("GET", "/opportunities", paged([opportunity(i) for i in range(60)]))
        for i in range(60):
            candidate_routes(lever_api, f"opp-{i}", [])

        result = await lever_get_interview_insights({})

        assert result["metadata"]["candidates_searched"] == 25
        assert result["metadata"]["time_scope"] == "this_week"
        assert len(lever_api.calls("GET", "/opportunities")) == 1


class TestManageInterview:
    """Tests for lever_manage_interview."""

    @pytest.mark.asyncio
    async def test_schedule_creates_panel(self, lever_api):
        """Test the panel body built for a scheduled interview."""
        lever_api.add("POST", "/opportunities/opp-1/panels", reply(200, {"data": {"id": "panel-9"}}))

        result = await lever_manage_interview({
            "action": "schedule",
            "opportunity_id": "opp-1",
            "perform_as": "user-1",
            "interview_details": {
                "date": "2024-03-01T17:00:00Z",
                "duration_minutes": 60,
                "interviewers": [{"id": "u-1", "feedback_template": "tmpl-1"}, {"id": "u-2"}],
                "type": "Technical",
            },
        })

        assert result == {"success": True, "action": "schedule", "panel": {"id": "panel-9"}}
        request = lever_api.requests[0]
        assert request.url.params["perform_as"] == "user-1"
        body = json.loads(request.content)
        assert body == {
            "timezone": "America/Los_Angeles",
            "feedbackReminder": "daily",
            "interviews": [{
                "subject": "Technical Interview",
                "interviewers": [{"id": "u-1", "feedbackTemplate": "tmpl-1"}, {"id": "u-2"}],
                "date": parse_iso_to_ms("2024-03-01T17:00:00Z"),
                "duration": 60,
            }],
        }

    @pytest.mark.asyncio
    async def test_reschedule(self, lever_api):
        """Test that rescheduling sends only the new date."""
        lever_api.add("PUT", "/opportunities/opp-1/interviews/i-1", reply(200, {"data": {"id": "i-1"}}))

        result = await lever_manage_interview({
            "action": "reschedule",
            "opportunity_id": "opp-1",
            "perform_as": "user-1",
            "interview_id": "i-1",
            "reschedule_data": {"new_date": "2024-03-02T17:00:00Z", "reason": "Interviewer sick"},
        })

        assert result["reason"] == "Interviewer sick"
        assert json.loads(lever_api.requests[0].content) == {
            "date": parse_iso_to_ms("2024-03-02T17:00:00Z")
        }

    @pytest.mark.asyncio
    async def test_cancel(self, lever_api):
        """Test that cancelling deletes the interview."""
        lever_api.add("DELETE", "/opportunities/opp-1/interviews/i-1", reply(204))

        result = await lever_manage_interview({
            "action": "cancel",
            "opportunity_id": "opp-1",
            "perform_as": "user-1",
            "interview_id": "i-1",
            "cancel_reason": "Candidate withdrew",
        })

        assert result == {
            "success": True,
            "action": "cancel",
            "interview_id": "i-1",
            "reason": "Candidate withdrew",
        }

    @pytest.mark.asyncio
    async def test_action_requirements(self, lever_api):
        """Test the per-action required fields."""
        schedule = await lever_manage_interview(
            {"action": "schedule", "opportunity_id": "opp-1", "perform_as": "u"}
        )
        cancel = await lever_manage_interview(
            {"action": "cancel", "opportunity_id": "opp-1", "perform_as": "u"}
        )
        no_actor = await lever_manage_interview(
            {"action": "cancel", "opportunity_id": "opp-1", "interview_id": "i-1"}
        )

        assert "interview_details" in schedule["error"]["message"]
        assert "interview_id" in cancel["error"]["message"]
        assert "perform_as" in no_actor["error"]["message"]
        assert lever_api.requests == []

    @pytest.mark.asyncio
    async def test_invalid_interview_details(self, lever_api):
        """Test that a bad date or empty interviewer list is rejected."""
        result = await lever_manage_interview({
            "action": "schedule",
            "opportunity_id": "opp-1",
            "perform_as": "u",
            "interview_details": {"date": "tomorrow", "duration_minutes": 30, "interviewers": []},
        })

        assert result["error"]["code"] == "VALIDATION_ERROR"
