"""Unit tests for notification dispatch"""

import json

import httpx
import pytest

from screener.app.services.notification_service import NotificationService


class RecordingTransport:
    """Collects requests and answers each one with ``status_code``"""
    
    def __init__(self, status_code: int = 200, fail_hosts=()):
        self.status_code = status_code
        self.fail_hosts = set(fail_hosts)
        self.requests = []
    
    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.fail_hosts:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.status_code, json={"ok": True})
    
    def bodies(self, host: str):
        return [json.loads(r.content) for r in self.requests if r.url.host == host]


def make_service(transport, **overrides) -> NotificationService:
    options = {
        "email_webhook_url": "https://mail.test/send",
        "email_from": "jobs@acme.test",
        "slack_webhook_url": "https://slack.test/hook",
        "teams_webhook_url": "https://teams.test/hook",
        "callback_url": "https://workflow.test/callback",
        "frontend_url": "https://app.acme.test/",
        "calendly_link": "https://calendly.test/acme",
    }
    options.update(overrides)
    return NotificationService(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(transport)),
        **options,
    )


class TestCandidateEmails:
    
    @pytest.mark.asyncio
    async def test_interview_invitation(self):
        transport = RecordingTransport()
        service = make_service(transport)
        
        result = await service.send_interview_invitation("Jane <Doe>", "jane@example.com", "Backend Engineer")
        
        assert result.ok
        [body] = transport.bodies("mail.test")
        assert body["type"] == "email"
        assert body["to"] == "jane@example.com"
        assert body["from"] == "jobs@acme.test"
        assert body["subject"] == "Interview invitation - Backend Engineer"
        assert "Jane &lt;Doe&gt;" in body["html"]
        assert "https://calendly.test/acme" in body["html"]
    
    @pytest.mark.asyncio
    async def test_rejection_feedback_lists_missing_skills(self):
        transport = RecordingTransport()
        service = make_service(transport)
        
        result = await service.send_rejection_feedback(
            "Sam", "sam@example.com", "Data Engineer", "Keep going.", ["Spark", "Airflow"]
        )
        
        assert result.ok
        [body] = transport.bodies("mail.test")
        assert "<li>Spark</li><li>Airflow</li>" in body["html"]
        assert "Keep going." in body["html"]
    
    @pytest.mark.asyncio
    async def test_email_without_recipient_is_skipped(self):
        transport = RecordingTransport()
        service = make_service(transport)
        
        result = await service.send_interview_invitation("Jane", None, "Backend Engineer")
        
        assert not result.ok
        assert result.skipped
        assert transport.requests == []
    
    @pytest.mark.asyncio
    async def test_unconfigured_email_channel_is_skipped(self):
        transport = RecordingTransport()
        service = make_service(transport, email_webhook_url="")
        
        result = await service.send_email("jane@example.com", "Hi", "<p>Hi</p>")
        
        assert result.skipped
        assert transport.requests == []


class TestRecruiterNotifications:
    
    @pytest.mark.asyncio
    async def test_notify_recruiter_posts_to_slack_and_teams(self):
        transport = RecordingTransport()
        service = make_service(transport)
        
        results = await service.notify_recruiter("Jane", "cand-1", "Backend Engineer", 85, "screening-passed")
        
        assert [r.channel for r in results] == ["slack", "teams"]
        assert all(r.ok for r in results)
        
        [slack] = transport.bodies("slack.test")
        assert "Jane" in slack["text"]
        button = slack["blocks"][1]["elements"][0]
        assert button["url"] == "https://app.acme.test/candidates/cand-1"
        
        [teams] = transport.bodies("teams.test")
        assert teams["@type"] == "MessageCard"
        facts = {f["name"]: f["value"] for f in teams["sections"][0]["facts"]}
        assert facts["AI score"] == "85/100"
        assert facts["Status"] == "screening-passed"
    
    @pytest.mark.asyncio
    async def test_one_channel_failing_does_not_affect_the_other(self):
        transport = RecordingTransport(fail_hosts={"slack.test"})
        service = make_service(transport)
        
        slack, teams = await service.notify_recruiter("Jane", "cand-1", "Backend Engineer", 55, "borderline")
        
        assert not slack.ok
        assert "connection refused" in slack.error
        assert teams.ok
    
    @pytest.mark.asyncio
    async def test_http_error_status_is_reported_not_raised(self):
        service = make_service(RecordingTransport(status_code=500))
        
        results = await service.notify_recruiter("Jane", "cand-1", "Backend Engineer", 40, "rejected")
        
        assert [r.ok for r in results] == [False, False]


class TestCallback:
    
    @pytest.mark.asyncio
    async def test_callback_posts_payload(self):
        transport = RecordingTransport()
        service = make_service(transport)
        
        result = await service.send_callback({"candidateId": "cand-1", "status": "rejected"})
        
        assert result.ok
        assert transport.bodies("workflow.test") == [{"candidateId": "cand-1", "status": "rejected"}]
    
    @pytest.mark.asyncio
    async def test_callback_not_configured(self):
        transport = RecordingTransport()
        service = make_service(transport, callback_url="")
        
        result = await service.send_callback({"candidateId": "cand-1"})
        
        assert result.skipped
        assert transport.requests == []
