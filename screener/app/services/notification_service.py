"""Best-effort notification dispatch (email, Slack, Teams, workflow callback)"""

import asyncio
from html import escape
from typing import Any, Dict, List, Optional

import httpx

from screener.app.core.config import settings
from screener.app.core.logging import get_logger
from screener.app.schemas.notification import DispatchResult

logger = get_logger(__name__)

_EMAIL_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background-color: %(color)s; color: white; padding: 20px; text-align: center; }
    .content { padding: 20px; background-color: #f9f9f9; }
    .button { background-color: %(color)s; color: white; padding: 12px 24px; text-decoration: none; display: inline-block; border-radius: 4px; margin: 20px 0; }
    .footer { text-align: center; padding: 20px; font-size: 12px; color: #666; }
"""

_STATUS_EMOJI = {"screening-passed": "✅", "borderline": "⚠️"}


def _render_email(title: str, body_html: str, color: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <style>{_EMAIL_STYLE % {"color": color}}</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{title}</h1></div>
    <div class="content">
{body_html}
      <p>Best regards,<br>The Recruitment Team</p>
    </div>
    <div class="footer"><p>This email was sent automatically. Please do not reply.</p></div>
  </div>
</body>
</html>
"""


class NotificationService:
    """
    Sends candidate- and recruiter-facing messages
    
    Every public method returns DispatchResult values and never raises:
    delivery failures are logged and otherwise ignored.
    """
    
    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        email_webhook_url: str = None,
        email_from: str = None,
        slack_webhook_url: str = None,
        teams_webhook_url: str = None,
        callback_url: str = None,
        frontend_url: str = None,
        calendly_link: str = None
    ):
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=settings.NOTIFICATION_TIMEOUT_SECONDS)
        self.email_webhook_url = email_webhook_url if email_webhook_url is not None else settings.EMAIL_WEBHOOK_URL
        self.email_from = email_from or settings.EMAIL_FROM
        self.slack_webhook_url = slack_webhook_url if slack_webhook_url is not None else settings.SLACK_WEBHOOK_URL
        self.teams_webhook_url = teams_webhook_url if teams_webhook_url is not None else settings.TEAMS_WEBHOOK_URL
        self.callback_url = callback_url if callback_url is not None else settings.CALLBACK_URL
        self.frontend_url = (frontend_url or settings.FRONTEND_URL).rstrip("/")
        self.calendly_link = calendly_link if calendly_link is not None else settings.CALENDLY_LINK
    
    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()
    
    async def _post(self, channel: str, url: str, payload: Dict[str, Any]) -> DispatchResult:
        """POST ``payload`` to ``url``; failures become a logged DispatchResult"""
        if not url:
            logger.warning(f"{channel} webhook URL not configured, skipping")
            return DispatchResult(channel=channel, ok=False, skipped=True, error="not configured")
        try:
            response = await self.http_client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send {channel} notification: {e!r}")
            return DispatchResult(channel=channel, ok=False, error=str(e) or type(e).__name__)
        
        logger.info(f"{channel} notification sent")
        return DispatchResult(channel=channel, ok=True)
    
    async def send_email(self, to: Optional[str], subject: str, html: str) -> DispatchResult:
        """Send an HTML email through the email webhook"""
        if not to:
            logger.warning(f"No recipient for email '{subject}', skipping")
            return DispatchResult(channel="email", ok=False, skipped=True, error="no recipient")
        return await self._post("email", self.email_webhook_url, {
            "type": "email",
            "to": to,
            "subject": subject,
            "html": html,
            "from": self.email_from,
        })
    
    async def send_interview_invitation(
        self,
        candidate_name: str,
        candidate_email: Optional[str],
        job_title: str
    ) -> DispatchResult:
        name = escape(candidate_name)
        booking = (
            f'      <p style="text-align: center;"><a href="{escape(self.calendly_link)}" class="button">Book your interview</a></p>\n'
            if self.calendly_link else ""
        )
        body = (
            f"      <p>Hello {name},</p>\n"
            f"      <p>We are pleased to let you know that your application has passed the screening stage "
            f"for the <strong>{escape(job_title)}</strong> position.</p>\n"
            f"      <p>We would like to invite you to an interview to learn more about your experience and skills.</p>\n"
            f"{booking}"
            f"      <p>Please contact us if you have any questions.</p>"
        )
        return await self.send_email(
            candidate_email,
            f"Interview invitation - {job_title}",
            _render_email(f"Congratulations {name}!", body, "#4CAF50"),
        )
    
    async def send_rejection_feedback(
        self,
        candidate_name: str,
        candidate_email: Optional[str],
        job_title: str,
        feedback: str,
        missing_skills: Optional[List[str]] = None
    ) -> DispatchResult:
        name = escape(candidate_name)
        skills_html = ""
        if missing_skills:
            items = "".join(f"<li>{escape(skill)}</li>" for skill in missing_skills)
            skills_html = f"      <p>Skills worth developing:</p><ul>{items}</ul>\n"
        body = (
            f"      <p>Hello {name},</p>\n"
            f"      <p>Thank you for applying for the <strong>{escape(job_title)}</strong> position.</p>\n"
            f"      <p>After careful review we will not be moving forward with your application for this role.</p>\n"
            f"{skills_html}"
            f"      <p><strong>Feedback:</strong> {escape(feedback)}</p>\n"
            f"      <p>We encourage you to keep developing these skills and to apply again in the future.</p>"
        )
        return await self.send_email(
            candidate_email,
            f"Your application for {job_title}",
            _render_email(f"Thank you, {name}", body, "#2196F3"),
        )
    
    async def send_slack(self, text: str, blocks: Optional[List[Dict[str, Any]]] = None) -> DispatchResult:
        return await self._post("slack", self.slack_webhook_url, {"text": text, "blocks": blocks})
    
    async def send_teams(self, title: str, text: str, sections: Optional[List[Dict[str, Any]]] = None) -> DispatchResult:
        return await self._post("teams", self.teams_webhook_url, {
            "@type": "MessageCard",
            "@context": "https://schema.org/extensions",
            "summary": title or text,
            "themeColor": "0078D4",
            "title": title,
            "text": text,
            "sections": sections,
        })
    
    async def notify_recruiter(
        self,
        candidate_name: str,
        candidate_id: str,
        job_title: str,
        score: float,
        status: str
    ) -> List[DispatchResult]:
        """Post the screening outcome to every configured chat channel"""
        emoji = _STATUS_EMOJI.get(status, "❌")
        candidate_url = f"{self.frontend_url}/candidates/{candidate_id}"
        score_text = f"{score:g}/100"
        
        blocks = [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"*New candidate*\n*Name:* {candidate_name}\n*Position:* {job_title}\n"
                        f"*Score:* {score_text}\n*Status:* {status}"
                    ),
                },
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View details"},
                        "url": candidate_url,
                        "style": "primary",
                    }
                ],
            },
        ]
        sections = [
            {
                "activityTitle": candidate_name,
                "activitySubtitle": job_title,
                "facts": [
                    {"name": "AI score", "value": score_text},
                    {"name": "Status", "value": status},
                    {"name": "Candidate ID", "value": candidate_id},
                ],
                "potentialAction": [
                    {"@type": "OpenUri", "name": "View details", "targets": [{"os": "default", "uri": candidate_url}]}
                ],
            }
        ]
        
        return list(await asyncio.gather(
            self.send_slack(f"{emoji} New candidate: {candidate_name}", blocks),
            self.send_teams(
                f"{emoji} New candidate: {candidate_name}",
                f"**Position:** {job_title}\n**Score:** {score_text}\n**Status:** {status}",
                sections,
            ),
        ))
    
    async def send_callback(self, payload: Dict[str, Any]) -> DispatchResult:
        """Fire-and-forget POST to the outward workflow callback"""
        if not self.callback_url:
            logger.debug("Callback URL not configured, skipping")
            return DispatchResult(channel="callback", ok=False, skipped=True, error="not configured")
        return await self._post("callback", self.callback_url, payload)
