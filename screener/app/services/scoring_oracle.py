"""Client for the external CV scoring oracle (Gemini)"""

import asyncio
import json
import re
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from screener.app.core.config import settings
from screener.app.core.logging import get_logger
from screener.app.core.exceptions import (
    OracleMalformedResponseException,
    OracleUnavailableException,
)
from screener.app.schemas.analysis import JobContext, ScoringResult, ScoringWeights

logger = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers"""
    return _FENCE_PATTERN.sub("", text).strip()


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` span in ``text``
    
    Braces inside JSON strings are ignored. Returns None when no complete
    object is present.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_scoring_response(raw_text: str) -> ScoringResult:
    """
    Clean up an oracle answer and validate it as a ScoringResult
    
    Raises:
        OracleMalformedResponseException: If no valid scoring object can be isolated
    """
    if not raw_text or not raw_text.strip():
        raise OracleMalformedResponseException("Empty response from scoring oracle", raw_text)
    
    cleaned = strip_code_fences(raw_text)
    candidate = extract_json_object(cleaned)
    if candidate is None:
        raise OracleMalformedResponseException("No JSON object found in oracle response", raw_text)
    
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise OracleMalformedResponseException(f"Oracle response is not valid JSON: {e}", raw_text) from e
    
    try:
        return ScoringResult.model_validate(payload)
    except ValidationError as e:
        raise OracleMalformedResponseException(
            f"Oracle response failed validation: {e.error_count()} errors", raw_text
        ) from e


def build_prompt(cv_text: str, job_context: JobContext, weights: ScoringWeights) -> str:
    """Build the single scoring prompt sent to the oracle"""
    skills = ", ".join(job_context.skills_required) if job_context.skills_required else "Not specified"
    return f"""You are an experienced technical recruiter. Evaluate the CV below against the job posting.

**Job Posting:**
---
Title: {job_context.title or "Not specified"}
Experience level: {job_context.experience_level or "Not specified"}
Location: {job_context.location or "Not specified"}
Required skills: {skills}

Description:
{job_context.description or "Not specified"}

Requirements:
{job_context.requirements or "Not specified"}
---

**Evaluation weights:**
- Technical fit: {weights.technical * 100:.0f}%
- Experience fit: {weights.experience * 100:.0f}%
- Language fit: {weights.language * 100:.0f}%
- Culture fit: {weights.culture * 100:.0f}%

Score each axis from 0 to 100. score_overall must be the weighted combination of the four axes.

**CV Content:**
---
{cv_text}
---

Respond with a single JSON object and nothing else, using exactly these keys:
{{
  "score_overall": 0,
  "score_tech": 0,
  "score_experience": 0,
  "score_language": 0,
  "score_culture_fit": 0,
  "strengths": [],
  "weaknesses": [],
  "matched_skills": [],
  "missing_skills": [],
  "summary": "",
  "notes_for_interviewer": [],
  "recommended_questions": []
}}
"""


class ScoringOracleClient:
    """Scores CV text against a job context, retrying transient failures"""
    
    def __init__(
        self,
        api_key: str = None,
        model: str = None,
        api_url: str = None,
        timeout: float = None,
        max_attempts: int = None,
        retry_base_delay: float = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.api_url = (api_url or settings.GEMINI_API_URL).rstrip("/")
        self.max_attempts = max_attempts or settings.ORACLE_MAX_ATTEMPTS
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.ORACLE_RETRY_BASE_SECONDS
        )
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.ORACLE_TIMEOUT_SECONDS
        )
        self._sleep = sleep
    
    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"
    
    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()
    
    async def _request(self, prompt: str) -> str:
        """Send one generateContent call and return the answer text"""
        response = await self.http_client.post(
            self.endpoint,
            params={"key": self.api_key},
            json={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": 0.2},
            },
        )
        response.raise_for_status()
        
        try:
            data = response.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise OracleMalformedResponseException(
                f"Unexpected oracle response envelope: {e}", response.text
            ) from e
    
    async def score(
        self,
        cv_text: str,
        job_context: JobContext,
        weights: Optional[ScoringWeights] = None
    ) -> ScoringResult:
        """
        Score a CV against a job context
        
        Up to ``max_attempts`` calls are made with the same prompt; the delay
        before retry N is ``N * retry_base_delay`` seconds.
        
        Raises:
            OracleUnavailableException: If every attempt failed at the transport level
            OracleMalformedResponseException: If the last attempt returned an unusable answer
        """
        prompt = build_prompt(cv_text, job_context, weights or ScoringWeights())
        last_error: Optional[Exception] = None
        
        for attempt in range(1, self.max_attempts + 1):
            try:
                raw_text = await self._request(prompt)
                result = parse_scoring_response(raw_text)
                logger.info(f"Scoring oracle answered on attempt {attempt}: overall={result.score_overall}")
                return result
            except OracleMalformedResponseException as e:
                last_error = e
                logger.warning(f"Scoring oracle attempt {attempt}/{self.max_attempts} returned malformed response: {e}")
            except httpx.HTTPError as e:
                last_error = e
                logger.warning(f"Scoring oracle attempt {attempt}/{self.max_attempts} failed: {e!r}")
            
            if attempt < self.max_attempts:
                await self._sleep(self.retry_base_delay * attempt)
        
        if isinstance(last_error, OracleMalformedResponseException):
            raise last_error
        raise OracleUnavailableException(
            f"Scoring oracle unavailable after {self.max_attempts} attempts: {last_error!r}",
            attempts=self.max_attempts
        ) from last_error
