"""Rule-based screening decisions"""

from screener.app.schemas.analysis import DecisionOutcome, RuleConfig, ScoringResult


def decide(scoring: ScoringResult, rules: RuleConfig = None) -> DecisionOutcome:
    """
    Map a scoring result to a screening outcome
    
    Rules are evaluated in order and the first match wins:
    
    1. passed when overall and tech both reach their pass thresholds
    2. borderline when overall or tech reaches its borderline threshold, or
       few enough skills are missing
    3. rejected otherwise
    """
    rules = rules or RuleConfig()
    
    if scoring.score_overall >= rules.pass_overall and scoring.score_tech >= rules.pass_tech:
        return DecisionOutcome.PASSED
    
    if (
        scoring.score_overall >= rules.borderline_overall
        or scoring.score_tech >= rules.borderline_tech
        or len(scoring.missing_skills) <= rules.borderline_max_missing_skills
    ):
        return DecisionOutcome.BORDERLINE
    
    return DecisionOutcome.REJECTED


def generate_feedback_message(scoring: ScoringResult, max_items: int = 3) -> str:
    """Human-readable feedback for a rejected candidate"""
    parts = []
    
    if scoring.strengths:
        parts.append(f"Your strengths include {', '.join(scoring.strengths[:max_items])}.")
    
    if scoring.missing_skills:
        parts.append(
            f"For this role we were looking for more experience with {', '.join(scoring.missing_skills[:max_items])}."
        )
    
    if scoring.summary:
        parts.append(scoring.summary.strip())
    
    if not parts:
        parts.append("Your profile did not match the requirements of this role closely enough.")
    
    return " ".join(parts)
