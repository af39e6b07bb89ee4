import logging
from collections import Counter
from typing import List, Optional

from community_ai.models import ModerationContext, SpamContext
from community_ai.schemas import ContentQualityReport, ModerationResult
from community_ai.services.model_gateway import ModelGateway
from community_ai.validation import require_choice, require_text

logger = logging.getLogger(__name__)

QUALITY_CONTENT_TYPES = ("post", "comment", "article")

MODERATOR_PROMPT = (
    "You are an expert content moderator who maintains community safety while preserving free expression. "
    "You are thorough, fair, and consistent in your evaluations."
)
QUALITY_ANALYST_PROMPT = (
    "You are an expert content analyst who evaluates content quality objectively and provides constructive feedback."
)
SPAM_DETECTOR_PROMPT = (
    "You are an expert spam detector who identifies promotional, irrelevant, or repetitive content "
    "while avoiding false positives."
)
SAFETY_ANALYST_PROMPT = (
    "You are an expert community safety analyst who identifies patterns and provides actionable insights "
    "for improving community health."
)
GUIDELINE_BUILDER_PROMPT = (
    "You are an expert community builder who creates effective guidelines that foster healthy, engaged communities."
)


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def build_moderation_prompt(content: str, context: ModerationContext) -> str:
    history = context.user_history
    guidelines = "\n".join(context.community_guidelines) or "Standard community guidelines apply"
    return "\n".join(
        [
            f"Moderate this {context.type} content according to community standards:",
            "",
            f'Content: "{content}"',
            "",
            "Community Guidelines:",
            guidelines,
            "",
            "User Context:",
            f"- Previous violations: {history.violations if history else 0}",
            f"- Account age: {(history.account_age if history else None) or 'unknown'}",
            f"- Community standing: {history.standing if history else 'good'}",
            f"- Report count for this content: {context.report_count}",
            "",
            "Evaluate for:",
            "1. Compliance with community guidelines",
            "2. Potential harm or toxicity",
            "3. Spam or promotional content",
            "4. Quality and relevance",
            "5. Need for human review",
            "",
            "Provide decision, confidence level, and detailed reasoning.",
        ]
    )


def build_quality_prompt(content: str, content_type: str) -> str:
    return "\n".join(
        [
            f"Analyze the quality of this {content_type}:",
            "",
            f'Content: "{content}"',
            "",
            "Evaluate:",
            "1. Clarity and coherence",
            "2. Value to the community",
            "3. Engagement potential",
            "4. Factual accuracy (if applicable)",
            "5. Writing quality",
            "6. Relevance to topic/community",
            "",
            "Provide scores, identified issues, and improvement suggestions.",
        ]
    )


def build_spam_prompt(content: str, user_context: SpamContext) -> str:
    return "\n".join(
        [
            "Analyze this content for spam characteristics:",
            "",
            f'Content: "{content}"',
            "",
            "User Context:",
            f"- Posts in last hour: {user_context.post_frequency}",
            f"- Links in content: {user_context.link_count}",
            f"- Similar content posted before: {_yes_no(user_context.duplicate_content)}",
            f"- New account (< 7 days): {_yes_no(user_context.new_account)}",
            "",
            "Look for:",
            "1. Promotional language patterns",
            "2. Irrelevant or off-topic content",
            "3. Repetitive messaging",
            "4. Suspicious link patterns",
            "5. Generic or template-like content",
            "",
            "Provide spam probability and specific indicators.",
        ]
    )


def build_moderation_summary_prompt(results: List[ModerationResult], timeframe: str) -> str:
    decisions = Counter(result.decision for result in results)
    issues = "; ".join(
        ", ".join(result.categories) for result in results if result.decision != "approve" and result.categories
    )
    return "\n".join(
        [
            f"Generate a moderation summary for the {timeframe}:",
            "",
            "Moderation Results:",
            f"- Total items reviewed: {len(results)}",
            f"- Approved: {decisions['approve']}",
            f"- Flagged: {decisions['flag']}",
            f"- Rejected: {decisions['reject']}",
            "",
            "Common Issues:",
            issues or "none",
            "",
            "Provide:",
            "1. Key trends and patterns",
            "2. Most common violation types",
            "3. Recommendations for community guidelines",
            "4. Suggested preventive measures",
            "5. Areas needing human moderator attention",
        ]
    )


def build_guideline_suggestion_prompt(community_type: str, existing_issues: List[str]) -> str:
    return "\n".join(
        [
            f"Suggest community guidelines for a {community_type} community:",
            "",
            "Current Issues to Address:",
            "\n".join(existing_issues) or "none reported",
            "",
            "Create guidelines that:",
            "1. Address specific issues",
            "2. Are clear and actionable",
            "3. Promote positive behavior",
            "4. Are appropriate for the community type",
            "5. Include enforcement procedures",
            "",
            "Provide 5-8 specific guidelines with explanations.",
        ]
    )


class ContentModerationService:
    """Moderation verdicts and reports. Decisions are returned, never enforced."""

    def __init__(self, gateway: ModelGateway) -> None:
        self.gateway = gateway

    async def moderate_content(self, content: str, context: Optional[ModerationContext] = None) -> ModerationResult:
        content = require_text("content", content)
        prompt = build_moderation_prompt(content, context or ModerationContext())
        return await self.gateway.generate_structured(prompt, ModerationResult, system_prompt=MODERATOR_PROMPT)

    async def analyze_content_quality(self, content: str, content_type: str = "post") -> ContentQualityReport:
        content = require_text("content", content)
        require_choice("content_type", content_type, QUALITY_CONTENT_TYPES)
        return await self.gateway.generate_structured(
            build_quality_prompt(content, content_type),
            ContentQualityReport,
            system_prompt=QUALITY_ANALYST_PROMPT,
        )

    async def detect_spam(self, content: str, user_context: Optional[SpamContext] = None) -> str:
        content = require_text("content", content)
        prompt = build_spam_prompt(content, user_context or SpamContext())
        return await self.gateway.generate_text(prompt, system_prompt=SPAM_DETECTOR_PROMPT)

    async def generate_moderation_summary(self, results: List[ModerationResult], timeframe: str) -> str:
        timeframe = require_text("timeframe", timeframe)
        prompt = build_moderation_summary_prompt(results, timeframe)
        return await self.gateway.generate_text(prompt, system_prompt=SAFETY_ANALYST_PROMPT)

    async def suggest_community_guidelines(self, community_type: str, existing_issues: List[str]) -> str:
        community_type = require_text("community_type", community_type)
        prompt = build_guideline_suggestion_prompt(community_type, existing_issues or [])
        return await self.gateway.generate_text(prompt, system_prompt=GUIDELINE_BUILDER_PROMPT)
